"""Runs one suite against several target agents in turn"""

from collections.abc import Callable, Sequence

from agentcheck.client.direct_line import DirectLineClient
from agentcheck.core.cancellation import CancellationToken
from agentcheck.core.exceptions import Cancelled
from agentcheck.core.logging import get_logger
from agentcheck.judge.evaluator import JudgeEvaluator
from agentcheck.runner.case_runner import CaseRunner
from agentcheck.runner.retry import RateLimitPredicate, contains_rate_limit_marker
from agentcheck.runner.suite import SuiteExecutor
from agentcheck.schema.config import ExecutionConfig, JudgeConfig, TargetConfig, TransportSettings
from agentcheck.schema.result import Run
from agentcheck.schema.test_case import TestSuiteSpec
from agentcheck.store.base import RunStore

logger = get_logger(__name__)


class MultiTargetCoordinator:
    """
    Sequential fan-out of one suite over many targets

    Every target gets its own transport client, so session tokens are never
    shared. A failing target is logged and skipped; the others still run.
    """

    def __init__(
        self,
        execution: ExecutionConfig,
        default_judge: JudgeConfig,
        *,
        judge: JudgeEvaluator | None = None,
        client_factory: Callable[[TransportSettings], DirectLineClient] = DirectLineClient,
        store: RunStore | None = None,
        rate_limit_predicate: RateLimitPredicate = contains_rate_limit_marker,
    ):
        self.execution = execution
        self.default_judge = default_judge
        self.judge = judge or JudgeEvaluator()
        self.client_factory = client_factory
        self.store = store
        self.rate_limit_predicate = rate_limit_predicate

    @property
    def delay_between_targets_ms(self) -> int:
        return min(self.execution.max_target_delay_ms, 2 * self.execution.delay_between_tests_ms)

    async def execute_for_target(
        self,
        suite: TestSuiteSpec,
        target: TargetConfig,
        cancel: CancellationToken | None = None,
    ) -> Run:
        logger.info(f"executing suite '{suite.name}' against target '{target.name}'")
        judge_config = target.judge if target.judge is not None else self.default_judge

        client = self.client_factory(target.transport)
        async with client:
            runner = CaseRunner(
                client,
                self.judge,
                judge_config,
                rate_limit_predicate=self.rate_limit_predicate,
            )
            executor = SuiteExecutor(
                runner,
                delay_between_tests_ms=self.execution.delay_between_tests_ms,
                store=self.store,
            )
            run = await executor.execute(suite, target_name=target.name, cancel=cancel)

        logger.info(f"target '{target.name}' finished: {run.passed}/{run.total} passed")
        return run

    async def execute(
        self,
        suite: TestSuiteSpec,
        targets: Sequence[TargetConfig],
        cancel: CancellationToken | None = None,
    ) -> list[Run]:
        cancel = cancel or CancellationToken()
        logger.info(f"executing suite '{suite.name}' against {len(targets)} target(s)")
        runs: list[Run] = []

        for i, target in enumerate(targets):
            if cancel.cancelled:
                logger.info(f"cancelled; {len(targets) - i} target(s) not started")
                break
            try:
                runs.append(await self.execute_for_target(suite, target, cancel))
            except Exception as e:
                logger.error(f"failed to execute suite for target '{target.name}', continuing: {e}")

            if i < len(targets) - 1:
                delay_ms = self.delay_between_targets_ms
                logger.info(f"waiting {delay_ms}ms before next target")
                try:
                    await cancel.sleep(delay_ms / 1000)
                except Cancelled:
                    logger.info("cancelled while waiting for the next target")
                    break

        logger.info(f"execution completed for {len(runs)}/{len(targets)} targets")
        return runs
