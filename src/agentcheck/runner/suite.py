"""Suite execution: runs every active case in order and aggregates a Run"""

from collections.abc import Sequence

from agentcheck.core.cancellation import CancellationToken
from agentcheck.core.exceptions import Cancelled
from agentcheck.core.logging import get_logger
from agentcheck.runner.case_runner import CaseRunner
from agentcheck.runner.retry import CasePolicy
from agentcheck.schema.result import CaseResult, Run, utcnow
from agentcheck.schema.test_case import TestCaseSpec, TestSuiteSpec
from agentcheck.store.base import RunStore
from agentcheck.utils.stats import summarize_latencies

logger = get_logger(__name__)


class SuiteExecutor:
    """
    Sequential suite executor

    Cases run strictly one after another with ``delay_between_tests_ms``
    between them to stay inside the agent's rate limits. The Run is owned by
    this executor until it is marked completed.
    """

    def __init__(
        self,
        case_runner: CaseRunner,
        *,
        delay_between_tests_ms: int = 2000,
        store: RunStore | None = None,
    ):
        self.case_runner = case_runner
        self.delay_between_tests_ms = delay_between_tests_ms
        self.store = store

    async def execute(
        self,
        suite: TestSuiteSpec,
        *,
        target_name: str = "",
        cancel: CancellationToken | None = None,
    ) -> Run:
        cancel = cancel or CancellationToken()
        cases = suite.active_cases
        run = Run(suite_name=suite.name, target_name=target_name, total=len(cases))
        if self.store is not None:
            self.store.add_run(run)

        logger.info(f"running suite '{suite.name}' ({len(cases)} cases) against '{target_name or 'default'}'")
        transport = self.case_runner.client.settings
        latencies: list[float] = []

        for i, case in enumerate(cases):
            if cancel.cancelled:
                self._skip_remaining(run, cases[i:])
                break

            policy = CasePolicy.resolve(case, transport, suite)
            try:
                result = await self.case_runner.execute(case, policy, cancel)
            except Exception as e:
                logger.error(f"error executing test case {case.id}: {e}")
                self._record(run, CaseResult(test_case_id=case.id, verdict="error", error_message=str(e)))
                run.failed += 1
            else:
                self._record(run, result)
                self._count(run, result)
                latencies.append(result.latency_ms)
                logger.info(f"test case {case.id}: {result.verdict}")

            is_last = i == len(cases) - 1
            if is_last:
                break
            if cancel.cancelled:
                self._skip_remaining(run, cases[i + 1 :])
                break
            if self.delay_between_tests_ms > 0:
                logger.info(f"waiting {self.delay_between_tests_ms}ms before next test")
                try:
                    await cancel.sleep(self.delay_between_tests_ms / 1000)
                except Cancelled:
                    self._skip_remaining(run, cases[i + 1 :])
                    break

        # the last case may have been interrupted with nothing left to skip
        if cancel.cancelled:
            run.cancelled = True

        summary = summarize_latencies(latencies)
        run.average_latency_ms = summary.average_ms
        run.median_latency_ms = summary.median_ms
        run.p95_latency_ms = summary.p95_ms
        run.completed_at = utcnow()
        run.status = "completed"
        if self.store is not None:
            self.store.update_run(run)

        logger.info(
            f"suite '{suite.name}' completed: {run.passed} passed, {run.failed} failed, {run.skipped} skipped"
            + (" (cancelled)" if run.cancelled else "")
        )
        return run

    def _record(self, run: Run, result: CaseResult) -> None:
        result.run_id = run.id
        run.results.append(result)
        if self.store is not None:
            self.store.add_result(run, result)

    @staticmethod
    def _count(run: Run, result: CaseResult) -> None:
        if result.verdict == "pass":
            run.passed += 1
        elif result.verdict == "fail":
            run.failed += 1
        else:
            run.skipped += 1

    def _skip_remaining(self, run: Run, cases: Sequence[TestCaseSpec]) -> None:
        run.cancelled = True
        if cases:
            logger.info(f"execution cancelled; {len(cases)} test case(s) not started")
        for case in cases:
            self._record(
                run,
                CaseResult(test_case_id=case.id, verdict="skipped", error_message="not started: execution cancelled"),
            )
            run.skipped += 1
