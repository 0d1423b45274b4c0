"""Scripted multi-turn test case execution with retry and timeout handling"""

import time
from dataclasses import dataclass

from agentcheck.client.direct_line import DirectLineClient
from agentcheck.core.cancellation import CancellationToken
from agentcheck.core.exceptions import Cancelled, RateLimited, TransportAuthError
from agentcheck.core.logging import get_logger
from agentcheck.judge.evaluator import JudgeEvaluator
from agentcheck.runner.retry import (
    CasePolicy,
    RateLimitPredicate,
    backoff_delay,
    contains_rate_limit_marker,
)
from agentcheck.schema.config import JudgeConfig
from agentcheck.schema.result import CaseResult, TranscriptMessage, Verdict, utcnow
from agentcheck.schema.test_case import TestCaseSpec

logger = get_logger(__name__)

RATE_LIMIT_EXHAUSTED = "Rate limit exceeded after all retry attempts"


@dataclass
class _Attempt:
    number: int
    started: float
    transcript: list[TranscriptMessage]

    @property
    def latency_ms(self) -> float:
        return (time.monotonic() - self.started) * 1000


class CaseRunner:
    """
    Runs one test case against the agent and judges the transcript

    Each attempt opens a fresh conversation and plays every user turn,
    waiting for a bot reply after each one. Transport failures and rate-limit
    replies are retried with exponential backoff up to ``max_retries``; bad
    credentials are not retried. Cancellation yields a ``skipped`` result.
    """

    def __init__(
        self,
        client: DirectLineClient,
        judge: JudgeEvaluator,
        judge_config: JudgeConfig,
        *,
        rate_limit_predicate: RateLimitPredicate = contains_rate_limit_marker,
    ):
        self.client = client
        self.judge = judge
        self.judge_config = judge_config
        self.is_rate_limited = rate_limit_predicate

    async def execute(
        self,
        case: TestCaseSpec,
        policy: CasePolicy,
        cancel: CancellationToken | None = None,
    ) -> CaseResult:
        cancel = cancel or CancellationToken()
        max_retries = policy.max_retries
        attempt = _Attempt(number=0, started=time.monotonic(), transcript=[])

        for n in range(max_retries + 1):
            attempt = _Attempt(number=n, started=time.monotonic(), transcript=[])
            try:
                await self._play(case, policy, attempt, cancel)
                if self.is_rate_limited(attempt.transcript):
                    raise RateLimited(f"rate limit marker in reply to {case.id}")
            except Cancelled as e:
                logger.info(f"test case {case.id} cancelled on attempt {n + 1}")
                return self._finish(case, attempt, "skipped", error=str(e))
            except TransportAuthError as e:
                logger.error(f"test case {case.id}: transport rejected credentials: {e}")
                return self._finish(case, attempt, "error", error=str(e))
            except RateLimited:
                if n < max_retries:
                    delay = backoff_delay(n, policy.backoff_seconds)
                    logger.warning(
                        f"rate limit detected for {case.id}, attempt {n + 1}/{max_retries + 1}; retrying in {delay:.0f}s"
                    )
                    if not await self._backoff(delay, cancel):
                        return self._finish(case, attempt, "skipped", error=cancel.reason)
                    continue
                logger.error(f"rate limit persisted for {case.id} after {n + 1} attempts")
                return self._finish(case, attempt, "error", error=RATE_LIMIT_EXHAUSTED)
            except Exception as e:
                if n < max_retries:
                    delay = backoff_delay(n, policy.backoff_seconds)
                    logger.warning(
                        f"test case {case.id} failed on attempt {n + 1}/{max_retries + 1}: {e}; retrying in {delay:.0f}s"
                    )
                    if not await self._backoff(delay, cancel):
                        return self._finish(case, attempt, "skipped", error=cancel.reason)
                    continue
                logger.error(f"test case {case.id} failed after {n + 1} attempts: {e}")
                return self._finish(case, attempt, "error", error=f"Failed after {n + 1} attempts: {e}")

            return await self._judge(case, attempt, cancel)

        # unreachable: every iteration returns or continues into the next one
        return self._finish(case, attempt, "error", error="retry budget exhausted")

    async def _play(
        self,
        case: TestCaseSpec,
        policy: CasePolicy,
        attempt: _Attempt,
        cancel: CancellationToken,
    ) -> None:
        transcript = attempt.transcript
        conversation_id = await cancel.guard(self.client.start_conversation())
        watermark = ""

        for turn_index, text in enumerate(case.user_input):
            transcript.append(
                TranscriptMessage(
                    role="user",
                    content=text,
                    timestamp=utcnow(),
                    sequence_number=len(transcript),
                    sender=self.client.settings.user_id,
                )
            )
            await cancel.guard(self.client.send_turn(conversation_id, text))

            poll = await self.client.wait_for_reply(
                conversation_id,
                watermark,
                timeout=policy.reply_timeout_seconds,
                cancel=cancel,
            )
            watermark = poll.watermark
            if poll.timed_out:
                logger.warning(f"{case.id} turn {turn_index + 1}: no reply within {policy.reply_timeout_seconds:.0f}s")

            for activity in poll.activities:
                transcript.append(
                    TranscriptMessage(
                        role="bot",
                        content=activity.text,
                        timestamp=activity.timestamp,
                        sequence_number=len(transcript),
                        sender=activity.from_name or activity.from_id or "bot",
                        activity_id=activity.id,
                    )
                )

    async def _judge(self, case: TestCaseSpec, attempt: _Attempt, cancel: CancellationToken) -> CaseResult:
        latency_ms = attempt.latency_ms
        try:
            evaluation = await cancel.guard(self.judge.evaluate(self.judge_config, case, attempt.transcript))
        except Cancelled as e:
            return self._finish(case, attempt, "skipped", error=str(e), latency_ms=latency_ms)

        result = self._finish(case, attempt, evaluation.verdict, latency_ms=latency_ms)
        result.turn_count = len(case.user_input)
        result.overall_score = evaluation.overall_score
        result.judge_rationale = evaluation.rationale
        result.judge_citations = list(evaluation.citations)
        if evaluation.scores is not None:
            result.task_success = evaluation.scores.task_success
            result.intent_match = evaluation.scores.intent_match
            result.factuality = evaluation.scores.factuality
            result.helpfulness = evaluation.scores.helpfulness
            result.safety = evaluation.scores.safety
        if evaluation.verdict == "error":
            result.error_message = evaluation.rationale
        logger.info(f"test case {case.id}: {result.verdict} in {latency_ms:.0f}ms")
        return result

    async def _backoff(self, delay: float, cancel: CancellationToken) -> bool:
        """Wait out a retry delay; False when cancelled"""
        try:
            await cancel.sleep(delay)
        except Cancelled:
            return False
        return True

    def _finish(
        self,
        case: TestCaseSpec,
        attempt: _Attempt,
        verdict: Verdict,
        *,
        error: str | None = None,
        latency_ms: float | None = None,
    ) -> CaseResult:
        return CaseResult(
            test_case_id=case.id,
            verdict=verdict,
            latency_ms=attempt.latency_ms if latency_ms is None else latency_ms,
            turn_count=sum(1 for m in attempt.transcript if m.role == "user"),
            attempts=attempt.number + 1,
            error_message=error,
            transcript=list(attempt.transcript),
        )
