"""Retry policy and rate-limit detection for test case attempts"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from agentcheck.schema.config import TransportSettings
from agentcheck.schema.result import TranscriptMessage
from agentcheck.schema.test_case import TestCaseSpec, TestSuiteSpec

# Known upstream error strings. Not guaranteed to be complete.
RATE_LIMIT_MARKERS = ("GenAIToolPlannerRateLimitReached", "RateLimitReached")

RateLimitPredicate = Callable[[Sequence[TranscriptMessage]], bool]


def marker_predicate(markers: Sequence[str] = RATE_LIMIT_MARKERS) -> RateLimitPredicate:
    """Case-insensitive substring match of ``markers`` against bot messages"""
    lowered = [m.lower() for m in markers]

    def _detect(transcript: Sequence[TranscriptMessage]) -> bool:
        text = "\n".join(m.content for m in transcript if m.role != "user").lower()
        return any(marker in text for marker in lowered)

    return _detect


contains_rate_limit_marker = marker_predicate()


def backoff_delay(attempt: int, backoff_seconds: float) -> float:
    """``2^attempt * backoff_seconds``, attempt is 0-indexed, no jitter"""
    return (2**attempt) * backoff_seconds


@dataclass(frozen=True)
class CasePolicy:
    """Effective timeout and retry settings for one test case"""

    reply_timeout_seconds: float
    max_retries: int
    backoff_seconds: float

    @classmethod
    def resolve(
        cls,
        case: TestCaseSpec,
        transport: TransportSettings,
        suite: TestSuiteSpec | None = None,
    ) -> "CasePolicy":
        """Case override, then suite default, then target default"""
        timeout = case.timeout_seconds
        retries = case.max_retries
        if suite is not None:
            timeout = timeout if timeout is not None else suite.default_timeout_seconds
            retries = retries if retries is not None else suite.max_retries
        return cls(
            reply_timeout_seconds=timeout if timeout is not None else transport.reply_timeout_seconds,
            max_retries=retries if retries is not None else transport.max_retries,
            backoff_seconds=transport.backoff_seconds,
        )
