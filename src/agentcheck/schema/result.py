"""Run and result records"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

Verdict = Literal["pass", "fail", "error", "skipped", "unknown"]
RunStatus = Literal["running", "completed"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TranscriptMessage:
    """One conversation turn as observed on the transport"""

    role: str  # "user" | "bot"
    content: str
    timestamp: datetime
    sequence_number: int = 0
    sender: str | None = None
    activity_id: str | None = None


@dataclass
class JudgeScores:
    """The five judge dimensions, each 0.0 ~ 1.0"""

    task_success: float = 0.0
    intent_match: float = 0.0
    factuality: float = 0.0
    helpfulness: float = 0.0
    safety: float = 0.0


@dataclass
class CaseResult:
    """Outcome of one test case within a run"""

    test_case_id: str
    verdict: Verdict = "unknown"
    id: str = field(default_factory=_new_id)
    run_id: str | None = None
    task_success: float | None = None
    intent_match: float | None = None
    factuality: float | None = None
    helpfulness: float | None = None
    safety: float | None = None
    overall_score: float | None = None
    latency_ms: float = 0.0
    turn_count: int = 0
    attempts: int = 0
    judge_rationale: str | None = None
    judge_citations: list[str] = field(default_factory=list)
    error_message: str | None = None
    executed_at: datetime = field(default_factory=utcnow)
    transcript: list[TranscriptMessage] = field(default_factory=list)

    @property
    def bot_text(self) -> str:
        return "\n".join(m.content for m in self.transcript if m.role != "user")


@dataclass
class Run:
    """One execution of a suite against one target"""

    suite_name: str
    target_name: str = ""
    id: str = field(default_factory=_new_id)
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    status: RunStatus = "running"
    cancelled: bool = False
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    average_latency_ms: float = 0.0
    median_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    results: list[CaseResult] = field(default_factory=list)

    @property
    def pass_rate(self) -> float:
        return self.passed / self.total if self.total else 0.0
