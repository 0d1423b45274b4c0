"""Judge evaluator: transcript + test case -> scores and verdict"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from agentcheck.client.judge_llm import JudgeLLMClient
from agentcheck.core.logging import get_logger
from agentcheck.judge.prompts import build_system_prompt, build_user_prompt
from agentcheck.schema.config import JudgeConfig, JudgeWeights
from agentcheck.schema.result import JudgeScores, TranscriptMessage, Verdict
from agentcheck.schema.test_case import TestCaseSpec

logger = get_logger(__name__)


@dataclass
class JudgeEvaluation:
    verdict: Verdict
    scores: JudgeScores | None = None
    overall_score: float | None = None
    rationale: str = ""
    citations: list[str] = field(default_factory=list)
    raw_text: str = ""


def weighted_score(scores: JudgeScores, weights: JudgeWeights) -> float:
    return (
        scores.task_success * weights.task_success
        + scores.intent_match * weights.intent_match
        + scores.factuality * weights.factuality
        + scores.helpfulness * weights.helpfulness
        + scores.safety * weights.safety
    )


def verdict_for(score: float, pass_threshold: float) -> Verdict:
    return "pass" if score >= pass_threshold else "fail"


class JudgeEvaluator:
    """
    Scores a transcript with an LLM judge

    The verdict is computed locally from the weighted dimension scores; the
    judge's own "verdict" field is ignored. Any failure becomes an ``error``
    evaluation instead of an exception.
    """

    def __init__(self, client_factory: Callable[[JudgeConfig], JudgeLLMClient] = JudgeLLMClient):
        self._client_factory = client_factory

    async def evaluate(
        self,
        config: JudgeConfig,
        case: TestCaseSpec,
        transcript: Sequence[TranscriptMessage],
    ) -> JudgeEvaluation:
        system_prompt = build_system_prompt(config)
        user_prompt = build_user_prompt(case, transcript)
        logger.debug(f"evaluating test case {case.id} with {len(transcript)} transcript messages")

        try:
            client = self._client_factory(config)
            async with client:
                response = await client.evaluate(system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"judge evaluation failed for {case.id}: {e}")
            return JudgeEvaluation(verdict="error", rationale=f"Evaluation error: {e}")

        score = weighted_score(response.scores, config.weights)
        verdict = verdict_for(score, config.pass_threshold)
        logger.info(f"judged {case.id}: {verdict} (score {score:.3f}, threshold {config.pass_threshold})")

        return JudgeEvaluation(
            verdict=verdict,
            scores=response.scores,
            overall_score=score,
            rationale=response.rationale,
            citations=response.citations,
            raw_text=response.raw_text,
        )
