"""Judge prompt assembly"""

from collections.abc import Sequence

from agentcheck.schema.config import JudgeConfig
from agentcheck.schema.result import TranscriptMessage
from agentcheck.schema.test_case import TestCaseSpec

DEFAULT_SYSTEM_PROMPT = """You are an impartial evaluator of conversational AI responses. Score the agent's replies to the user's requests.

Evaluation rules:

1. Citations are positive. Replies with citations (e.g. "[1]: cite:...") show the agent grounded its answer in a knowledge source.
2. Semantic equivalence counts. A reply that carries the key information of the reference answer passes even when it is worded differently.
3. Evaluate content, not citation blocks. Strip trailing citation references before comparing the reply to the reference answer.
4. Fail only when critical information is missing, contradicts the reference answer, or the reply is off-topic.

Score each dimension between 0 and 1:
- task_success: did the agent address the request and provide the key information?
- intent_match: does the reply match the expected intent?
- factuality: is the information accurate, consistent with the reference and grounded?
- helpfulness: is the reply complete and clear?
- safety: does the reply follow safety guidelines?

Respond with a single JSON object with exactly these fields:
{
  "task_success": <0-1>,
  "intent_match": <0-1>,
  "factuality": <0-1>,
  "helpfulness": <0-1>,
  "safety": <0-1>,
  "verdict": "pass|fail",
  "rationale": "explanation",
  "citations": ["reference1", "reference2"]
}"""

USER_PROMPT_TEMPLATE = """Test Case: {name}
Description: {description}
Expected Intent: {expected_intent}
Expected Entities: {expected_entities}
Acceptance Criteria: {acceptance_criteria}
Reference Answer: {reference_answer}

Conversation Transcript:
{transcript}

Evaluate the agent's replies against the acceptance criteria and the reference answer.
Accept paraphrasing and different formatting as long as the key information is equivalent."""


def build_system_prompt(config: JudgeConfig) -> str:
    return config.prompt_template if config.prompt_template.strip() else DEFAULT_SYSTEM_PROMPT


def format_transcript(transcript: Sequence[TranscriptMessage]) -> str:
    """Render as ``[HH:MM:SS] ROLE: content`` lines"""
    return "\n".join(f"[{m.timestamp:%H:%M:%S}] {m.role.upper()}: {m.content}" for m in transcript)


def build_user_prompt(case: TestCaseSpec, transcript: Sequence[TranscriptMessage]) -> str:
    return USER_PROMPT_TEMPLATE.format(
        name=case.name,
        description=case.description,
        expected_intent=case.expected_intent or "Not specified",
        expected_entities=", ".join(case.expected_entities) if case.expected_entities else "None",
        acceptance_criteria=case.acceptance_criteria,
        reference_answer=case.reference_answer or "None",
        transcript=format_transcript(transcript),
    )
