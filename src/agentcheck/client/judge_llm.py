"""Judge LLM client: OpenAI-compatible chat completions and score parsing"""

import json
from dataclasses import dataclass, field

import httpx

from agentcheck.client.base import BaseHTTPClient
from agentcheck.core.exceptions import JudgeError
from agentcheck.core.logging import get_logger
from agentcheck.schema.config import JudgeConfig
from agentcheck.schema.result import JudgeScores

logger = get_logger(__name__)

SCORE_FIELDS = ("task_success", "intent_match", "factuality", "helpfulness", "safety")


@dataclass
class JudgeResponse:
    """Parsed judge output"""

    scores: JudgeScores
    rationale: str
    citations: list[str] = field(default_factory=list)
    raw_text: str = ""


def extract_json_object(text: str) -> str | None:
    """
    Return the first balanced ``{...}`` span of ``text``

    Braces inside JSON strings are ignored. If the first object never closes,
    falls back to the slice between the first ``{`` and the last ``}``.
    """
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    end = text.rfind("}")
    if end > start:
        return text[start : end + 1]
    return None


def _score(data: dict, name: str) -> float:
    value = data.get(name)
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise JudgeError(f"score '{name}' is not numeric: {value!r}") from e


def parse_judge_response(raw_text: str) -> JudgeResponse:
    """Parse the judge reply, tolerating prose around the JSON object"""
    span = extract_json_object(raw_text)
    if span is None:
        raise JudgeError(f"no JSON object in judge response: {raw_text[:500]}")
    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise JudgeError(f"invalid JSON in judge response: {e}") from e
    if not isinstance(data, dict):
        raise JudgeError("judge response JSON is not an object")

    scores = JudgeScores(**{name: _score(data, name) for name in SCORE_FIELDS})
    citations = data.get("citations") or []
    if not isinstance(citations, list):
        citations = [citations]

    return JudgeResponse(
        scores=scores,
        rationale=str(data.get("rationale") or ""),
        citations=[str(c) for c in citations],
        raw_text=raw_text,
    )


class JudgeLLMClient(BaseHTTPClient):
    """
    LLM-as-judge client

    Calls an OpenAI-compatible ``/chat/completions`` endpoint once per
    evaluation. Failures surface as ``JudgeError``; nothing is retried here.
    """

    def __init__(self, config: JudgeConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        if not config.api_base or not config.api_key:
            raise JudgeError("judge LLM api_base and api_key are required; configure them on the target or globally")
        super().__init__(
            base_url=config.api_base,
            api_key=config.api_key,
            timeout=config.timeout,
            transport=transport,
        )
        self.config = config

    def _status_error(self, status: int, body: str, reason: str | None = None) -> JudgeError:
        return JudgeError(f"judge LLM HTTP {status}: {reason or body[:500]}")

    def _request_error(self, exc: httpx.RequestError) -> JudgeError:
        return JudgeError(f"judge LLM request failed: {exc!r}")

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Run one chat completion and return the assistant text"""
        payload = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "top_p": self.config.top_p,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        logger.debug(f"calling judge LLM {self.config.api_base} model={self.config.model}")
        response = await self._request("POST", "/chat/completions", json=payload)
        try:
            return response["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise JudgeError(f"unexpected chat completion shape: {str(response)[:300]}") from e

    async def evaluate(self, system_prompt: str, user_prompt: str) -> JudgeResponse:
        raw_text = await self.complete(system_prompt, user_prompt)
        logger.debug(f"judge raw response: {raw_text[:500]}")
        return parse_judge_response(raw_text)
