"""Shared fakes: an in-memory Direct Line service behind httpx.MockTransport"""

import json
import re
from unittest.mock import MagicMock, AsyncMock

import httpx
import pytest

from agentcheck.client.direct_line import DirectLineClient
from agentcheck.judge.evaluator import JudgeEvaluation
from agentcheck.schema.config import TransportSettings
from agentcheck.schema.result import JudgeScores

ENDPOINT = "https://directline.test/v3/directline"
_ACTIVITIES = re.compile(r"/conversations/([^/]+)/activities$")


class FakeDirectLine:
    """
    Minimal Direct Line service

    ``reply(conversation_id, text)`` decides the bot answer to each user turn;
    returning None means the bot stays silent.
    """

    def __init__(self):
        self.conversations: dict[str, list[dict]] = {}
        self.started = 0
        self.sent: list[str] = []
        self.polls = 0
        self.start_status: int | None = None
        self.fail_first_starts = 0
        self.token_requests = 0
        self.bearers: list[str] = []
        self.reply = lambda conversation_id, text: f"echo: {text}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.bearers.append(request.headers.get("Authorization", ""))

        if path.endswith("/tokens/generate"):
            self.token_requests += 1
            return httpx.Response(200, json={"token": "session-token", "conversationId": "tok-conv", "expires_in": 1800})

        if path.endswith("/conversations") and request.method == "POST":
            self.started += 1
            if self.start_status is not None:
                return httpx.Response(self.start_status, text="nope")
            if self.started <= self.fail_first_starts:
                return httpx.Response(502, text="bad gateway")
            conversation_id = f"conv-{self.started}"
            self.conversations[conversation_id] = []
            return httpx.Response(201, json={"conversationId": conversation_id})

        match = _ACTIVITIES.search(path)
        if match is None:
            return httpx.Response(404, text="unknown route")
        conversation_id = match.group(1)
        activities = self.conversations[conversation_id]

        if request.method == "POST":
            body = json.loads(request.content)
            self.sent.append(body["text"])
            activities.append(self._activity(conversation_id, len(activities), "user", body["text"]))
            answer = self.reply(conversation_id, body["text"])
            if answer is not None:
                activities.append(self._activity(conversation_id, len(activities), "bot-1", answer, name="Support Bot"))
            return httpx.Response(200, json={"id": f"{conversation_id}|{len(activities)}"})

        self.polls += 1
        watermark = int(request.url.params.get("watermark") or 0)
        return httpx.Response(
            200,
            json={"activities": activities[watermark:], "watermark": str(len(activities))},
        )

    @staticmethod
    def _activity(conversation_id: str, index: int, sender: str, text: str, name: str | None = None) -> dict:
        sender_info = {"id": sender}
        if name:
            sender_info["name"] = name
        return {
            "type": "message",
            "id": f"{conversation_id}|{index:07d}",
            "from": sender_info,
            "text": text,
            "timestamp": f"2024-05-01T10:00:{index:02d}.1234567Z",
        }

    def client(self, settings: TransportSettings | None = None, poll_interval: float = 0.0) -> DirectLineClient:
        return DirectLineClient(
            settings or make_transport(),
            transport=httpx.MockTransport(self.handler),
            poll_interval=poll_interval,
        )


def make_transport(**overrides) -> TransportSettings:
    values = {
        "endpoint": ENDPOINT,
        "secret": "dl-secret",
        "reply_timeout_seconds": 1.0,
        "max_retries": 2,
        "backoff_seconds": 0.0,
    }
    values.update(overrides)
    return TransportSettings(**values)


def make_judge(verdict: str = "pass") -> MagicMock:
    judge = MagicMock()
    judge.evaluate = AsyncMock(
        return_value=JudgeEvaluation(
            verdict=verdict,
            scores=JudgeScores(task_success=0.9, intent_match=0.8, factuality=0.9, helpfulness=0.8, safety=1.0),
            overall_score=0.88,
            rationale="covers the reference answer",
            citations=["returns-policy.pdf"],
        )
    )
    return judge


@pytest.fixture
def direct_line() -> FakeDirectLine:
    return FakeDirectLine()
