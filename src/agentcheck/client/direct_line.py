"""Direct Line conversation client

Opens conversations, posts user turns and polls for new activities with a
watermark cursor. There is no push channel; replies are picked up by the
``wait_for_reply`` polling loop.
"""

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from agentcheck.client.base import BaseHTTPClient
from agentcheck.core.cancellation import CancellationToken
from agentcheck.core.exceptions import APIError, TransportAuthError, TransportProtocolError
from agentcheck.core.logging import get_logger
from agentcheck.schema.config import TransportSettings

logger = get_logger(__name__)

POLL_INTERVAL_SECONDS = 1.0

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str | None) -> datetime:
    """Parse a Direct Line ISO timestamp (7 fractional digits, ``Z`` suffix)"""
    if not value:
        return datetime.now(timezone.utc)
    text = value.strip().replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"unparseable activity timestamp: {value!r}")
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Activity:
    """One message or event in a conversation"""

    type: str
    from_id: str | None
    text: str
    timestamp: datetime
    id: str | None = None
    from_name: str | None = None
    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        sender = data.get("from") or {}
        return cls(
            type=data.get("type") or "message",
            from_id=sender.get("id"),
            from_name=sender.get("name"),
            text=data.get("text") or "",
            timestamp=parse_timestamp(data.get("timestamp")),
            id=data.get("id"),
            raw=data,
        )


@dataclass(frozen=True)
class StaticSecret:
    """The channel secret is used directly as the bearer credential"""

    secret: str


@dataclass
class ExchangedToken:
    """The secret is exchanged once for a session token, cached on this cell"""

    secret: str
    token: str | None = None


AuthMode = StaticSecret | ExchangedToken


def auth_from_settings(settings: TransportSettings) -> AuthMode:
    match settings.auth_mode:
        case "exchanged":
            return ExchangedToken(secret=settings.secret)
        case _:
            return StaticSecret(secret=settings.secret)


@dataclass
class PollResult:
    """Bot messages collected by one ``wait_for_reply`` call"""

    activities: list[Activity]
    watermark: str
    timed_out: bool


class DirectLineClient(BaseHTTPClient):
    """
    Direct Line v3 REST client

    One instance per execution: the exchanged session token is cached on the
    instance and never shared.
    """

    def __init__(
        self,
        settings: TransportSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        super().__init__(
            base_url=settings.endpoint,
            timeout=settings.http_timeout or settings.reply_timeout_seconds + 10,
            transport=transport,
        )
        self.settings = settings
        self.auth: AuthMode = auth_from_settings(settings)
        self.poll_interval = poll_interval

    def _status_error(self, status: int, body: str, reason: str | None = None) -> APIError:
        if status == 401:
            return TransportAuthError(
                "Invalid or expired Direct Line secret (HTTP 401)",
                status_code=status,
                response_body=body,
            )
        if status == 403:
            return TransportAuthError(
                "Access denied (HTTP 403). Check that the bot id and secret are correct and valid",
                status_code=status,
                response_body=body,
            )
        return TransportProtocolError(
            f"HTTP {status}: {reason or body[:500]}",
            status_code=status,
            response_body=body,
        )

    def _request_error(self, exc: httpx.RequestError) -> APIError:
        return TransportProtocolError(f"transport request failed: {exc!r}")

    async def _bearer(self) -> str:
        match self.auth:
            case StaticSecret(secret=secret):
                return secret
            case ExchangedToken(token=str() as token) if token:
                return token
            case ExchangedToken():
                self.auth.token = await self._exchange_token()
                return self.auth.token

    async def _exchange_token(self) -> str:
        logger.info("exchanging Direct Line secret for a session token")
        logger.debug(f"secret length: {len(self.auth.secret)} chars")
        data = await self._request("POST", "/tokens/generate", bearer=self.auth.secret)
        token = data.get("token")
        if not token:
            raise TransportProtocolError("token exchange response is missing 'token'")
        logger.debug(f"session token issued ({len(token)} chars), expires_in={data.get('expires_in')}")
        return token

    async def start_conversation(self) -> str:
        """Open a conversation and return its id"""
        bearer = await self._bearer()
        data = await self._request("POST", "/conversations", bearer=bearer)
        conversation_id = data.get("conversationId") or data.get("id")
        if not conversation_id:
            raise TransportProtocolError("start conversation response has no conversation id")
        logger.info(f"started conversation {conversation_id}")
        return conversation_id

    async def send_turn(self, conversation_id: str, text: str) -> None:
        """Post one user message"""
        activity = {
            "type": "message",
            "from": {"id": self.settings.user_id},
            "text": text,
        }
        bearer = await self._bearer()
        await self._request(
            "POST",
            f"/conversations/{conversation_id}/activities",
            bearer=bearer,
            json=activity,
        )
        logger.debug(f"sent turn to {conversation_id}: {text[:80]!r}")

    async def poll_activities(self, conversation_id: str, watermark: str = "") -> tuple[list[Activity], str]:
        """Return activities after ``watermark`` and the watermark for the next call"""
        params = {"watermark": watermark} if watermark else None
        bearer = await self._bearer()
        data = await self._request(
            "GET",
            f"/conversations/{conversation_id}/activities",
            bearer=bearer,
            params=params,
        )
        activities = [Activity.from_dict(item) for item in data.get("activities") or []]
        next_watermark = data.get("watermark") or watermark or ""
        logger.debug(f"polled {len(activities)} activities (watermark {watermark!r} -> {next_watermark!r})")
        return activities, next_watermark

    def is_bot_message(self, activity: Activity) -> bool:
        return activity.type == "message" and activity.from_id != self.settings.user_id

    async def wait_for_reply(
        self,
        conversation_id: str,
        watermark: str = "",
        *,
        timeout: float,
        cancel: CancellationToken | None = None,
    ) -> PollResult:
        """
        Poll until a bot message arrives or ``timeout`` seconds pass

        Polls every ``poll_interval`` seconds. Raises ``Cancelled`` as soon as
        ``cancel`` fires, including while a poll request is in flight.
        """
        cancel = cancel or CancellationToken()
        deadline = time.monotonic() + timeout
        collected: list[Activity] = []

        while True:
            activities, watermark = await cancel.guard(self.poll_activities(conversation_id, watermark))
            replies = [a for a in activities if self.is_bot_message(a)]
            if replies:
                collected.extend(replies)
                return PollResult(activities=collected, watermark=watermark, timed_out=False)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(f"no reply in conversation {conversation_id} within {timeout:.0f}s")
                return PollResult(activities=collected, watermark=watermark, timed_out=True)
            await cancel.sleep(min(self.poll_interval, remaining))
