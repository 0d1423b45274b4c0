"""Shared async HTTP client base class"""

import httpx

from agentcheck.core.exceptions import AgentCheckError, APIError
from agentcheck.core.logging import get_logger

logger = get_logger(__name__)


class BaseHTTPClient:
    """
    Thin async JSON client over httpx.AsyncClient

    Issues a single request per call and turns HTTP and network failures into
    ``APIError`` (or the subclass chosen by ``_status_error`` /
    ``_request_error``). Retrying is left to the caller.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        bearer: str | None = None,
        **kwargs,
    ) -> dict:
        headers = dict(kwargs.pop("headers", None) or {})
        if bearer is not None:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            resp = await self._client.request(method, path, headers=headers, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = e.response.text
            logger.debug(f"{method} {path} -> HTTP {status}: {body[:500]}")
            raise self._status_error(status, body) from e
        except httpx.RequestError as e:
            logger.debug(f"{method} {path} -> request error: {e!r}")
            raise self._request_error(e) from e

        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            raise self._status_error(resp.status_code, resp.text, reason="invalid JSON body") from e
        return data if isinstance(data, dict) else {"data": data}

    def _status_error(self, status: int, body: str, reason: str | None = None) -> AgentCheckError:
        message = f"HTTP {status}: {reason or body[:500]}"
        return APIError(message, status_code=status, response_body=body)

    def _request_error(self, exc: httpx.RequestError) -> AgentCheckError:
        return APIError(f"request failed: {exc!r}")

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
