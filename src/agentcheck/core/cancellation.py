"""Cooperative cancellation shared by every suspension point of a run

One token is created per invocation and passed down from the coordinator to
the polling loop. Waits go through ``sleep`` and in-flight calls through
``guard`` so that ``cancel()`` unwinds the whole flow promptly with
``Cancelled``.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from agentcheck.core.exceptions import Cancelled

T = TypeVar("T")


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = "execution cancelled"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled(self.reason)

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first"""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise Cancelled(self.reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable``, abandoning it as soon as the token fires"""
        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()

        # let the abandoned call unwind before reporting
        await asyncio.gather(task, return_exceptions=True)
        raise Cancelled(self.reason)
