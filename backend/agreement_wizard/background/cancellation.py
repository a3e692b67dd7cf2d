"""Cooperative cancellation token for background drafts."""

from __future__ import annotations

import asyncio
from typing import Optional


class CancellationToken:
    """Signals that an in-flight draft is no longer wanted.

    Cancelling only records intent and wakes waiters; whoever runs the work
    decides how to stop it and must discard anything it produces afterwards.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
