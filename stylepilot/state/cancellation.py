"""
Cancellation Token
==================
One token per run, created at start and never reused. The orchestrator passes
it explicitly into every collaborator call and checks it before and after
each await; collaborators may also await ``wait()`` to stop early.

Cancellation is advisory: nothing in flight is interrupted.
"""
import asyncio
from typing import Optional

from stylepilot.core.errors import CancellationError


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "stopped by user") -> None:
        """Raise the signal. Idempotent; the first reason wins."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationError()

    async def wait(self) -> None:
        await self._event.wait()
