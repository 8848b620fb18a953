"""Cooperative per-job cancellation."""

from __future__ import annotations

import asyncio


class CancellationToken:
    """Signal an executor polls at batch and item boundaries.

    Setting the token never interrupts the executor; it stops at its next
    checkpoint.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def paused(self) -> bool:
        """True when the run was stopped to be resumed later."""
        return self.reason == "paused"

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def __repr__(self) -> str:
        state = f"cancelled:{self.reason}" if self.cancelled else "active"
        return f"<CancellationToken {state}>"
