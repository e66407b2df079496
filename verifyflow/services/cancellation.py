"""Cancellation Signal — one irreversible stop flag per flow.

Invariants:
    - Once set, the signal never clears
    - cancel() returns True only for the call that actually set it
    - sleep_or_cancel() returns normally after the full duration, or raises
      FlowCancelledError as soon as the signal is set
"""

import asyncio

from verifyflow.core.errors import FlowCancelledError


class CancellationSignal:
    """asyncio.Event wrapper shared by every suspended operation of one flow."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled_by_user") -> bool:
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FlowCancelledError(self.reason or "Flow cancelled")


async def sleep_or_cancel(seconds: float, signal: CancellationSignal) -> None:
    """Sleep for `seconds` unless `signal` fires first."""
    signal.raise_if_cancelled()
    if seconds <= 0:
        return
    try:
        await asyncio.wait_for(signal.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return
    signal.raise_if_cancelled()
