"""Outcome Channel — single-resolution delivery of a flow's terminal Outcome.

Invariants:
    - At most one Outcome is ever delivered; the first deliver() wins
    - Later deliveries are dropped and logged at debug, never raised
    - Check-and-set runs without an await, so racing completion paths on the
      event loop cannot both win
"""

import asyncio
import logging

from verifyflow.core.outcome import Outcome

logger = logging.getLogger(__name__)


class OutcomeChannel:
    """asyncio.Future-backed one-shot channel."""

    def __init__(self) -> None:
        self._future: asyncio.Future[Outcome] = asyncio.get_running_loop().create_future()

    @property
    def delivered(self) -> bool:
        return self._future.done()

    def deliver(self, outcome: Outcome) -> bool:
        """Resolve the channel with `outcome`. Returns False if already resolved."""
        if self._future.done():
            logger.debug(f"Dropping late outcome {type(outcome).__name__}")
            return False
        self._future.set_result(outcome)
        return True

    async def wait(self) -> Outcome:
        # shield: a caller cancelling its wait must not cancel the channel itself
        return await asyncio.shield(self._future)
