"""Result Poller — waits for a server-side verdict over a fixed backoff schedule.

Invariants:
    - Fetches are strictly sequential: a new fetch never starts before the previous resolves
    - The first terminal status is returned at once; the rest of the schedule is skipped
    - No sleep follows the last schedule entry
    - Transient errors are retried on the next entry, except on the last entry
    - Non-transient errors propagate immediately
    - Once cancellation is requested no further fetch is issued
    - Schedule exhausted: ApiError(identity_process_results_timed_out, http_status=-1)

Design Decisions:
    - fetch_status and is_terminal_status are callables: the poller knows nothing
      about credentials or response shapes
    - sleeper injectable: tests record sleeps instead of waiting 69 seconds
"""

import logging
from typing import Awaitable, Callable, TypeVar

from verifyflow.core.domain_types import SessionId, SessionKind
from verifyflow.core.error_classifier import classify, is_transient
from verifyflow.core.errors import (
    ApiError,
    ApiErrorCode,
    ErrorContext,
    FlowCancelledError,
)
from verifyflow.core.poll_schedule import (
    DOCUMENT_WARMUP_SECONDS,
    POLL_SCHEDULE,
    total_schedule_seconds,
    warmup_for,
)
from verifyflow.services.cancellation import CancellationSignal, sleep_or_cancel

logger = logging.getLogger(__name__)

StatusT = TypeVar("StatusT")
Sleeper = Callable[[float, CancellationSignal], Awaitable[None]]

TIMEOUT_MESSAGE = "Validation processing timeout. Please check back later."
_STAGE = "poll"


class ResultPoller:
    """Polls fetch_status along POLL_SCHEDULE until a terminal status or timeout."""

    def __init__(
        self,
        schedule: tuple[float, ...] = POLL_SCHEDULE,
        document_warmup_seconds: float = DOCUMENT_WARMUP_SECONDS,
        sleeper: Sleeper = sleep_or_cancel,
    ):
        self.schedule = schedule
        self.document_warmup_seconds = document_warmup_seconds
        self.sleeper = sleeper

    async def poll(
        self,
        session_id: SessionId,
        kind: SessionKind,
        is_terminal_status: Callable[[StatusT], bool],
        fetch_status: Callable[[], Awaitable[StatusT]],
        cancel_signal: CancellationSignal,
    ) -> StatusT:
        """Return the first terminal status reported for `session_id`.

        Raises:
            FlowCancelledError: cancel_signal was set before or during polling.
            VerificationError: a non-transient fetch error, a transient error on
                the last attempt, or the timeout ApiError.
        """
        warmup = warmup_for(kind, self.document_warmup_seconds)
        if warmup > 0:
            await self.sleeper(warmup, cancel_signal)

        last = len(self.schedule) - 1
        for attempt, delay in enumerate(self.schedule):
            cancel_signal.raise_if_cancelled()
            try:
                status = await fetch_status()
            except FlowCancelledError:
                raise
            except Exception as e:
                error = classify(e, _STAGE)
                error.context.session_id = error.context.session_id or session_id
                error.context.attempt = attempt + 1
                if not is_transient(error) or attempt == last:
                    if error is e:
                        raise
                    raise error from e
                logger.warning(
                    f"Transient poll failure, retrying: {error.message}",
                    extra={
                        "session_id": session_id,
                        "stage": _STAGE,
                        "attempt": attempt + 1,
                        "error_code": error.code,
                        "kind": error.kind.value,
                    },
                )
            else:
                if is_terminal_status(status):
                    logger.info(
                        "Terminal status received",
                        extra={"session_id": session_id, "stage": _STAGE, "attempt": attempt + 1},
                    )
                    return status

            if attempt < last:
                await self.sleeper(delay, cancel_signal)

        waited = total_schedule_seconds(self.schedule)
        logger.warning(
            f"Polling schedule exhausted after {waited:g}s without a verdict",
            extra={"session_id": session_id, "stage": _STAGE, "attempt": len(self.schedule)},
        )
        raise ApiError(
            ApiErrorCode.TIMEOUT,
            message=TIMEOUT_MESSAGE,
            context=ErrorContext(stage=_STAGE, session_id=session_id),
        )
