"""Poll Schedule — fixed backoff for waiting on a server-side verdict.

Invariants:
    - POLL_SCHEDULE has 10 entries summing to 69 seconds
    - Each entry is consumed at most once per poll run, left to right
    - Only documents get a warm-up delay before the first query
    - Any status other than "pending" (case-insensitive) is terminal

Design Decisions:
    - Schedule is a module constant, not configuration: both kinds share it
    - Status interpretation lives here so the poller and orchestrator agree on it
"""

from verifyflow.core.domain_types import SessionKind, ValidationStatus

POLL_SCHEDULE: tuple[float, ...] = (1.0, 2.0, 4.0, 8.0, 8.0, 8.0, 8.0, 8.0, 10.0, 12.0)
DOCUMENT_WARMUP_SECONDS = 1.0

_FAILED_STATUSES = frozenset({"failed", "failure"})


def is_terminal_status(status: str) -> bool:
    return status.lower() != ValidationStatus.PENDING.value


def interpret_status(status: str) -> ValidationStatus:
    """Normalize a raw server status into a ValidationStatus.

    "success" -> SUCCESS, "failed"/"failure" -> FAILED, "pending" -> PENDING,
    anything else -> PROCESSING (terminal but neither verdict).
    """
    normalized = status.lower()
    if normalized == "success":
        return ValidationStatus.SUCCESS
    if normalized in _FAILED_STATUSES:
        return ValidationStatus.FAILED
    if normalized == ValidationStatus.PENDING.value:
        return ValidationStatus.PENDING
    return ValidationStatus.PROCESSING


def warmup_for(kind: SessionKind, document_warmup: float = DOCUMENT_WARMUP_SECONDS) -> float:
    """Seconds to wait before the first status fetch. Only document sessions warm up."""
    return document_warmup if kind is SessionKind.DOCUMENT else 0.0


def total_schedule_seconds(schedule: tuple[float, ...] = POLL_SCHEDULE) -> float:
    return sum(schedule)
