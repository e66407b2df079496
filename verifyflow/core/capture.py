"""Capture Contracts — what the orchestrator asks for and what comes back.

Invariants:
    - Every capture attempt yields CapturedMedia or QualityRejection, never both
    - Feedback reasons are normalized to FeedbackReason before surfacing
"""

from dataclasses import dataclass

from verifyflow.core.domain_types import (
    DocumentSide,
    FeedbackReason,
    SessionId,
    SessionKind,
)

# Reasons the capture collaborator can report verbatim; any other reason
# means the expected document side was not found.
_PASSTHROUGH_REASONS = frozenset({
    FeedbackReason.FACE_NOT_FOUND,
    FeedbackReason.BLURRY_IMAGE,
    FeedbackReason.LOW_LIGHT,
    FeedbackReason.IMAGE_WITH_REFLECTION,
})


@dataclass(frozen=True)
class CaptureRequest:
    session_id: SessionId
    kind: SessionKind
    side: DocumentSide | None
    attempt: int
    retries_remaining: int


@dataclass(frozen=True)
class CapturedMedia:
    data: bytes
    content_type: str = "image/jpeg"


@dataclass(frozen=True)
class QualityRejection:
    reason: FeedbackReason | str | None


def normalize_feedback_reason(
    reason: FeedbackReason | str | None,
    side: DocumentSide | None,
) -> FeedbackReason:
    """Map a raw rejection reason onto the fixed FeedbackReason set."""
    if reason is None:
        return FeedbackReason.DOCUMENT_NOT_FOUND

    raw = reason.value if isinstance(reason, FeedbackReason) else str(reason)
    normalized = raw.strip().lower()
    for known in _PASSTHROUGH_REASONS:
        if known.value == normalized:
            return known

    if side is DocumentSide.BACK:
        return FeedbackReason.BACK_OF_DOCUMENT_NOT_FOUND
    if side is DocumentSide.FRONT:
        return FeedbackReason.FRONT_OF_DOCUMENT_NOT_FOUND
    return FeedbackReason.DOCUMENT_NOT_FOUND
