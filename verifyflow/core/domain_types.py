"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SessionId wraps the opaque server-assigned validation id
    - All valid states and wire values encoded as Enums — no raw string matching
    - FlowState terminal members are exactly COMPLETED, FAILED, CANCELLED

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: compare equal to their wire values and serialize without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

SessionId = NewType("SessionId", str)
EnrollmentId = NewType("EnrollmentId", str)


# ─── Enums ───────────────────────────────────────────────────────

class SessionKind(str, Enum):
    """What one verification session checks."""
    FACE = "face"
    DOCUMENT = "document"

    @property
    def api_type(self) -> str:
        """Value of the `type` field sent on session creation."""
        if self is SessionKind.FACE:
            return "face-recognition"
        return "document-validation"


class KeyType(str, Enum):
    """`key_type` claim of an API key token."""
    SDK = "sdk"
    GENERATOR = "generator"


class ValidationStatus(str, Enum):
    """Normalized server verdict (see poll_schedule.interpret_status)."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    PROCESSING = "processing"


class SubValidation(str, Enum):
    PASSIVE_LIVENESS = "passive_liveness"
    SIMILARITY = "similarity"


class DocumentSide(str, Enum):
    FRONT = "front"
    BACK = "back"


class FeedbackReason(str, Enum):
    """Capture-quality rejections reported by the capture collaborator."""
    BLURRY_IMAGE = "blurry_image"
    IMAGE_WITH_REFLECTION = "image_with_reflection"
    DOCUMENT_NOT_FOUND = "document_not_found"
    FRONT_OF_DOCUMENT_NOT_FOUND = "front_of_document_not_found"
    BACK_OF_DOCUMENT_NOT_FOUND = "back_of_document_not_found"
    FACE_NOT_FOUND = "face_not_found"
    LOW_LIGHT = "low_light"


class FlowState(str, Enum):
    """Orchestrator lifecycle states."""
    CREATED = "created"
    ENROLLMENT_PENDING = "enrollment_pending"
    CAPTURE_PENDING = "capture_pending"
    FEEDBACK_RETRY = "feedback_retry"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({
    FlowState.COMPLETED, FlowState.FAILED, FlowState.CANCELLED,
})
