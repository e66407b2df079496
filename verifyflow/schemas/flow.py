"""Flow Configuration Schemas — per-flow settings passed explicitly to start().

Invariants:
    - similarity_threshold is clamped to [0, 1]; timeouts are clamped to >= 0
    - Clamping never rejects: out-of-range numbers are pulled into range
    - A blank reference face source is rejected; bytes, paths and URLs pass through
    - A timeout of 0 is not sent to the server (server default applies)
    - country is lowercased on the wire

Design Decisions:
    - Explicit value passed per flow, not process-wide state: concurrent and
      test instances never share configuration
    - field_validator(mode="before") for clamping: keeps models pure
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from verifyflow.core.domain_types import SessionKind, SubValidation
from verifyflow.schemas.api import SessionRequest

DEFAULT_SIMILARITY_THRESHOLD = 0.8
DEFAULT_TIMEOUT_SECONDS = 60
DEFAULT_MAX_FEEDBACK_RETRIES = 2


def _clamp_timeout(v: object) -> object:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return max(0, int(v))
    return v


class FaceConfig(BaseModel):
    """Face-recognition flow settings.

    reference_face is raw image bytes, a local path, or a URL (file, http or https).
    """
    reference_face: bytes | Path | str | None = None
    reference_face_content_type: str = "image/png"
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    @field_validator("reference_face")
    @classmethod
    def reject_blank_source(cls, v: bytes | Path | str | None) -> bytes | Path | str | None:
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("reference face source cannot be empty")
        return v

    @field_validator("similarity_threshold", mode="before")
    @classmethod
    def clamp_threshold(cls, v: object) -> object:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return min(1.0, max(0.0, float(v)))
        return v

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def clamp_timeout(cls, v: object) -> object:
        return _clamp_timeout(v)


class DocumentConfig(BaseModel):
    """Document-validation flow settings."""
    country: str | None = None
    document_type: str | None = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    max_feedback_retries: int = Field(DEFAULT_MAX_FEEDBACK_RETRIES, ge=0)

    @field_validator("timeout_seconds", mode="before")
    @classmethod
    def clamp_timeout(cls, v: object) -> object:
        return _clamp_timeout(v)

    @field_validator("country", "document_type")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class FlowConfig(BaseModel):
    face: FaceConfig = Field(default_factory=FaceConfig)
    document: DocumentConfig = Field(default_factory=DocumentConfig)

    def session_request(self, kind: SessionKind, account_id: str) -> SessionRequest:
        """Build the create-session request for `kind`."""
        if kind is SessionKind.FACE:
            return SessionRequest(
                type=kind.api_type,
                account_id=account_id,
                threshold=self.face.similarity_threshold,
                timeout=self.face.timeout_seconds or None,
                subvalidations=[SubValidation.PASSIVE_LIVENESS, SubValidation.SIMILARITY],
            )
        return SessionRequest(
            type=kind.api_type,
            account_id=account_id,
            country=self.document.country.lower() if self.document.country else None,
            document_type=self.document.document_type,
            timeout=self.document.timeout_seconds or None,
        )

    def retries_for(self, kind: SessionKind) -> int:
        if kind is SessionKind.DOCUMENT:
            return self.document.max_feedback_retries
        return 0
