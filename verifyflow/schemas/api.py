"""Validations API Schemas — Pydantic models for the remote wire format.

Invariants:
    - Request models render to form fields in a stable order (to_form)
    - Repeated fields (subvalidations) render as a list, never a joined string
    - Response models ignore unknown fields: the server may add more at any time
    - SessionStatus.confidence is None unless the server reports one

Design Decisions:
    - Forms as dicts with list values: httpx data= expands a list into repeated keys
    - extra="ignore" on responses: forward-compatible with server additions
"""

from pydantic import BaseModel, ConfigDict, Field

from verifyflow.core.domain_types import SubValidation

FormData = dict[str, str | list[str]]


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore")


# --- Session creation ---------------------------------------------------------

class SessionRequest(BaseModel):
    """Create-session request — form-encoded on the wire."""
    type: str
    account_id: str
    country: str | None = None
    document_type: str | None = None
    threshold: float | None = None
    timeout: int | None = None
    subvalidations: list[SubValidation] = Field(default_factory=list)

    def to_form(self) -> FormData:
        form: FormData = {"type": self.type, "account_id": self.account_id}
        if self.country is not None:
            form["country"] = self.country
        if self.document_type is not None:
            form["document_type"] = self.document_type
        if self.threshold is not None:
            form["threshold"] = str(self.threshold)
        if self.timeout is not None:
            form["timeout"] = str(self.timeout)
        if self.subvalidations:
            form["subvalidations"] = [sub.value for sub in self.subvalidations]
        return form


class UploadInstructions(_Response):
    """Presigned upload URLs. Face sessions use file_upload_link, documents front/reverse."""
    file_upload_link: str | None = None
    front_url: str | None = None
    reverse_url: str | None = None


class SessionCreated(_Response):
    validation_id: str
    instructions: UploadInstructions = Field(default_factory=UploadInstructions)


# --- Session status -----------------------------------------------------------

class FaceRecognitionValidations(_Response):
    confidence_score: float | None = None
    similarity_status: str | None = None
    passive_liveness_status: str | None = None


class SessionDetails(_Response):
    face_recognition_validations: FaceRecognitionValidations | None = None


class SessionStatus(_Response):
    """Status response from GET /validations/{id}?show_details=true."""
    validation_id: str
    validation_status: str
    creation_date: str | None = None
    account_id: str | None = None
    type: str | None = None
    failure_status: str | None = None
    declined_reason: str | None = None
    details: SessionDetails | None = None

    @property
    def confidence(self) -> float | None:
        if self.details is None or self.details.face_recognition_validations is None:
            return None
        return self.details.face_recognition_validations.confidence_score


# --- Credential exchange ------------------------------------------------------

class ApiKeyResponse(_Response):
    api_key: str
    message: str = ""


# --- Enrollment ---------------------------------------------------------------

class EnrollmentRequest(BaseModel):
    """Reference-face enrollment request — form-encoded on the wire."""
    type: str = "face-recognition"
    user_authorized: bool = True
    account_id: str | None = None
    confirmation: str | None = None

    def to_form(self) -> FormData:
        form: FormData = {
            "type": self.type,
            "user_authorized": "true" if self.user_authorized else "false",
        }
        if self.account_id is not None:
            form["account_id"] = self.account_id
        if self.confirmation is not None:
            form["confirmation"] = self.confirmation
        return form


class EnrollmentCreated(_Response):
    enrollment_id: str
    account_id: str | None = None
    file_upload_link: str | None = None
    status: str | None = None
    reason: str | None = None
    creation_date: str | None = None
    update_date: str | None = None
    validation_type: str | None = None
