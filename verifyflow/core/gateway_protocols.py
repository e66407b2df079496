"""Boundary Protocols — contracts between the flow logic and the outside world.

Invariants:
    - Services depend on these Protocols, never on concrete clients
    - Gateway methods raise classified VerificationErrors, never raw transport errors
    - Credentials cross the boundary as plain token strings

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes need no inheritance
    - Async methods: every implementation does IO
"""

from typing import Protocol

from verifyflow.core.capture import CaptureRequest, CapturedMedia, QualityRejection
from verifyflow.core.domain_types import SessionId, SessionKind
from verifyflow.schemas.api import (
    ApiKeyResponse,
    EnrollmentCreated,
    EnrollmentRequest,
    SessionCreated,
    SessionRequest,
    SessionStatus,
)


class ApiGateway(Protocol):
    """Contract for the remote Validations API — implemented by infrastructure."""
    async def create_session(
        self, credential: str, request: SessionRequest,
    ) -> SessionCreated: ...
    async def get_session_status(
        self, credential: str, session_id: SessionId,
    ) -> SessionStatus: ...
    async def exchange_credential(self, generator_token: str) -> ApiKeyResponse: ...
    async def upload_media(self, url: str, data: bytes, content_type: str) -> None: ...
    async def fetch_media(self, url: str) -> bytes: ...
    async def create_enrollment(
        self, credential: str, request: EnrollmentRequest,
    ) -> EnrollmentCreated: ...


class CaptureCollaborator(Protocol):
    """Contract for on-device capture — implemented by the embedding application.

    capture() may raise CaptureFailedError when capture cannot proceed at all
    (e.g. camera permission denied).
    """
    async def present_intro(self, kind: SessionKind) -> None: ...
    async def capture(self, request: CaptureRequest) -> CapturedMedia | QualityRejection: ...


class CredentialSource(Protocol):
    """Contract for callers that keep the API key in a secure store."""
    async def get_api_key(self) -> str: ...
