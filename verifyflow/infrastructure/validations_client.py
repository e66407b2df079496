"""Validations API Client — httpx implementation of the ApiGateway Protocol.

Invariants:
    - 401 on any authenticated call: ClientError(invalid_api_key)
    - Other non-2xx: ApiError carrying the HTTP status and the server's code when present
    - httpx transport failures (connect, read, timeout): TransportError
    - Undecodable or schema-invalid 2xx bodies: ClientError(internal_error)
    - Credential exchange failures of any kind: ClientError(generation_failed)
    - No retries here: retry policy belongs to the caller (ResultPoller)

Design Decisions:
    - Wrapper over a shared httpx.AsyncClient: one connection pool per client instance
    - Form bodies passed as httpx data=: httpx url-encodes them and sets Content-Type
    - transport parameter exists so tests inject httpx.MockTransport
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, TypeVar

import httpx
from pydantic import BaseModel

from verifyflow.config import Settings
from verifyflow.core.domain_types import SessionId
from verifyflow.core.errors import (
    ApiError,
    ApiErrorCode,
    ClientError,
    ClientErrorCode,
    ErrorContext,
    TransportError,
    VerificationError,
)
from verifyflow.schemas.api import (
    ApiKeyResponse,
    EnrollmentCreated,
    EnrollmentRequest,
    SessionCreated,
    SessionRequest,
    SessionStatus,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "Truora-API-Key"
HTTP_ERROR_CODE = "http_error"

# Form body sent when exchanging a generator key for an sdk key
_EXCHANGE_FORM = {
    "key_type": "sdk",
    "grant": "validations",
    "api_key_version": "1",
    "key_name": "sdk_usage",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationsApiClient:
    """Talks to the Validations and Account APIs over one httpx.AsyncClient."""

    def __init__(
        self,
        validations_base_url: str,
        account_base_url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.validations_base_url = validations_base_url.rstrip("/")
        self.account_base_url = account_base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ValidationsApiClient":
        return cls(
            settings.validations_base_url,
            settings.account_base_url,
            settings.http_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ValidationsApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ─── ApiGateway ──────────────────────────────────────────────

    async def create_session(
        self, credential: str, request: SessionRequest,
    ) -> SessionCreated:
        stage = "create_session"
        async with _mapped_errors(stage):
            response = await self.client.post(
                f"{self.validations_base_url}/validations",
                data=request.to_form(),
                headers=_auth_headers(credential),
            )
        _raise_for_status(response, stage)
        created = _parse(SessionCreated, response, stage)
        logger.info(
            "Validation session created",
            extra={"session_id": created.validation_id, "stage": stage},
        )
        return created

    async def get_session_status(
        self, credential: str, session_id: SessionId,
    ) -> SessionStatus:
        stage = "poll"
        async with _mapped_errors(stage, session_id):
            response = await self.client.get(
                f"{self.validations_base_url}/validations/{session_id}",
                params={"show_details": "true"},
                headers=_auth_headers(credential),
            )
        _raise_for_status(response, stage, session_id)
        status = _parse(SessionStatus, response, stage)
        logger.debug(
            f"Validation status: {status.validation_status}",
            extra={"session_id": session_id, "stage": stage},
        )
        return status

    async def exchange_credential(self, generator_token: str) -> ApiKeyResponse:
        stage = "exchange_credential"
        try:
            async with _mapped_errors(stage):
                response = await self.client.post(
                    f"{self.account_base_url}/api-keys",
                    data=_EXCHANGE_FORM,
                    headers=_auth_headers(generator_token),
                )
        except TransportError as e:
            raise ClientError(
                ClientErrorCode.GENERATION_FAILED, e.message,
                ErrorContext(stage=stage),
            ) from e

        if not response.is_success:
            reason = f"HTTP {response.status_code}: {response.text}"
            logger.warning(
                "SDK key generation rejected",
                extra={"stage": stage, "http_status": response.status_code},
            )
            raise ClientError(
                ClientErrorCode.GENERATION_FAILED, reason, ErrorContext(stage=stage),
            )

        try:
            return ApiKeyResponse.model_validate(response.json())
        except ValueError as e:
            raise ClientError(
                ClientErrorCode.GENERATION_FAILED,
                f"Invalid response: {e}",
                ErrorContext(stage=stage),
            ) from e

    async def upload_media(self, url: str, data: bytes, content_type: str) -> None:
        stage = "upload"
        async with _mapped_errors(stage):
            response = await self.client.put(
                url, content=data, headers={"Content-Type": content_type},
            )
        if response.is_success:
            logger.debug(f"Uploaded {len(data)} bytes", extra={"stage": stage})
            return
        if response.status_code == 403:
            _log_failure(stage, ApiErrorCode.EXPIRED_FILE_UPLOAD_LINK, response.status_code)
            raise ApiError(
                ApiErrorCode.EXPIRED_FILE_UPLOAD_LINK,
                response.status_code,
                "File upload link expired",
                ErrorContext(stage=stage),
            )
        if response.status_code >= 500:
            _raise_for_status(response, stage)
        _log_failure(stage, ClientErrorCode.UPLOAD_FAILED, response.status_code)
        raise ClientError(
            ClientErrorCode.UPLOAD_FAILED,
            f"HTTP {response.status_code}: {response.text}",
            ErrorContext(stage=stage),
        )

    async def fetch_media(self, url: str) -> bytes:
        """Download a remote image, e.g. a reference face given by URL."""
        stage = "enrollment"
        async with _mapped_errors(stage):
            response = await self.client.get(url, follow_redirects=True)
        if not response.is_success:
            _log_failure(stage, ClientErrorCode.INVALID_CONFIGURATION, response.status_code)
            raise ClientError(
                ClientErrorCode.INVALID_CONFIGURATION,
                f"Reference face download failed: HTTP {response.status_code}",
                ErrorContext(stage=stage),
            )
        return response.content

    async def create_enrollment(
        self, credential: str, request: EnrollmentRequest,
    ) -> EnrollmentCreated:
        stage = "enrollment"
        async with _mapped_errors(stage):
            response = await self.client.post(
                f"{self.validations_base_url}/enrollments",
                data=request.to_form(),
                headers=_auth_headers(credential),
            )
        _raise_for_status(response, stage)
        return _parse(EnrollmentCreated, response, stage)


# ─── Helpers ─────────────────────────────────────────────────────

def _auth_headers(credential: str) -> dict[str, str]:
    return {API_KEY_HEADER: credential, "Accept": "application/json"}


@asynccontextmanager
async def _mapped_errors(
    stage: str, session_id: str | None = None,
) -> AsyncIterator[None]:
    """Map httpx transport failures to TransportError.

    CancelledError (BaseException) passes through uncaught.
    """
    try:
        yield
    except httpx.TimeoutException as e:
        logger.warning(f"Request timed out: {e!r}", extra={"stage": stage, "session_id": session_id})
        raise TransportError(
            f"Request timed out: {e}", cause=e,
            context=ErrorContext(stage=stage, session_id=session_id),
        ) from e
    except httpx.TransportError as e:
        logger.warning(f"Connection error: {e!r}", extra={"stage": stage, "session_id": session_id})
        raise TransportError(
            f"Connection error: {e}", cause=e,
            context=ErrorContext(stage=stage, session_id=session_id),
        ) from e


def _raise_for_status(
    response: httpx.Response, stage: str, session_id: str | None = None,
) -> None:
    if response.is_success:
        return
    context = ErrorContext(stage=stage, session_id=session_id)
    error: VerificationError
    if response.status_code == 401:
        error = ClientError(ClientErrorCode.INVALID_API_KEY, context=context)
    else:
        error = ApiError(
            _server_code(response),
            response.status_code,
            f"HTTP {response.status_code}: {response.text}",
            context,
        )
    _log_failure(stage, error.code, response.status_code, session_id)
    raise error


def _server_code(response: httpx.Response) -> str:
    """Error code from the JSON body (code or error_code), else http_error."""
    try:
        body = response.json()
    except ValueError:
        return HTTP_ERROR_CODE
    if isinstance(body, dict):
        for key in ("code", "error_code"):
            value = body.get(key)
            if value is not None and not isinstance(value, (dict, list)):
                return str(value)
    return HTTP_ERROR_CODE


def _parse(model: type[ModelT], response: httpx.Response, stage: str) -> ModelT:
    try:
        return model.model_validate(response.json())
    except ValueError as e:
        logger.error(
            f"Failed to parse {model.__name__}: {e}",
            extra={"stage": stage, "error_code": ClientErrorCode.INTERNAL_ERROR.value},
        )
        raise ClientError(
            ClientErrorCode.INTERNAL_ERROR,
            "Failed to process server response",
            ErrorContext(stage=stage),
        ) from e


def _log_failure(
    stage: str, code: str, http_status: int, session_id: str | None = None,
) -> None:
    logger.warning(
        f"Request failed with HTTP {http_status}",
        extra={
            "stage": stage,
            "session_id": session_id,
            "error_code": str(getattr(code, "value", code)),
            "http_status": http_status,
        },
    )
