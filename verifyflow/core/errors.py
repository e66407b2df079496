"""Error Hierarchy — typed, categorized exceptions for every verification failure mode.

Invariants:
    - Every error has a code (str), kind (ErrorKind), severity (ErrorSeverity)
    - Exactly three kinds: ClientError, ApiError, TransportError
    - FlowCancelledError is NOT a VerificationError — cancellation is never a failure
    - to_dict() produces the caller-facing envelope; tokens never appear in messages

Design Decisions:
    - Single hierarchy with VerificationError base: the orchestrator catches one type
    - ErrorContext as dataclass: rich diagnostics (stage, attempt) without coupling to logging
    - Numeric codes kept alongside string codes for callers that switch on integers
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorKind(str, Enum):
    """The three error families surfaced to callers."""
    CLIENT = "client"
    API = "api"
    TRANSPORT = "transport"


class ClientErrorCode(str, Enum):
    """Misconfiguration, bad credential, or internal invariant violation."""
    API_KEY_MISSING = "api_key_missing"
    INVALID_JWT_FORMAT = "invalid_jwt_format"
    MISSING_EXPIRATION = "missing_expiration"
    MISSING_KEY_TYPE = "missing_key_type"
    EXPIRED_KEY = "expired_key"
    INVALID_KEY_TYPE = "invalid_key_type"
    GENERATION_FAILED = "generation_failed"
    INVALID_API_KEY = "invalid_api_key"
    CAMERA_PERMISSION_ERROR = "camera_permission_error"
    INVALID_FILE_UPLOAD_LINK = "invalid_file_upload_link"
    INVALID_ACCOUNT_ID = "invalid_account_id"
    INVALID_STATE = "invalid_state"
    INVALID_CONFIGURATION = "invalid_configuration"
    UPLOAD_FAILED = "upload_failed"
    INTERNAL_ERROR = "internal_error"


class ApiErrorCode(str, Enum):
    """Known server-reported rejections and verdicts."""
    UNKNOWN = "unknown"
    EXPIRED_FILE_UPLOAD_LINK = "expired_file_upload_link"
    FACE_NOT_FOUND = "face_not_found"
    EXPIRED_API_KEY = "expired_api_key"
    VALIDATION_DECLINED = "validation_declined"
    VALIDATION_EXPIRED = "validation_expired"
    VALIDATION_SYSTEM_ERROR = "validation_system_error"
    NO_UPLOAD_LINK = "no_upload_link"
    TIMEOUT = "identity_process_results_timed_out"


_NUMERIC_CODES: dict[str, int] = {
    # API key resolution failures all surface as "invalid API key"
    ClientErrorCode.API_KEY_MISSING: 20001,
    ClientErrorCode.INVALID_JWT_FORMAT: 20017,
    ClientErrorCode.MISSING_EXPIRATION: 20017,
    ClientErrorCode.MISSING_KEY_TYPE: 20017,
    ClientErrorCode.EXPIRED_KEY: 20017,
    ClientErrorCode.INVALID_KEY_TYPE: 20017,
    ClientErrorCode.GENERATION_FAILED: 20017,
    ClientErrorCode.INVALID_API_KEY: 20017,
    ClientErrorCode.CAMERA_PERMISSION_ERROR: 20011,
    ClientErrorCode.INVALID_FILE_UPLOAD_LINK: 20012,
    ClientErrorCode.INVALID_ACCOUNT_ID: 20019,
    ClientErrorCode.INVALID_STATE: 20023,
    ClientErrorCode.INVALID_CONFIGURATION: 20024,
    ClientErrorCode.UPLOAD_FAILED: 20026,
    ClientErrorCode.INTERNAL_ERROR: 20500,
    ApiErrorCode.TIMEOUT: 20016,
    ApiErrorCode.UNKNOWN: 30000,
    ApiErrorCode.EXPIRED_FILE_UPLOAD_LINK: 30001,
    ApiErrorCode.FACE_NOT_FOUND: 30002,
    ApiErrorCode.EXPIRED_API_KEY: 30003,
    ApiErrorCode.VALIDATION_DECLINED: 30006,
    ApiErrorCode.VALIDATION_EXPIRED: 30007,
    ApiErrorCode.VALIDATION_SYSTEM_ERROR: 30008,
    "network_error": 20025,
}

_FALLBACK_NUMERIC_CODES: dict[ErrorKind, int] = {
    ErrorKind.CLIENT: 20500,
    ErrorKind.API: 30000,
    ErrorKind.TRANSPORT: 20025,
}

_CLIENT_MESSAGES: dict[str, str] = {
    ClientErrorCode.API_KEY_MISSING: "API Key is missing",
    ClientErrorCode.INVALID_JWT_FORMAT: "Invalid JWT format",
    ClientErrorCode.MISSING_EXPIRATION: "exp not found in JWT",
    ClientErrorCode.MISSING_KEY_TYPE: "key_type not found in JWT",
    ClientErrorCode.EXPIRED_KEY: "API Key expired",
    ClientErrorCode.INVALID_KEY_TYPE: "Invalid key_type",
    ClientErrorCode.GENERATION_FAILED: "Failed to generate SDK key",
    ClientErrorCode.INVALID_API_KEY: "Invalid API Key sent",
    ClientErrorCode.CAMERA_PERMISSION_ERROR: (
        "Camera permission denied, process cannot continue"
    ),
    ClientErrorCode.INVALID_FILE_UPLOAD_LINK: "File upload link is invalid",
    ClientErrorCode.INVALID_ACCOUNT_ID: "Invalid account id",
    ClientErrorCode.INVALID_STATE: "Operation cannot be performed in current state",
    ClientErrorCode.INVALID_CONFIGURATION: "Invalid configuration",
    ClientErrorCode.UPLOAD_FAILED: "File upload failed",
    ClientErrorCode.INTERNAL_ERROR: "Unexpected error",
}


def _format_expiry(exp: Any) -> str:
    """ISO timestamp for exp, or the raw value when it is outside datetime's range."""
    try:
        return datetime.fromtimestamp(float(exp), tz=timezone.utc).isoformat()
    except (ValueError, OverflowError, OSError):
        return str(exp)


def _client_message(code: str, details: Any) -> str:
    """Human-readable message for a client error code."""
    if code == ClientErrorCode.EXPIRED_KEY and details is not None:
        return f"API Key expired at: {_format_expiry(details)}. Must be a valid key"
    if code == ClientErrorCode.INVALID_KEY_TYPE and details is not None:
        return f"Invalid key_type: {details}. Must be 'sdk' or 'generator'"
    base = _CLIENT_MESSAGES.get(code, "Unexpected error")
    if details is None:
        return base
    return f"{base}: {details}"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    stage: str | None = None
    session_id: str | None = None
    attempt: int | None = None
    debug_info: dict[str, Any] | None = None


class VerificationError(Exception):
    """Base exception for all classified verification errors."""

    def __init__(
        self,
        message: str,
        code: str,
        kind: ErrorKind,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = -1,
    ):
        super().__init__(message)
        self.message = message
        self.code = str(code.value if isinstance(code, Enum) else code)
        self.kind = kind
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    @property
    def numeric_code(self) -> int:
        """Stable integer code; unmapped codes fall back to their kind's generic code."""
        return _NUMERIC_CODES.get(self.code, _FALLBACK_NUMERIC_CODES[self.kind])

    @property
    def stage(self) -> str | None:
        return self.context.stage

    def to_dict(self) -> dict:
        """Convert to the caller-facing error envelope."""
        return {
            "code": self.code,
            "numeric_code": self.numeric_code,
            "kind": self.kind.value,
            "message": self.message,
            "stage": self.context.stage,
            "severity": self.severity.value,
            "http_status": self.http_status,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "session_id": self.context.session_id,
                "attempt": self.context.attempt,
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ClientError(VerificationError):
    """Misconfiguration, invalid credential, or internal invariant violation.

    Never retried automatically. `details` carries the offending value
    (expiry timestamp, key type, failure reason) when there is one.
    """
    def __init__(
        self,
        code: ClientErrorCode | str,
        details: Any = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            _client_message(code, details), code, ErrorKind.CLIENT,
            ErrorSeverity.ERROR, context, -1,
        )
        self.details = details


class ApiError(VerificationError):
    """Server rejected the request or declared a verdict.

    http_status is -1 for logical verdicts that have no HTTP response
    (declined, timed out, capture feedback).
    """
    def __init__(
        self,
        code: ApiErrorCode | str,
        http_status: int = -1,
        message: str | None = None,
        context: ErrorContext | None = None,
    ):
        code_value = str(code.value if isinstance(code, Enum) else code)
        severity = (
            ErrorSeverity.CRITICAL if http_status >= 500 else ErrorSeverity.ERROR
        )
        super().__init__(
            message or code_value, code_value, ErrorKind.API,
            severity, context, http_status,
        )


class TransportError(VerificationError):
    """Network-level failure with no stable code."""
    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "network_error", ErrorKind.TRANSPORT,
            ErrorSeverity.WARNING, context, -1,
        )
        self.cause = cause


class CaptureFailedError(Exception):
    """Raised by capture collaborators when capture cannot proceed at all."""
    def __init__(self, message: str, permission_denied: bool = False):
        super().__init__(message)
        self.message = message
        self.permission_denied = permission_denied


class FlowCancelledError(Exception):
    """Raised inside a flow once its cancellation signal is set."""
    def __init__(self, message: str = "Flow cancelled"):
        super().__init__(message)
        self.message = message
