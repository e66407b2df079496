"""Error Classifier — maps any raised exception to exactly one error kind.

Invariants:
    - classify() is total: it never raises, whatever it is given
    - classify() is idempotent: a VerificationError comes back unchanged
    - The original exception is preserved as __cause__ for diagnostics
    - classified() lets FlowCancelledError through untouched (cancellation is not a failure)

Design Decisions:
    - Pure function over an isinstance ladder: order matters, most specific first
    - classified() context manager lets each component map its own failures
      at the boundary, so the orchestrator only routes
"""

import asyncio
import json
from contextlib import contextmanager
from typing import Iterator

from verifyflow.core.errors import (
    ApiError,
    CaptureFailedError,
    ClientError,
    ClientErrorCode,
    ErrorContext,
    ErrorKind,
    FlowCancelledError,
    TransportError,
    VerificationError,
)

_TRANSIENT_API_STATUSES = frozenset({429})


def classify(exc: BaseException, stage: str | None = None) -> VerificationError:
    """Map an exception to ClientError, ApiError or TransportError.

    Args:
        exc: any exception raised by a gateway, resolver or capture collaborator.
        stage: flow stage recorded on the resulting error context.
    """
    if isinstance(exc, VerificationError):
        if stage is not None and exc.context.stage is None:
            exc.context.stage = stage
        return exc

    context = ErrorContext(stage=stage, debug_info={"exception_type": type(exc).__name__})

    if isinstance(exc, CaptureFailedError):
        code = (
            ClientErrorCode.CAMERA_PERMISSION_ERROR
            if exc.permission_denied
            else ClientErrorCode.INTERNAL_ERROR
        )
        error: VerificationError = ClientError(
            code, None if exc.permission_denied else exc.message, context,
        )
    elif isinstance(exc, json.JSONDecodeError):
        error = ClientError(
            ClientErrorCode.INTERNAL_ERROR, "Failed to process server response", context,
        )
    elif isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
        error = TransportError(_describe(exc), cause=exc, context=context)
    else:
        error = ClientError(ClientErrorCode.INTERNAL_ERROR, _describe(exc), context)

    error.__cause__ = exc
    return error


def is_transient(error: VerificationError) -> bool:
    """Transport failures and 5xx/429 API responses may succeed on retry."""
    if error.kind is ErrorKind.TRANSPORT:
        return True
    if isinstance(error, ApiError):
        return error.http_status >= 500 or error.http_status in _TRANSIENT_API_STATUSES
    return False


@contextmanager
def classified(stage: str) -> Iterator[None]:
    """Re-raise any failure inside the block as a classified error for `stage`."""
    try:
        yield
    except (VerificationError, FlowCancelledError) as e:
        if isinstance(e, VerificationError) and e.context.stage is None:
            e.context.stage = stage
        raise
    except Exception as e:
        raise classify(e, stage) from e


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return text if text else type(exc).__name__
