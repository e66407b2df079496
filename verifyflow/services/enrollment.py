"""Reference-Face Enrollment — registers the face later sessions compare against.

Invariants:
    - Enrollment is created first, then the reference face is uploaded to its link
    - A missing upload link is ApiError(no_upload_link); nothing is uploaded
    - Failures propagate as classified errors tagged with stage "enrollment"
    - An unreadable local reference face is ClientError(invalid_configuration)

Design Decisions:
    - The reference face is loaded after the enrollment is created
    - Local files are read off the event loop (asyncio.to_thread)
"""

import asyncio
import logging
from pathlib import Path
from urllib.parse import urlsplit
from urllib.request import url2pathname

from verifyflow.core.credentials import Credential
from verifyflow.core.domain_types import EnrollmentId
from verifyflow.core.error_classifier import classified
from verifyflow.core.errors import ApiError, ApiErrorCode, ClientError, ClientErrorCode, ErrorContext
from verifyflow.core.gateway_protocols import ApiGateway
from verifyflow.schemas.api import EnrollmentRequest
from verifyflow.schemas.flow import FaceConfig

logger = logging.getLogger(__name__)

_STAGE = "enrollment"
_REMOTE_SCHEMES = ("http", "https")


async def load_reference_face(gateway: ApiGateway, source: bytes | Path | str) -> bytes:
    """Bytes of the reference face: given inline, downloaded, or read from disk.

    Strings with an http(s) scheme are downloaded, file:// URLs and anything
    else are treated as local paths.
    """
    if isinstance(source, bytes):
        return source
    if isinstance(source, str):
        parts = urlsplit(source)
        if parts.scheme in _REMOTE_SCHEMES:
            return await gateway.fetch_media(source)
        if parts.scheme == "file":
            source = url2pathname(parts.path)
    path = Path(source)
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise ClientError(
            ClientErrorCode.INVALID_CONFIGURATION,
            f"Reference face unreadable: {path}",
            ErrorContext(stage=_STAGE),
        ) from e


async def enroll_reference_face(
    gateway: ApiGateway,
    credential: Credential,
    account_id: str,
    face_config: FaceConfig,
) -> EnrollmentId:
    """Create an enrollment for `account_id` and upload the configured reference face."""
    if face_config.reference_face is None:
        raise ValueError("enroll_reference_face requires a reference face")

    with classified(_STAGE):
        enrollment = await gateway.create_enrollment(
            credential.token, EnrollmentRequest(account_id=account_id),
        )
        if not enrollment.file_upload_link:
            raise ApiError(
                ApiErrorCode.NO_UPLOAD_LINK,
                message="Enrollment response has no file upload link",
                context=ErrorContext(stage=_STAGE),
            )
        image = await load_reference_face(gateway, face_config.reference_face)
        await gateway.upload_media(
            enrollment.file_upload_link, image, face_config.reference_face_content_type,
        )

    logger.info(
        f"Reference face enrolled: {enrollment.enrollment_id}",
        extra={"stage": _STAGE},
    )
    return EnrollmentId(enrollment.enrollment_id)
