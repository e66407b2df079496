"""Reference-Face Enrollment — tests for create-then-upload sequencing and face sources."""

import pytest

from verifyflow.core.credentials import Credential
from verifyflow.core.domain_types import KeyType
from verifyflow.core.errors import ApiError, ClientError, TransportError
from verifyflow.schemas.api import EnrollmentCreated
from verifyflow.schemas.flow import FaceConfig
from verifyflow.services.enrollment import enroll_reference_face, load_reference_face

from tests.services.fakes import FakeGateway

CREDENTIAL = Credential("sdk-token", KeyType.SDK, None)
FACE = FaceConfig(reference_face=b"png-bytes")


async def test_creates_enrollment_then_uploads_reference_face():
    gateway = FakeGateway()

    enrollment_id = await enroll_reference_face(gateway, CREDENTIAL, "acc-1", FACE)

    assert enrollment_id == "enr-1"
    assert [name for name, _ in gateway.calls] == ["create_enrollment", "upload_media"]
    credential, request = gateway.calls_to("create_enrollment")[0]
    assert credential == "sdk-token"
    assert request.account_id == "acc-1"
    assert gateway.calls_to("upload_media") == [("https://u/enroll", b"png-bytes", "image/png")]


async def test_missing_upload_link_fails_without_upload():
    gateway = FakeGateway(enrollment=EnrollmentCreated(enrollment_id="enr-1"))

    with pytest.raises(ApiError) as exc_info:
        await enroll_reference_face(gateway, CREDENTIAL, "acc-1", FACE)

    assert exc_info.value.code == "no_upload_link"
    assert exc_info.value.stage == "enrollment"
    assert gateway.calls_to("upload_media") == []


async def test_upload_failure_is_tagged_with_enrollment_stage():
    gateway = FakeGateway(upload_error=TransportError("reset"))

    with pytest.raises(TransportError) as exc_info:
        await enroll_reference_face(gateway, CREDENTIAL, "acc-1", FACE)

    assert exc_info.value.stage == "enrollment"


async def test_requires_reference_face():
    with pytest.raises(ValueError):
        await enroll_reference_face(FakeGateway(), CREDENTIAL, "acc-1", FaceConfig())


# ==============================================================================
# Reference face sources
# ==============================================================================


async def test_http_url_reference_face_is_downloaded_then_uploaded():
    gateway = FakeGateway(media=b"remote-face")
    face = FaceConfig(reference_face="https://cdn.test/face.png")

    await enroll_reference_face(gateway, CREDENTIAL, "acc-1", face)

    assert gateway.calls_to("fetch_media") == [("https://cdn.test/face.png",)]
    assert gateway.calls_to("upload_media") == [("https://u/enroll", b"remote-face", "image/png")]


async def test_local_path_reference_face_is_read_from_disk(tmp_path):
    image = tmp_path / "face.jpg"
    image.write_bytes(b"disk-face")
    gateway = FakeGateway()

    for source in (image, str(image), image.as_uri()):
        assert await load_reference_face(gateway, source) == b"disk-face"
    assert gateway.calls_to("fetch_media") == []


async def test_missing_reference_face_file_is_invalid_configuration(tmp_path):
    gateway = FakeGateway()
    face = FaceConfig(reference_face=str(tmp_path / "absent.jpg"))

    with pytest.raises(ClientError) as exc_info:
        await enroll_reference_face(gateway, CREDENTIAL, "acc-1", face)

    assert exc_info.value.code == "invalid_configuration"
    assert exc_info.value.stage == "enrollment"
    assert gateway.calls_to("upload_media") == []


async def test_malformed_url_is_treated_as_path(tmp_path):
    gateway = FakeGateway()

    with pytest.raises(ClientError):
        await load_reference_face(gateway, "htp://invalid url with spaces")

    assert gateway.calls_to("fetch_media") == []
