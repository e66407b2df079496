"""Flow State — tests for the lifecycle state machine and upload targets.

Tests cover:
    - Legal paths through the lifecycle (face with enrollment, document with retries)
    - Illegal transitions raise invalid_state and leave state unchanged
    - Terminal states admit nothing
    - Retry counter never goes negative
    - Upload target derivation per session kind
"""

import pytest

from verifyflow.core.domain_types import DocumentSide, FlowState, SessionId, SessionKind
from verifyflow.core.errors import ClientError
from verifyflow.core.flow_state import (
    ALLOWED_TRANSITIONS,
    FlowStateMachine,
    UploadTarget,
    VerificationSession,
    upload_targets_for,
)
from verifyflow.schemas.api import SessionCreated, UploadInstructions


def _created(**instructions) -> SessionCreated:
    return SessionCreated(validation_id="v1", instructions=UploadInstructions(**instructions))


# ==============================================================================
# Transitions
# ==============================================================================


def test_new_machine_starts_created():
    machine = FlowStateMachine(kind=SessionKind.FACE)
    assert machine.state is FlowState.CREATED
    assert machine.history == [FlowState.CREATED]
    assert not machine.is_terminal


def test_face_path_with_enrollment():
    machine = FlowStateMachine(kind=SessionKind.FACE)
    for state in (
        FlowState.ENROLLMENT_PENDING, FlowState.CAPTURE_PENDING,
        FlowState.POLLING, FlowState.COMPLETED,
    ):
        machine.transition_to(state)
    assert machine.is_terminal
    assert machine.history[-1] is FlowState.COMPLETED


def test_document_path_with_feedback_loop():
    machine = FlowStateMachine(kind=SessionKind.DOCUMENT)
    for state in (
        FlowState.CAPTURE_PENDING, FlowState.FEEDBACK_RETRY,
        FlowState.CAPTURE_PENDING, FlowState.POLLING, FlowState.FAILED,
    ):
        machine.transition_to(state)
    assert machine.history.count(FlowState.FEEDBACK_RETRY) == 1


def test_illegal_transition_raises_and_keeps_state():
    machine = FlowStateMachine(kind=SessionKind.FACE)
    with pytest.raises(ClientError) as exc_info:
        machine.transition_to(FlowState.POLLING)
    assert exc_info.value.code == "invalid_state"
    assert machine.state is FlowState.CREATED
    assert machine.history == [FlowState.CREATED]


@pytest.mark.parametrize("terminal", [FlowState.COMPLETED, FlowState.FAILED, FlowState.CANCELLED])
def test_terminal_states_admit_nothing(terminal):
    assert ALLOWED_TRANSITIONS[terminal] == frozenset()


def test_every_non_terminal_state_can_cancel():
    for state, targets in ALLOWED_TRANSITIONS.items():
        if targets:
            assert FlowState.CANCELLED in targets, state


def test_cancelled_machine_rejects_completion():
    machine = FlowStateMachine(kind=SessionKind.FACE)
    machine.transition_to(FlowState.CANCELLED)
    assert not machine.can_transition(FlowState.COMPLETED)
    with pytest.raises(ClientError):
        machine.transition_to(FlowState.FAILED)


# ==============================================================================
# Session retries
# ==============================================================================


def test_consume_retry_stops_at_zero():
    session = VerificationSession(SessionId("v1"), SessionKind.DOCUMENT, "acc", retries_remaining=1)
    assert session.consume_retry()
    assert not session.consume_retry()
    assert session.retries_remaining == 0


# ==============================================================================
# Upload targets
# ==============================================================================


def test_face_uploads_to_file_upload_link():
    targets = upload_targets_for(SessionKind.FACE, _created(file_upload_link="https://u/face"))
    assert targets == [UploadTarget("https://u/face", None)]


def test_document_uploads_front_then_back():
    targets = upload_targets_for(
        SessionKind.DOCUMENT,
        _created(front_url="https://u/front", reverse_url="https://u/back"),
    )
    assert targets == [
        UploadTarget("https://u/front", DocumentSide.FRONT),
        UploadTarget("https://u/back", DocumentSide.BACK),
    ]


def test_document_without_reverse_uploads_front_only():
    targets = upload_targets_for(SessionKind.DOCUMENT, _created(front_url="https://u/front"))
    assert [t.side for t in targets] == [DocumentSide.FRONT]


@pytest.mark.parametrize("kind, instructions", [
    (SessionKind.FACE, {}),
    (SessionKind.FACE, {"front_url": "https://u/front"}),
    (SessionKind.DOCUMENT, {"file_upload_link": "https://u/face"}),
    (SessionKind.FACE, {"file_upload_link": "not a url"}),
    (SessionKind.FACE, {"file_upload_link": "ftp://u/face"}),
])
def test_missing_or_bad_target_is_invalid_upload_link(kind, instructions):
    with pytest.raises(ClientError) as exc_info:
        upload_targets_for(kind, _created(**instructions))
    assert exc_info.value.code == "invalid_file_upload_link"
