"""Domain Types — tests for enum wire values."""

from verifyflow.core.domain_types import (
    TERMINAL_STATES,
    FlowState,
    KeyType,
    SessionKind,
    SubValidation,
)


def test_session_kind_api_types():
    assert SessionKind.FACE.api_type == "face-recognition"
    assert SessionKind.DOCUMENT.api_type == "document-validation"


def test_str_enums_compare_to_wire_values():
    assert KeyType.SDK == "sdk"
    assert KeyType.GENERATOR == "generator"
    assert SubValidation.PASSIVE_LIVENESS == "passive_liveness"


def test_terminal_states():
    assert TERMINAL_STATES == {FlowState.COMPLETED, FlowState.FAILED, FlowState.CANCELLED}
