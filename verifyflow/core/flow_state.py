"""Flow State — the session lifecycle state machine, pure and table-driven.

Invariants:
    - Only transitions listed in ALLOWED_TRANSITIONS are legal
    - An illegal transition raises ClientError(invalid_state) and leaves state unchanged
    - Terminal states (COMPLETED, FAILED, CANCELLED) admit no further transitions
    - history records every state entered, in order, starting with CREATED
    - retries_remaining never goes below zero

Design Decisions:
    - Dataclass with transition_to(): deterministic, testable without an event loop
    - Transition table as data, not branching: one place to read the lifecycle
    - The orchestrator owns the only instance; nothing here is shared
"""

from dataclasses import dataclass, field
from urllib.parse import urlsplit

from verifyflow.core.domain_types import (
    TERMINAL_STATES,
    DocumentSide,
    FlowState,
    SessionId,
    SessionKind,
)
from verifyflow.core.errors import ClientError, ClientErrorCode, ErrorContext
from verifyflow.schemas.api import SessionCreated

ALLOWED_TRANSITIONS: dict[FlowState, frozenset[FlowState]] = {
    FlowState.CREATED: frozenset({
        FlowState.ENROLLMENT_PENDING, FlowState.CAPTURE_PENDING,
        FlowState.FAILED, FlowState.CANCELLED,
    }),
    FlowState.ENROLLMENT_PENDING: frozenset({
        FlowState.CAPTURE_PENDING, FlowState.FAILED, FlowState.CANCELLED,
    }),
    FlowState.CAPTURE_PENDING: frozenset({
        FlowState.FEEDBACK_RETRY, FlowState.POLLING,
        FlowState.FAILED, FlowState.CANCELLED,
    }),
    FlowState.FEEDBACK_RETRY: frozenset({
        FlowState.CAPTURE_PENDING, FlowState.POLLING,
        FlowState.FAILED, FlowState.CANCELLED,
    }),
    FlowState.POLLING: frozenset({
        FlowState.COMPLETED, FlowState.FAILED, FlowState.CANCELLED,
    }),
    FlowState.COMPLETED: frozenset(),
    FlowState.FAILED: frozenset(),
    FlowState.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class UploadTarget:
    """One presigned URL expecting one captured artifact."""
    url: str
    side: DocumentSide | None = None


def upload_targets_for(kind: SessionKind, created: SessionCreated) -> list[UploadTarget]:
    """Ordered upload targets for a new session.

    Face sessions upload one artifact to file_upload_link; document sessions
    upload the front to front_url, then the back to reverse_url when present.

    Raises:
        ClientError(invalid_file_upload_link): a required URL is missing or not
            an absolute http(s) URL.
    """
    instructions = created.instructions
    if kind is SessionKind.FACE:
        wanted = [(instructions.file_upload_link, None)]
    else:
        wanted = [(instructions.front_url, DocumentSide.FRONT)]
        if instructions.reverse_url:
            wanted.append((instructions.reverse_url, DocumentSide.BACK))

    targets = []
    for url, side in wanted:
        if not _is_absolute_http_url(url):
            raise ClientError(
                ClientErrorCode.INVALID_FILE_UPLOAD_LINK,
                context=ErrorContext(stage="create_session", session_id=created.validation_id),
            )
        targets.append(UploadTarget(url, side))
    return targets


def _is_absolute_http_url(url: str | None) -> bool:
    if not url:
        return False
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


@dataclass
class VerificationSession:
    """Server-side session as seen by the orchestrator after create-session."""
    session_id: SessionId
    kind: SessionKind
    account_id: str
    upload_targets: list[UploadTarget] = field(default_factory=list)
    retries_remaining: int = 0

    def consume_retry(self) -> bool:
        """Spend one feedback retry. Returns False when none are left."""
        if self.retries_remaining <= 0:
            return False
        self.retries_remaining -= 1
        return True


@dataclass
class FlowStateMachine:
    """Per-flow lifecycle state — pure dataclass, no IO."""

    kind: SessionKind
    state: FlowState = FlowState.CREATED
    history: list[FlowState] = field(default_factory=lambda: [FlowState.CREATED])
    session: VerificationSession | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can_transition(self, target: FlowState) -> bool:
        return target in ALLOWED_TRANSITIONS[self.state]

    def transition_to(self, target: FlowState) -> None:
        """Move to `target` or raise ClientError(invalid_state)."""
        if not self.can_transition(target):
            raise ClientError(
                ClientErrorCode.INVALID_STATE,
                f"{self.state.value} -> {target.value}",
            )
        self.state = target
        self.history.append(target)
