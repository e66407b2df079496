"""Session Orchestrator — drives one verification flow to exactly one Outcome.

Invariants:
    - At most one flow per orchestrator instance: a second start() is ClientError(invalid_state)
    - Enrollment (if any) completes before create-session; create-session before polling
    - Exactly one Outcome reaches the caller (OutcomeChannel: first delivery wins)
    - cancel() is idempotent and irreversible; it never produces a Failure
    - Every task the flow spawns is cancelled and awaited before start() returns
    - Errors are classified where they occur; the orchestrator only routes them

Design Decisions:
    - Flow body runs in its own task so cancel() can interrupt any suspension point
    - Enrollment runs as a sibling task, concurrently with the capture intro
    - FlowConfig passed per start() call: no process-wide configuration
    - Feedback retries are counted per session, not per document side
"""

import asyncio
import logging
from typing import Coroutine

from verifyflow.core.capture import (
    CaptureRequest,
    CapturedMedia,
    normalize_feedback_reason,
)
from verifyflow.core.domain_types import FlowState, SessionId, SessionKind, ValidationStatus
from verifyflow.core.error_classifier import classified, classify
from verifyflow.core.errors import (
    ApiError,
    ApiErrorCode,
    ClientError,
    ClientErrorCode,
    ErrorContext,
    FlowCancelledError,
)
from verifyflow.core.flow_state import (
    FlowStateMachine,
    UploadTarget,
    VerificationSession,
    upload_targets_for,
)
from verifyflow.core.gateway_protocols import ApiGateway, CaptureCollaborator, CredentialSource
from verifyflow.core.outcome import Cancelled, Failure, Outcome, Success
from verifyflow.core.poll_schedule import interpret_status, is_terminal_status
from verifyflow.schemas.api import SessionStatus
from verifyflow.schemas.flow import FlowConfig
from verifyflow.services.cancellation import CancellationSignal
from verifyflow.services.credential_resolver import CredentialResolver
from verifyflow.services.enrollment import enroll_reference_face
from verifyflow.services.outcome_channel import OutcomeChannel
from verifyflow.services.result_poller import ResultPoller

logger = logging.getLogger(__name__)

_OUTCOME_STATES = {
    Success: FlowState.COMPLETED,
    Failure: FlowState.FAILED,
    Cancelled: FlowState.CANCELLED,
}


class SessionOrchestrator:
    """Runs credential resolution, capture, upload and polling for one flow."""

    def __init__(
        self,
        gateway: ApiGateway,
        capture: CaptureCollaborator,
        *,
        resolver: CredentialResolver | None = None,
        poller: ResultPoller | None = None,
    ):
        self.gateway = gateway
        self.capture = capture
        self.resolver = resolver or CredentialResolver(gateway)
        self.poller = poller or ResultPoller()
        self.machine: FlowStateMachine | None = None
        self._signal: CancellationSignal | None = None
        self._channel: OutcomeChannel | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> FlowState | None:
        return self.machine.state if self.machine else None

    @property
    def session(self) -> VerificationSession | None:
        return self.machine.session if self.machine else None

    # ─── Caller surface ──────────────────────────────────────────

    async def start(
        self,
        credential_source: str | CredentialSource,
        account_id: str,
        kind: SessionKind,
        config: FlowConfig | None = None,
    ) -> Outcome:
        """Run the flow and return its single Outcome.

        Failures are returned as Failure, never raised. The only exception
        raised is ClientError(invalid_state) when this instance already ran a flow.
        """
        if self.machine is not None:
            raise ClientError(ClientErrorCode.INVALID_STATE, "flow already started")

        self.machine = FlowStateMachine(kind=kind)
        self._signal = CancellationSignal()
        self._channel = OutcomeChannel()
        self._spawn(self._run(credential_source, account_id, kind, config or FlowConfig()))

        try:
            return await self._channel.wait()
        except asyncio.CancelledError:
            self.cancel("caller_cancelled")
            raise
        finally:
            await self._shutdown()

    def cancel(self, reason: str = "cancelled_by_user") -> bool:
        """Stop the flow and deliver Cancelled. Returns False if nothing was cancelled."""
        if self._signal is None or self._channel is None or self._channel.delivered:
            return False
        if not self._signal.cancel(reason):
            return False

        for task in list(self._tasks):
            task.cancel()
        session_id = self.session.session_id if self.session else None
        logger.info(
            f"Flow cancelled: {reason}",
            extra={"session_id": session_id, "stage": self.machine.state.value},
        )
        self._settle(Cancelled(reason))
        return True

    # ─── Flow body ───────────────────────────────────────────────

    async def _run(
        self,
        credential_source: str | CredentialSource,
        account_id: str,
        kind: SessionKind,
        config: FlowConfig,
    ) -> None:
        try:
            outcome = await self._execute(credential_source, account_id, kind, config)
        except FlowCancelledError:
            self._settle(Cancelled(self._signal.reason or "cancelled_by_user"))
        except asyncio.CancelledError:
            self._settle(Cancelled(self._signal.reason or "cancelled_by_user"))
            raise
        except Exception as e:
            error = classify(e)
            logger.warning(
                f"Flow failed: {error.message}",
                extra={
                    "session_id": self.session.session_id if self.session else None,
                    "stage": error.stage,
                    "error_code": error.code,
                    "kind": error.kind.value,
                    "http_status": error.http_status,
                },
            )
            self._settle(Failure(error))
        else:
            self._settle(outcome)

    async def _execute(
        self,
        credential_source: str | CredentialSource,
        account_id: str,
        kind: SessionKind,
        config: FlowConfig,
    ) -> Outcome:
        machine = self.machine
        _validate_inputs(account_id, kind, config)
        raw_token = await _read_credential(credential_source)
        credential = await self.resolver.resolve(raw_token)
        self._signal.raise_if_cancelled()

        enrollment: asyncio.Task | None = None
        if kind is SessionKind.FACE and config.face.reference_face is not None:
            machine.transition_to(FlowState.ENROLLMENT_PENDING)
            enrollment = self._spawn(
                enroll_reference_face(self.gateway, credential, account_id, config.face),
            )

        with classified("intro"):
            await self.capture.present_intro(kind)
        if enrollment is not None:
            await enrollment
        self._signal.raise_if_cancelled()

        machine.transition_to(FlowState.CAPTURE_PENDING)
        with classified("create_session"):
            created = await self.gateway.create_session(
                credential.token, config.session_request(kind, account_id),
            )
        session = VerificationSession(
            session_id=SessionId(created.validation_id),
            kind=kind,
            account_id=account_id,
            upload_targets=upload_targets_for(kind, created),
            retries_remaining=config.retries_for(kind),
        )
        machine.session = session

        for target in session.upload_targets:
            media = await self._capture_until_accepted(session, target)
            with classified("upload"):
                await self.gateway.upload_media(target.url, media.data, media.content_type)

        machine.transition_to(FlowState.POLLING)
        status = await self.poller.poll(
            session.session_id,
            kind,
            lambda s: is_terminal_status(s.validation_status),
            lambda: self.gateway.get_session_status(credential.token, session.session_id),
            self._signal,
        )
        return _interpret(session, status)

    async def _capture_until_accepted(
        self, session: VerificationSession, target: UploadTarget,
    ) -> CapturedMedia:
        """Capture for `target`, looping through feedback retries while any remain."""
        machine = self.machine
        attempt = 0
        while True:
            attempt += 1
            self._signal.raise_if_cancelled()
            if machine.state is FlowState.FEEDBACK_RETRY:
                machine.transition_to(FlowState.CAPTURE_PENDING)

            request = CaptureRequest(
                session_id=session.session_id,
                kind=session.kind,
                side=target.side,
                attempt=attempt,
                retries_remaining=session.retries_remaining,
            )
            with classified("capture"):
                result = await self.capture.capture(request)
            if isinstance(result, CapturedMedia):
                return result

            reason = normalize_feedback_reason(result.reason, target.side)
            if not session.consume_retry():
                raise ApiError(
                    reason,
                    message=f"Capture rejected: {reason.value}",
                    context=ErrorContext(
                        stage="capture", session_id=session.session_id, attempt=attempt,
                    ),
                )
            logger.info(
                f"Capture rejected ({reason.value}), retrying",
                extra={"session_id": session.session_id, "stage": "capture", "attempt": attempt},
            )
            machine.transition_to(FlowState.FEEDBACK_RETRY)

    # ─── Delivery and cleanup ────────────────────────────────────

    def _settle(self, outcome: Outcome) -> None:
        """Move to the outcome's terminal state and deliver it, unless already delivered."""
        if self._channel.delivered:
            logger.debug(f"Outcome already delivered, dropping {type(outcome).__name__}")
            return
        target = _OUTCOME_STATES[type(outcome)]
        if self.machine.can_transition(target):
            self.machine.transition_to(target)
        self._channel.deliver(outcome)

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        # Mark the exception retrieved; the flow body already routed it
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Background task ended with {task.exception()!r}")

    async def _shutdown(self) -> None:
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


# ─── Helpers ─────────────────────────────────────────────────────

def _validate_inputs(account_id: str, kind: SessionKind, config: FlowConfig) -> None:
    context = ErrorContext(stage="configure")
    if not account_id or not account_id.strip():
        raise ClientError(ClientErrorCode.INVALID_CONFIGURATION, "account id is empty", context)
    if kind is SessionKind.DOCUMENT and not (
        config.document.country and config.document.document_type
    ):
        raise ClientError(
            ClientErrorCode.INVALID_CONFIGURATION,
            "document flows require country and document_type",
            context,
        )


async def _read_credential(source: str | CredentialSource) -> str:
    if isinstance(source, str):
        raw_token = source
    else:
        with classified("credential_source"):
            raw_token = await source.get_api_key()
    if not raw_token or not raw_token.strip():
        raise ClientError(
            ClientErrorCode.INVALID_CONFIGURATION,
            "API key is empty",
            ErrorContext(stage="configure"),
        )
    return raw_token


def _interpret(session: VerificationSession, status: SessionStatus) -> Outcome:
    verdict = interpret_status(status.validation_status)
    if verdict is ValidationStatus.FAILED:
        raise ApiError(
            ApiErrorCode.VALIDATION_DECLINED,
            message=f"Validation declined: {status.declined_reason or status.validation_status}",
            context=ErrorContext(stage="poll", session_id=session.session_id),
        )
    return Success(session.session_id, status.confidence, verdict)
