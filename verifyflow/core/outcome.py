"""Outcome — the single terminal result a caller receives for one flow.

Invariants:
    - Exactly one Outcome is delivered per flow instance
    - Cancelled is its own outcome, never a Failure
"""

from dataclasses import dataclass

from verifyflow.core.domain_types import SessionId, ValidationStatus
from verifyflow.core.errors import VerificationError


@dataclass(frozen=True)
class Success:
    session_id: SessionId
    confidence: float | None = None
    status: ValidationStatus = ValidationStatus.SUCCESS


@dataclass(frozen=True)
class Failure:
    error: VerificationError


@dataclass(frozen=True)
class Cancelled:
    reason: str = "cancelled_by_user"


Outcome = Success | Failure | Cancelled
