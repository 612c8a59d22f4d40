# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: transition permission checks.

Each predicate combines an identity check (requester, deliverer or neither) with a
state check and returns a GuardDecision. Nothing here mutates or touches storage.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from app.models.domain import DeliveryRequest, RequestState
from app.services.verification_code import is_well_formed


class DenialReason(str, enum.Enum):
    SELF_ACCEPT = "self_accept"
    NOT_REQUESTER = "not_requester"
    NOT_DELIVERER = "not_deliverer"
    NOT_PARTICIPANT = "not_participant"
    WRONG_STATE = "wrong_state"
    MALFORMED_CODE = "malformed_code"
    CODE_MISMATCH = "code_mismatch"


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""


PERMIT = GuardDecision(allowed=True)


def _deny(reason: DenialReason, message: str) -> GuardDecision:
    return GuardDecision(allowed=False, reason=reason, message=message)


class AccessGuard:
    def can_accept(self, member_id: str, request: DeliveryRequest) -> GuardDecision:
        # Self-dealing is refused whatever state the request is in
        if member_id == request.requester_id:
            return _deny(DenialReason.SELF_ACCEPT,
                         "You cannot accept your own delivery request.")
        if request.status != RequestState.PENDING:
            return _deny(DenialReason.WRONG_STATE,
                         "This delivery is no longer available.")
        return PERMIT

    def can_complete(self, member_id: str, request: DeliveryRequest,
                     code: Optional[str]) -> GuardDecision:
        if request.status != RequestState.IN_PROGRESS:
            return _deny(DenialReason.WRONG_STATE,
                         "This delivery is not currently in progress.")
        if member_id != request.deliverer_id:
            return _deny(DenialReason.NOT_DELIVERER,
                         "You are not the assigned deliverer for this request.")
        if not is_well_formed(code):
            return _deny(DenialReason.MALFORMED_CODE,
                         "A valid 4-digit verification code is required.")
        # Opaque string comparison, no normalisation
        if code != request.verification_code:
            return _deny(DenialReason.CODE_MISMATCH,
                         "Invalid verification code. Please try again.")
        return PERMIT

    def can_cancel(self, member_id: str, request: DeliveryRequest) -> GuardDecision:
        if member_id != request.requester_id:
            return _deny(DenialReason.NOT_REQUESTER,
                         "Only the requester can cancel this request.")
        if request.status != RequestState.PENDING:
            return _deny(DenialReason.WRONG_STATE,
                         "Request is already in progress or completed.")
        return PERMIT

    def can_view(self, member_id: str, request: DeliveryRequest) -> GuardDecision:
        """Open requests are public to members; accepted ones only to participants."""
        if request.status == RequestState.PENDING:
            return PERMIT
        if member_id in (request.requester_id, request.deliverer_id):
            return PERMIT
        return _deny(DenialReason.NOT_PARTICIPANT,
                     "You are not a participant in this request.")
