# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: delivery request lifecycle.

    pending ─► in_progress ─► completed
    pending ─► cancelled

Every transition re-reads the stored row, asks the AccessGuard for a decision, then
writes through a single conditional UPDATE keyed on the expected state. When the
UPDATE matches no row another caller got there first; the row is re-read and the
attempt classified again, which normally ends in ConflictError.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from app.core.errors import (
    ConflictError, ForbiddenError, InvalidCodeError, NotFoundError, ValidationError,
)
from app.core.logging import get_logger
from app.metrics import (
    CODE_MISMATCHES, REQUESTS_CREATED, REQUESTS_TOTAL, TIME_TO_ACCEPT, TIME_TO_COMPLETE,
    TRANSITIONS,
)
from app.models.domain import (
    MANDATORY_FIELDS, DeliveryRequest, RequestEvent, RequestState,
)
from app.repositories.member_repository import MemberRepository
from app.repositories.request_repository import RequestRepository
from app.services.access_guard import AccessGuard, DenialReason, GuardDecision
from app.services.verification_code import VerificationCodeGenerator

logger = get_logger(__name__)

NowFn = Callable[[], datetime]

_FORBIDDEN_REASONS = {
    DenialReason.SELF_ACCEPT,
    DenialReason.NOT_REQUESTER,
    DenialReason.NOT_DELIVERER,
    DenialReason.NOT_PARTICIPANT,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class LifecycleManager:
    def __init__(
        self,
        repo: RequestRepository,
        members: MemberRepository,
        guard: Optional[AccessGuard] = None,
        code_generator: Optional[VerificationCodeGenerator] = None,
        now_fn: Optional[NowFn] = None,
    ) -> None:
        self._repo = repo
        self._members = members
        self._guard = guard or AccessGuard()
        self._codes = code_generator or VerificationCodeGenerator()
        self._now = now_fn or _utcnow

    def seed_gauges(self):
        counts = self._repo.count_by_status()
        for state in RequestState:
            REQUESTS_TOTAL.labels(status=state.value).set(counts.get(state.value, 0))
        logger.info("Prometheus gauges loaded from DB")

    # ── Transitions ────────────────────────────────────────────────────

    def create(self, requester_id: str, fields: Mapping[str, Any]) -> DeliveryRequest:
        values = {name: _clean(fields.get(name)) for name in MANDATORY_FIELDS}
        missing = [name for name, value in values.items() if value is None]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}", {"missing": missing},
            )

        requester = self._members.get_by_id(requester_id)
        if requester is None:
            raise NotFoundError("Member", requester_id)

        now = self._now()
        phone = _clean(fields.get("requester_phone"))
        if phone and phone != requester.phone:
            self._members.update_phone(requester_id, phone, now)

        request = DeliveryRequest(
            id=str(uuid.uuid4()),
            requester_id=requester_id,
            status=RequestState.PENDING,
            note=_clean(fields.get("note")),
            created_at=now,
            updated_at=now,
            **values,
        )
        self._repo.insert_request(request, requester_id, {
            "item_category": request.item_category,
            "pickup_location": request.pickup_location,
            "delivery_location": request.delivery_location,
        })

        REQUESTS_CREATED.labels(category=request.item_category).inc()
        REQUESTS_TOTAL.labels(status=RequestState.PENDING.value).inc()
        logger.info("Request created id=%s requester=%s category=%s",
                    request.id, requester_id, request.item_category)
        return request

    def accept(self, request_id: str, acting_member_id: str) -> DeliveryRequest:
        current = self._load(request_id)
        self._enforce(self._guard.can_accept(acting_member_id, current), "accept")

        now = self._now()
        updated = self._repo.conditional_update(
            request_id,
            expected_state=RequestState.PENDING,
            new_fields={
                "deliverer_id": acting_member_id,
                "verification_code": self._codes.generate(),
                "status": RequestState.IN_PROGRESS,
                "accepted_at": now,
                "updated_at": now,
            },
            exclude={"requester_id": acting_member_id},
            event={"type": "accepted", "actor": acting_member_id,
                   "detail": {"deliverer_id": acting_member_id}},
        )
        if updated is None:
            self._lost_race(request_id, "accept",
                            lambda req: self._guard.can_accept(acting_member_id, req))

        self._record_transition("accept", RequestState.PENDING, RequestState.IN_PROGRESS)
        TIME_TO_ACCEPT.observe(max((now - current.created_at).total_seconds(), 0.0))
        logger.info("Request accepted id=%s deliverer=%s", request_id, acting_member_id)
        return updated

    def complete(self, request_id: str, acting_member_id: str,
                 supplied_code: Optional[str]) -> DeliveryRequest:
        current = self._load(request_id)
        decision = self._guard.can_complete(acting_member_id, current, supplied_code)
        if decision.reason == DenialReason.CODE_MISMATCH:
            CODE_MISMATCHES.inc()
            logger.warning("Verification code mismatch request=%s member=%s",
                           request_id, acting_member_id)
        self._enforce(decision, "complete")

        now = self._now()
        updated = self._repo.conditional_update(
            request_id,
            expected_state=RequestState.IN_PROGRESS,
            new_fields={
                "status": RequestState.COMPLETED,
                "completed_at": now,
                "updated_at": now,
            },
            match={"deliverer_id": acting_member_id, "verification_code": supplied_code},
            event={"type": "completed", "actor": acting_member_id},
        )
        if updated is None:
            self._lost_race(request_id, "complete",
                            lambda req: self._guard.can_complete(acting_member_id, req,
                                                                 supplied_code))

        self._record_transition("complete", RequestState.IN_PROGRESS, RequestState.COMPLETED)
        if current.accepted_at is not None:
            TIME_TO_COMPLETE.observe(max((now - current.accepted_at).total_seconds(), 0.0))
        logger.info("Request completed id=%s deliverer=%s", request_id, acting_member_id)
        return updated

    def cancel(self, request_id: str, acting_member_id: str) -> DeliveryRequest:
        current = self._load(request_id)
        self._enforce(self._guard.can_cancel(acting_member_id, current), "cancel")

        now = self._now()
        updated = self._repo.conditional_update(
            request_id,
            expected_state=RequestState.PENDING,
            new_fields={
                "status": RequestState.CANCELLED,
                "cancelled_at": now,
                "updated_at": now,
            },
            match={"requester_id": acting_member_id},
            event={"type": "cancelled", "actor": acting_member_id},
        )
        if updated is None:
            self._lost_race(request_id, "cancel",
                            lambda req: self._guard.can_cancel(acting_member_id, req))

        self._record_transition("cancel", RequestState.PENDING, RequestState.CANCELLED)
        logger.info("Request cancelled id=%s requester=%s", request_id, acting_member_id)
        return updated

    # ── Queries ────────────────────────────────────────────────────────

    def get(self, request_id: str, acting_member_id: str) -> DeliveryRequest:
        current = self._load(request_id)
        self._enforce(self._guard.can_view(acting_member_id, current), "view")
        return current

    def get_timeline(self, request_id: str, acting_member_id: str) -> List[RequestEvent]:
        current = self._load(request_id)
        if acting_member_id not in (current.requester_id, current.deliverer_id):
            raise ForbiddenError("You are not a participant in this request.")
        return self._repo.get_timeline(request_id)

    def list_open(self, member_id: str, page: int = 1, per_page: int = 50):
        """Pending requests posted by anyone except ``member_id``, newest first."""
        total, rows = self._repo.list_open(member_id, page, per_page)
        return total, [self.view(r.pop("request"), member_id, **r) for r in rows]

    def list_my_requests(self, member_id: str) -> List[Dict[str, Any]]:
        return [self.view(r.pop("request"), member_id, **r)
                for r in self._repo.list_by_requester(member_id)]

    def list_my_deliveries(self, member_id: str) -> List[Dict[str, Any]]:
        return [self.view(r.pop("request"), member_id, **r)
                for r in self._repo.list_active_deliveries(member_id)]

    def get_active_order(self, member_id: str) -> Optional[Dict[str, Any]]:
        """
        The member's one current order. Deliverer role is searched first, so a member
        who is both delivering and waiting on their own request sees the delivery.
        """
        as_deliverer = self._repo.find_active_as_deliverer(member_id)
        if as_deliverer is not None:
            return self.view(as_deliverer, member_id, role="deliverer")
        as_requester = self._repo.find_active_as_requester(member_id)
        if as_requester is not None:
            return self.view(as_requester, member_id, role="requester")
        return None

    def get_member_stats(self, member_id: str) -> Dict[str, int]:
        return self._repo.member_stats(member_id)

    @staticmethod
    def view(request: DeliveryRequest, viewer_id: str, **extra) -> Dict[str, Any]:
        data = request.model_dump(exclude={"verification_code"})
        data["status"] = request.status.value
        data["verification_code"] = request.code_for(viewer_id)
        data.update(extra)
        return data

    # ── Private ────────────────────────────────────────────────────────

    def _load(self, request_id: str) -> DeliveryRequest:
        current = self._repo.get_request(request_id)
        if current is None:
            raise NotFoundError("Request", request_id)
        return current

    def _enforce(self, decision: GuardDecision, transition: str):
        if decision.allowed:
            return
        TRANSITIONS.labels(transition=transition, outcome=decision.reason.value).inc()
        if decision.reason in _FORBIDDEN_REASONS:
            raise ForbiddenError(decision.message)
        if decision.reason == DenialReason.WRONG_STATE:
            raise ConflictError(decision.message)
        if decision.reason == DenialReason.MALFORMED_CODE:
            raise ValidationError(decision.message)
        if decision.reason == DenialReason.CODE_MISMATCH:
            raise InvalidCodeError(decision.message)
        raise ValueError(f"Unhandled denial reason: {decision.reason}")

    def _lost_race(self, request_id: str, transition: str,
                   decide: Callable[[DeliveryRequest], GuardDecision]):
        """The conditional update matched nothing; explain why from the fresh row."""
        logger.warning("Conditional %s lost a race on request=%s", transition, request_id)
        fresh = self._load(request_id)
        self._enforce(decide(fresh), transition)
        # Row changed and changed back between the two reads
        TRANSITIONS.labels(transition=transition, outcome="conflict").inc()
        raise ConflictError("The request changed while you were acting on it. Refresh and retry.")

    def _record_transition(self, transition: str, old: RequestState, new: RequestState):
        TRANSITIONS.labels(transition=transition, outcome="applied").inc()
        REQUESTS_TOTAL.labels(status=old.value).dec()
        REQUESTS_TOTAL.labels(status=new.value).inc()
