"""
Access Guard & Verification Codes: Unit Tests
==============================================
Run:  pytest test_access_guard.py -v
"""
import random
from datetime import datetime, timezone

import pytest

from app.models.domain import ALLOWED_TRANSITIONS, DeliveryRequest, RequestState
from app.services.access_guard import AccessGuard, DenialReason
from app.services.verification_code import (
    CODE_MAX, CODE_MIN, VerificationCodeGenerator, is_well_formed,
)

guard = AccessGuard()

REQUESTER, DELIVERER, OUTSIDER = "m-alice", "m-bob", "m-carol"


def _request(status=RequestState.PENDING, deliverer_id=None, code=None):
    return DeliveryRequest(
        id="r-1", requester_id=REQUESTER, deliverer_id=deliverer_id, status=status,
        item_description="Textbook", item_category="Paperwork", payment_status="Paid",
        pickup_location="Library", delivery_location="Hostel B",
        verification_code=code, created_at=datetime(2026, 3, 2, tzinfo=timezone.utc),
    )


def _in_progress():
    return _request(RequestState.IN_PROGRESS, DELIVERER, "4821")


# ═══════════════════════════════════════════════════════════════════════════
# ACCEPT
# ═══════════════════════════════════════════════════════════════════════════
class TestCanAccept:
    def test_other_member_may_accept_pending(self):
        assert guard.can_accept(DELIVERER, _request()).allowed

    @pytest.mark.parametrize("status", list(RequestState))
    def test_requester_never_accepts(self, status):
        decision = guard.can_accept(REQUESTER, _request(status))
        assert not decision.allowed
        assert decision.reason == DenialReason.SELF_ACCEPT

    @pytest.mark.parametrize("status", [
        RequestState.IN_PROGRESS, RequestState.COMPLETED, RequestState.CANCELLED,
    ])
    def test_non_pending_unavailable(self, status):
        decision = guard.can_accept(OUTSIDER, _request(status))
        assert decision.reason == DenialReason.WRONG_STATE
        assert decision.message == "This delivery is no longer available."


# ═══════════════════════════════════════════════════════════════════════════
# COMPLETE
# ═══════════════════════════════════════════════════════════════════════════
class TestCanComplete:
    def test_deliverer_with_matching_code(self):
        assert guard.can_complete(DELIVERER, _in_progress(), "4821").allowed

    def test_mismatch(self):
        decision = guard.can_complete(DELIVERER, _in_progress(), "1234")
        assert decision.reason == DenialReason.CODE_MISMATCH
        assert decision.message == "Invalid verification code. Please try again."

    def test_state_checked_first(self):
        decision = guard.can_complete(OUTSIDER, _request(), "abc")
        assert decision.reason == DenialReason.WRONG_STATE

    def test_deliverer_checked_before_format(self):
        decision = guard.can_complete(REQUESTER, _in_progress(), "abc")
        assert decision.reason == DenialReason.NOT_DELIVERER

    @pytest.mark.parametrize("code", ["", "123", "12345", "12a4", "1 23", None])
    def test_malformed(self, code):
        decision = guard.can_complete(DELIVERER, _in_progress(), code)
        assert decision.reason == DenialReason.MALFORMED_CODE

    def test_comparison_is_exact_string(self):
        req = _request(RequestState.IN_PROGRESS, DELIVERER, "0042")
        assert guard.can_complete(DELIVERER, req, "0042").allowed
        assert guard.can_complete(DELIVERER, req, "4200").reason == DenialReason.CODE_MISMATCH


# ═══════════════════════════════════════════════════════════════════════════
# CANCEL & VIEW
# ═══════════════════════════════════════════════════════════════════════════
class TestCanCancel:
    def test_requester_cancels_pending(self):
        assert guard.can_cancel(REQUESTER, _request()).allowed

    def test_identity_checked_before_state(self):
        decision = guard.can_cancel(OUTSIDER, _in_progress())
        assert decision.reason == DenialReason.NOT_REQUESTER

    @pytest.mark.parametrize("status", [
        RequestState.IN_PROGRESS, RequestState.COMPLETED, RequestState.CANCELLED,
    ])
    def test_only_pending(self, status):
        decision = guard.can_cancel(REQUESTER, _request(status, DELIVERER))
        assert decision.reason == DenialReason.WRONG_STATE
        assert decision.message == "Request is already in progress or completed."


class TestCanView:
    def test_pending_public(self):
        assert guard.can_view(OUTSIDER, _request()).allowed

    def test_accepted_participants_only(self):
        req = _in_progress()
        assert guard.can_view(REQUESTER, req).allowed
        assert guard.can_view(DELIVERER, req).allowed
        assert guard.can_view(OUTSIDER, req).reason == DenialReason.NOT_PARTICIPANT


# ═══════════════════════════════════════════════════════════════════════════
# STATE MODEL
# ═══════════════════════════════════════════════════════════════════════════
class TestStateModel:
    def test_terminal_states_have_no_exits(self):
        assert ALLOWED_TRANSITIONS[RequestState.COMPLETED] == set()
        assert ALLOWED_TRANSITIONS[RequestState.CANCELLED] == set()
        assert _request(RequestState.CANCELLED).is_terminal

    def test_code_shown_to_requester_only_while_in_progress(self):
        req = _in_progress()
        assert req.code_for(REQUESTER) == "4821"
        assert req.code_for(DELIVERER) is None
        done = req.model_copy(update={"status": RequestState.COMPLETED})
        assert done.code_for(REQUESTER) is None


# ═══════════════════════════════════════════════════════════════════════════
# VERIFICATION CODES
# ═══════════════════════════════════════════════════════════════════════════
class TestVerificationCode:
    def test_generated_codes_in_range(self):
        gen = VerificationCodeGenerator()
        for _ in range(500):
            code = gen.generate()
            assert is_well_formed(code)
            assert CODE_MIN <= int(code) <= CODE_MAX

    def test_seeded_source_is_deterministic(self):
        first = [VerificationCodeGenerator(random.Random(42)).generate() for _ in range(3)]
        second = [VerificationCodeGenerator(random.Random(42)).generate() for _ in range(3)]
        assert first == second

    def test_bounds_reachable(self):
        class Edge:
            def __init__(self, value):
                self.value = value

            def randint(self, low, high):
                assert (low, high) == (CODE_MIN, CODE_MAX)
                return self.value

        assert VerificationCodeGenerator(Edge(1000)).generate() == "1000"
        assert VerificationCodeGenerator(Edge(9999)).generate() == "9999"

    @pytest.mark.parametrize("code,ok", [
        ("0000", True), ("4821", True), ("482", False), ("48211", False),
        ("48 1", False), ("٤٨٢١", False), ("4821\n", False), (4821, False), (None, False),
    ])
    def test_well_formed(self, code, ok):
        assert is_well_formed(code) is ok
