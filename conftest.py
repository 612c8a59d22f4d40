"""Shared fixtures: a file-backed SQLite store, a stepping clock and three members."""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from app.core.database import build_engine, init_schema
from app.repositories import MemberRepository, RequestRepository
from app.services.lifecycle_manager import LifecycleManager
from app.services.member_service import MemberService

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Each call returns a time one second after the previous one."""

    def __init__(self, start: datetime = T0):
        self._start = start
        self._ticks = itertools.count()

    def __call__(self) -> datetime:
        return self._start + timedelta(seconds=next(self._ticks))


class FixedCode:
    def __init__(self, code: str = "4821"):
        self.code = code

    def generate(self) -> str:
        return self.code


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'requests.db'}")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def member_service(engine, clock):
    return MemberService(MemberRepository(engine), allowed_domain="vitstudent.ac.in",
                         now_fn=clock)


@pytest.fixture
def members(member_service):
    """Alice, Bob and Carol, keyed by first letter."""
    people = {}
    for key, name in (("A", "Alice"), ("B", "Bob"), ("C", "Carol")):
        people[key] = member_service.resolve_login({
            "external_id": f"google-{name.lower()}",
            "email": f"{name.lower()}@vitstudent.ac.in",
            "name": f"{name} Student",
        })
    return people


@pytest.fixture
def manager(engine, clock):
    return LifecycleManager(RequestRepository(engine), MemberRepository(engine),
                            code_generator=FixedCode(), now_fn=clock)


@pytest.fixture
def textbook_fields():
    return {
        "item_description": "Textbook",
        "item_category": "Paperwork",
        "payment_status": "Paid",
        "pickup_location": "Library",
        "delivery_location": "Hostel B",
    }
