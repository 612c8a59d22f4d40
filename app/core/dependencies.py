# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: services live on app.state, wired at startup.
"""
from fastapi import HTTPException, Request
from sqlalchemy.engine import Engine

from app.core.config import settings
from app.models.domain import Member
from app.repositories import MemberRepository, RequestRepository
from app.services.lifecycle_manager import LifecycleManager
from app.services.member_service import MemberService


def init_services(app, engine: Engine, **overrides) -> None:
    """Build repositories and services for one engine. ``overrides`` feed the
    lifecycle manager (code_generator, now_fn) in tests."""
    request_repo = RequestRepository(engine)
    member_repo = MemberRepository(engine)
    app.state.request_repo = request_repo
    app.state.member_service = MemberService(member_repo, now_fn=overrides.get("now_fn"))
    app.state.lifecycle_manager = LifecycleManager(request_repo, member_repo, **overrides)


def get_request_repo(request: Request) -> RequestRepository:
    return request.app.state.request_repo


def get_lifecycle_manager(request: Request) -> LifecycleManager:
    return request.app.state.lifecycle_manager


def get_member_service(request: Request) -> MemberService:
    return request.app.state.member_service


def get_acting_member(request: Request) -> Member:
    """Resolve the caller from the header the gateway sets after session checks."""
    member_id = request.headers.get(settings.MEMBER_HEADER)
    if not member_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    member = get_member_service(request).find_member(member_id.strip())
    if member is None:
        raise HTTPException(status_code=401, detail="Unknown member")
    return member
