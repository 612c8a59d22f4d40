# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: member login resolution, profile, stats and active order."""
from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import get_acting_member, get_lifecycle_manager, get_member_service
from app.models.domain import Member
from app.schemas import ActiveOrderOut, MemberLogin, MemberOut, MemberStats, MemberUpdate
from app.services.lifecycle_manager import LifecycleManager
from app.services.member_service import MemberService

router = APIRouter(prefix="/api/v1", tags=["Members"])


@router.post("/members/login", response_model=MemberOut)
def resolve_login(body: MemberLogin,
                  service: MemberService = Depends(get_member_service)):
    """Called by the gateway once the identity provider has verified the login."""
    return service.resolve_login(body.model_dump()).model_dump()


@router.get("/members/me", response_model=MemberOut)
def get_me(member: Member = Depends(get_acting_member)):
    return member.model_dump()


@router.patch("/members/me", response_model=MemberOut)
def update_me(body: MemberUpdate,
              member: Member = Depends(get_acting_member),
              service: MemberService = Depends(get_member_service)):
    return service.update_phone(member.id, body.phone).model_dump()


@router.get("/members/me/stats", response_model=MemberStats)
def get_my_stats(member: Member = Depends(get_acting_member),
                 manager: LifecycleManager = Depends(get_lifecycle_manager)):
    return manager.get_member_stats(member.id)


@router.get("/members/me/active-order", response_model=ActiveOrderOut)
def get_active_order(member: Member = Depends(get_acting_member),
                     manager: LifecycleManager = Depends(get_lifecycle_manager)):
    order = manager.get_active_order(member.id)
    if order is None:
        raise HTTPException(status_code=404, detail="No active order")
    return order
