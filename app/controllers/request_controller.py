# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Controller: delivery request creation, transitions, listings and timeline."""
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.config import settings
from app.core.dependencies import get_acting_member, get_lifecycle_manager
from app.models.domain import Member
from app.schemas import (
    CompleteBody, DeliveryOut, MyRequestOut, PaginatedRequests, RequestCreate, RequestOut,
    TimelineEventOut,
)
from app.services.lifecycle_manager import LifecycleManager

router = APIRouter(prefix="/api/v1", tags=["Requests"])


def _check_id(request_id: str):
    try:
        uuid.UUID(request_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid request ID format")


def _out(manager: LifecycleManager, request, viewer: Member) -> RequestOut:
    return RequestOut(**manager.view(request, viewer.id))


@router.post("/requests", status_code=201, response_model=RequestOut)
def create_request(body: RequestCreate,
                   member: Member = Depends(get_acting_member),
                   manager: LifecycleManager = Depends(get_lifecycle_manager)):
    created = manager.create(member.id, body.model_dump())
    return _out(manager, created, member)


@router.get("/requests", response_model=PaginatedRequests)
def list_open_requests(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.DEFAULT_LIST_LIMIT, ge=1, le=settings.MAX_LIST_LIMIT),
    member: Member = Depends(get_acting_member),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
):
    total, rows = manager.list_open(member.id, page, per_page)
    return PaginatedRequests(total=total, page=page, per_page=per_page, requests=rows)


@router.get("/requests/mine", response_model=List[MyRequestOut])
def list_my_requests(member: Member = Depends(get_acting_member),
                     manager: LifecycleManager = Depends(get_lifecycle_manager)):
    return manager.list_my_requests(member.id)


@router.get("/deliveries/mine", response_model=List[DeliveryOut])
def list_my_deliveries(member: Member = Depends(get_acting_member),
                       manager: LifecycleManager = Depends(get_lifecycle_manager)):
    return manager.list_my_deliveries(member.id)


@router.get("/requests/{request_id}", response_model=RequestOut)
def get_request(request_id: str,
                member: Member = Depends(get_acting_member),
                manager: LifecycleManager = Depends(get_lifecycle_manager)):
    _check_id(request_id)
    return _out(manager, manager.get(request_id, member.id), member)


@router.get("/requests/{request_id}/timeline", response_model=List[TimelineEventOut])
def get_request_timeline(request_id: str,
                         member: Member = Depends(get_acting_member),
                         manager: LifecycleManager = Depends(get_lifecycle_manager)):
    _check_id(request_id)
    return [e.model_dump() for e in manager.get_timeline(request_id, member.id)]


@router.post("/requests/{request_id}/accept", response_model=RequestOut)
def accept_request(request_id: str,
                   member: Member = Depends(get_acting_member),
                   manager: LifecycleManager = Depends(get_lifecycle_manager)):
    _check_id(request_id)
    return _out(manager, manager.accept(request_id, member.id), member)


@router.post("/requests/{request_id}/complete", response_model=RequestOut)
def complete_request(request_id: str, body: CompleteBody,
                     member: Member = Depends(get_acting_member),
                     manager: LifecycleManager = Depends(get_lifecycle_manager)):
    _check_id(request_id)
    return _out(manager, manager.complete(request_id, member.id, body.code), member)


@router.post("/requests/{request_id}/cancel", response_model=RequestOut)
def cancel_request(request_id: str,
                   member: Member = Depends(get_acting_member),
                   manager: LifecycleManager = Depends(get_lifecycle_manager)):
    _check_id(request_id)
    return _out(manager, manager.cancel(request_id, member.id), member)
