# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Pydantic request/response schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RequestCreate(BaseModel):
    # Presence is checked by the lifecycle manager so every missing field is reported
    item_description: Optional[str] = Field(None, max_length=2000)
    item_category: Optional[str] = Field(None, max_length=100)
    payment_status: Optional[str] = Field(None, max_length=100)
    pickup_location: Optional[str] = Field(None, max_length=500)
    delivery_location: Optional[str] = Field(None, max_length=500)
    note: Optional[str] = Field(None, max_length=2000)
    requester_phone: Optional[str] = Field(None, pattern=r"^\+?[0-9]{7,15}$")


class CompleteBody(BaseModel):
    code: str = Field(..., max_length=32)


class RequestOut(BaseModel):
    id: str
    requester_id: str
    deliverer_id: Optional[str]
    status: str
    item_description: str
    item_category: str
    payment_status: str
    pickup_location: str
    delivery_location: str
    note: Optional[str]
    verification_code: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OpenRequestOut(RequestOut):
    requester_name: str


class MyRequestOut(RequestOut):
    deliverer_name: Optional[str] = None


class DeliveryOut(RequestOut):
    requester_name: str
    requester_phone: Optional[str] = None


class ActiveOrderOut(RequestOut):
    role: str


class PaginatedRequests(BaseModel):
    total: int
    page: int
    per_page: int
    requests: List[OpenRequestOut]


class TimelineEventOut(BaseModel):
    id: str
    event_type: str
    actor_id: Optional[str]
    detail: Dict[str, Any] = {}
    created_at: datetime


class MemberLogin(BaseModel):
    external_id: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=256)
    name: str = Field(..., min_length=1, max_length=256)
    avatar_url: Optional[str] = None


class MemberUpdate(BaseModel):
    phone: str = Field(..., pattern=r"^\+?[0-9]{7,15}$")


class MemberOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class MemberStats(BaseModel):
    requests_created: int
    deliveries_completed: int

