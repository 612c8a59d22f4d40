# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RequestState(str, enum.Enum):
    """Lifecycle states of a delivery request."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({RequestState.COMPLETED, RequestState.CANCELLED})

# {current_state: states reachable in one step}
ALLOWED_TRANSITIONS = {
    RequestState.PENDING:     {RequestState.IN_PROGRESS, RequestState.CANCELLED},
    RequestState.IN_PROGRESS: {RequestState.COMPLETED},
    RequestState.COMPLETED:   set(),
    RequestState.CANCELLED:   set(),
}

MANDATORY_FIELDS = (
    "item_description",
    "item_category",
    "payment_status",
    "pickup_location",
    "delivery_location",
)


class Member(BaseModel):
    """A registered community participant."""
    id: str
    external_id: str
    name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeliveryRequest(BaseModel):
    """A single delivery task as stored."""
    id: str
    requester_id: str
    deliverer_id: Optional[str] = None
    status: RequestState = RequestState.PENDING
    item_description: str
    item_category: str
    payment_status: str
    pickup_location: str
    delivery_location: str
    note: Optional[str] = None
    verification_code: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def code_for(self, viewer_id: str) -> Optional[str]:
        """The code is shown to the requester only, and only while in progress."""
        if self.status == RequestState.IN_PROGRESS and viewer_id == self.requester_id:
            return self.verification_code
        return None


class RequestEvent(BaseModel):
    """One entry of a request's timeline."""
    id: str
    request_id: str
    event_type: str
    actor_id: Optional[str] = None
    detail: dict = {}
    created_at: datetime
