"""
Pydantic models for service requests.

A request asks for pet care (walking, care, overnight stay, grooming)
for one of the client's pets within a time window.  Its ``status``
moves through ``pending → accepted → in_progress → completed`` and may
be ``cancelled`` by the client before completion.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class ServiceType(str, Enum):
    WALKING = "walking"
    CARE = "care"
    OVERNIGHT = "overnight"
    GROOMING = "grooming"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RequestCreate(BaseModel):
    """Schema for creating a request.

    The date window is checked by ``RequestService.create_request``
    (end after start, start not in the past).  Naive datetimes are
    treated as UTC.
    """

    pet_id: int = Field(..., examples=[1])
    service_type: ServiceType = Field(..., examples=["walking"])
    start_date: datetime = Field(..., examples=["2026-01-25T10:00:00Z"])
    end_date: datetime = Field(..., examples=["2026-01-25T12:00:00Z"])
    description: Optional[str] = Field(None, examples=["A walk in the park, preferably in the morning"])
    address: str = Field(..., min_length=1, examples=["1 Example St, Moscow"])
    price: float = Field(..., ge=0, description="Price in roubles", examples=[500])


class RequestStatusUpdate(BaseModel):
    """Body of the generic status update.

    Both fields are optional: a request may receive notes without a
    status change.
    """

    status: Optional[RequestStatus] = Field(None, examples=["in_progress"])
    notes: Optional[str] = Field(None, examples=["The walk went great"])


class RequestRead(BaseModel):
    id: int
    client_id: int
    pet_id: int
    petsitter_id: Optional[int] = None
    service_type: ServiceType
    start_date: datetime
    end_date: datetime
    description: Optional[str] = None
    address: str
    price: float
    status: RequestStatus
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }


class RequestStatistics(BaseModel):
    total: int
    by_status: Dict[RequestStatus, int]


class StatusHistoryRead(BaseModel):
    id: int
    request_id: int
    actor_id: int
    from_status: Optional[RequestStatus] = None
    to_status: RequestStatus
    created_at: datetime
