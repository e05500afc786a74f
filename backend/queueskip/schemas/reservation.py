"""
Pydantic schemas for the purchase flow and availability.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class CustomerIn(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)


class ReservationCreate(BaseModel):
    venue_id: str = Field(..., min_length=1, max_length=64)
    customer: CustomerIn
    receive_promo: bool = False
    client_period_hint: Optional[datetime] = Field(
        None, description="Start of the period the client displayed; advisory only"
    )


class ReservationResponse(BaseModel):
    session_id: str
    checkout_url: str
    expires_at: datetime
    period_start: datetime
    period_end: datetime

    model_config = {"from_attributes": True}


class ReservationStatusResponse(BaseModel):
    session_id: str
    status: str  # pending, confirmed, cancelled, failed_inventory_check, expired, unknown


class NextAvailable(BaseModel):
    day: str
    time: str


class AvailabilityResponse(BaseModel):
    venue_id: str
    slots_remaining: int
    is_open: bool
    next_available: Optional[NextAvailable]
    capacity: int
    period_start: datetime
    period_end: datetime
