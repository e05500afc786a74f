"""
Pydantic schemas for venue-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from queueskip.schemas.schedule import DayScheduleResponse


class VenueCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9][a-z0-9-]*$")
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    time_zone: str = Field("UTC", min_length=1, max_length=64)
    image_url: Optional[str] = Field(None, max_length=255)


class VenueUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    time_zone: Optional[str] = Field(None, min_length=1, max_length=64)
    image_url: Optional[str] = Field(None, max_length=255)


class VenuePriceUpdate(BaseModel):
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)


class VenueResponse(BaseModel):
    id: str
    name: str
    image_url: Optional[str]
    price: Decimal
    time_zone: str
    created_at: datetime

    model_config = {"from_attributes": True}


class VenueDetailResponse(VenueResponse):
    day_schedules: list[DayScheduleResponse] = []
