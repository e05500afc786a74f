"""
Pydantic schemas for schedule configuration.
Times are venue-local wall-clock times (HH:MM); 00:00 as an end time means midnight.
"""

from datetime import time
from typing import Optional
from pydantic import BaseModel, Field


class DayScheduleUpsert(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday .. 6=Saturday")
    slots_per_period: int = Field(..., ge=0, le=10000)
    is_active: bool = True


class DayToggle(BaseModel):
    is_active: bool


class HourWindowUpsert(BaseModel):
    start_time: time
    end_time: time
    custom_slots: Optional[int] = Field(None, ge=0, le=10000)
    window_id: Optional[int] = None


class WeeklyScheduleEntryIn(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: time
    end_time: time
    slots_per_period: int = Field(..., ge=0, le=10000)


class WeeklyScheduleApply(BaseModel):
    entries: list[WeeklyScheduleEntryIn] = Field(..., min_length=1, max_length=50)


class HourWindowResponse(BaseModel):
    id: int
    day_schedule_id: int
    start_time: time
    end_time: time
    custom_slots: Optional[int]

    model_config = {"from_attributes": True}


class DayScheduleResponse(BaseModel):
    id: int
    venue_id: str
    day_of_week: int
    slots_per_period: int
    is_active: bool
    hour_windows: list[HourWindowResponse] = []

    model_config = {"from_attributes": True}
