"""
Admin schedule configuration endpoints.
"""

from fastapi import APIRouter, Depends, Response, status

from queueskip.api.deps import get_store, require_admin
from queueskip.schemas.schedule import (
    DayScheduleResponse,
    DayScheduleUpsert,
    DayToggle,
    HourWindowResponse,
    HourWindowUpsert,
    WeeklyScheduleApply,
)
from queueskip.services import schedule_service
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.schedule_service import WeeklyScheduleEntry

router = APIRouter(tags=["Schedules"], dependencies=[Depends(require_admin)])


@router.get("/venues/{venue_id}/schedules", response_model=list[DayScheduleResponse])
async def list_schedules_endpoint(venue_id: str, store: ReservationStore = Depends(get_store)):
    return await schedule_service.list_weekly_schedule(store, venue_id)


@router.put("/venues/{venue_id}/schedules", response_model=DayScheduleResponse)
async def upsert_day_schedule_endpoint(
    venue_id: str,
    day_data: DayScheduleUpsert,
    store: ReservationStore = Depends(get_store),
):
    """Create or update the schedule for one day of the week."""
    return await schedule_service.upsert_day_schedule(
        store,
        venue_id,
        day_of_week=day_data.day_of_week,
        slots_per_period=day_data.slots_per_period,
        is_active=day_data.is_active,
    )


@router.put("/venues/{venue_id}/schedules/weekly", response_model=list[DayScheduleResponse])
async def apply_weekly_schedule_endpoint(
    venue_id: str,
    weekly: WeeklyScheduleApply,
    store: ReservationStore = Depends(get_store),
):
    """Replace the windows of each listed day in one transaction."""
    entries = [
        WeeklyScheduleEntry(
            day_of_week=e.day_of_week,
            start_time=e.start_time,
            end_time=e.end_time,
            slots_per_period=e.slots_per_period,
        )
        for e in weekly.entries
    ]
    return await schedule_service.apply_weekly_schedule(store, venue_id, entries)


@router.patch("/schedules/{day_schedule_id}", response_model=DayScheduleResponse)
async def toggle_day_endpoint(
    day_schedule_id: int,
    toggle: DayToggle,
    store: ReservationStore = Depends(get_store),
):
    return await schedule_service.toggle_day_active(store, day_schedule_id, toggle.is_active)


@router.delete("/schedules/{day_schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_day_endpoint(day_schedule_id: int, store: ReservationStore = Depends(get_store)):
    await schedule_service.delete_day_schedule(store, day_schedule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/schedules/{day_schedule_id}/windows", response_model=list[HourWindowResponse])
async def upsert_hour_window_endpoint(
    day_schedule_id: int,
    window_data: HourWindowUpsert,
    store: ReservationStore = Depends(get_store),
):
    """
    Create or update a sale window. An overnight window (end before start) is
    split at midnight and both halves are returned.
    """
    return await schedule_service.upsert_hour_window(
        store,
        day_schedule_id,
        start_time=window_data.start_time,
        end_time=window_data.end_time,
        custom_slots=window_data.custom_slots,
        window_id=window_data.window_id,
    )


@router.delete("/hour-windows/{window_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hour_window_endpoint(window_id: int, store: ReservationStore = Depends(get_store)):
    await schedule_service.delete_hour_window(store, window_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
