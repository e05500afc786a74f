"""
Venue endpoints: public listing and live availability, admin CRUD.
Availability is never cached; it is recomputed from the ledger on every call.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status

from queueskip.api.deps import get_store, require_admin
from queueskip.schemas.reservation import AvailabilityResponse, NextAvailable
from queueskip.schemas.venue import (
    VenueCreate,
    VenueDetailResponse,
    VenuePriceUpdate,
    VenueResponse,
    VenueUpdate,
)
from queueskip.services.availability_service import Availability, get_availability, list_availability
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.venue_service import (
    create_venue,
    get_venue,
    list_venues,
    update_venue,
    update_venue_price,
)

router = APIRouter(prefix="/venues", tags=["Venues"])


def _availability_response(availability: Availability) -> AvailabilityResponse:
    upcoming: Optional[NextAvailable] = None
    if availability.next_available:
        upcoming = NextAvailable(**availability.next_available)
    return AvailabilityResponse(
        venue_id=availability.venue_id,
        slots_remaining=availability.slots_remaining,
        is_open=availability.is_open,
        next_available=upcoming,
        capacity=availability.capacity,
        period_start=availability.period.start,
        period_end=availability.period.end,
    )


@router.get("/", response_model=list[VenueResponse])
async def list_venues_endpoint(store: ReservationStore = Depends(get_store)):
    return await list_venues(store)


@router.get("/availability", response_model=list[AvailabilityResponse])
async def list_availability_endpoint(store: ReservationStore = Depends(get_store)):
    """Current-period availability for every venue, for the listing page."""
    return [_availability_response(a) for a in await list_availability(store)]


@router.get("/{venue_id}", response_model=VenueDetailResponse)
async def get_venue_endpoint(venue_id: str, store: ReservationStore = Depends(get_store)):
    """Venue with its weekly schedule."""
    return await get_venue(store, venue_id)


@router.get("/{venue_id}/availability", response_model=AvailabilityResponse)
async def get_availability_endpoint(
    venue_id: str,
    at: Optional[datetime] = None,
    store: ReservationStore = Depends(get_store),
):
    """
    Slots remaining in the venue's current 15-minute period.
    `at` evaluates another instant, for previews; defaults to now.
    """
    return _availability_response(await get_availability(store, venue_id, now=at))


@router.post(
    "/",
    response_model=VenueDetailResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_venue_endpoint(venue_data: VenueCreate, store: ReservationStore = Depends(get_store)):
    return await create_venue(
        store,
        venue_id=venue_data.id,
        name=venue_data.name,
        price=venue_data.price,
        time_zone=venue_data.time_zone,
        image_url=venue_data.image_url,
    )


@router.patch("/{venue_id}", response_model=VenueResponse, dependencies=[Depends(require_admin)])
async def update_venue_endpoint(
    venue_id: str,
    venue_data: VenueUpdate,
    store: ReservationStore = Depends(get_store),
):
    return await update_venue(
        store,
        venue_id,
        name=venue_data.name,
        image_url=venue_data.image_url,
        time_zone=venue_data.time_zone,
    )


@router.put("/{venue_id}/price", response_model=VenueResponse, dependencies=[Depends(require_admin)])
async def update_venue_price_endpoint(
    venue_id: str,
    price_data: VenuePriceUpdate,
    store: ReservationStore = Depends(get_store),
):
    """New price applies to checkouts started after the change."""
    return await update_venue_price(store, venue_id, price_data.price)
