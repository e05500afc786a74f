"""
Venue service handling CRUD and price updates.
"""

from decimal import Decimal
from typing import Optional

from queueskip.core.exceptions import InvalidRequestError, NotFoundError
from queueskip.core.logging import get_logger
from queueskip.models import Venue
from queueskip.services.cache_service import invalidate_schedule
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.periods import venue_zone

logger = get_logger(__name__)


def amount_in_minor_units(price) -> int:
    return int((Decimal(price) * 100).quantize(Decimal("1")))


async def create_venue(
    store: ReservationStore,
    venue_id: str,
    name: str,
    price: Decimal,
    time_zone: str = "UTC",
    image_url: Optional[str] = None,
) -> Venue:
    venue_zone(time_zone)
    async with store.transaction():
        if await store.get_venue(venue_id) is not None:
            raise InvalidRequestError(f"Venue {venue_id} already exists", status_code=409)
        venue = Venue(
            id=venue_id,
            name=name,
            price=price,
            time_zone=time_zone,
            image_url=image_url,
            day_schedules=[],
        )
        await store.add(venue)

    logger.info("venue_created", venue_id=venue_id, time_zone=time_zone)
    return venue


async def get_venue(store: ReservationStore, venue_id: str, refresh: bool = False) -> Venue:
    venue = await store.get_venue(venue_id, refresh=refresh)
    if venue is None:
        raise NotFoundError(f"Venue {venue_id} not found")
    return venue


async def list_venues(store: ReservationStore) -> list[Venue]:
    return list(await store.list_venues())


async def update_venue(
    store: ReservationStore,
    venue_id: str,
    name: Optional[str] = None,
    image_url: Optional[str] = None,
    time_zone: Optional[str] = None,
) -> Venue:
    if time_zone is not None:
        venue_zone(time_zone)
    async with store.transaction():
        venue = await get_venue(store, venue_id)
        if name is not None:
            venue.name = name
        if image_url is not None:
            venue.image_url = image_url
        if time_zone is not None:
            venue.time_zone = time_zone

    await invalidate_schedule(venue_id)
    logger.info("venue_updated", venue_id=venue_id)
    return venue


async def update_venue_price(store: ReservationStore, venue_id: str, price: Decimal) -> Venue:
    async with store.transaction():
        venue = await get_venue(store, venue_id)
        venue.price = price

    logger.info("venue_price_updated", venue_id=venue_id, price=str(price))
    return venue
