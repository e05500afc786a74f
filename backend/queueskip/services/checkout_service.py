"""
Purchase flow: advisory availability check, payment session, then the
authoritative reserve().

The payment session is created before the hold so the hold can be keyed by
the provider's session id, which is what the payment webhook reports back.
When reserve() then rejects the attempt, the session is expired at the
provider and a failed_inventory_check row is kept so a payment that slips
through anyway can be traced.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from queueskip.core.exceptions import (
    ConfigurationMissingError,
    SoldOutError,
    TransientStoreError,
)
from queueskip.core.logging import get_logger
from queueskip.core.metrics import record_reservation_attempt
from queueskip.core.timeutils import as_utc, utcnow
from queueskip.services import ledger_service
from queueskip.services.availability_service import compute_availability
from queueskip.services.interfaces.payment import PaymentGateway
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.ledger_service import CustomerInfo
from queueskip.services.sweeper_service import sweep_expired
from queueskip.services.venue_service import amount_in_minor_units, get_venue

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReservationOutcome:
    session_id: str
    checkout_url: str
    expires_at: datetime
    period_start: datetime
    period_end: datetime


async def create_reservation(
    store: ReservationStore,
    gateway: PaymentGateway,
    venue_id: str,
    customer_email: str,
    customer_name: str,
    receive_promo: bool = False,
    client_period_hint: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ReservationOutcome:
    """
    Start a purchase for the venue's current period.

    Raises:
        SoldOutError / ConfigurationMissingError: expected rejections
        PaymentGatewayError: the provider could not create a session
        TransientStoreError: storage failure; safe to retry
    """
    now = as_utc(now or utcnow())

    async with store.transaction():
        await sweep_expired(store, now)
        venue = await get_venue(store, venue_id)
        availability = await compute_availability(store, venue, now)
        # Plain values only from here on: a rolled-back reserve() expires the ORM instances
        venue_name = venue.name
        amount_total = amount_in_minor_units(venue.price)

    period = availability.period
    if client_period_hint is not None and as_utc(client_period_hint) != period.start:
        # The server clock decides which period is on sale
        logger.info(
            "client_period_hint_mismatch",
            venue_id=venue_id,
            hint=as_utc(client_period_hint).isoformat(),
            period_start=period.start.isoformat(),
        )

    # Advisory: skip the provider round trip when the answer is already no
    if not availability.is_open:
        record_reservation_attempt("not_available")
        raise ConfigurationMissingError(venue_id, reason="sales are closed right now")
    if availability.slots_remaining == 0:
        record_reservation_attempt("sold_out")
        raise SoldOutError(venue_id, period_start=period.start, capacity=availability.capacity)

    customer = CustomerInfo(
        email=customer_email,
        name=customer_name,
        amount_total=amount_total,
        receive_promo=receive_promo,
    )
    expires_at = now + ledger_service.hold_ttl()
    session = await gateway.create_checkout_session(
        venue_id=venue_id,
        venue_name=venue_name,
        customer_email=customer.email,
        customer_name=customer.name,
        amount_total=customer.amount_total,
        expires_at=expires_at,
    )

    # The hold must outlive the window in which the provider still takes payment
    ttl = ledger_service.hold_ttl()
    if session.expires_at is not None:
        ttl = max(ttl, as_utc(session.expires_at) - now)

    try:
        hold = await ledger_service.reserve(
            store,
            venue_id=venue_id,
            session_id=session.session_id,
            customer=customer,
            period_start=period.start,
            period_end=period.end,
            day_of_week=period.day_of_week,
            now=now,
            ttl=ttl,
        )
    except (SoldOutError, ConfigurationMissingError):
        await gateway.expire_session(session.session_id)
        try:
            await ledger_service.record_failed_inventory_check(
                store, venue_id, session.session_id, customer, now=now
            )
        except TransientStoreError as e:
            logger.error(
                "failed_inventory_check_not_recorded",
                session_id=session.session_id,
                error=str(e),
            )
        raise

    return ReservationOutcome(
        session_id=hold.session_id,
        checkout_url=session.redirect_url,
        expires_at=as_utc(hold.expires_at),
        period_start=period.start,
        period_end=period.end,
    )
