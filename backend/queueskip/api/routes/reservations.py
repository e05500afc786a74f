"""
Purchase flow endpoints.
"""

from fastapi import APIRouter, Depends, status

from queueskip.api.deps import get_gateway, get_store
from queueskip.schemas.reservation import (
    ReservationCreate,
    ReservationResponse,
    ReservationStatusResponse,
)
from queueskip.services.checkout_service import create_reservation
from queueskip.services.interfaces.payment import PaymentGateway
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.ledger_service import get_reservation_status

router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation_endpoint(
    reservation_data: ReservationCreate,
    store: ReservationStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """
    Hold one slot in the venue's current period and start checkout.

    The hold counts against capacity until the payment outcome arrives or it
    expires. Returns 409 with error "sold_out" when the period is full, or
    "not_available" when the venue is not selling right now.
    """
    return await create_reservation(
        store,
        gateway,
        reservation_data.venue_id,
        customer_email=reservation_data.customer.email,
        customer_name=reservation_data.customer.name,
        receive_promo=reservation_data.receive_promo,
        client_period_hint=reservation_data.client_period_hint,
    )


@router.get("/{session_id}", response_model=ReservationStatusResponse)
async def get_reservation_status_endpoint(session_id: str, store: ReservationStore = Depends(get_store)):
    """Polled by the payment-success page until the webhook has landed."""
    return ReservationStatusResponse(
        session_id=session_id,
        status=await get_reservation_status(store, session_id),
    )
