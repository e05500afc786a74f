"""
Payment webhook payloads.

Three shapes arrive at the same endpoint and are all reduced to one
PaymentOutcomeEvent here, at the boundary:
- a database-webhook wrapper: {"type": "INSERT", "record": {...}}
- a flat record: {"session_id": ..., "payment_status": "paid", ...}
- a Stripe event: {"type": "checkout.session.completed", "data": {"object": {...}}}
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from queueskip.core.exceptions import InvalidRequestError
from queueskip.services.reconciliation_service import PaymentOutcome, PaymentOutcomeEvent

PAID_STATUSES = {"paid", "no_payment_required"}

STRIPE_PAID_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
STRIPE_FAILED_EVENTS = {"checkout.session.expired", "checkout.session.async_payment_failed"}


class PaymentRecord(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=255)
    payment_status: str = Field(..., min_length=1, max_length=50)
    venue_id: Optional[str] = Field(None, max_length=64)
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    amount_total: Optional[int] = None

    model_config = ConfigDict(extra="allow")


class StripeCustomerDetails(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class StripeCheckoutSession(BaseModel):
    id: str = Field(..., min_length=1)
    payment_status: Optional[str] = None
    amount_total: Optional[int] = None
    customer_email: Optional[str] = None
    customer_details: Optional[StripeCustomerDetails] = None
    metadata: dict[str, str] = {}

    model_config = ConfigDict(extra="allow")


class WebhookAck(BaseModel):
    received: bool = True
    session_id: Optional[str] = None
    result: Optional[str] = None


def _from_record(record: PaymentRecord, raw: dict[str, Any]) -> PaymentOutcomeEvent:
    outcome = PaymentOutcome.PAID if record.payment_status in PAID_STATUSES else PaymentOutcome.FAILED
    return PaymentOutcomeEvent(
        session_id=record.session_id,
        outcome=outcome,
        payment_status=record.payment_status,
        venue_id=record.venue_id,
        customer_email=record.customer_email,
        customer_name=record.customer_name,
        amount_total=record.amount_total,
        receipt=raw,
    )


def _from_stripe(event_type: str, session: StripeCheckoutSession, raw: dict[str, Any]) -> Optional[PaymentOutcomeEvent]:
    if event_type in STRIPE_PAID_EVENTS:
        if session.payment_status not in PAID_STATUSES:
            # Delayed payment method; the async_payment_* event settles it
            return None
        outcome = PaymentOutcome.PAID
    elif event_type in STRIPE_FAILED_EVENTS:
        outcome = PaymentOutcome.FAILED
    else:
        return None

    details = session.customer_details or StripeCustomerDetails()
    return PaymentOutcomeEvent(
        session_id=session.id,
        outcome=outcome,
        payment_status=session.payment_status,
        venue_id=session.metadata.get("venue_id"),
        customer_email=session.customer_email or details.email,
        customer_name=session.metadata.get("customer_name") or details.name,
        amount_total=session.amount_total,
        receipt=raw,
    )


def parse_payment_event(payload: Any) -> Optional[PaymentOutcomeEvent]:
    """
    Reduce a webhook body to a PaymentOutcomeEvent.
    Returns None for events that carry no outcome (acknowledged and ignored).

    Raises:
        InvalidRequestError if the body matches none of the known shapes
    """
    if not isinstance(payload, dict):
        raise InvalidRequestError("Webhook body must be a JSON object")

    try:
        if isinstance(payload.get("record"), dict):
            return _from_record(PaymentRecord.model_validate(payload["record"]), payload)

        event_type = payload.get("type")
        data = payload.get("data")
        if isinstance(event_type, str) and isinstance(data, dict) and isinstance(data.get("object"), dict):
            if not event_type.startswith("checkout.session."):
                return None
            session = StripeCheckoutSession.model_validate(data["object"])
            return _from_stripe(event_type, session, payload)

        return _from_record(PaymentRecord.model_validate(payload), payload)
    except ValidationError as e:
        raise InvalidRequestError(f"Unrecognised payment event: {e.errors()[0]['msg']}") from e
