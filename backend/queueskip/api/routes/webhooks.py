"""
Payment outcome webhook.

Acknowledges with 200 once the outcome is durably recorded, including
duplicates and payments with no matching reservation, so the provider stops
redelivering. Only transient store failures return 503 to ask for a retry.
"""

import json
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Request

from queueskip.api.deps import get_notifier, get_store
from queueskip.core.config import get_settings
from queueskip.core.exceptions import InvalidRequestError
from queueskip.core.logging import get_logger
from queueskip.schemas.webhook import WebhookAck, parse_payment_event
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.notification_service import TicketNotifier
from queueskip.services.reconciliation_service import ReconciliationHandler

logger = get_logger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _verify_signature(payload: bytes, signature: Optional[str]) -> None:
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    if not secret:
        return
    if not signature:
        raise InvalidRequestError("Missing Stripe-Signature header")
    try:
        stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature, secret)
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        logger.warning("webhook_signature_rejected", error=str(e))
        raise InvalidRequestError("Invalid webhook signature") from e


@router.post("/payments", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    store: ReservationStore = Depends(get_store),
    notifier: TicketNotifier = Depends(get_notifier),
):
    payload = await request.body()
    _verify_signature(payload, request.headers.get("Stripe-Signature"))

    try:
        body = json.loads(payload)
    except ValueError as e:
        raise InvalidRequestError("Webhook body is not valid JSON") from e

    event = parse_payment_event(body)
    if event is None:
        logger.info("webhook_ignored", event_type=body.get("type"))
        return WebhookAck(result="ignored")

    handler = ReconciliationHandler(store, notifier)
    result = await handler.on_payment_outcome(event)
    return WebhookAck(session_id=event.session_id, result=result.value)
