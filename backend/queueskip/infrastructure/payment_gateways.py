"""
Payment gateway implementations.

Stripe's SDK is synchronous, so its calls run in a worker thread to keep the
event loop free while the provider responds.
"""

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Optional

import stripe

from queueskip.core.config import get_settings
from queueskip.core.exceptions import PaymentGatewayError
from queueskip.core.logging import get_logger
from queueskip.core.timeutils import as_utc, utcnow
from queueskip.services.interfaces.payment import CheckoutSession, PaymentGateway

logger = get_logger(__name__)
settings = get_settings()

# Stripe rejects checkout sessions that expire sooner than this
STRIPE_MIN_SESSION_LIFETIME = timedelta(minutes=30)


def _success_url(base_url: str) -> str:
    return f"{base_url}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"


class LocalPaymentGateway(PaymentGateway):
    """
    In-process gateway for development and tests.
    Sessions are only ids; outcomes are posted to the webhook by hand.
    """

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    async def create_checkout_session(
        self,
        *,
        venue_id: str,
        venue_name: str,
        customer_email: str,
        customer_name: str,
        amount_total: int,
        expires_at: datetime,
    ) -> CheckoutSession:
        session_id = f"cs_local_{uuid.uuid4().hex}"
        redirect_url = _success_url(self.base_url).replace("{CHECKOUT_SESSION_ID}", session_id)
        logger.debug("local_checkout_session_created", session_id=session_id, venue_id=venue_id)
        return CheckoutSession(session_id=session_id, redirect_url=redirect_url, expires_at=as_utc(expires_at))

    async def expire_session(self, session_id: str) -> None:
        # Nothing is held for local sessions; a later outcome post is simply reconciled
        logger.debug("local_checkout_session_expired", session_id=session_id)


class StripePaymentGateway(PaymentGateway):
    """Stripe Checkout in payment mode, one line item per queue skip."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        if not self.api_key:
            raise PaymentGatewayError("STRIPE_SECRET_KEY is not configured", status_code=500)
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")
        self.currency = currency or settings.PAYMENT_CURRENCY

    async def create_checkout_session(
        self,
        *,
        venue_id: str,
        venue_name: str,
        customer_email: str,
        customer_name: str,
        amount_total: int,
        expires_at: datetime,
    ) -> CheckoutSession:
        expires_at = max(as_utc(expires_at), utcnow() + STRIPE_MIN_SESSION_LIFETIME)
        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self.currency,
                            "product_data": {
                                "name": f"Queue Skip at {venue_name}",
                                "description": "Skip the queue at the venue",
                            },
                            "unit_amount": amount_total,
                        },
                        "quantity": 1,
                    }
                ],
                customer_email=customer_email,
                success_url=_success_url(self.base_url),
                cancel_url=f"{self.base_url}/{venue_id}",
                expires_at=int(expires_at.timestamp()),
                metadata={"venue_id": venue_id, "customer_name": customer_name},
            )
        except stripe.StripeError as e:
            logger.error("stripe_session_create_failed", venue_id=venue_id, error=str(e))
            raise PaymentGatewayError(f"Could not start checkout: {e.user_message or 'payment provider error'}")

        logger.info("stripe_session_created", session_id=session.id, venue_id=venue_id)
        return CheckoutSession(session_id=session.id, redirect_url=session.url, expires_at=expires_at)

    async def expire_session(self, session_id: str) -> None:
        try:
            await asyncio.to_thread(stripe.checkout.Session.expire, session_id, api_key=self.api_key)
        except stripe.StripeError as e:
            # Already completed or expired; the webhook path handles whatever happened
            logger.warning("stripe_session_expire_failed", session_id=session_id, error=str(e))
            return
        logger.info("stripe_session_expired", session_id=session_id)
