"""
Payment gateway interface.
The core only needs "create a session" and "give up on a session"; outcomes
arrive later through the webhook.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    redirect_url: str
    # When the provider stops accepting payment; may be later than requested
    expires_at: Optional[datetime] = None


class PaymentGateway(ABC):
    """
    Implementations:
    - LocalPaymentGateway: in-process simulator for development and tests
    - StripePaymentGateway: Stripe Checkout
    """

    @abstractmethod
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
        """
        Create a hosted checkout session.

        Args:
            amount_total: Amount in minor currency units
            expires_at: When the matching hold stops counting

        Raises:
            PaymentGatewayError if the provider rejects the request
        """

    @abstractmethod
    async def expire_session(self, session_id: str) -> None:
        """Best-effort: stop the customer paying for a slot we could not hold."""
