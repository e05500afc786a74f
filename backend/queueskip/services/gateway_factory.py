"""
Payment gateway factory.
Configures which payment provider checkout sessions are created with.
"""

from typing import Optional

from queueskip.core.config import get_settings
from queueskip.infrastructure.payment_gateways import LocalPaymentGateway, StripePaymentGateway
from queueskip.services.interfaces.payment import PaymentGateway


def build_payment_gateway(provider: Optional[str] = None) -> PaymentGateway:
    """
    Gateway selection based on PAYMENT_PROVIDER:
    - local: LocalPaymentGateway (development, tests, load tests)
    - stripe: StripePaymentGateway (production)
    """
    provider = (provider or get_settings().PAYMENT_PROVIDER).lower()

    if provider == "stripe":
        return StripePaymentGateway()
    return LocalPaymentGateway()


# Singleton instance
_gateway: Optional[PaymentGateway] = None


def get_payment_gateway() -> PaymentGateway:
    """Get payment gateway singleton."""
    global _gateway
    if _gateway is None:
        _gateway = build_payment_gateway()
    return _gateway
