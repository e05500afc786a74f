"""
Infrastructure layer - storage and payment provider integrations.
Keeps business logic clean from implementation details.
"""

from .payment_gateways import LocalPaymentGateway, StripePaymentGateway
from .sql_store import SqlAlchemyReservationStore

__all__ = ['LocalPaymentGateway', 'SqlAlchemyReservationStore', 'StripePaymentGateway']
