"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .store import ReservationStore, SaleFilters
from .payment import CheckoutSession, PaymentGateway

__all__ = ['ReservationStore', 'SaleFilters', 'CheckoutSession', 'PaymentGateway']
