"""
FastAPI dependencies: the store, payment gateway and notifier are built here
and handed to the services explicitly.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from queueskip.core.config import get_settings
from queueskip.db.session import get_db
from queueskip.infrastructure.sql_store import SqlAlchemyReservationStore
from queueskip.services.gateway_factory import get_payment_gateway
from queueskip.services.interfaces.payment import PaymentGateway
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.notification_service import TicketNotifier

_notifier = TicketNotifier()


async def get_store(db: AsyncSession = Depends(get_db)) -> ReservationStore:
    return SqlAlchemyReservationStore(db)


def get_gateway() -> PaymentGateway:
    return get_payment_gateway()


def get_notifier() -> TicketNotifier:
    return _notifier


async def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Shared-secret gate for the admin configuration surface."""
    expected = get_settings().ADMIN_API_KEY
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid admin key",
        )
