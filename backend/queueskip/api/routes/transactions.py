"""
Admin reporting endpoints over confirmed sales and the payment audit log.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from queueskip.api.deps import get_store, require_admin
from queueskip.schemas.transaction import (
    AuditLogEntryResponse,
    AuditLogListResponse,
    TransactionListResponse,
    TransactionResponse,
)
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.transaction_service import list_audit_log, list_transactions

router = APIRouter(prefix="/transactions", tags=["Transactions"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=TransactionListResponse)
async def list_transactions_endpoint(
    venue_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    payment_status: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    store: ReservationStore = Depends(get_store),
):
    """Confirmed sales, newest first. Dates are whole UTC days, both inclusive."""
    sales, total = await list_transactions(
        store,
        venue_id=venue_id,
        start_date=start_date,
        end_date=end_date,
        payment_status=payment_status,
        page=page,
        page_size=page_size,
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(s) for s in sales],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/audit-log", response_model=AuditLogListResponse)
async def list_audit_log_endpoint(
    venue_id: Optional[str] = None,
    session_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1),
    store: ReservationStore = Depends(get_store),
):
    entries, total = await list_audit_log(
        store, venue_id=venue_id, session_id=session_id, page=page, page_size=page_size
    )
    return AuditLogListResponse(
        entries=[AuditLogEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=page_size,
    )
