"""
Pydantic schemas for transaction and audit reporting.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class TransactionResponse(BaseModel):
    session_id: str
    venue_id: str
    customer_email: Optional[str]
    customer_name: Optional[str]
    amount_total: Optional[int]
    receive_promo: bool
    payment_status: str
    created_at: datetime
    confirmed_at: datetime

    model_config = {"from_attributes": True}


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    page: int
    page_size: int


class AuditLogEntryResponse(BaseModel):
    id: int
    session_id: str
    venue_id: Optional[str]
    outcome: str
    payment_status: Optional[str]
    customer_email: Optional[str]
    customer_name: Optional[str]
    amount_total: Optional[int]
    receipt: Optional[dict[str, Any]]
    received_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    entries: list[AuditLogEntryResponse]
    total: int
    page: int
    page_size: int
