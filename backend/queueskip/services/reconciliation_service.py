"""
Reconciliation handler for asynchronous payment outcomes.

Delivery is at-least-once, so every step is idempotent:
- the audit entry is appended first, in its own transaction, so the event is
  durable even if promotion fails
- 'paid' promotes the hold (duplicate deliveries find the sale and stop)
- anything else cancels the hold (a second cancel is a no-op)

An inconsistent state (paid, but no hold and no sale) is logged loudly and
reported in the result instead of raised, so the webhook still acknowledges
the event and the provider does not redeliver it forever. Transient store
failures do propagate: the provider should retry those.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from queueskip.core.exceptions import InconsistentStateError
from queueskip.core.logging import get_logger
from queueskip.core.metrics import record_payment_outcome
from queueskip.core.timeutils import as_utc, utcnow
from queueskip.models import AuditLogEntry
from queueskip.services import ledger_service
from queueskip.services.interfaces.store import ReservationStore
from queueskip.services.ledger_service import ConfirmResult
from queueskip.services.notification_service import TicketNotifier

logger = get_logger(__name__)


class PaymentOutcome(str, Enum):
    PAID = "paid"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentOutcomeEvent:
    """The one internal shape every webhook payload is parsed into."""

    session_id: str
    outcome: PaymentOutcome
    payment_status: Optional[str] = None
    venue_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    amount_total: Optional[int] = None
    receipt: dict[str, Any] = field(default_factory=dict)


class ReconciliationResult(str, Enum):
    CONFIRMED = "confirmed"
    DUPLICATE = "duplicate"
    CANCELLED = "cancelled"
    ALREADY_SETTLED = "already_settled"
    INCONSISTENT = "inconsistent"


class ReconciliationHandler:
    """Applies payment outcomes to the ledger, exactly once per session."""

    def __init__(self, store: ReservationStore, notifier: Optional[TicketNotifier] = None):
        self.store = store
        self.notifier = notifier

    async def on_payment_outcome(
        self,
        event: PaymentOutcomeEvent,
        now: Optional[datetime] = None,
    ) -> ReconciliationResult:
        now = as_utc(now or utcnow())
        await self._append_audit_entry(event, now)

        if event.outcome is PaymentOutcome.PAID:
            result = await self._confirm(event, now)
        else:
            cancelled = await ledger_service.cancel(self.store, event.session_id)
            result = ReconciliationResult.CANCELLED if cancelled else ReconciliationResult.ALREADY_SETTLED

        record_payment_outcome(event.outcome.value, result.value)
        logger.info(
            "payment_outcome_reconciled",
            session_id=event.session_id,
            outcome=event.outcome.value,
            result=result.value,
        )
        return result

    async def _append_audit_entry(self, event: PaymentOutcomeEvent, now: datetime) -> None:
        entry = AuditLogEntry(
            session_id=event.session_id,
            venue_id=event.venue_id,
            outcome=event.outcome.value,
            payment_status=event.payment_status,
            customer_email=event.customer_email,
            customer_name=event.customer_name,
            amount_total=event.amount_total,
            receipt=event.receipt or None,
            received_at=now,
        )
        async with self.store.transaction():
            await self.store.append_audit_entry(entry)

    async def _confirm(self, event: PaymentOutcomeEvent, now: datetime) -> ReconciliationResult:
        try:
            confirm_result, sale = await ledger_service.confirm(self.store, event.session_id, now)
        except InconsistentStateError:
            # Already durable in the audit log; needs manual review, not redelivery
            logger.error(
                "payment_without_reservation",
                session_id=event.session_id,
                venue_id=event.venue_id,
                amount_total=event.amount_total,
                customer_email=event.customer_email,
            )
            return ReconciliationResult.INCONSISTENT

        if confirm_result is ConfirmResult.ALREADY_CONFIRMED:
            return ReconciliationResult.DUPLICATE

        if self.notifier is not None:
            await self.notifier.send_ticket_safely(sale)
        return ReconciliationResult.CONFIRMED
