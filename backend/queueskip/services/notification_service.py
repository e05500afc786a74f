"""
Ticket notification hook, fired after a sale is committed.

Delivery is best-effort: the sale is already durable when this runs, so a
failure here is logged and counted, never raised back into reconciliation.
"""

from queueskip.core.logging import get_logger
from queueskip.core.metrics import notification_failures
from queueskip.models import ConfirmedSale

logger = get_logger(__name__)


class TicketNotifier:
    """Default notifier: records the dispatch in the structured log."""

    async def send_ticket(self, sale: ConfirmedSale) -> None:
        logger.info(
            "ticket_dispatched",
            session_id=sale.session_id,
            venue_id=sale.venue_id,
            customer_email=sale.customer_email,
            amount_total=sale.amount_total,
            receive_promo=sale.receive_promo,
        )

    async def send_ticket_safely(self, sale: ConfirmedSale) -> bool:
        try:
            await self.send_ticket(sale)
        except Exception as e:
            notification_failures.inc()
            logger.error(
                "ticket_dispatch_failed",
                session_id=sale.session_id,
                error=str(e),
                exc_info=True,
            )
            return False
        return True
