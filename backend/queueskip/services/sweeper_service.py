"""
Hold expiry sweeper.

Deletes pending holds whose expires_at has passed. Correctness never depends
on this running: every capacity count already filters on expires_at > now.
Sweeping only keeps the table small, so it runs opportunistically before
availability reads and from the standalone job.
"""

from datetime import datetime
from typing import Optional

from queueskip.core.logging import get_logger
from queueskip.core.metrics import holds_swept
from queueskip.core.timeutils import as_utc, utcnow
from queueskip.services.interfaces.store import ReservationStore

logger = get_logger(__name__)


async def sweep_expired(store: ReservationStore, now: Optional[datetime] = None) -> int:
    """Delete holds with expires_at < now. Runs inside the caller's transaction."""
    now = as_utc(now or utcnow())
    deleted = await store.delete_expired_holds(now)
    if deleted:
        holds_swept.inc(deleted)
        logger.info("holds_swept", deleted=deleted)
    return deleted
