"""
Standalone hold expiry sweep, for cron or a scheduler:

    python -m queueskip.jobs.sweep_holds

Availability reads already sweep opportunistically and every capacity count
filters on expires_at, so this only keeps pending_holds small on quiet venues.
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from queueskip.core.config import get_settings
from queueskip.core.logging import get_logger, setup_logging
from queueskip.core.timeutils import utcnow
from queueskip.db.session import build_engine
from queueskip.infrastructure.sql_store import SqlAlchemyReservationStore
from queueskip.services.sweeper_service import sweep_expired


async def main() -> int:
    setup_logging()
    logger = get_logger(__name__)
    settings = get_settings()

    engine = build_engine(settings.DATABASE_URL)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    now = utcnow()

    try:
        async with maker() as session:
            store = SqlAlchemyReservationStore(session)
            async with store.transaction():
                deleted = await sweep_expired(store, now)
    finally:
        await engine.dispose()

    logger.info("sweep_job_finished", deleted=deleted, now=now.isoformat())
    return deleted


if __name__ == "__main__":
    asyncio.run(main())
