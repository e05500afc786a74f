"""
Queue Skip Reservation API

Venues sell a fixed number of queue-skip slots in every 15-minute period of
their local day. A purchase places a pending hold that counts against the
period's capacity until the payment provider reports the outcome through the
webhook, or the hold expires.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from queueskip.api.errors import register_exception_handlers
from queueskip.api.middleware import RequestLoggingMiddleware
from queueskip.api.router import api_router
from queueskip.core.config import get_settings
from queueskip.core.logging import get_logger, setup_logging
from queueskip.core.metrics import metrics_endpoint
from queueskip.db.session import engine
from queueskip.services.cache_service import close_redis, get_cache_stats, get_redis

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "application_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        payment_provider=settings.PAYMENT_PROVIDER,
        hold_ttl_minutes=settings.HOLD_TTL_MINUTES,
    )

    if await get_redis() is None:
        logger.warning("schedule_cache_disabled", redis_enabled=settings.REDIS_ENABLED)

    yield

    await close_redis()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Per-period queue-skip sales with expiring holds and payment reconciliation",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)
app.include_router(api_router)


async def _database_reachable() -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("health_database_unreachable", error=str(e))
        return False
    return True


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus the state of the database and the schedule cache."""
    database_ok = await _database_reachable()
    return {
        "status": "healthy" if database_ok else "degraded",
        "version": settings.APP_VERSION,
        "database": "ok" if database_ok else "unreachable",
        "cache": await get_cache_stats(),
        "payment_provider": settings.PAYMENT_PROVIDER,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()
