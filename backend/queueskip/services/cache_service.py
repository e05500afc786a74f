"""
Redis caching service for venue schedules.

CACHING STRATEGY
================

What we cache:
  - A venue's weekly schedule (day rows + hour windows) as JSON snapshots
  - Key pattern: "schedule:venue:{venue_id}"

Why:
  - Availability is polled by every venue listing and detail page
  - Schedules change only when an administrator edits them

What we never cache:
  - Sold counts. Confirmed sales and live holds are always counted in the
    database, and the ledger re-reads the schedule under a row lock, so a
    stale cache entry can only make the advisory view stale, never oversell.

Invalidation strategy:
  - Every schedule or venue mutation deletes the venue's key
  - TTL-based expiry as safety net

Redis failures degrade to direct database reads.
"""

import json
from datetime import time
from typing import Optional

import redis.asyncio as redis

from queueskip.core.config import get_settings
from queueskip.core.logging import get_logger
from queueskip.core.metrics import record_cache_operation
from queueskip.services.periods import DaySnapshot, WindowSnapshot

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or unreachable."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            await client.aclose()
            return None
        _redis_client = client
        logger.info("redis_connected", url=settings.REDIS_URL)

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_schedule_key(venue_id: str) -> str:
    return f"schedule:venue:{venue_id}"


def _encode_days(days: list[DaySnapshot]) -> str:
    return json.dumps([
        {
            "day_of_week": day.day_of_week,
            "slots_per_period": day.slots_per_period,
            "is_active": day.is_active,
            "windows": [
                {
                    "start_time": w.start_time.isoformat(),
                    "end_time": w.end_time.isoformat(),
                    "custom_slots": w.custom_slots,
                }
                for w in day.windows
            ],
        }
        for day in days
    ])


def _decode_days(raw: str) -> list[DaySnapshot]:
    return [
        DaySnapshot(
            day_of_week=item["day_of_week"],
            slots_per_period=item["slots_per_period"],
            is_active=item["is_active"],
            windows=tuple(
                WindowSnapshot(
                    start_time=time.fromisoformat(w["start_time"]),
                    end_time=time.fromisoformat(w["end_time"]),
                    custom_slots=w["custom_slots"],
                )
                for w in item["windows"]
            ),
        )
        for item in json.loads(raw)
    ]


async def get_cached_schedule(venue_id: str) -> Optional[list[DaySnapshot]]:
    client = await get_redis()
    if not client:
        return None

    key = _make_schedule_key(venue_id)
    try:
        data = await client.get(key)
    except redis.RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data is None:
        logger.debug("cache_miss", key=key)
        return None
    logger.debug("cache_hit", key=key)
    return _decode_days(data)


async def set_cached_schedule(venue_id: str, days: list[DaySnapshot]) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_schedule_key(venue_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, _encode_days(days))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except redis.RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_schedule(venue_id: str) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_schedule_key(venue_id)
    try:
        await client.delete(key)
        logger.info("cache_invalidated", key=key)
    except redis.RedisError as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except redis.RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
