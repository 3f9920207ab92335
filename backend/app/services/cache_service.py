"""
Redis caching service for court schedules.

CACHING STRATEGY
================

What we cache:
  - Per-court daily schedule responses (bookings + waitlist, JSON-serialized)
  - Cache key pattern: "schedule:court={court_id}:date={YYYY-MM-DD}"

Why:
  - The schedule view is the most frequent read (front desk, players
    checking a court before requesting a slot)
  - It only changes when a booking or waitlist entry on that court changes

Invalidation strategy:
  - Any booking/waitlist mutation on a court deletes every cached day for
    that court (prefix scan on "schedule:court={court_id}:*")
  - A move between courts invalidates both courts
  - TTL-based expiry as safety net

What we never cache:
  - Anything the ledger reads. Conflict checks always hit the database
    inside the court scope; a stale read there means a double booking.

Redis is optional. Every function degrades to a no-op when Redis is disabled
or unreachable.
"""

import json
from datetime import date
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            redis_connection_errors.inc()
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _make_schedule_key(court_id: int, on_date: date) -> str:
    return f"schedule:court={court_id}:date={on_date.isoformat()}"


async def get_cached_schedule(court_id: int, on_date: date) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_schedule_key(court_id, on_date)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_schedule(court_id: int, on_date: date, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_schedule_key(court_id, on_date)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_court_schedule(*court_ids: int) -> None:
    """Drop every cached day for the given courts."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        for court_id in set(court_ids):
            async for key in client.scan_iter(match=f"schedule:court={court_id}:*", count=100):
                await client.delete(key)
                deleted += 1
        logger.info("cache_invalidated", court_ids=sorted(set(court_ids)), keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
