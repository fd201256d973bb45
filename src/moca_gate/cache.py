"""Best-effort Redis access.

Nothing stored in Redis is authoritative: eligibility entries can be re-derived
from the chain and rate-limit counters only throttle. Every helper here logs
and absorbs Redis failures so a cache outage degrades to a miss instead of an
error response.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger()


async def try_get(redis: Redis, key: str) -> str | None:
    """Read a key. ``None`` means missing *or* unreadable."""
    try:
        return await redis.get(key)
    except Exception:
        logger.warning("cache_read_failed", key=key, exc_info=True)
        return None


async def try_set(redis: Redis, key: str, value: str, ttl_seconds: int) -> bool:
    """Write a key with a TTL. Returns False when the write failed."""
    try:
        await redis.set(key, value, ex=ttl_seconds)
    except Exception:
        logger.warning("cache_write_failed", key=key, exc_info=True)
        return False
    return True


async def try_delete(redis: Redis, key: str) -> bool:
    try:
        await redis.delete(key)
    except Exception:
        logger.warning("cache_delete_failed", key=key, exc_info=True)
        return False
    return True


async def try_incr(redis: Redis, key: str, ttl_seconds: int) -> int | None:
    """Increment a counter, starting its TTL window when the counter is created.

    The window is fixed: later increments do not extend it. Creation with TTL
    and the increment run in one MULTI/EXEC, so the counter never exists
    without an expiry.
    """
    try:
        pipe = redis.pipeline(transaction=True)
        pipe.set(key, 0, ex=ttl_seconds, nx=True)
        pipe.incr(key)
        results = await pipe.execute()
    except Exception:
        logger.warning("cache_incr_failed", key=key, exc_info=True)
        return None
    return int(results[1])
