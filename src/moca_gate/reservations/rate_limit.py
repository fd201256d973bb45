"""Per-email registration rate limit.

Fixed one-hour window starting at the first counted reservation, capped at 5.
Only successful reservations are counted. Redis being unavailable lets the
request through rather than blocking registrations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from moca_gate.cache import try_get, try_incr
from moca_gate.config import get_settings
from moca_gate.validation import normalize_email

if TYPE_CHECKING:
    from redis.asyncio import Redis

RATE_LIMIT_KEY = "rate_limit:{email}"


@dataclass(frozen=True)
class RateLimitStatus:
    limited: bool
    remaining: int


def rate_limit_key(email: str) -> str:
    return RATE_LIMIT_KEY.format(email=normalize_email(email))


async def _current_count(redis: Redis, email: str) -> int:
    raw = await try_get(redis, rate_limit_key(email))
    return int(raw) if raw else 0


async def check_rate_limit(redis: Redis, email: str) -> RateLimitStatus:
    """Whether ``email`` has used up its reservations for the current window."""
    limit = get_settings().registration_rate_limit_max
    count = await _current_count(redis, email)
    if count >= limit:
        return RateLimitStatus(limited=True, remaining=0)
    return RateLimitStatus(limited=False, remaining=limit - count)


async def increment_rate_limit(redis: Redis, email: str) -> int | None:
    """Count one reservation. Returns the new count, or None if Redis failed."""
    window = get_settings().registration_rate_limit_window_seconds
    return await try_incr(redis, rate_limit_key(email), window)


async def get_rate_limit_info(redis: Redis, email: str) -> dict[str, int]:
    limit = get_settings().registration_rate_limit_max
    count = await _current_count(redis, email)
    return {"requests": count, "limit": limit, "remaining": max(0, limit - count)}
