"""NFT eligibility with a cache-aside Redis layer.

Results are cached for 10 minutes under ``nft_eligibility:<wallet>``. The cache
only absorbs repeated polling: a miss, or an unreadable cache, always falls
through to the staking contract, and a failed write never affects the answer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from moca_gate.cache import try_delete, try_get, try_set
from moca_gate.config import get_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

    from moca_gate.nft.chain import StakingContractClient

logger = structlog.get_logger()

ELIGIBILITY_CACHE_KEY = "nft_eligibility:{wallet}"


def eligibility_cache_key(wallet: str) -> str:
    return ELIGIBILITY_CACHE_KEY.format(wallet=wallet.lower())


async def check_nft_eligibility(
    redis: Redis,
    client: StakingContractClient,
    wallet: str,
) -> bool:
    """Whether ``wallet`` holds an NFT staked for at least the minimum duration.

    Raises:
        DependencyError: If the cache misses and the on-chain check fails.
    """
    cache_key = eligibility_cache_key(wallet)

    cached = await try_get(redis, cache_key)
    if cached is not None:
        return cached == "true"

    eligible = await client.has_eligible_nft(wallet)

    ttl = get_settings().nft_eligibility_cache_ttl_seconds
    if not await try_set(redis, cache_key, "true" if eligible else "false", ttl):
        logger.info("nft_eligibility_not_cached", wallet=wallet.lower())
    return eligible


async def invalidate_nft_cache(redis: Redis, wallet: str) -> bool:
    """Drop the cached answer for ``wallet`` (staking state changed out of band)."""
    return await try_delete(redis, eligibility_cache_key(wallet))
