"""
Redis caching service for event listings.

CACHING STRATEGY
================

What we cache:
  - The serialized event listings (all, public, public + a viewer's own)
  - Cache key pattern: "events:list:g{generation}:scope={scope}&viewer={uid}"

Why:
  - The landing page and the explore page hit the listings on every visit
  - They only change when an event is created, edited, deleted, joined or left

Invalidation strategy:
  - Any event or membership mutation increments "events:generation" and
    deletes every "events:list:*" key
  - Readers take the generation before querying, so a listing read just
    before a mutation is written under a generation nobody reads again
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

Why NOT cache single events or volunteer rosters:
  - Join/leave needs real-time counts; a stale roster would let the UI offer
    a join that the capacity check then rejects

Redis is advisory: if it is disabled or down every call degrades to a miss.
"""

import json
from typing import Optional

import redis.asyncio as redis
from volunteer_api.core.config import get_settings
from volunteer_api.core.logging import get_logger
from volunteer_api.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

LIST_KEY_PREFIX = "events:list:"
GENERATION_KEY = "events:generation"

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
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(generation: int, scope: str, viewer_uid: Optional[str] = None) -> str:
    return f"{LIST_KEY_PREFIX}g{generation}:scope={scope}&viewer={viewer_uid or ''}"


async def get_listing_generation() -> Optional[int]:
    """
    Current listing generation, or None when there is no cache to use.
    Read it BEFORE querying the database and pass it to the get/set calls:
    a listing computed before an invalidation is then stored under the old
    generation, which no reader asks for any more.
    """
    client = await get_redis()
    if not client:
        return None

    try:
        value = await client.get(GENERATION_KEY)
        return int(value or 0)
    except Exception as e:
        logger.error("cache_generation_error", error=str(e))
        return None


async def get_cached_events(generation: Optional[int], scope: str, viewer_uid: Optional[str] = None) -> Optional[list]:
    """Retrieve a cached event listing."""
    if generation is None:
        return None
    client = await get_redis()
    if not client:
        return None

    key = make_event_list_key(generation, scope, viewer_uid)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_events(generation: Optional[int], scope: str, viewer_uid: Optional[str], data: list) -> None:
    """Cache an event listing with TTL under the generation it was read in."""
    if generation is None:
        return
    client = await get_redis()
    if not client:
        return

    key = make_event_list_key(generation, scope, viewer_uid)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """
    Invalidate all cached event listings.
    Bumping the generation retires every key at once, including ones a slow
    reader has yet to write; SCAN then clears the retired keys early rather
    than leaving them to the TTL.
    """
    client = await get_redis()
    if not client:
        return

    try:
        generation = await client.incr(GENERATION_KEY)
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_KEY_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", generation=generation, keys_deleted=deleted)
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
