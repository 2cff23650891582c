"""
Redis client wrapper — feed page cache.

  • Generation  — STRING counter at feed:generation, INCR'd on every chit
                  write and follow-graph change
  • Feed pages  — STRING (JSON) keyed by feedpage:{generation}:{page key},
                  expiring after feed_cache_ttl

Bumping the generation orphans every cached page at once; the orphans age
out through their TTL. Any Redis failure is logged and treated as a miss,
so the feed always falls back to the store.
"""
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from chitter.config import settings
from chitter.telemetry import FEED_CACHE_LOOKUPS_TOTAL

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None

GENERATION_KEY = "feed:generation"


async def init_redis() -> None:
    global _redis
    if not settings.feed_cache_enabled:
        logger.info("Feed cache disabled — every feed read goes to the store")
        return
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
        socket_timeout=settings.store_timeout_seconds,
        socket_connect_timeout=settings.store_timeout_seconds,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> Optional[aioredis.Redis]:
    return _redis


def _page_key(generation: str, key: str) -> str:
    return f"feedpage:{generation}:{key}"


async def lookup_feed_page(key: str) -> tuple[Optional[str], Optional[str]]:
    """
    Return (generation, cached JSON). The generation must be passed back to
    store_feed_page so a page built from older data is never filed under a
    newer generation.
    """
    r = get_redis()
    if r is None:
        return None, None
    try:
        generation = await r.get(GENERATION_KEY) or "0"
        raw = await r.get(_page_key(generation, key))
    except RedisError as exc:
        logger.warning("Feed cache lookup failed (%s) — reading from store", exc)
        FEED_CACHE_LOOKUPS_TOTAL.labels(result="error").inc()
        return None, None

    FEED_CACHE_LOOKUPS_TOTAL.labels(result="hit" if raw else "miss").inc()
    return generation, raw


async def store_feed_page(generation: Optional[str], key: str, payload: str) -> None:
    r = get_redis()
    if r is None or generation is None:
        return
    try:
        await r.set(_page_key(generation, key), payload, ex=settings.feed_cache_ttl)
    except RedisError as exc:
        logger.warning("Feed cache write failed: %s", exc)


async def invalidate_feeds() -> None:
    r = get_redis()
    if r is None:
        return
    try:
        await r.incr(GENERATION_KEY)
    except RedisError as exc:
        # cached pages stay valid until their TTL runs out
        logger.warning("Feed cache invalidation failed: %s", exc)
