"""
Redis client for the aggregate query cache.

Cached range sums and timeline pages of an installation live as fields of a
hash keyed by the installation and its cache generation,
``aggregates:{installation_id}:{generation}``. The generation is a counter at
``aggregates:{installation_id}:generation``; ingesting a report increments it
instead of deleting entries. A reader that computed an aggregate from data
older than a concurrent ingest therefore writes into a retired hash that is
never read again and simply expires.

All cache operations are best-effort: connection failures are logged but do
not propagate.

CHANGELOG:
- 2026-10-20: Generation-keyed hashes so racing writers cannot revive stale data
- 2026-10-14: Cache aggregates per installation hash
- 2026-10-11: Initial creation
"""

import logging
import os

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def _get_redis_url() -> str:
    """Read REDIS_URL from environment.

    Returns:
        str: The Redis connection URL.

    Raises:
        RuntimeError: If REDIS_URL is not set.
    """
    url = os.environ.get("REDIS_URL")
    if not url:
        raise RuntimeError("REDIS_URL environment variable is required")
    return url


def generation_key(installation_id: int) -> str:
    return f"aggregates:{installation_id}:generation"


def cache_key(installation_id: int, generation: int) -> str:
    return f"aggregates:{installation_id}:{generation}"


async def get_redis() -> redis.Redis:
    """Create and return an async Redis client from environment settings.

    Returns:
        redis.Redis: Async Redis client.
    """
    return redis.from_url(_get_redis_url())


async def get_generation(installation_id: int) -> int | None:
    """Return the current cache generation of an installation.

    An unset counter is generation 0.

    Returns:
        int | None: The generation, or None if Redis is unavailable, in
            which case callers should bypass the cache entirely.
    """
    try:
        client = await get_redis()
        try:
            raw = await client.get(generation_key(installation_id))
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Redis generation read failed for installation %s, bypassing cache",
            installation_id,
            exc_info=True,
        )
        return None
    return int(raw) if raw is not None else 0


async def get_cached(installation_id: int, generation: int, field: str) -> str | None:
    """Return a cached aggregate, or None on a miss or Redis failure.

    Args:
        installation_id: Installation the aggregate belongs to.
        generation: Cache generation read before the lookup.
        field: Hash field identifying the query.

    Returns:
        str | None: The cached JSON document, if any.
    """
    key = cache_key(installation_id, generation)
    try:
        client = await get_redis()
        try:
            cached = await client.hget(key, field)
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Redis read failed for %s[%s], falling back to DB",
            key,
            field,
            exc_info=True,
        )
        return None
    if cached is None:
        return None
    return cached.decode("utf-8") if isinstance(cached, bytes) else cached


async def set_cached(
    installation_id: int, generation: int, field: str, value: str, ttl: int
) -> None:
    """Store an aggregate under ``generation`` and refresh that hash's TTL.

    Args:
        installation_id: Installation the aggregate belongs to.
        generation: Generation read before the aggregate was computed.
        field: Hash field identifying the query.
        value: JSON document to cache.
        ttl: Expiry of the whole hash in seconds.
    """
    key = cache_key(installation_id, generation)
    try:
        client = await get_redis()
        try:
            await client.hset(key, field, value)
            await client.expire(key, ttl)
        finally:
            await client.aclose()
    except Exception:
        logger.warning("Redis write failed for %s[%s]", key, field, exc_info=True)


async def invalidate_installation_cache(installation_id: int) -> None:
    """Retire every cached aggregate of an installation.

    Increments the generation counter so later reads and writes use a fresh
    hash. Best-effort operation: if Redis is unavailable the error is logged
    but not raised so ingestion is never blocked by cache infrastructure
    issues; entries of the old generation then live out their TTL.

    Args:
        installation_id: The installation whose cache should be cleared.
    """
    try:
        client = await get_redis()
        try:
            await client.incr(generation_key(installation_id))
        finally:
            await client.aclose()
    except Exception:
        logger.warning(
            "Failed to invalidate cache for installation %s",
            installation_id,
            exc_info=True,
        )
