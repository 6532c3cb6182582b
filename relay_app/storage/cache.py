"""Redis cache layer.

Backs:
- Signal dedupe / cooldown keys (SET NX EX)
- Market data tickers and last prices
- The job queue lists

Every helper swallows Redis errors (logged as warnings) and reports a miss,
so callers treat an unavailable Redis like an empty one. ``set_nx`` is the
exception: it returns None when it cannot answer, so the caller decides.

Uses orjson for serialization.
"""

from __future__ import annotations

import logging
from typing import Any

import orjson
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from relay_app.config import get_settings

logger = logging.getLogger(__name__)

# Global connection pool
_pool: ConnectionPool | None = None
_client: redis.Redis | None = None


# =============================================================================
# Key prefixes for different data types
# =============================================================================

KEY_PREFIX_TICKER = "md:ticker:"     # Ticker: md:ticker:{provider}:{SYMBOL}
KEY_PREFIX_PRICE = "price:last:"     # Last price: price:last:{SYMBOL}
KEY_PREFIX_QUEUE = "queue:"          # Job queue lists: queue:{name}:wait|active
KEY_PREFIX_SPREAD = "spread:cooldown:"  # Spread alert cooldown: spread:cooldown:{SYMBOL}


# =============================================================================
# Connection management
# =============================================================================

async def init_cache() -> None:
    """Initialize Redis connection pool."""
    global _pool, _client

    if _client is not None:
        return

    settings = get_settings()
    _pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=20,
        decode_responses=False,  # We handle encoding ourselves with orjson
    )
    _client = redis.Redis(connection_pool=_pool)

    try:
        await _client.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
    except redis.ConnectionError as e:
        logger.warning(f"Redis connection failed: {e}. Cache will be disabled.")
        _client = None
        _pool = None


async def close_cache() -> None:
    """Close Redis connection pool."""
    global _pool, _client

    if _client is not None:
        await _client.aclose()
        _client = None

    if _pool is not None:
        await _pool.disconnect()
        _pool = None

    logger.info("Redis connection closed")


def get_client() -> redis.Redis | None:
    """Get the Redis client instance."""
    return _client


def is_cache_available() -> bool:
    """Check if cache is available."""
    return _client is not None


# =============================================================================
# Basic operations
# =============================================================================

async def get(key: str) -> bytes | None:
    """Get a value from cache.

    Returns:
        Raw bytes or None if not found/cache unavailable
    """
    if _client is None:
        return None

    try:
        return await _client.get(key)
    except redis.RedisError as e:
        logger.warning(f"Redis GET error: {e}")
        return None


async def set(
    key: str,
    value: bytes,
    ttl: int | None = None,
) -> bool:
    """Set a value in cache.

    Args:
        key: Cache key
        value: Raw bytes to store
        ttl: Time-to-live in seconds (None for no expiry)

    Returns:
        True if successful, False otherwise
    """
    if _client is None:
        return False

    try:
        if ttl:
            await _client.setex(key, ttl, value)
        else:
            await _client.set(key, value)
        return True
    except redis.RedisError as e:
        logger.warning(f"Redis SET error: {e}")
        return False


async def set_nx(key: str, value: bytes, ttl: int) -> bool | None:
    """Atomically set ``key`` only if it does not exist (SET NX EX).

    Returns:
        True if the key was set, False if it already existed,
        None if the cache could not answer.
    """
    if _client is None:
        return None

    try:
        result = await _client.set(key, value, nx=True, ex=ttl)
        return bool(result)
    except redis.RedisError as e:
        logger.warning(f"Redis SET NX error: {e}")
        return None


async def delete(key: str) -> bool:
    """Delete a key from cache."""
    if _client is None:
        return False

    try:
        await _client.delete(key)
        return True
    except redis.RedisError as e:
        logger.warning(f"Redis DELETE error: {e}")
        return False


# =============================================================================
# JSON operations (using orjson)
# =============================================================================

async def get_json(key: str) -> Any | None:
    """Get a JSON value from cache.

    Returns:
        Deserialized object or None
    """
    data = await get(key)
    if data is None:
        return None

    try:
        return orjson.loads(data)
    except orjson.JSONDecodeError as e:
        logger.warning(f"JSON decode error for key {key}: {e}")
        return None


async def set_json(
    key: str,
    value: Any,
    ttl: int | None = None,
) -> bool:
    """Set a JSON value in cache."""
    try:
        data = orjson.dumps(value)
        return await set(key, data, ttl)
    except (TypeError, orjson.JSONEncodeError) as e:
        logger.warning(f"JSON encode error for key {key}: {e}")
        return False


# =============================================================================
# Batch operations
# =============================================================================

async def mget(keys: list[str]) -> list[bytes | None]:
    """Get multiple values at once.

    Returns:
        List of values (None for missing keys)
    """
    if _client is None or not keys:
        return [None] * len(keys)

    try:
        return await _client.mget(keys)
    except redis.RedisError as e:
        logger.warning(f"Redis MGET error: {e}")
        return [None] * len(keys)


async def set_many_json(mapping: dict[str, Any], ttl: int) -> int:
    """Write several JSON values with the same TTL in one pipeline.

    Returns:
        Number of keys written (0 on failure)
    """
    if _client is None or not mapping:
        return 0

    try:
        async with _client.pipeline(transaction=False) as pipe:
            for key, value in mapping.items():
                pipe.setex(key, ttl, orjson.dumps(value))
            await pipe.execute()
        return len(mapping)
    except (redis.RedisError, TypeError, orjson.JSONEncodeError) as e:
        logger.warning(f"Redis pipeline SETEX error: {e}")
        return 0


# =============================================================================
# List operations (job queue)
# =============================================================================

async def rpush(key: str, *values: bytes) -> int:
    """Append values to a list.

    Returns:
        New list length, or 0 if the push failed
    """
    if _client is None:
        return 0

    try:
        return await _client.rpush(key, *values)
    except redis.RedisError as e:
        logger.warning(f"Redis RPUSH error: {e}")
        return 0


async def blmove(source: str, destination: str, timeout: float) -> bytes | None:
    """Atomically pop the head of ``source`` onto the tail of ``destination``.

    Blocks up to ``timeout`` seconds. Returns the moved value or None.
    """
    if _client is None:
        return None

    try:
        return await _client.blmove(source, destination, timeout, "LEFT", "RIGHT")
    except redis.RedisError as e:
        logger.warning(f"Redis BLMOVE error: {e}")
        return None


async def lmove(source: str, destination: str) -> bytes | None:
    """Non-blocking BLMOVE: head of ``source`` to tail of ``destination``."""
    if _client is None:
        return None

    try:
        return await _client.lmove(source, destination, "LEFT", "RIGHT")
    except redis.RedisError as e:
        logger.warning(f"Redis LMOVE error: {e}")
        return None


async def lrem(key: str, value: bytes, count: int = 1) -> int:
    """Remove up to ``count`` occurrences of ``value`` from a list."""
    if _client is None:
        return 0

    try:
        return await _client.lrem(key, count, value)
    except redis.RedisError as e:
        logger.warning(f"Redis LREM error: {e}")
        return 0


async def llen(key: str) -> int:
    if _client is None:
        return 0

    try:
        return await _client.llen(key)
    except redis.RedisError as e:
        logger.warning(f"Redis LLEN error: {e}")
        return 0


# =============================================================================
# Health check
# =============================================================================

async def ping() -> bool:
    """Check if Redis is responsive."""
    if _client is None:
        return False

    try:
        return await _client.ping()
    except redis.RedisError:
        return False
