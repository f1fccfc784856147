"""Redis cache for read-heavy vehicle listings.

Values carry a soft expiry alongside the Redis (hard) TTL:
    - soft_ttl: after this the value is stale; one caller refreshes it while
      concurrent callers keep getting the stale copy
    - hard_ttl: after this Redis drops the key (cache miss)

When no Redis URL is configured the decorator is a pass-through, so the API
and the tests run without a Redis server.

Usage:
    @cache(soft_ttl=15, hard_ttl=120, namespace="vehicles")
    async def list_vehicles(db, page, limit):
        ...

    await clear_namespace("vehicles")
"""
import asyncio
import functools
import logging
import pickle
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, ParamSpec

from redis import asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


@dataclass
class CachedValue:
    value: Any
    soft_expiry: float  # unix timestamp


_redis_client: Optional[aioredis.Redis] = None
_prefix: str = "fleet-cache"

P = ParamSpec("P")
T = TypeVar("T")


async def init_cache(redis_url: Optional[str], prefix: str = "fleet-cache") -> Optional[aioredis.Redis]:
    """Connect to Redis. Returns None (cache disabled) when no URL is given."""
    global _redis_client, _prefix
    if not redis_url:
        logger.info("REDIS_URL not set, cache disabled")
        return None
    _prefix = prefix
    _redis_client = aioredis.from_url(redis_url, decode_responses=False)
    logger.info(f"Cache initialized with prefix: {prefix}")
    return _redis_client


async def close_cache() -> None:
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Cache connection closed")


def get_redis() -> Optional[aioredis.Redis]:
    return _redis_client


def _is_key_part(obj: Any) -> bool:
    """Only plain values go into cache keys; sessions and clients are skipped."""
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return True
    if isinstance(obj, (list, tuple)):
        return all(_is_key_part(item) for item in obj)
    return False


def _make_key(namespace: str, func_name: str, args: tuple, kwargs: dict) -> str:
    key_parts = [_prefix, namespace, func_name]
    key_parts.extend(str(arg) for arg in args if _is_key_part(arg))
    key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()) if _is_key_part(v))
    return ":".join(key_parts)


def cache(
    soft_ttl: int = 30,
    hard_ttl: int = 300,
    namespace: str = "default",
    lock_timeout: float = 5.0,
    poll_interval: float = 0.1,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Cache an async function's result in Redis with soft/hard TTL.

    Args:
        soft_ttl: Seconds before a value is considered stale
        hard_ttl: Seconds before Redis evicts the value
        namespace: Group name used by clear_namespace
        lock_timeout: Max seconds to wait for another caller's refresh
        poll_interval: Seconds between checks while waiting
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            redis = get_redis()
            if redis is None:
                return await func(*args, **kwargs)

            cache_key = _make_key(namespace, func.__name__, args, kwargs)
            lock_key = f"{cache_key}:lock"

            cached: Optional[CachedValue] = None
            try:
                raw = await redis.get(cache_key)
                if raw is not None:
                    cached = pickle.loads(raw)
            except (RedisError, pickle.UnpicklingError) as e:
                logger.warning(f"Cache read error for {cache_key}: {e}")

            now = time.time()
            if cached is not None and now < cached.soft_expiry:
                logger.debug(f"Cache HIT: {cache_key}")
                return cached.value

            if cached is not None:
                logger.info(f"Cache STALE ({int(now - cached.soft_expiry)}s): {cache_key}")
            else:
                logger.info(f"Cache MISS: {cache_key}")

            try:
                lock_acquired = await redis.set(lock_key, "1", nx=True, ex=int(lock_timeout) + 1)
            except RedisError as e:
                logger.warning(f"Cache lock error for {cache_key}: {e}")
                return await func(*args, **kwargs)

            if lock_acquired:
                try:
                    result = await func(*args, **kwargs)
                    fresh = CachedValue(value=result, soft_expiry=time.time() + soft_ttl)
                    try:
                        await redis.set(cache_key, pickle.dumps(fresh), ex=hard_ttl)
                    except RedisError as e:
                        logger.warning(f"Cache write error for {cache_key}: {e}")
                    return result
                finally:
                    try:
                        await redis.delete(lock_key)
                    except RedisError as e:
                        logger.warning(f"Cache unlock error for {cache_key}: {e}")

            # Another caller is refreshing; serve stale data if we have it
            if cached is not None:
                return cached.value

            wait_start = time.time()
            while time.time() - wait_start < lock_timeout:
                await asyncio.sleep(poll_interval)
                try:
                    raw = await redis.get(cache_key)
                except RedisError as e:
                    logger.warning(f"Cache read error for {cache_key}: {e}")
                    break
                if raw is not None:
                    return pickle.loads(raw).value

            logger.info(f"Lock timeout, computing fallback: {cache_key}")
            return await func(*args, **kwargs)

        return wrapper
    return decorator


async def clear_namespace(namespace: str) -> int:
    """Delete every cached entry in a namespace. Returns the number of keys removed."""
    redis = get_redis()
    if redis is None:
        return 0

    deleted = 0
    try:
        async for key in redis.scan_iter(match=f"{_prefix}:{namespace}:*"):
            deleted += await redis.delete(key)
    except RedisError as e:
        logger.error(f"Error clearing namespace '{namespace}': {e}")
        return deleted

    if deleted:
        logger.info(f"Cleared {deleted} keys from namespace '{namespace}'")
    return deleted
