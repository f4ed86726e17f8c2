"""Redis caching utilities for FreightLink.

Caches read-mostly lookups (public tracking by code).  Keys are always
prefixed with the caller's tenant, taken from the `tenant` keyword
argument of the cached function, so two organizations never share an
entry.  Any Redis failure falls back to the uncached call.
"""

import functools
import hashlib
import json
import logging
from datetime import date, datetime
from typing import Callable, Optional

import redis.asyncio as redis

from app.config import settings
from app.tenancy import tenant_code

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create Redis client connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


async def close_redis():
    """Close Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def cache_key(**kwargs) -> str:
    """Deterministic hash of simple keyword arguments."""
    if not kwargs:
        return "default"
    key_data = json.dumps(kwargs, sort_keys=True)
    return hashlib.md5(key_data.encode()).hexdigest()


def tenant_prefix(tenant: str | None) -> str:
    return f"t:{tenant_code(tenant)}:" if tenant else ""


def cached(
    ttl: int | None = None,
    prefix: str = "cache",
    key_builder: Optional[Callable] = None,
):
    """Decorator to cache a JSON-serializable async result in Redis.

    Args:
        ttl: Time-to-live in seconds (default: settings.tracking_cache_ttl)
        prefix: Cache key prefix for namespacing
        key_builder: Builds the key suffix from the call's kwargs

    Example:
        @cached(prefix="tracking", key_builder=lambda **kw: kw["code"])
        async def lookup(db, *, tenant, code): ...

    Cache keys: t:{tenant}:{prefix}:{key}
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if not settings.cache_enabled:
                return await func(*args, **kwargs)

            if key_builder:
                suffix = key_builder(**kwargs)
            else:
                # Positional args are injected dependencies (sessions); skip them
                simple = {}
                for k, v in kwargs.items():
                    if isinstance(v, (int, str, bool, float, type(None))):
                        simple[k] = v
                    elif isinstance(v, (date, datetime)):
                        simple[k] = v.isoformat()
                suffix = f"{func.__name__}:{cache_key(**simple)}"
            key = f"{tenant_prefix(kwargs.get('tenant'))}{prefix}:{suffix}"

            try:
                redis_client = await get_redis()
                cached_value = await redis_client.get(key)
                if cached_value:
                    logger.debug("Cache HIT: %s", key)
                    return json.loads(cached_value)
                logger.debug("Cache MISS: %s", key)
            except redis.RedisError as e:
                logger.warning("Redis error (falling back to uncached): %s", e)
                return await func(*args, **kwargs)

            result = await func(*args, **kwargs)
            serialized = result.model_dump(mode="json") if hasattr(result, "model_dump") else result
            try:
                await redis_client.setex(
                    key,
                    ttl or settings.tracking_cache_ttl,
                    json.dumps(serialized, default=str),
                )
            except redis.RedisError as e:
                logger.warning("Failed to store cache key %s: %s", key, e)
            return result

        return wrapper

    return decorator


async def invalidate_cache(pattern: str, tenant: str | None = None) -> int:
    """Delete keys matching `pattern` within `tenant`'s key space.

    Example:
        await invalidate_cache("tracking:TRK-1", tenant="skyrak")
    """
    scoped_pattern = f"{tenant_prefix(tenant)}{pattern}"
    try:
        redis_client = await get_redis()
        keys = [key async for key in redis_client.scan_iter(match=scoped_pattern)]
        if keys:
            await redis_client.delete(*keys)
            logger.info("Invalidated %d cache keys matching %s", len(keys), scoped_pattern)
        return len(keys)
    except redis.RedisError as e:
        logger.warning("Failed to invalidate cache: %s", e)
        return 0


async def invalidate_tracking(organization: str, code: str) -> None:
    """Drop cached tracking lookups for `code`.

    The owning tenant and the super tenant can both hold an entry for it.
    """
    if not settings.cache_enabled:
        return
    for tenant in {tenant_code(organization), settings.super_tenant}:
        await invalidate_cache(f"tracking:{code}", tenant=tenant)
