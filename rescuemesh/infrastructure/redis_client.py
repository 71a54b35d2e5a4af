"""
Redis connection for the route cache.

The pool is created on first use, so importing this module never touches
Redis; the app only calls in here when ``ROUTE_CACHE_ENABLED`` is set.
"""

from __future__ import annotations

import logging
from typing import Optional

import redis.asyncio as aioredis

from rescuemesh.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[aioredis.ConnectionPool] = None


def get_pool(url: Optional[str] = None) -> aioredis.ConnectionPool:
    """Shared pool for *url* (default ``settings.redis_url``)."""
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            url or settings.redis_url, decode_responses=True
        )
        logger.info("Redis pool created for route cache")
    return _pool


async def get_redis(url: Optional[str] = None) -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=get_pool(url))


async def close_redis() -> None:
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
