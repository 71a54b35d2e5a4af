"""Tests for the lazily-created Redis pool (no server needed)."""

import pytest

from rescuemesh.infrastructure import redis_client


@pytest.fixture(autouse=True)
def fresh_pool(monkeypatch):
    monkeypatch.setattr(redis_client, "_pool", None)
    yield


class TestRedisPool:
    def test_pool_is_created_once(self):
        pool = redis_client.get_pool("redis://cache.test:6380/2")
        assert redis_client.get_pool() is pool
        assert pool.connection_kwargs["host"] == "cache.test"
        assert pool.connection_kwargs["port"] == 6380
        assert pool.connection_kwargs["db"] == 2

    @pytest.mark.asyncio
    async def test_clients_share_the_pool(self):
        first = await redis_client.get_redis("redis://cache.test:6379/0")
        second = await redis_client.get_redis()
        assert first.connection_pool is second.connection_pool

    @pytest.mark.asyncio
    async def test_close_resets_the_pool(self):
        pool = redis_client.get_pool("redis://cache.test:6379/0")
        await redis_client.close_redis()
        assert redis_client._pool is None
        assert redis_client.get_pool("redis://cache.test:6379/0") is not pool

    @pytest.mark.asyncio
    async def test_close_without_pool_is_harmless(self):
        await redis_client.close_redis()
        assert redis_client._pool is None
