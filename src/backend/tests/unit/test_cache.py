"""
Unit tests for the Redis cache manager.

The Redis client is replaced with an AsyncMock; no server is needed.
"""

import json
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from core.cache import CacheManager


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def manager(client) -> CacheManager:
    cache = CacheManager(key_prefix="test:")
    cache._redis = client
    return cache


class TestDisconnected:

    @pytest.mark.asyncio
    async def test_everything_is_a_miss(self):
        cache = CacheManager(key_prefix="test:")

        assert cache.client is None
        assert await cache.get("workload:summary") is None
        assert await cache.set("workload:summary", [1]) is False
        assert await cache.delete("workload:summary") is False
        assert await cache.ping() is False


class TestConnected:

    @pytest.mark.asyncio
    async def test_set_with_ttl_uses_prefix(self, manager, client):
        assert await manager.set("workload:summary", [{"technicianId": 1}], ttl=30) is True

        client.setex.assert_awaited_once_with(
            "test:workload:summary", 30, json.dumps([{"technicianId": 1}])
        )

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, manager, client):
        await manager.set("key", {"a": 1})

        client.set.assert_awaited_once_with("test:key", '{"a": 1}')

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, manager, client):
        client.get.return_value = b'{"a": 1}'

        assert await manager.get("key") == {"a": 1}
        client.get.assert_awaited_once_with("test:key")

    @pytest.mark.asyncio
    async def test_corrupt_value_is_a_miss(self, manager, client):
        client.get.return_value = b"{not json"

        assert await manager.get("key") is None

    @pytest.mark.asyncio
    async def test_redis_errors_are_misses(self, manager, client):
        client.get.side_effect = redis.ConnectionError("down")
        client.delete.side_effect = redis.ConnectionError("down")
        client.ping.side_effect = redis.ConnectionError("down")

        assert await manager.get("key") is None
        assert await manager.delete("key") is False
        assert await manager.ping() is False

    @pytest.mark.asyncio
    async def test_ping(self, manager, client):
        client.ping.return_value = True

        assert await manager.ping() is True
