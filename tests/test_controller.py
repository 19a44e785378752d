"""Tests for storage initialization, reset and health reporting."""

import asyncio

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from crawlstore.config.settings import load_settings
from crawlstore.core.exceptions import (
    StorageCancelledError,
    StorageConfigurationError,
    StorageConnectionError,
)
from crawlstore.core.scope import CancellationScope
from crawlstore.storage import RedisStorage
from crawlstore.store.memory_client import MemoryStoreClient
from tests.conftest import FailingStoreClient, SlowStoreClient


def test_init_requires_client():
    """Missing client fails before anything else is attempted."""
    storage = RedisStorage()
    with pytest.raises(StorageConfigurationError):
        asyncio.run(storage.init())


def test_init_wraps_ping_failure():
    client = FailingStoreClient(fail_on={"ping"})
    storage = RedisStorage(client=client)

    with pytest.raises(StorageConnectionError) as exc_info:
        asyncio.run(storage.init())

    assert isinstance(exc_info.value.__cause__, RedisConnectionError)
    assert "redis connection error" in str(exc_info.value)
    assert client.calls == ["ping"]


def test_init_applies_defaults(memory_client):
    storage = RedisStorage(client=memory_client)
    asyncio.run(storage.init())

    assert storage.prefix == "colly"
    assert storage.scope is not None
    assert storage.scope.deadline is None
    assert storage.namespace.queue_key() == "colly:queue"


def test_operations_before_init_fail(memory_client):
    storage = RedisStorage(client=memory_client, prefix="test")
    with pytest.raises(StorageConfigurationError):
        asyncio.run(storage.visited(1))
    with pytest.raises(StorageConfigurationError):
        asyncio.run(storage.clear())


def test_clear_removes_prefix_state_only(memory_client):
    """Clearing one crawl leaves other prefixes in the same store untouched."""

    async def scenario():
        crawl_a = RedisStorage(client=memory_client, prefix="a")
        crawl_b = RedisStorage(client=memory_client, prefix="b")
        await crawl_a.init()
        await crawl_b.init()

        for storage in (crawl_a, crawl_b):
            await storage.visited(1)
            await storage.visited(2)
            await storage.set_cookies("example.com", "c=1")
            await storage.add_request(b"r1")

        deleted = await crawl_a.clear()

        assert deleted == 4
        assert await crawl_a.is_visited(1) is False
        assert await crawl_a.is_visited(2) is False
        assert await crawl_a.cookies("example.com") == ""
        assert await crawl_a.queue_size() == 0

        assert await crawl_b.is_visited(1) is True
        assert await crawl_b.cookies("example.com") == "c=1"
        assert await crawl_b.queue_size() == 1
        assert len(await memory_client.keys("b:*")) == 4

    asyncio.run(scenario())


def test_clear_does_not_match_other_prefixes_through_glob(memory_client):
    async def scenario():
        wild = RedisStorage(client=memory_client, prefix="crawl?")
        other = RedisStorage(client=memory_client, prefix="crawl1")
        await wild.init()
        await other.init()
        await wild.visited(1)
        await other.visited(1)

        await wild.clear()
        return await other.is_visited(1)

    assert asyncio.run(scenario()) is True


def test_clear_on_empty_store(memory_client):
    async def scenario():
        storage = RedisStorage(client=memory_client, prefix="test")
        await storage.init()
        return await storage.clear()

    assert asyncio.run(scenario()) == 0


def test_clear_surfaces_delete_failure():
    async def scenario():
        client = FailingStoreClient()
        storage = RedisStorage(client=client, prefix="test")
        await storage.init()
        await storage.visited(1)
        client.fail_on.add("delete")
        try:
            await storage.clear()
        finally:
            # Nothing was deleted and the lock was released
            assert await storage.is_visited(1) is True
            assert not storage.lock.write_locked

    with pytest.raises(RedisConnectionError):
        asyncio.run(scenario())


def test_clear_waits_for_cookie_readers(memory_client):
    async def scenario():
        storage = RedisStorage(client=memory_client, prefix="test")
        await storage.init()
        await storage.set_cookies("example.com", "c=1")

        await storage.lock.acquire_read()
        clearing = asyncio.ensure_future(storage.clear())
        await asyncio.sleep(0.01)
        assert not clearing.done()
        assert await memory_client.exists("test:cookie:example.com") == 1

        await storage.lock.release_read()
        return await clearing

    assert asyncio.run(scenario()) == 1


def test_clear_blocks_cookie_writers_until_done():
    """A jar written while clear() runs is stored after the clear, not wiped by it."""
    client = SlowStoreClient(slow_on={"keys"}, delay=0.05)

    async def scenario():
        storage = RedisStorage(client=client, prefix="test")
        await storage.init()
        await storage.set_cookies("example.com", "old=1")

        clearing = asyncio.ensure_future(storage.clear())
        await asyncio.sleep(0.01)
        assert storage.lock.write_locked

        writer = asyncio.ensure_future(storage.set_cookies("example.com", "new=1"))
        await asyncio.sleep(0.01)
        assert not writer.done()

        deleted = await clearing
        await writer
        return deleted, await storage.cookies("example.com")

    assert asyncio.run(scenario()) == (1, "new=1")


def test_cancelled_scope_aborts_operations(memory_client):
    async def scenario():
        scope = CancellationScope.background()
        storage = RedisStorage(client=memory_client, prefix="test", scope=scope)
        await storage.init()
        scope.cancel()
        await storage.is_visited(1)

    with pytest.raises(StorageCancelledError):
        asyncio.run(scenario())


def test_expired_scope_fails_init_as_connection_error(memory_client):
    storage = RedisStorage(client=memory_client, scope=CancellationScope.with_timeout(0))
    with pytest.raises(StorageConnectionError):
        asyncio.run(storage.init())


def test_health_check_reports_state(memory_client):
    async def scenario():
        storage = RedisStorage(client=memory_client, prefix="test")
        not_ready = await storage.health_check()
        await storage.init()
        await storage.add_request(b"r1")
        return not_ready, await storage.health_check()

    not_ready, health = asyncio.run(scenario())

    assert not_ready.status == "unhealthy"
    assert health.status == "healthy"
    assert health.ping_successful is True
    assert health.queue_size == 1
    assert health.counters["requests_added"] == 1


def test_health_check_does_not_raise_on_store_failure():
    async def scenario():
        client = FailingStoreClient()
        storage = RedisStorage(client=client, prefix="test")
        await storage.init()
        client.fail_on.add("ping")
        return await storage.health_check()

    health = asyncio.run(scenario())
    assert health.status == "unhealthy"
    assert "ping" in health.error


def test_from_settings_builds_owned_client():
    settings = load_settings(environment="dev", backend="memory", prefix="news", visited_ttl_seconds=30)

    async def scenario():
        async with RedisStorage.from_settings(settings) as storage:
            await storage.visited(1)
            assert await storage.is_visited(1)
        return storage

    storage = asyncio.run(scenario())

    assert isinstance(storage.client, MemoryStoreClient)
    assert storage.client.closed is True
    assert storage.prefix == "news"
    assert storage.expiration.total_seconds() == 30


def test_close_leaves_supplied_client_open(memory_client):
    async def scenario():
        async with RedisStorage(client=memory_client, prefix="test"):
            pass

    asyncio.run(scenario())
    assert memory_client.closed is False


def test_stats_count_operations(memory_client):
    async def scenario():
        storage = RedisStorage(client=memory_client, prefix="test")
        await storage.init()
        await storage.visited(1)
        await storage.is_visited(1)
        await storage.is_visited(2)
        await storage.set_cookies("example.com", "c=1")
        await storage.cookies("example.com")
        await storage.clear()
        return storage.get_stats()

    stats = asyncio.run(scenario())
    assert stats.visited_marked == 1
    assert stats.visited_checks == 2
    assert stats.visited_hits == 1
    assert stats.cookies_written == 1
    assert stats.cookies_read == 1
    assert stats.clears == 1
    assert stats.keys_cleared == 2
