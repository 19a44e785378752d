"""Shared fixtures for crawl state storage tests."""

import asyncio
import os
import threading

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from crawlstore.config.settings import reset_settings_cache
from crawlstore.store.memory_client import MemoryStoreClient


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStoreClient(MemoryStoreClient):
    """Memory client whose selected commands fail like an unreachable Redis."""

    def __init__(self, fail_on=(), **kwargs):
        super().__init__(**kwargs)
        self.fail_on = set(fail_on)
        self.calls = []

    def _maybe_fail(self, command: str) -> None:
        self.calls.append(command)
        if command in self.fail_on:
            raise RedisConnectionError(f"Error connecting to redis during {command}")

    async def ping(self, **kwargs):
        self._maybe_fail("ping")
        return await super().ping(**kwargs)

    async def keys(self, pattern="*", **kwargs):
        self._maybe_fail("keys")
        return await super().keys(pattern, **kwargs)

    async def get(self, name):
        self._maybe_fail("get")
        return await super().get(name)

    async def set(self, name, value, ex=None, px=None):
        self._maybe_fail("set")
        return await super().set(name, value, ex=ex, px=px)

    async def delete(self, *names):
        self._maybe_fail("delete")
        return await super().delete(*names)

    async def lpush(self, name, *values):
        self._maybe_fail("lpush")
        return await super().lpush(name, *values)

    async def rpop(self, name):
        self._maybe_fail("rpop")
        return await super().rpop(name)

    async def llen(self, name):
        self._maybe_fail("llen")
        return await super().llen(name)


class SlowStoreClient(MemoryStoreClient):
    """Memory client whose selected commands take a while and record overlap."""

    def __init__(self, slow_on=(), delay: float = 0.02, **kwargs):
        super().__init__(**kwargs)
        self.slow_on = set(slow_on)
        self.delay = delay
        self.active = {}
        self.max_active = {}
        self._mutex = threading.Lock()

    async def _slow(self, command: str) -> None:
        if command not in self.slow_on:
            return
        with self._mutex:
            self.active[command] = self.active.get(command, 0) + 1
            self.max_active[command] = max(self.max_active.get(command, 0), self.active[command])
        try:
            await asyncio.sleep(self.delay)
        finally:
            with self._mutex:
                self.active[command] -= 1

    async def keys(self, pattern="*", **kwargs):
        await self._slow("keys")
        return await super().keys(pattern, **kwargs)

    async def set(self, name, value, ex=None, px=None):
        await self._slow("set")
        return await super().set(name, value, ex=ex, px=px)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_client(clock):
    return MemoryStoreClient(clock=clock)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep host CRAWLSTORE_* variables out of settings tests."""
    for name in list(os.environ):
        if name.startswith("CRAWLSTORE_"):
            monkeypatch.delenv(name, raising=False)

    reset_settings_cache()
    yield
    reset_settings_cache()
