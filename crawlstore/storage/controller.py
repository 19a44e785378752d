"""
Redis storage backend for the crawling engine.

``RedisStorage`` owns the key prefix, the visited retention and the
cancellation scope, checks the store at startup and exposes the visited
set, cookie store and work queue behind one object.
"""

import logging
from datetime import timedelta
from typing import Any, List, Optional

from redis.exceptions import RedisError

from ..config.settings import StorageSettings
from ..core.exceptions import (
    QueueEmptyError,
    StorageCancelledError,
    StorageConfigurationError,
    StorageConnectionError,
)
from ..core.scope import CancellationScope
from ..core.types import DEFAULT_PREFIX, StorageHealth, StorageStats
from ..store import create_store_client
from ..store.client import StoreClient
from ..utils.logging import get_logger, log_storage_event
from .cookies import CookieStore
from .locks import ReadWriteLock
from .namespace import KeyNamespace
from .queue import WorkQueue
from .visited import VisitedSet

logger = logging.getLogger(__name__)


class RedisStorage:
    """
    Crawl state storage backed by a remote key-value store.

    Call ``init()`` once before any other operation. Several workers may
    share one store; each prefix is an independent crawl state.
    """

    def __init__(
        self,
        client: Optional[StoreClient] = None,
        prefix: str = "",
        expiration: Optional[timedelta] = None,
        scope: Optional[CancellationScope] = None,
    ):
        self.client = client
        self.prefix = prefix
        self.expiration = expiration
        self.scope = scope

        # Shared by cookie operations and clear()
        self.lock = ReadWriteLock()

        self.namespace: Optional[KeyNamespace] = None
        self._visited: Optional[VisitedSet] = None
        self._cookies: Optional[CookieStore] = None
        self._queue: Optional[WorkQueue] = None
        self._owns_client = False

        self.stats = StorageStats()
        self._events = get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: StorageSettings) -> "RedisStorage":
        """
        Build a storage and its store client from settings.

        The storage owns the client and closes it in ``close()``.
        """
        config = settings.to_storage_config()
        scope = (
            CancellationScope.with_timeout(config.timeout_seconds)
            if config.timeout_seconds
            else CancellationScope.background()
        )
        expiration = timedelta(seconds=config.visited_ttl_seconds) if config.visited_ttl_seconds else None

        storage = cls(
            client=create_store_client(settings),
            prefix=config.prefix,
            expiration=expiration,
            scope=scope,
        )
        storage._owns_client = True
        return storage

    async def init(self) -> None:
        """
        Apply defaults and check that the store is reachable.

        Raises:
            StorageConfigurationError: If no store client was supplied
            StorageConnectionError: If the store does not answer PING
        """
        if not self.prefix:
            self.prefix = DEFAULT_PREFIX
        if self.scope is None:
            self.scope = CancellationScope.background()
        if self.client is None:
            raise StorageConfigurationError("redis client not found")

        try:
            await self.scope.run(self.client.ping())
        except (RedisError, OSError, StorageCancelledError) as e:
            log_storage_event(self._events, "storage_init_failed", self.prefix, error=str(e))
            raise StorageConnectionError(f"redis connection error: {e}") from e

        self.namespace = KeyNamespace(self.prefix)
        self._visited = VisitedSet(self.client, self.namespace, self.scope, self.expiration)
        self._cookies = CookieStore(self.client, self.namespace, self.scope, lock=self.lock)
        self._queue = WorkQueue(self.client, self.namespace, self.scope)

        log_storage_event(
            self._events,
            "storage_initialized",
            self.prefix,
            expiration_seconds=self.expiration.total_seconds() if self.expiration else 0,
        )

    def _require_init(self) -> KeyNamespace:
        if self.namespace is None:
            raise StorageConfigurationError("storage not initialized, call init() first")
        return self.namespace

    async def clear(self) -> int:
        """
        Remove every visited marker, cookie jar and the queue of this prefix.

        Keys of other prefixes are left untouched. Visited and queue writes
        racing with a clear may survive or be removed.

        Returns:
            Number of keys deleted
        """
        namespace = self._require_init()
        assert self.client is not None and self.scope is not None

        async with self.lock.write():
            keys: List[Any] = list(await self.scope.run(self.client.keys(namespace.cookie_pattern())))
            keys.extend(await self.scope.run(self.client.keys(namespace.visited_pattern())))
            keys.append(namespace.queue_key())
            deleted = int(await self.scope.run(self.client.delete(*keys)))

        self.stats.clears += 1
        self.stats.keys_cleared += deleted
        log_storage_event(self._events, "storage_cleared", self.prefix, keys_deleted=deleted)
        return deleted

    async def visited(self, request_id: int) -> None:
        """
        Mark a request as visited for the configured retention.

        Raises:
            ValueError: If ``request_id`` is negative
        """
        self._require_init()
        await self._visited.visited(request_id)  # type: ignore[union-attr]
        self.stats.visited_marked += 1

    async def is_visited(self, request_id: int) -> bool:
        """Check whether a request was visited and its marker has not expired"""
        self._require_init()
        result = await self._visited.is_visited(request_id)  # type: ignore[union-attr]
        self.stats.visited_checks += 1
        if result:
            self.stats.visited_hits += 1
        return result

    async def set_cookies(self, origin: str, cookies: str) -> None:
        """
        Store the cookie jar of an origin host.

        Failures are logged and counted in ``get_stats().cookie_errors``;
        nothing is raised.
        """
        self._require_init()
        if await self._cookies.set_cookies(origin, cookies):  # type: ignore[union-attr]
            self.stats.cookies_written += 1

    async def cookies(self, origin: str) -> str:
        """Load the cookie jar of an origin host, or "" if none is available"""
        self._require_init()
        result = await self._cookies.cookies(origin)  # type: ignore[union-attr]
        self.stats.cookies_read += 1
        return result

    async def add_request(self, payload: bytes) -> None:
        """Enqueue a serialized request behind every pending one"""
        self._require_init()
        await self._queue.add_request(payload)  # type: ignore[union-attr]
        self.stats.requests_added += 1

    async def get_request(self) -> bytes:
        """
        Take the oldest pending request from the work queue.

        Raises:
            QueueEmptyError: If no request is pending
        """
        self._require_init()
        try:
            payload = await self._queue.get_request()  # type: ignore[union-attr]
        except QueueEmptyError:
            self.stats.queue_empty_hits += 1
            raise
        self.stats.requests_taken += 1
        return payload

    async def queue_size(self) -> int:
        """Get the number of pending requests"""
        self._require_init()
        return await self._queue.queue_size()  # type: ignore[union-attr]

    def get_stats(self) -> StorageStats:
        """Get storage statistics"""
        stats = self.stats.model_copy()
        if self._cookies is not None:
            stats.cookie_errors = self._cookies.errors
        return stats

    async def health_check(self) -> StorageHealth:
        """
        Perform a health check on store connectivity.

        Never raises for store failures; they are reported in the result.
        """
        health = StorageHealth(prefix=self.prefix or DEFAULT_PREFIX)
        if self.client is None or self.scope is None:
            health.status = "unhealthy"
            health.error = "storage not initialized"
            return health

        try:
            health.ping_successful = bool(await self.scope.run(self.client.ping()))
            if self.namespace is not None:
                health.queue_size = await self.queue_size()
        except (RedisError, OSError, StorageCancelledError) as e:
            logger.error(f"Storage health check failed: {e}")
            health.status = "unhealthy"
            health.error = str(e)
            return health

        if not health.ping_successful:
            health.status = "degraded"
        health.counters = self.get_stats().model_dump()
        return health

    async def close(self) -> None:
        """Close the store client if this storage created it"""
        if self._owns_client and self.client is not None:
            close = getattr(self.client, "aclose", None)
            if close is not None:
                await close()
            logger.info("Storage client closed")

    async def __aenter__(self) -> "RedisStorage":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
