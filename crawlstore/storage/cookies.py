"""
Cookie store: one opaque cookie jar per origin host.

The crawler-facing cookie interface has no error channel, so failures are
logged and the call degrades to a no-op (writes) or an empty jar (reads).
"""

import logging
from typing import Optional

from redis.exceptions import RedisError

from ..core.exceptions import StorageError
from ..core.scope import CancellationScope
from ..store.client import StoreClient
from ..utils.url import origin_host
from .locks import ReadWriteLock
from .namespace import KeyNamespace

logger = logging.getLogger(__name__)


class CookieStore:
    """
    Persists serialized cookie jars without expiry.

    A single read/write lock guards every origin. Writers take it
    exclusively so read-merge-write sequences built on ``cookies`` and
    ``set_cookies`` by the caller do not lose each other's updates.
    """

    def __init__(
        self,
        client: StoreClient,
        namespace: KeyNamespace,
        scope: CancellationScope,
        lock: Optional[ReadWriteLock] = None,
    ):
        self.client = client
        self.namespace = namespace
        self.scope = scope
        self.lock = lock or ReadWriteLock()
        self.errors = 0

    async def set_cookies(self, origin: str, cookies: str) -> bool:
        """
        Store the cookie jar for an origin.

        Args:
            origin: URL or host the cookies belong to
            cookies: Serialized cookie jar

        Returns:
            True if the jar was written, False if the failure was logged
        """
        try:
            host = origin_host(origin)
        except ValueError as e:
            self.errors += 1
            logger.error(f"set_cookies() failed for {origin!r}: {e}")
            return False
        key = self.namespace.cookie_key(host)

        async with self.lock.write():
            try:
                await self.scope.run(self.client.set(key, cookies))
            except (RedisError, StorageError) as e:
                self.errors += 1
                logger.error(f"set_cookies() failed for {host}: {e}")
                return False
        return True

    async def cookies(self, origin: str) -> str:
        """
        Load the cookie jar for an origin.

        Returns:
            The stored jar, or an empty string when none is stored or the
            read failed
        """
        try:
            host = origin_host(origin)
        except ValueError as e:
            self.errors += 1
            logger.error(f"cookies() failed for {origin!r}: {e}")
            return ""
        key = self.namespace.cookie_key(host)

        try:
            async with self.lock.read():
                value = await self.scope.run(self.client.get(key))
        except (RedisError, StorageError) as e:
            self.errors += 1
            logger.error(f"cookies() failed for {host}: {e}")
            return ""

        if value is None:
            return ""
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8")
        return str(value)
