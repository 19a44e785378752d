"""
In-process store client for local development and tests.

Implements the ``StoreClient`` command subset with Redis semantics
(bytes responses, millisecond expiry, glob key patterns, lists that vanish
when emptied) without requiring a Redis server.
"""

import logging
import re
import time
from collections import deque
from datetime import timedelta
from typing import Any, Callable, Deque, Dict, List, Optional, Pattern, Union

from redis.exceptions import DataError, ResponseError

from .client import EncodableT, ExpiryT, KeyT

logger = logging.getLogger(__name__)

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


def compile_glob(pattern: str) -> Pattern[str]:
    """Translate a Redis glob (``*``, ``?``, ``[...]``, ``\\`` escapes) to a regex."""
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        i += 1
        if c == "\\" and i < n:
            out.append(re.escape(pattern[i]))
            i += 1
        elif c == "*":
            out.append(".*")
        elif c == "?":
            out.append(".")
        elif c == "[":
            j = pattern.find("]", i + 1 if i < n and pattern[i] == "^" else i)
            if j == -1:
                out.append(re.escape(c))
                continue
            body = pattern[i:j]
            negate = body.startswith("^")
            if negate:
                body = body[1:]
            body = body.replace("\\", "\\\\")
            out.append(f"[{'^' if negate else ''}{body}]")
            i = j + 1
        else:
            out.append(re.escape(c))
    return re.compile("".join(out), re.DOTALL)


def _key(name: KeyT) -> str:
    return name.decode("utf-8") if isinstance(name, bytes) else str(name)


def _encode(value: EncodableT) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise DataError(f"Invalid input of type: {type(value).__name__!r}")
    return str(value).encode("utf-8")


def _to_millis(value: ExpiryT, unit_ms: int) -> int:
    if isinstance(value, timedelta):
        return int(value.total_seconds() * 1000)
    return int(value) * unit_ms


class MemoryStoreClient:
    """
    Dictionary-backed store client.

    Every command runs without awaiting anything, so each one is atomic
    with respect to other coroutines on the same event loop.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._data: Dict[str, Union[bytes, Deque[bytes]]] = {}
        # Absolute expiry timestamps in clock seconds
        self._expires_at: Dict[str, float] = {}
        self.closed = False

        logger.debug("Memory store client initialized")

    def _purge(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    def _lookup(self, key: str) -> Optional[Union[bytes, Deque[bytes]]]:
        self._purge(key)
        return self._data.get(key)

    def _list(self, key: str) -> Optional[Deque[bytes]]:
        value = self._lookup(key)
        if value is None:
            return None
        if not isinstance(value, deque):
            raise ResponseError(WRONGTYPE)
        return value

    async def ping(self, **kwargs: Any) -> bool:
        return True

    async def keys(self, pattern: KeyT = "*", **kwargs: Any) -> List[bytes]:
        glob = compile_glob(_key(pattern))
        for key in list(self._data):
            self._purge(key)
        return [key.encode("utf-8") for key in self._data if glob.fullmatch(key)]

    async def get(self, name: KeyT) -> Optional[bytes]:
        value = self._lookup(_key(name))
        if isinstance(value, deque):
            raise ResponseError(WRONGTYPE)
        return value

    async def set(
        self,
        name: KeyT,
        value: EncodableT,
        ex: Optional[ExpiryT] = None,
        px: Optional[ExpiryT] = None,
    ) -> bool:
        key = _key(name)
        ttl_ms: Optional[int] = None
        if ex is not None:
            ttl_ms = _to_millis(ex, 1000)
        elif px is not None:
            ttl_ms = _to_millis(px, 1)
        if ttl_ms is not None and ttl_ms <= 0:
            raise ResponseError("invalid expire time in 'set' command")

        self._data[key] = _encode(value)
        if ttl_ms is None:
            self._expires_at.pop(key, None)
        else:
            self._expires_at[key] = self._clock() + ttl_ms / 1000.0
        return True

    async def delete(self, *names: KeyT) -> int:
        removed = 0
        for name in names:
            key = _key(name)
            if self._lookup(key) is not None:
                del self._data[key]
                self._expires_at.pop(key, None)
                removed += 1
        return removed

    async def exists(self, *names: KeyT) -> int:
        return sum(1 for name in names if self._lookup(_key(name)) is not None)

    async def expire(self, name: KeyT, time: ExpiryT) -> bool:
        key = _key(name)
        if self._lookup(key) is None:
            return False
        ttl_ms = _to_millis(time, 1000)
        if ttl_ms <= 0:
            await self.delete(key)
        else:
            self._expires_at[key] = self._clock() + ttl_ms / 1000.0
        return True

    async def lpush(self, name: KeyT, *values: EncodableT) -> int:
        if not values:
            raise ResponseError("wrong number of arguments for 'lpush' command")
        key = _key(name)
        items = self._list(key)
        if items is None:
            items = deque()
            self._data[key] = items
        for value in values:
            items.appendleft(_encode(value))
        return len(items)

    async def rpop(self, name: KeyT) -> Optional[bytes]:
        key = _key(name)
        items = self._list(key)
        if not items:
            return None
        value = items.pop()
        if not items:
            # Redis removes a list key once its last element is popped
            del self._data[key]
            self._expires_at.pop(key, None)
        return value

    async def llen(self, name: KeyT) -> int:
        items = self._list(_key(name))
        return len(items) if items is not None else 0

    async def aclose(self) -> None:
        self.closed = True
