"""
Store client capability.

The storage layer only talks to the remote store through this command
subset, so any ``redis.asyncio`` client (single node, sentinel, cluster)
or the in-process ``MemoryStoreClient`` can back it.
"""

from datetime import timedelta
from typing import Any, List, Optional, Protocol, Union, runtime_checkable

KeyT = Union[bytes, str]
EncodableT = Union[bytes, str, int, float]
ExpiryT = Union[int, timedelta]


@runtime_checkable
class StoreClient(Protocol):
    """Commands required from the remote key-value store."""

    async def ping(self, **kwargs: Any) -> Any: ...

    async def keys(self, pattern: KeyT = "*", **kwargs: Any) -> List[Any]: ...

    async def get(self, name: KeyT) -> Optional[Any]: ...

    async def set(
        self,
        name: KeyT,
        value: EncodableT,
        ex: Optional[ExpiryT] = None,
        px: Optional[ExpiryT] = None,
    ) -> Any: ...

    async def delete(self, *names: KeyT) -> int: ...

    async def exists(self, *names: KeyT) -> int: ...

    async def expire(self, name: KeyT, time: ExpiryT) -> bool: ...

    async def lpush(self, name: KeyT, *values: EncodableT) -> int: ...

    async def rpop(self, name: KeyT) -> Optional[Any]: ...

    async def llen(self, name: KeyT) -> int: ...
