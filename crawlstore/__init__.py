"""
Shared crawl state storage backed by Redis.

Keeps visited requests, per-origin cookies and the pending request queue
in a remote key-value store so crawls survive restarts and can be split
across workers.
"""

from .core.exceptions import (
    QueueEmptyError,
    StorageCancelledError,
    StorageConfigurationError,
    StorageConnectionError,
    StorageError,
    StorageTimeoutError,
)
from .core.scope import CancellationScope
from .storage import RedisStorage
from .store import MemoryStoreClient, StoreClient

__version__ = "0.1.0"
__all__ = [
    "CancellationScope",
    "MemoryStoreClient",
    "QueueEmptyError",
    "RedisStorage",
    "StorageCancelledError",
    "StorageConfigurationError",
    "StorageConnectionError",
    "StorageError",
    "StorageTimeoutError",
    "StoreClient",
]
