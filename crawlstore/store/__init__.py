"""
Store clients for the crawl state storage.

Provides the ``StoreClient`` capability, a Redis-backed implementation
and an in-process implementation for local development.
"""

from ..config.settings import StorageSettings
from .client import StoreClient
from .memory_client import MemoryStoreClient
from .redis_client import create_redis_client, parse_redis_url

__all__ = [
    "StoreClient",
    "MemoryStoreClient",
    "create_redis_client",
    "parse_redis_url",
    # Factory functions
    "create_store_client",
]


def create_store_client(settings: StorageSettings) -> StoreClient:
    """
    Factory function to create the store client selected by settings.

    Args:
        settings: StorageSettings instance

    Returns:
        Redis client, or MemoryStoreClient for the memory backend
    """
    if settings.backend == "memory":
        return MemoryStoreClient()
    return create_redis_client(settings)
