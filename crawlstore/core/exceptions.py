"""
Custom exceptions for the crawl state storage.
"""


class StorageError(Exception):
    """Base exception for all storage-related errors."""

    pass


class StorageConfigurationError(StorageError):
    """Raised when the storage is misconfigured or used before init()."""

    pass


class StorageConnectionError(StorageError):
    """Raised when the store cannot be reached."""

    pass


class StorageCancelledError(StorageError):
    """Raised when a call is aborted because its scope was cancelled."""

    pass


class StorageTimeoutError(StorageCancelledError):
    """Raised when a call is aborted because its scope deadline passed."""

    pass


class QueueEmptyError(StorageError):
    """Raised when a request is taken from an empty work queue."""

    def __init__(self, queue_key: str):
        super().__init__(f"queue {queue_key} is empty")
        self.queue_key = queue_key
