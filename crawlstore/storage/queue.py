"""
Durable FIFO work queue of serialized crawl requests.

Requests are pushed at the head of one store list and popped from its
tail, so the oldest pending request is always the next one returned,
across any number of producers and consumers.
"""

import logging

from ..core.exceptions import QueueEmptyError
from ..core.scope import CancellationScope
from ..store.client import StoreClient
from .namespace import KeyNamespace

logger = logging.getLogger(__name__)


class WorkQueue:
    def __init__(self, client: StoreClient, namespace: KeyNamespace, scope: CancellationScope):
        self.client = client
        self.namespace = namespace
        self.scope = scope

    async def add_request(self, payload: bytes) -> None:
        """Append a serialized request. Store errors propagate unchanged."""
        await self.scope.run(self.client.lpush(self.namespace.queue_key(), payload))

    async def get_request(self) -> bytes:
        """
        Take the oldest pending request.

        Raises:
            QueueEmptyError: If no request is pending
        """
        key = self.namespace.queue_key()
        payload = await self.scope.run(self.client.rpop(key))
        if payload is None:
            raise QueueEmptyError(key)
        if isinstance(payload, str):
            return payload.encode("utf-8")
        return bytes(payload)

    async def queue_size(self) -> int:
        return int(await self.scope.run(self.client.llen(self.namespace.queue_key())))
