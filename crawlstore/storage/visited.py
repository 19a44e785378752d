"""
Visited set: remembers which requests were already processed.

A request is visited while its marker key exists. Markers are written with
the configured retention, so the store's own expiry makes requests eligible
for crawling again without a separate sweeper.
"""

import logging
from datetime import timedelta
from typing import Optional

from ..core.scope import CancellationScope
from ..store.client import StoreClient
from .namespace import KeyNamespace

logger = logging.getLogger(__name__)

VISITED_MARKER = "1"


class VisitedSet:
    def __init__(
        self,
        client: StoreClient,
        namespace: KeyNamespace,
        scope: CancellationScope,
        expiration: Optional[timedelta] = None,
    ):
        self.client = client
        self.namespace = namespace
        self.scope = scope
        self.expiration = expiration

    def _expiry_millis(self) -> Optional[int]:
        if not self.expiration or self.expiration <= timedelta(0):
            return None
        # Sub-millisecond retentions round up rather than to an invalid 0
        return max(1, int(self.expiration.total_seconds() * 1000))

    async def visited(self, request_id: int) -> None:
        """Mark a request as visited. Store errors propagate unchanged."""
        key = self.namespace.visited_key(request_id)
        await self.scope.run(self.client.set(key, VISITED_MARKER, px=self._expiry_millis()))

    async def is_visited(self, request_id: int) -> bool:
        """Return True while the marker for ``request_id`` exists."""
        key = self.namespace.visited_key(request_id)
        value = await self.scope.run(self.client.get(key))
        return value is not None
