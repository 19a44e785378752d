"""
Cancellation scope shared by every remote call of a storage instance.

A scope carries an optional absolute deadline and can be cancelled
explicitly. Calls routed through ``CancellationScope.run`` are aborted
as soon as either happens.
"""

import asyncio
import logging
import threading
import time
from typing import Awaitable, List, Optional, Tuple, TypeVar

from .exceptions import StorageCancelledError, StorageTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _resolve(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


class CancellationScope:
    """Deadline and cancellation signal for in-flight store commands."""

    def __init__(self, deadline: Optional[float] = None):
        # Deadline is a time.monotonic() timestamp
        self.deadline = deadline
        self._cancelled = False
        # One (loop, future) per in-flight call; calls may run on several loops and threads
        self._mutex = threading.Lock()
        self._waiters: List[Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]] = []

    @classmethod
    def background(cls) -> "CancellationScope":
        """Unbounded scope: never expires and is only cancelled explicitly."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationScope":
        return cls(deadline=time.monotonic() + seconds)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None for an unbounded scope."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self) -> None:
        """Cancel the scope, aborting in-flight and future calls."""
        with self._mutex:
            if self._cancelled:
                return
            self._cancelled = True
            waiters, self._waiters = self._waiters, []
        for loop, future in waiters:
            try:
                loop.call_soon_threadsafe(_resolve, future)
            except RuntimeError:
                # Loop already closed; its call is gone
                continue
        logger.debug("Cancellation scope cancelled")

    def _check(self) -> None:
        if self._cancelled:
            raise StorageCancelledError("storage scope cancelled")
        if self.expired:
            raise StorageTimeoutError("storage scope deadline exceeded")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await a store command within this scope.

        Args:
            awaitable: The pending store command

        Returns:
            The command result

        Raises:
            StorageCancelledError: If the scope is or becomes cancelled
            StorageTimeoutError: If the scope deadline passes first
        """
        try:
            self._check()
        except StorageCancelledError:
            # Never started; close the coroutine to avoid "never awaited" warnings
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise

        loop = asyncio.get_running_loop()
        waiter: "asyncio.Future[None]" = loop.create_future()
        with self._mutex:
            if self._cancelled:
                waiter.set_result(None)
            else:
                self._waiters.append((loop, waiter))

        task = asyncio.ensure_future(awaitable)
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, timeout=self.remaining(), return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()
            with self._mutex:
                if (loop, waiter) in self._waiters:
                    self._waiters.remove((loop, waiter))

        if task in done:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        if self._cancelled:
            raise StorageCancelledError("storage scope cancelled during call")
        raise StorageTimeoutError("storage scope deadline exceeded during call")
