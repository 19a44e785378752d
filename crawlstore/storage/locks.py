"""
Read/write lock for coroutines.

Many readers may hold the lock together; a writer holds it alone.
Waiting writers block new readers so a steady stream of reads cannot
starve a write.

The lock state is guarded by a ``threading.Lock`` and every waiter parks
on a future of its own event loop, so one lock serializes coroutines
running on different loops and threads (for example callers that each
wrap an operation in ``asyncio.run``).
"""

import asyncio
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Tuple

_Waiter = Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]


def _resolve(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


class ReadWriteLock:
    def __init__(self):
        self._mutex = threading.Lock()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._waiters: List[_Waiter] = []

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer

    def _park(self) -> "asyncio.Future[None]":
        # Caller holds self._mutex
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[None]" = loop.create_future()
        self._waiters.append((loop, future))
        return future

    def _wake_all(self) -> None:
        # Caller holds self._mutex; woken waiters re-check the state themselves
        waiters, self._waiters = self._waiters, []
        for loop, future in waiters:
            try:
                loop.call_soon_threadsafe(_resolve, future)
            except RuntimeError:
                # Loop already closed; nothing is left waiting on it
                continue

    async def _wait_until(self, ready: Callable[[], bool], enter: Callable[[], None]) -> None:
        while True:
            with self._mutex:
                if ready():
                    enter()
                    return
                future = self._park()
            await future

    async def acquire_read(self) -> None:
        def enter() -> None:
            self._readers += 1

        await self._wait_until(lambda: not self._writer and self._writers_waiting == 0, enter)

    async def release_read(self) -> None:
        with self._mutex:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a held read lock")
            self._readers -= 1
            if self._readers == 0:
                self._wake_all()

    async def acquire_write(self) -> None:
        def enter() -> None:
            self._writers_waiting -= 1
            self._writer = True

        with self._mutex:
            self._writers_waiting += 1
        try:
            await self._wait_until(lambda: not self._writer and self._readers == 0, enter)
        except BaseException:
            with self._mutex:
                self._writers_waiting -= 1
                # A cancelled writer may have been the only thing holding readers back
                self._wake_all()
            raise

    async def release_write(self) -> None:
        with self._mutex:
            if not self._writer:
                raise RuntimeError("release_write() called without a held write lock")
            self._writer = False
            self._wake_all()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        await self.acquire_read()
        try:
            yield
        finally:
            await self.release_read()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        await self.acquire_write()
        try:
            yield
        finally:
            await self.release_write()
