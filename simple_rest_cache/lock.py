"""
First-come-first-served async exclusive lock.

Waiters are kept in an explicit queue and the lock is handed over to the
oldest waiter on release, so ownership always follows arrival order.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque


class ExclusiveLock:
    """Async mutex with strict FIFO hand-off between waiters."""

    def __init__(self) -> None:
        self._locked = False
        self._waiters: deque[asyncio.Future[None]] = deque()

    def locked(self) -> bool:
        return self._locked

    @property
    def waiting(self) -> int:
        """Number of callers queued for the lock."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> bool:
        if not self._locked and not self._waiters:
            self._locked = True
            return True

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Ownership was already handed to us, pass it on.
                self.release()
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(waiter)
            raise
        return True

    def release(self) -> None:
        if not self._locked:
            raise RuntimeError("Lock is not acquired")

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Lock stays held, the waiter now owns it.
                waiter.set_result(None)
                return
        self._locked = False

    async def __aenter__(self) -> ExclusiveLock:
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


__all__ = ["ExclusiveLock"]
