"""
Per-court mutual exclusion for the booking ledger.

Every check-then-write on a court (create, cancel, complete, move, and the
promotion sweep they trigger) runs while holding that court's lock, so two
requests for the same court can never both observe "no conflict" and both
insert. Different courts use different locks and proceed in parallel.

This lock only covers one process. Across processes the ledger also takes a
row lock on the court (SELECT ... FOR UPDATE) inside the same transaction.
"""

import asyncio
import time
import weakref
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator

from app.core.metrics import court_lock_wait


class CourtLockRegistry:
    def __init__(self) -> None:
        # Locks are dropped once no holder or waiter references them
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, court_id: int) -> asyncio.Lock:
        lock = self._locks.get(court_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[court_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *court_ids: int) -> AsyncIterator[None]:
        """Acquire the locks for all given courts in ascending id order."""
        started = time.perf_counter()
        async with AsyncExitStack() as stack:
            for court_id in sorted(set(court_ids)):
                await stack.enter_async_context(self.get(court_id))
            court_lock_wait.observe(time.perf_counter() - started)
            yield

    def clear(self) -> None:
        self._locks.clear()


court_locks = CourtLockRegistry()
