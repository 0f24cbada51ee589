"""Keyed Locks — per-key asyncio.Lock registry for serialising check-then-create sequences.

Invariants:
    - Same key -> same lock while anyone holds or waits on it
    - Entries are dropped once no coroutine references them (registry never grows unbounded)

Design Decisions:
    - Module-level registry: single-process uvicorn, one event loop; cross-process
      races are left to the storage layer's conditional updates
"""

import asyncio
from collections.abc import Hashable
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLocks:
    """Lazily created asyncio.Lock per key, reference counted."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# Intent creation per (buyer_id, dataset_id)
purchase_intent_locks = KeyedLocks()
