"""Per-resource mutual exclusion for concurrent request handlers."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLocks:
    """
    A registry of ``asyncio.Lock`` objects keyed by resource id.

    Only callers contending on the same key wait for each other; there is
    no global lock. Entries are dropped once nobody holds or waits on them.

    Usage:
        async with locks.hold(f"listing:{listing_id}"):
            ...
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
