"""Per-key asyncio locks for in-memory stores.

Each key gets its own :class:`asyncio.Lock` while at least one coroutine
holds or waits on it.  The registry forgets a key as soon as the last
coroutine leaves, so it never grows beyond the number of keys in flight.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Hashable
from typing import Generic, TypeVar

K = TypeVar('K', bound=Hashable)


class KeyedLock(Generic[K]):
    """A registry of locks scoped to individual keys."""

    def __init__(self) -> None:
        self._locks: dict[K, asyncio.Lock] = {}
        self._users: dict[K, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, key: K) -> AsyncIterator[None]:
        """Serialize the body against every other holder of *key*."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    def is_busy(self, key: K) -> bool:
        """True while any coroutine holds or waits on *key*."""
        return key in self._users

    def __len__(self) -> int:
        return len(self._users)
