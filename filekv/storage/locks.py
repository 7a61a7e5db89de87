"""
Per-Key Mutation Locks

A lock exists only while some coroutine holds or waits for it; once the
last reference is dropped the entry disappears from the registry.
"""

import asyncio
import weakref
from typing import List


class KeyLockRegistry:
    """
    Provides a stable asyncio lock per key so that mutations of one key
    are serialized without contending on a single global lock.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def locks(self) -> List[asyncio.Lock]:
        """Locks currently held or awaited."""
        return list(self._locks.values())

    def __len__(self) -> int:
        return len(self._locks)
