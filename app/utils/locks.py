import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import Dict, Hashable


class KeyedLocks:
    """
    One asyncio.Lock per key, created on demand and dropped when unused.

    Serializes work per key inside one process only; it does nothing for
    writers in other processes.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Counter = Counter()

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)
