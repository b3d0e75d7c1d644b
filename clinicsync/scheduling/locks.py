"""Keyed asyncio locks: one mutual-exclusion scope per owner id."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Tuple


class OwnerLocks:
    """Serialize admissions per owner without blocking unrelated owners.

    Entries are reference-counted and dropped once nobody holds or waits on
    them, so the table stays proportional to concurrently active owners.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, Tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, owner_id: Hashable) -> AsyncIterator[None]:
        lock, users = self._locks.get(owner_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[owner_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[owner_id]
            if users <= 1:
                del self._locks[owner_id]
            else:
                self._locks[owner_id] = (lock, users - 1)

    def __len__(self) -> int:
        return len(self._locks)


owner_locks = OwnerLocks()
"""Process-wide default used by request handlers."""
