import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class DivisionLocks:
    """One exclusive lock per division.

    Standings and best-N rebuilds for a division hold its lock for the whole
    rebuild; different divisions never contend. A lock only lives while
    someone holds or waits for it, so the table stays as small as the set of
    divisions being rebuilt right now.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def locked(self, division_id: str) -> bool:
        lock = self._locks.get(division_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, division_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(division_id)
        if lock is None:
            lock = self._locks[division_id] = asyncio.Lock()
        self._users[division_id] = self._users.get(division_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[division_id] -= 1
            if not self._users[division_id]:
                del self._users[division_id]
                del self._locks[division_id]


division_locks = DivisionLocks()
