import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

import structlog

logger = structlog.get_logger(__name__)

# Key prefix for locks taken while cancelling a booking
CANCEL_KEY = "cancel"


class SlotLockRegistry:
    """Keyed asyncio locks serializing booking writes in this process.

    Creates lock ``(branch_id, slot_start)``; cancels lock
    ``(CANCEL_KEY, booking_reference)``. Entries are dropped once nobody
    holds or waits on them, so the registry only ever contains keys with a
    write in flight.
    """

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, *key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                logger.debug("Booking lock acquired", key=[str(part) for part in key])
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, *key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


# Global lock registry shared by every request in this process
slot_locks = SlotLockRegistry()
