from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID


class CustomerLockRegistry:
    """Per-customer mutual exclusion for balance read-modify-write sequences.

    A registry is owned by whatever composes the service (the FastAPI lifespan
    in production) and shared by every repository handed out for that process.
    """

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}

    def _lock_for(self, customer_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(customer_id)
        if lock is None:
            lock = self._locks.setdefault(customer_id, asyncio.Lock())
        return lock

    @asynccontextmanager
    async def hold(self, customer_id: UUID) -> AsyncIterator[None]:
        lock = self._lock_for(customer_id)
        async with lock:
            yield

    def is_locked(self, customer_id: UUID) -> bool:
        lock = self._locks.get(customer_id)
        return bool(lock and lock.locked())

    def __len__(self) -> int:
        return len(self._locks)
