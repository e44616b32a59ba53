"""Per-identity serialization of read-modify-write sequences."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID
from weakref import WeakValueDictionary


class IdentityLocks:
    """Registry of asyncio locks keyed by identity id.

    Every mutation of an identity's session or entitlements must run inside
    `lock(identity_id)`. Locks are dropped once no coroutine holds a reference.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[UUID, asyncio.Lock] = WeakValueDictionary()

    def _get(self, identity_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(identity_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity_id] = lock
        return lock

    @asynccontextmanager
    async def lock(self, identity_id: UUID) -> AsyncGenerator[None]:
        lock = self._get(identity_id)
        async with lock:
            yield
