import asyncio
from uuid import uuid4

from coursegate.core.locks import IdentityLocks


class TestIdentityLocks:
    async def test_lock_is_released_on_exit(self):
        locks = IdentityLocks()
        identity_id = uuid4()
        async with locks.lock(identity_id):
            pass
        async with asyncio.timeout(1):
            async with locks.lock(identity_id):
                pass

    async def test_same_identity_is_serialized(self):
        """Test that critical sections on one identity never interleave."""
        locks = IdentityLocks()
        identity_id = uuid4()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.lock(identity_id):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"), worker("c"))
        for i in range(0, len(events), 2):
            assert events[i].endswith("-start")
            assert events[i + 1] == events[i].replace("-start", "-end")

    async def test_different_identities_do_not_block(self):
        locks = IdentityLocks()
        first, second = uuid4(), uuid4()
        entered = False
        async with locks.lock(first):
            async with asyncio.timeout(1):
                async with locks.lock(second):
                    entered = True
        assert entered
