"""
Shared fixtures.

Every hub here runs on in-memory storage with a clock the test controls.
Async store calls are driven with asyncio.run inside the tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bizhub.orchestrator import build_hub
from bizhub.storage import InMemoryAuditStorage, InMemoryKeyValueStore, StorageError


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose reads or writes can be made to fail per key."""

    def __init__(self):
        super().__init__()
        self.failing_reads: set[str] = set()
        self.failing_writes: set[str] = set()

    async def get_item(self, key):
        if key in self.failing_reads:
            raise StorageError(f"read refused: {key}")
        return await super().get_item(key)

    async def set_item(self, key, value):
        if key in self.failing_writes:
            raise StorageError(f"write refused: {key}")
        await super().set_item(key, value)

    async def remove_item(self, key):
        if key in self.failing_writes:
            raise StorageError(f"remove refused: {key}")
        await super().remove_item(key)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def kv_store():
    return FlakyKeyValueStore()


@pytest.fixture
def hub(kv_store, audit_storage, clock):
    return build_hub(
        kv_store,
        audit_storage,
        clock=clock,
        key_prefix="test_",
        user_id="user-1",
    )
