"""Shared test fixtures.

Every test runs against the in-memory document store; nothing here
needs a database or network access.
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Set

import pytest

from localite.domain.notification.state import NotificationState
from localite.domain.shared.timestamps import TimestampNormalizer
from localite.infrastructure.events.in_memory_bus import InMemoryEventBus
from localite.infrastructure.persistence.factory import reset_record_store
from localite.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
)
from localite.infrastructure.persistence.record_store import RecordStore

FIXED_NOW = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


class FlakyDocumentStore(InMemoryDocumentStore):
    """In-memory store whose operations can be made to fail.

    Operations named in ``fail_on`` raise RuntimeError. With
    ``fail_commit_after = n``, the first n commits succeed and every
    later one fails.
    """

    def __init__(self, max_batch_operations: int = 500) -> None:
        super().__init__(max_batch_operations=max_batch_operations)
        self.fail_on: Set[str] = set()
        self.fail_commit_after: Optional[int] = None
        self.commit_sizes: List[int] = []

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RuntimeError(f"{operation} unavailable")

    async def get(self, ref):  # type: ignore[no-untyped-def]
        self._check("get")
        return await super().get(ref)

    async def query(self, collection, where=None, order_by=(), limit=None):  # type: ignore[no-untyped-def]
        self._check("query")
        return await super().query(collection, where=where, order_by=order_by, limit=limit)

    async def set(self, ref, data, merge=False):  # type: ignore[no-untyped-def]
        self._check("set")
        await super().set(ref, data, merge=merge)

    async def create(self, ref, data):  # type: ignore[no-untyped-def]
        self._check("create")
        return await super().create(ref, data)

    async def delete(self, ref):  # type: ignore[no-untyped-def]
        self._check("delete")
        return await super().delete(ref)

    async def count(self, collection):  # type: ignore[no-untyped-def]
        self._check("count")
        return await super().count(collection)

    async def commit(self, ops):  # type: ignore[no-untyped-def]
        self._check("commit")
        if self.fail_commit_after is not None and len(self.commit_sizes) >= self.fail_commit_after:
            raise RuntimeError("transaction aborted")
        await super().commit(ops)
        self.commit_sizes.append(len(ops))


@pytest.fixture(autouse=True)
def inmemory_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    """Force the in-memory backend and a clean factory singleton."""
    monkeypatch.setenv("REPOSITORY_BACKEND", "inmemory")
    monkeypatch.delenv("MIGRATION_BATCH_LIMIT", raising=False)
    reset_record_store()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def normalizer(clock: Callable[[], datetime]) -> TimestampNormalizer:
    return TimestampNormalizer(clock=clock)


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def records(document_store: InMemoryDocumentStore) -> RecordStore:
    return RecordStore(document_store)


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def notification_state(clock: Callable[[], datetime]) -> NotificationState:
    return NotificationState(clock=clock)


@pytest.fixture
def fixed_now() -> datetime:
    """The instant returned by the ``clock`` fixture."""
    return FIXED_NOW


@pytest.fixture
def flaky_store() -> FlakyDocumentStore:
    return FlakyDocumentStore()


@pytest.fixture
def flaky_records(flaky_store: FlakyDocumentStore) -> RecordStore:
    return RecordStore(flaky_store)
