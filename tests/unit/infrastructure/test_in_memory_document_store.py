"""Unit tests for InMemoryDocumentStore.

Tests focus on:
- Flat vs owner-partitioned addressing
- Query predicates, ordering and limits
- Create-if-absent atomicity
- All-or-nothing batch commits and the batch ceiling
"""

import asyncio

import pytest
import pytest_asyncio

from localite.domain.shared.errors import BatchLimitExceededError
from localite.domain.shared.ports.document_store import (
    CollectionRef,
    IDocumentStore,
    SortDirection,
    WriteOp,
)
from localite.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
)

FLAT = CollectionRef(name="journeys")


def nested(owner_id: str) -> CollectionRef:
    return CollectionRef(name="journeys", owner_id=owner_id)


class TestRefs:
    """Collection and document references."""

    def test_paths(self) -> None:
        assert FLAT.path == "journeys"
        assert nested("u1").document("j1").path == "users/u1/journeys/j1"

    def test_blank_owner_rejected(self) -> None:
        with pytest.raises(ValueError):
            CollectionRef(name="journeys", owner_id="  ")

    def test_implements_port(self, document_store: InMemoryDocumentStore) -> None:
        assert isinstance(document_store, IDocumentStore)


class TestSingleDocument:
    """get / set / create / delete."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, document_store: InMemoryDocumentStore) -> None:
        ref = nested("u1").document("j1")
        await document_store.set(ref, {"title": "Harbor"})

        stored = await document_store.get(ref)

        assert stored is not None
        assert stored.id == "j1"
        assert stored.owner_id == "u1"
        assert stored.data == {"title": "Harbor"}

    @pytest.mark.asyncio
    async def test_partitions_are_isolated(self, document_store: InMemoryDocumentStore) -> None:
        await document_store.set(nested("u1").document("j1"), {"title": "mine"})

        assert await document_store.get(nested("u2").document("j1")) is None
        assert await document_store.get(FLAT.document("j1")) is None

    @pytest.mark.asyncio
    async def test_returned_data_is_a_copy(self, document_store: InMemoryDocumentStore) -> None:
        ref = FLAT.document("j1")
        source = {"photos": ["a.jpg"]}
        await document_store.set(ref, source)
        source["photos"].append("b.jpg")

        stored = await document_store.get(ref)
        stored.data["photos"].append("c.jpg")

        again = await document_store.get(ref)
        assert again.data == {"photos": ["a.jpg"]}

    @pytest.mark.asyncio
    async def test_merge_is_deep(self, document_store: InMemoryDocumentStore) -> None:
        ref = FLAT.document("u1")
        await document_store.set(ref, {"name": "Ann", "stats": {"total": 1, "last": "x"}})
        await document_store.set(ref, {"stats": {"total": 2}}, merge=True)

        stored = await document_store.get(ref)
        assert stored.data == {"name": "Ann", "stats": {"total": 2, "last": "x"}}

    @pytest.mark.asyncio
    async def test_merge_creates_missing(self, document_store: InMemoryDocumentStore) -> None:
        ref = FLAT.document("u1")
        await document_store.set(ref, {"stats": {"total": 1}}, merge=True)
        assert (await document_store.get(ref)).data == {"stats": {"total": 1}}

    @pytest.mark.asyncio
    async def test_create_if_absent(self, document_store: InMemoryDocumentStore) -> None:
        ref = FLAT.document("g1")
        assert await document_store.create(ref, {"n": 1}) is True
        assert await document_store.create(ref, {"n": 2}) is False
        assert (await document_store.get(ref)).data == {"n": 1}

    @pytest.mark.asyncio
    async def test_concurrent_creates_yield_one_winner(
        self, document_store: InMemoryDocumentStore
    ) -> None:
        ref = FLAT.document("g1")
        results = await asyncio.gather(*(document_store.create(ref, {"n": i}) for i in range(10)))
        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_delete(self, document_store: InMemoryDocumentStore) -> None:
        ref = FLAT.document("j1")
        await document_store.set(ref, {})
        assert await document_store.delete(ref) is True
        assert await document_store.delete(ref) is False


class TestQuery:
    """Predicates, ordering, limit, counting and partitions."""

    @pytest_asyncio.fixture
    async def populated(self, document_store: InMemoryDocumentStore) -> InMemoryDocumentStore:
        rows = {
            "a": {"date": "2025-09-01", "meta": {"kind": "walk"}},
            "b": {"date": "2025-09-03", "meta": {"kind": "quiz"}},
            "c": {"date": "2025-09-02", "meta": {"kind": "walk"}},
        }
        for doc_id, data in rows.items():
            await document_store.set(nested("u1").document(doc_id), data)
        await document_store.set(nested("u2").document("d"), {"date": "2025-09-05"})
        return document_store

    @pytest.mark.asyncio
    async def test_dotted_where(self, populated: InMemoryDocumentStore) -> None:
        found = await populated.query(nested("u1"), where={"meta.kind": "walk"})
        assert sorted(doc.id for doc in found) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_order_and_limit(self, populated: InMemoryDocumentStore) -> None:
        found = await populated.query(
            nested("u1"), order_by=[("date", SortDirection.DESCENDING)], limit=2
        )
        assert [doc.id for doc in found] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_count_and_partitions(self, populated: InMemoryDocumentStore) -> None:
        assert await populated.count(nested("u1")) == 3
        assert await populated.count(FLAT) == 0
        assert await populated.list_partitions("users", "journeys") == ["u1", "u2"]

    @pytest.mark.asyncio
    async def test_emptied_partition_is_not_listed(
        self, populated: InMemoryDocumentStore
    ) -> None:
        await populated.delete(nested("u2").document("d"))
        assert await populated.list_partitions("users", "journeys") == ["u1"]


class TestCommit:
    """Atomic batches."""

    @pytest.mark.asyncio
    async def test_commit_applies_all(self, document_store: InMemoryDocumentStore) -> None:
        await document_store.set(FLAT.document("old"), {"x": 1})
        await document_store.commit(
            [
                WriteOp.set(nested("u1").document("j1"), {"x": 1}),
                WriteOp.merge(FLAT.document("old"), {"y": 2}),
                WriteOp.delete(FLAT.document("missing")),
            ]
        )
        assert (await document_store.get(nested("u1").document("j1"))).data == {"x": 1}
        assert (await document_store.get(FLAT.document("old"))).data == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_over_limit_rejected_without_writes(self) -> None:
        store = InMemoryDocumentStore(max_batch_operations=2)
        ops = [WriteOp.set(FLAT.document(f"j{i}"), {}) for i in range(3)]

        with pytest.raises(BatchLimitExceededError) as exc_info:
            await store.commit(ops)

        assert exc_info.value.size == 3
        assert exc_info.value.limit == 2
        assert await store.count(FLAT) == 0

    @pytest.mark.asyncio
    async def test_failing_batch_writes_nothing(
        self, document_store: InMemoryDocumentStore
    ) -> None:
        bad = WriteOp.set(FLAT.document("bad"), {}).model_copy(update={"data": None})
        ops = [WriteOp.set(FLAT.document("good"), {"x": 1}), bad]

        with pytest.raises(ValueError):
            await document_store.commit(ops)

        assert await document_store.get(FLAT.document("good")) is None
