"""
Record store facade.

The only writer of the document store. Application services go through
this capability-limited API, which addresses documents by
(owner_id, collection, doc_id) and turns every adapter failure into a
StoreError carrying the operation and path.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Sequence, Tuple

import structlog
from pydantic import BaseModel, ConfigDict

from localite.domain.shared.errors import BatchLimitExceededError, StoreError
from localite.domain.shared.ports.document_store import (
    CollectionRef,
    Document,
    DocumentRef,
    IDocumentStore,
    SortDirection,
    StoredDocument,
    WriteOp,
)

logger = structlog.get_logger(__name__)

USERS = "users"
JOURNEYS = "journeys"
USER_BADGES = "user_badges"

# collection -> (count field, last date field) under the owner's ``stats``
_STATS_FIELDS = {JOURNEYS: ("total_journeys", "last_journey_date")}


class OwnerStats(BaseModel):
    """Derived per-owner statistics, stored on ``users/{owner_id}``."""

    model_config = ConfigDict(frozen=True)

    owner_id: str
    total: int = 0
    last_date: Optional[str] = None


class RecordStore:
    """
    Facade over an IDocumentStore.

    Example:
        >>> records = RecordStore(InMemoryDocumentStore())
        >>> await records.put("u1", "journeys", "j1", {"date": "2025-09-14"})
        >>> await records.count("journeys", owner_id="u1")
        1
    """

    def __init__(self, store: IDocumentStore, owner_collection: str = USERS) -> None:
        self._store = store
        self._owner_collection = owner_collection

    @property
    def max_batch_operations(self) -> int:
        return self._store.max_batch_operations

    # ============================================================
    # Addressing
    # ============================================================

    def collection(self, name: str, owner_id: Optional[str] = None) -> CollectionRef:
        """Flat collection, or the owner's subcollection when ``owner_id`` is set."""
        return CollectionRef(name=name, owner_id=owner_id, parent=self._owner_collection)

    def document(self, owner_id: Optional[str], name: str, doc_id: str) -> DocumentRef:
        return self.collection(name, owner_id).document(doc_id)

    @contextmanager
    def _guard(self, operation: str, path: str) -> Iterator[None]:
        try:
            yield
        except StoreError:
            raise
        except Exception as e:
            logger.error("Store operation failed", operation=operation, path=path, error=str(e))
            raise StoreError(operation, path, str(e)) from e

    # ============================================================
    # Single-document operations
    # ============================================================

    async def get(
        self, owner_id: Optional[str], collection: str, doc_id: str
    ) -> Optional[StoredDocument]:
        ref = self.document(owner_id, collection, doc_id)
        with self._guard("get", ref.path):
            return await self._store.get(ref)

    async def query(
        self,
        collection: str,
        where: Optional[Document] = None,
        owner_id: Optional[str] = None,
        order_by: Sequence[Tuple[str, SortDirection]] = (),
        limit: Optional[int] = None,
    ) -> List[StoredDocument]:
        ref = self.collection(collection, owner_id)
        with self._guard("query", ref.path):
            return await self._store.query(ref, where=where, order_by=order_by, limit=limit)

    async def put(
        self,
        owner_id: Optional[str],
        collection: str,
        doc_id: str,
        data: Document,
        merge: bool = False,
    ) -> None:
        ref = self.document(owner_id, collection, doc_id)
        with self._guard("put", ref.path):
            await self._store.set(ref, data, merge=merge)

    async def create(
        self, owner_id: Optional[str], collection: str, doc_id: str, data: Document
    ) -> bool:
        """Create-if-absent. Returns False when the document already exists."""
        ref = self.document(owner_id, collection, doc_id)
        with self._guard("create", ref.path):
            return await self._store.create(ref, data)

    async def delete(self, owner_id: Optional[str], collection: str, doc_id: str) -> bool:
        ref = self.document(owner_id, collection, doc_id)
        with self._guard("delete", ref.path):
            return await self._store.delete(ref)

    async def count(self, collection: str, owner_id: Optional[str] = None) -> int:
        ref = self.collection(collection, owner_id)
        with self._guard("count", ref.path):
            return await self._store.count(ref)

    async def list_owners(self, collection: str) -> List[str]:
        """Owners having at least one document in their ``collection``."""
        with self._guard("list_owners", f"{self._owner_collection}/*/{collection}"):
            return await self._store.list_partitions(self._owner_collection, collection)

    # ============================================================
    # Batches
    # ============================================================

    async def batch_write(self, ops: Sequence[WriteOp]) -> None:
        """
        Apply ``ops`` all-or-nothing.

        Raises:
            BatchLimitExceededError: More ops than max_batch_operations;
                nothing is written, callers must chunk
            StoreError: The batch failed and was rolled back
        """
        if len(ops) > self.max_batch_operations:
            raise BatchLimitExceededError(len(ops), self.max_batch_operations)
        with self._guard("batch_write", f"<batch of {len(ops)}>"):
            await self._store.commit(ops)

    # ============================================================
    # Derived owner stats
    # ============================================================

    async def refresh_owner_stats(self, owner_id: str, collection: str = JOURNEYS) -> OwnerStats:
        """
        Recompute the owner's stats from the subcollection and store them.

        Counts are always recounted, never incremented, so repeated calls
        converge on the same value.
        """
        total = await self.count(collection, owner_id=owner_id)
        latest = await self.query(
            collection,
            owner_id=owner_id,
            order_by=[("date", SortDirection.DESCENDING)],
            limit=1,
        )
        last_date = latest[0].data.get("date") if latest else None
        stats = OwnerStats(owner_id=owner_id, total=total, last_date=last_date)

        count_field, date_field = _STATS_FIELDS.get(
            collection, (f"total_{collection}", f"last_{collection}_date")
        )
        await self.put(
            None,
            self._owner_collection,
            owner_id,
            {
                "stats": {count_field: total, date_field: last_date},
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            merge=True,
        )
        logger.debug("Owner stats refreshed", owner_id=owner_id, collection=collection, total=total)
        return stats
