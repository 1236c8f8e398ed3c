"""In-memory document store implementation.

Provides an in-memory implementation of IDocumentStore port for tests
and local runs. Uses nested dictionaries for storage with no external
dependencies.
"""

import asyncio
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence, Tuple

from localite.domain.shared.errors import BatchLimitExceededError
from localite.domain.shared.ports.document_store import (
    DEFAULT_MAX_BATCH_OPERATIONS,
    CollectionRef,
    Document,
    DocumentRef,
    SortDirection,
    StoredDocument,
    WriteKind,
    WriteOp,
)

# (parent or None, owner_id or None, name)
_CollectionKey = Tuple[Optional[str], Optional[str], str]

_MISSING = object()


def _key(collection: CollectionRef) -> _CollectionKey:
    if collection.owner_id is None:
        return (None, None, collection.name)
    return (collection.parent, collection.owner_id, collection.name)


def _lookup(data: Document, path: str) -> Any:
    """Resolve a dotted field path, or _MISSING."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _deep_merge(target: Document, patch: Document) -> Document:
    for field, value in patch.items():
        existing = target.get(field)
        if isinstance(value, dict) and isinstance(existing, dict):
            _deep_merge(existing, value)
        else:
            target[field] = deepcopy(value)
    return target


class InMemoryDocumentStore:
    """
    In-memory implementation of IDocumentStore port.

    Concurrency: mutations are serialized by an asyncio.Lock, so
    ``create`` is an atomic create-if-absent within one event loop.
    Persistence: data lost on process restart.

    Example:
        >>> store = InMemoryDocumentStore()
        >>> ref = CollectionRef(name="journeys", owner_id="u1").document("j1")
        >>> await store.set(ref, {"title": "Harbor walk"})
        >>> (await store.get(ref)).data["title"]
        'Harbor walk'
    """

    def __init__(self, max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS) -> None:
        self.max_batch_operations = max_batch_operations
        self._collections: Dict[_CollectionKey, Dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    async def get(self, ref: DocumentRef) -> Optional[StoredDocument]:
        docs = self._collections.get(_key(ref.collection), {})
        data = docs.get(ref.doc_id)
        if data is None:
            return None
        return StoredDocument(
            id=ref.doc_id,
            owner_id=ref.collection.owner_id,
            data=deepcopy(data),
        )

    async def query(
        self,
        collection: CollectionRef,
        where: Optional[Document] = None,
        order_by: Sequence[Tuple[str, SortDirection]] = (),
        limit: Optional[int] = None,
    ) -> List[StoredDocument]:
        docs = self._collections.get(_key(collection), {})
        where = where or {}

        matches = [
            (doc_id, data)
            for doc_id, data in docs.items()
            if all(_lookup(data, field) == value for field, value in where.items())
        ]

        # Stable sorts applied from the last key to the first
        for field, direction in reversed(list(order_by)):
            matches.sort(
                key=lambda item: _sort_value(_lookup(item[1], field)),
                reverse=SortDirection(direction) is SortDirection.DESCENDING,
            )

        if limit is not None:
            matches = matches[:limit]

        return [
            StoredDocument(id=doc_id, owner_id=collection.owner_id, data=deepcopy(data))
            for doc_id, data in matches
        ]

    async def set(self, ref: DocumentRef, data: Document, merge: bool = False) -> None:
        async with self._lock:
            self._apply(self._collections, ref, data, merge)

    async def create(self, ref: DocumentRef, data: Document) -> bool:
        async with self._lock:
            docs = self._collections.setdefault(_key(ref.collection), {})
            if ref.doc_id in docs:
                return False
            docs[ref.doc_id] = deepcopy(data)
            return True

    async def delete(self, ref: DocumentRef) -> bool:
        async with self._lock:
            docs = self._collections.get(_key(ref.collection))
            if not docs or ref.doc_id not in docs:
                return False
            del docs[ref.doc_id]
            return True

    async def count(self, collection: CollectionRef) -> int:
        return len(self._collections.get(_key(collection), {}))

    async def list_partitions(self, parent: str, name: str) -> List[str]:
        return sorted(
            owner_id
            for (key_parent, owner_id, key_name), docs in self._collections.items()
            if key_parent == parent and key_name == name and owner_id and docs
        )

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply ``ops`` atomically: staged on copies, swapped in at the end."""
        if len(ops) > self.max_batch_operations:
            raise BatchLimitExceededError(len(ops), self.max_batch_operations)

        async with self._lock:
            staged: Dict[_CollectionKey, Dict[str, Document]] = {}
            for op in ops:
                key = _key(op.ref.collection)
                if key not in staged:
                    staged[key] = dict(self._collections.get(key, {}))
                if op.kind is WriteKind.DELETE:
                    staged[key].pop(op.ref.doc_id, None)
                else:
                    if op.data is None:
                        raise ValueError(f"{op.kind.value} operation on {op.ref} has no data")
                    self._apply(staged, op.ref, op.data, op.kind is WriteKind.MERGE)
            self._collections.update(staged)

    def clear(self) -> None:
        """Drop every collection. Test helper."""
        self._collections.clear()

    @staticmethod
    def _apply(
        collections: Dict[_CollectionKey, Dict[str, Document]],
        ref: DocumentRef,
        data: Document,
        merge: bool,
    ) -> None:
        docs = collections.setdefault(_key(ref.collection), {})
        if merge and ref.doc_id in docs:
            # Never mutate a document that may be shared with the live state
            docs[ref.doc_id] = _deep_merge(deepcopy(docs[ref.doc_id]), data)
        else:
            docs[ref.doc_id] = deepcopy(data)


def _sort_value(value: Any) -> Tuple[int, Any]:
    """Missing and None sort before any present value."""
    if value is _MISSING or value is None:
        return (0, "")
    return (1, value)
