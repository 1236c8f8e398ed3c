"""
Document store port (interface).

Abstract keyed document store used by the persistence layer.
Supports flat collections and owner-partitioned subcollections
addressed by (owner_id, collection_name, doc_id).

Follows the Dependency Inversion Principle: domain defines the port,
infrastructure provides the implementation (in-memory, MongoDB).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

Document = dict[str, Any]

# Hosted store ceiling for operations applied atomically in one batch.
DEFAULT_MAX_BATCH_OPERATIONS = 500


class CollectionRef(BaseModel):
    """
    Reference to a collection.

    A ref without ``owner_id`` addresses a flat, globally-queried
    collection. With ``owner_id`` it addresses the subcollection stored
    under ``{parent}/{owner_id}/{name}``.

    Example:
        >>> flat = CollectionRef(name="journeys")
        >>> nested = CollectionRef(name="journeys", owner_id="user_123")
        >>> nested.path
        'users/user_123/journeys'
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Collection name")
    owner_id: Optional[str] = Field(default=None, description="Partition owner")
    parent: str = Field(default="users", min_length=1, description="Owner collection")

    @field_validator("owner_id")
    @classmethod
    def owner_not_blank(cls, v: Optional[str]) -> Optional[str]:
        """Reject blank partition keys."""
        if v is not None and not v.strip():
            raise ValueError("owner_id cannot be empty or whitespace")
        return v

    @property
    def is_partitioned(self) -> bool:
        """True for owner-partitioned subcollections."""
        return self.owner_id is not None

    @property
    def path(self) -> str:
        """Slash-separated path, for logs and error messages."""
        if self.owner_id is None:
            return self.name
        return f"{self.parent}/{self.owner_id}/{self.name}"

    def document(self, doc_id: str) -> DocumentRef:
        """Reference a document inside this collection."""
        return DocumentRef(collection=self, doc_id=doc_id)

    def __str__(self) -> str:
        return self.path


class DocumentRef(BaseModel):
    """Reference to a single document."""

    model_config = ConfigDict(frozen=True)

    collection: CollectionRef
    doc_id: str = Field(..., min_length=1, description="Document id")

    @property
    def path(self) -> str:
        return f"{self.collection.path}/{self.doc_id}"

    def __str__(self) -> str:
        return self.path


class StoredDocument(BaseModel):
    """A document read back from the store, with its id and partition."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: Optional[str] = None
    data: Document = Field(default_factory=dict)


class SortDirection(str, Enum):
    """Ordering direction for queries."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class WriteKind(str, Enum):
    """Kinds of operation allowed in an atomic batch."""

    SET = "set"
    MERGE = "merge"
    DELETE = "delete"


class WriteOp(BaseModel):
    """
    One operation of an atomic batch.

    Example:
        >>> ref = CollectionRef(name="journeys").document("j1")
        >>> op = WriteOp.set(ref, {"title": "Old Street"})
        >>> op.kind
        <WriteKind.SET: 'set'>
    """

    model_config = ConfigDict(frozen=True)

    kind: WriteKind
    ref: DocumentRef
    data: Optional[Document] = None

    @classmethod
    def set(cls, ref: DocumentRef, data: Document) -> WriteOp:
        """Overwrite (or create) a document."""
        return cls(kind=WriteKind.SET, ref=ref, data=dict(data))

    @classmethod
    def merge(cls, ref: DocumentRef, data: Document) -> WriteOp:
        """Deep-merge fields into a document, creating it if absent."""
        return cls(kind=WriteKind.MERGE, ref=ref, data=dict(data))

    @classmethod
    def delete(cls, ref: DocumentRef) -> WriteOp:
        """Delete a document (no-op if absent)."""
        return cls(kind=WriteKind.DELETE, ref=ref)


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Interface for the hosted document database.

    Implementations must provide:
    - get-by-id
    - query by equality predicate with ordering and limit
    - set (overwrite or merge)
    - create-if-absent (atomic, used for at-most-once grants)
    - atomic multi-document batch commit bounded by max_batch_operations
    - owner-partitioned subcollections

    Example:
        >>> store = InMemoryDocumentStore()
        >>> ref = CollectionRef(name="journeys", owner_id="u1").document("j1")
        >>> await store.set(ref, {"title": "Harbor walk"})
        >>> doc = await store.get(ref)
    """

    max_batch_operations: int

    async def get(self, ref: DocumentRef) -> Optional[StoredDocument]:
        """Return the document or None if absent."""
        ...

    async def query(
        self,
        collection: CollectionRef,
        where: Optional[Document] = None,
        order_by: Sequence[tuple[str, SortDirection]] = (),
        limit: Optional[int] = None,
    ) -> list[StoredDocument]:
        """
        Query documents of one collection.

        Args:
            collection: Collection to read
            where: Field equality predicate (dotted paths allowed)
            order_by: Sort keys [(field, direction), ...]
            limit: Max documents to return

        Returns:
            Matching documents (may be empty)
        """
        ...

    async def set(self, ref: DocumentRef, data: Document, merge: bool = False) -> None:
        """Overwrite a document, or deep-merge into it when ``merge``."""
        ...

    async def create(self, ref: DocumentRef, data: Document) -> bool:
        """
        Create the document only if it does not exist.

        Returns:
            True if created, False if a document already existed
        """
        ...

    async def delete(self, ref: DocumentRef) -> bool:
        """Delete a document. Returns True if something was deleted."""
        ...

    async def count(self, collection: CollectionRef) -> int:
        """Count documents in a collection."""
        ...

    async def list_partitions(self, parent: str, name: str) -> list[str]:
        """List owner ids having at least one document in ``{parent}/*/{name}``."""
        ...

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """
        Apply all operations atomically.

        Raises:
            BatchLimitExceededError: If len(ops) > max_batch_operations
        """
        ...
