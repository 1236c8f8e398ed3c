"""Document store factory.

Environment-based store selection.
Strategy:
- .env (runtime): REPOSITORY_BACKEND=mongodb (production persistence)
- tests: REPOSITORY_BACKEND=inmemory (fast, isolated)
- Default: inmemory (safe fallback if env vars not set)

Usage:
    from localite.infrastructure.persistence.factory import get_record_store

    records = get_record_store()  # Singleton facade over the selected backend
"""

from typing import Optional

from localite.domain.shared.ports.document_store import IDocumentStore
from localite.infrastructure.config import get_mongodb_uri, get_repository_backend
from localite.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
)
from localite.infrastructure.persistence.record_store import RecordStore


def create_document_store() -> IDocumentStore:
    """Create document store based on REPOSITORY_BACKEND env var.

    Values:
        - "inmemory": In-memory store (default, transient)
        - "mongodb": MongoDB store (persistent, requires MONGODB_URI)

    Raises:
        ValueError: If mongodb selected but MONGODB_URI not set, or the
            backend name is unknown
    """
    mode = get_repository_backend()

    if mode == "mongodb":
        if not get_mongodb_uri():
            raise ValueError(
                "REPOSITORY_BACKEND=mongodb but MONGODB_URI not set. "
                "Set MONGODB_URI in .env or use REPOSITORY_BACKEND=inmemory"
            )
        from localite.infrastructure.persistence.mongodb.document_store import (
            MongoDocumentStore,
        )

        return MongoDocumentStore()

    if mode != "inmemory":
        raise ValueError(f"Unknown REPOSITORY_BACKEND: {mode!r} (use inmemory or mongodb)")

    return InMemoryDocumentStore()


def create_record_store(store: Optional[IDocumentStore] = None) -> RecordStore:
    """Wrap ``store`` (default: a new store from env) in the record facade."""
    return RecordStore(store or create_document_store())


# Singleton instance (lazy initialization)
_record_store: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Get singleton record store instance."""
    global _record_store
    if _record_store is None:
        _record_store = create_record_store()
    return _record_store


def reset_record_store() -> None:
    """Reset singleton instance.

    Useful for testing to force re-creation with different env vars.
    """
    global _record_store
    _record_store = None
