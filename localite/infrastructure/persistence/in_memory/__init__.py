"""In-memory persistence adapters."""

from localite.infrastructure.persistence.in_memory.document_store import (
    InMemoryDocumentStore,
)

__all__ = ["InMemoryDocumentStore"]
