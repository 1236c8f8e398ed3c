"""MongoDB persistence adapters."""

from localite.infrastructure.persistence.mongodb.document_store import (
    MongoDocumentStore,
)

__all__ = ["MongoDocumentStore"]
