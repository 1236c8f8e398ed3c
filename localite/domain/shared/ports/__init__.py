"""Domain ports (interfaces for infrastructure adapters)."""

from localite.domain.shared.ports.document_store import IDocumentStore
from localite.domain.shared.ports.event_bus import IEventBus

__all__ = [
    "IDocumentStore",
    "IEventBus",
]
