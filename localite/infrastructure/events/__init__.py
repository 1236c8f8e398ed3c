"""Event bus adapters."""

from localite.infrastructure.events.in_memory_bus import InMemoryEventBus

__all__ = ["InMemoryEventBus"]
