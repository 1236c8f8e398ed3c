"""Event bus port (interface).

Defines contract for event publishing and subscription.
Follows the Dependency Inversion Principle: domain defines the port,
infrastructure provides the implementation.
"""

from typing import Awaitable, Callable, Protocol, Type, TypeVar

from localite.domain.shared.events import DomainEvent

# Type variable for domain events
TEvent = TypeVar("TEvent", bound=DomainEvent)

# Event handler type: async function that takes an event and returns None
EventHandler = Callable[[TEvent], Awaitable[None]]


class IEventBus(Protocol):
    """
    Interface for event publishing and subscription.

    Example usage (application layer):
        >>> async def on_badge_awarded(event: BadgeAwarded) -> None:
        ...     print(f"{event.user_id} earned {event.badge_id}")
        ...
        >>> event_bus.subscribe(BadgeAwarded, on_badge_awarded)
        >>> await event_bus.publish(BadgeAwarded.create("user_1", "B2-1"))
    """

    def subscribe(self, event_type: Type[TEvent], handler: EventHandler[TEvent]) -> None:
        """Subscribe a handler to an event type."""
        ...

    async def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribed handlers."""
        ...
