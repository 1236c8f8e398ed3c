"""In-memory event bus implementation.

Provides an in-memory implementation of IEventBus port for tests and the
single-process app. Handlers are awaited in subscription order.
"""

from typing import Any, Awaitable, Callable, Dict, List, Type, TypeVar

import structlog

from localite.domain.shared.events import DomainEvent

logger = structlog.get_logger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)


class InMemoryEventBus:
    """
    In-memory implementation of IEventBus port.

    Error handling: a failing handler is logged, the remaining handlers
    still run and ``publish`` does not raise.

    Example:
        >>> bus = InMemoryEventBus()
        >>> state = NotificationState()
        >>> bus.subscribe(BadgeAwarded, state.on_badge_awarded)
        >>> await bus.publish(BadgeAwarded.create("user_1", "B2-1"))
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Callable[[Any], Awaitable[None]]]] = {}

    def subscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> None:
        """
        Subscribe a handler to an event type.

        The same handler subscribed twice is called twice.
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "event_handler_subscribed",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )

    async def publish(self, event: DomainEvent) -> None:
        """Publish an event to all handlers subscribed to its exact type."""
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("event_without_handlers", event_type=event_type.__name__)
            return

        logger.info(
            "event_publishing",
            event_type=event_type.__name__,
            event_id=str(event.event_id),
            handler_count=len(handlers),
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    event_type=event_type.__name__,
                    event_id=str(event.event_id),
                    handler=_handler_name(handler),
                    error=str(e),
                    exc_info=True,
                )

    def unsubscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> bool:
        """
        Remove the first subscription of ``handler``.

        Returns:
            True if handler was found and removed, False otherwise
        """
        handlers = self._handlers.get(event_type)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()

    def get_handler_count(self, event_type: Type[TEvent]) -> int:
        """Number of handlers subscribed to ``event_type``."""
        return len(self._handlers.get(event_type, []))


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
