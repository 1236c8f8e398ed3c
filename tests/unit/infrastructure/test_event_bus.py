"""Unit tests for InMemoryEventBus."""

from typing import List

import pytest

from localite.domain.shared.events import BadgeAwarded, DomainEvent
from localite.infrastructure.events.in_memory_bus import InMemoryEventBus


class TestSubscribe:
    """Subscription bookkeeping."""

    def test_init(self) -> None:
        assert InMemoryEventBus()._handlers == {}

    def test_subscribe_and_unsubscribe(self, event_bus: InMemoryEventBus) -> None:
        async def handler(event: BadgeAwarded) -> None:
            pass

        event_bus.subscribe(BadgeAwarded, handler)
        event_bus.subscribe(BadgeAwarded, handler)
        assert event_bus.get_handler_count(BadgeAwarded) == 2

        assert event_bus.unsubscribe(BadgeAwarded, handler) is True
        assert event_bus.get_handler_count(BadgeAwarded) == 1

        event_bus.clear()
        assert event_bus.unsubscribe(BadgeAwarded, handler) is False


class TestPublish:
    """Publishing to handlers."""

    @pytest.mark.asyncio
    async def test_handlers_called_in_order(self, event_bus: InMemoryEventBus) -> None:
        calls: List[str] = []

        async def first(event: BadgeAwarded) -> None:
            calls.append(f"first:{event.badge_id}")

        async def second(event: BadgeAwarded) -> None:
            calls.append(f"second:{event.badge_id}")

        event_bus.subscribe(BadgeAwarded, first)
        event_bus.subscribe(BadgeAwarded, second)

        await event_bus.publish(BadgeAwarded.create("u1", "B2-1"))

        assert calls == ["first:B2-1", "second:B2-1"]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(
        self, event_bus: InMemoryEventBus
    ) -> None:
        calls: List[str] = []

        async def broken(event: BadgeAwarded) -> None:
            raise RuntimeError("handler down")

        async def working(event: BadgeAwarded) -> None:
            calls.append(event.user_id)

        event_bus.subscribe(BadgeAwarded, broken)
        event_bus.subscribe(BadgeAwarded, working)

        await event_bus.publish(BadgeAwarded.create("u1", "B2-1"))

        assert calls == ["u1"]

    @pytest.mark.asyncio
    async def test_no_handlers(self, event_bus: InMemoryEventBus) -> None:
        await event_bus.publish(BadgeAwarded.create("u1", "B2-1"))

    def test_event_requires_aware_timestamp(self) -> None:
        from datetime import datetime
        from uuid import uuid4

        with pytest.raises(ValueError):
            DomainEvent(event_id=uuid4(), occurred_at=datetime(2025, 9, 14))
