"""Unit tests for NotificationState."""

from datetime import datetime
from typing import List, Tuple

import pytest

from localite.domain.notification.state import (
    NotificationState,
    TopicState,
    UpdateTopic,
)
from localite.domain.shared.events import BadgeAwarded



class TestFlags:
    """Unread flag transitions."""

    def test_starts_read(self, notification_state: NotificationState) -> None:
        assert notification_state.any_unread() is False
        assert notification_state.get(UpdateTopic.NEWS) == TopicState()

    def test_mark_unread_then_read(
        self, notification_state: NotificationState, fixed_now: datetime
    ) -> None:
        notification_state.mark_unread(UpdateTopic.PRIVACY)
        assert notification_state.has_unread(UpdateTopic.PRIVACY) is True
        assert notification_state.get(UpdateTopic.PRIVACY).last_changed_at == fixed_now

        notification_state.mark_read(UpdateTopic.PRIVACY)
        assert notification_state.any_unread() is False


class TestListeners:
    """Observer subscriptions."""

    def test_listener_called_on_change_only(self, notification_state: NotificationState) -> None:
        seen: List[Tuple[UpdateTopic, bool]] = []
        notification_state.subscribe(lambda topic, state: seen.append((topic, state.has_unread)))

        notification_state.mark_unread(UpdateTopic.NEWS)
        notification_state.mark_unread(UpdateTopic.NEWS)
        notification_state.mark_read(UpdateTopic.NEWS)

        assert seen == [(UpdateTopic.NEWS, True), (UpdateTopic.NEWS, False)]

    def test_unsubscribe(self, notification_state: NotificationState) -> None:
        seen: List[UpdateTopic] = []
        unsubscribe = notification_state.subscribe(lambda topic, state: seen.append(topic))
        unsubscribe()
        unsubscribe()

        notification_state.mark_unread(UpdateTopic.BADGES)
        assert seen == []

    def test_failing_listener_does_not_block_others(
        self, notification_state: NotificationState
    ) -> None:
        seen: List[UpdateTopic] = []

        def broken(topic: UpdateTopic, state: TopicState) -> None:
            raise RuntimeError("listener down")

        notification_state.subscribe(broken)
        notification_state.subscribe(lambda topic, state: seen.append(topic))

        notification_state.mark_unread(UpdateTopic.BADGES)

        assert seen == [UpdateTopic.BADGES]
        assert notification_state.has_unread(UpdateTopic.BADGES) is True


class TestBadgeAwardedHandler:
    """Event handler wiring."""

    @pytest.mark.asyncio
    async def test_badge_awarded_marks_badges_unread(
        self, notification_state: NotificationState
    ) -> None:
        await notification_state.on_badge_awarded(BadgeAwarded.create("u1", "B2-1"))
        assert notification_state.has_unread(UpdateTopic.BADGES) is True
        assert notification_state.has_unread(UpdateTopic.NEWS) is False
