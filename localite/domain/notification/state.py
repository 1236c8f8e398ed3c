"""
Unread-update notification state.

Explicit state object for the "has unread update" flags shown in the
app (badges, news, privacy policy), with observer subscriptions.
Passed to whoever needs it instead of living in module globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog

from localite.domain.shared.events import BadgeAwarded

logger = structlog.get_logger(__name__)


class UpdateTopic(str, Enum):
    """Areas of the app that can carry an unread marker."""

    BADGES = "badges"
    NEWS = "news"
    PRIVACY = "privacy"


@dataclass(frozen=True)
class TopicState:
    """Snapshot of one topic."""

    has_unread: bool = False
    last_changed_at: Optional[datetime] = None


Listener = Callable[[UpdateTopic, TopicState], None]


class NotificationState:
    """Per-session unread flags with change notifications.

    Listeners are called synchronously after each actual change, in
    subscription order. A failing listener is logged and does not stop
    the others.

    Example:
        >>> state = NotificationState()
        >>> seen = []
        >>> unsubscribe = state.subscribe(lambda topic, s: seen.append(topic))
        >>> state.mark_unread(UpdateTopic.BADGES)
        >>> state.has_unread(UpdateTopic.BADGES)
        True
        >>> seen
        [<UpdateTopic.BADGES: 'badges'>]
        >>> unsubscribe()
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._topics: dict[UpdateTopic, TopicState] = {topic: TopicState() for topic in UpdateTopic}
        self._listeners: list[Listener] = []

    def get(self, topic: UpdateTopic) -> TopicState:
        return self._topics[topic]

    def has_unread(self, topic: UpdateTopic) -> bool:
        return self._topics[topic].has_unread

    def any_unread(self) -> bool:
        return any(state.has_unread for state in self._topics.values())

    def mark_unread(self, topic: UpdateTopic) -> None:
        self._set(topic, True)

    def mark_read(self, topic: UpdateTopic) -> None:
        self._set(topic, False)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def on_badge_awarded(self, event: BadgeAwarded) -> None:
        """Event bus handler: a new badge means unread badge updates."""
        self.mark_unread(UpdateTopic.BADGES)

    def _set(self, topic: UpdateTopic, unread: bool) -> None:
        if self._topics[topic].has_unread == unread:
            return

        state = TopicState(has_unread=unread, last_changed_at=self._clock())
        self._topics[topic] = state

        for listener in list(self._listeners):
            try:
                listener(topic, state)
            except Exception as e:
                logger.error(
                    "Notification listener failed",
                    topic=topic.value,
                    error=str(e),
                    exc_info=True,
                )
