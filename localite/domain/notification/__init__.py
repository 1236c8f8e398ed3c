"""Unread-update notification state."""

from localite.domain.notification.state import NotificationState, TopicState, UpdateTopic

__all__ = ["NotificationState", "TopicState", "UpdateTopic"]
