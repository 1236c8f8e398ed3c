"""Domain events.

Events are immutable records of facts that occurred.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID, uuid4


@dataclass(frozen=True)
class DomainEvent:
    """Base class for domain events.

    Attributes:
        event_id: Unique identifier for this event instance.
        occurred_at: When the event occurred (UTC timezone-aware).

    Raises:
        ValueError: If occurred_at is not timezone-aware.
    """

    event_id: UUID
    occurred_at: datetime

    def __post_init__(self) -> None:
        """Validate event invariants."""
        if self.occurred_at.tzinfo is None:
            raise ValueError("occurred_at must be timezone-aware (use UTC)")


@dataclass(frozen=True)
class BadgeAwarded(DomainEvent):
    """Domain event: a user has been granted a badge for the first time.

    Examples:
        >>> event = BadgeAwarded.create(user_id="user-123", badge_id="B2-1")
        >>> event.badge_id
        'B2-1'
    """

    user_id: str
    badge_id: str

    @classmethod
    def create(cls, user_id: str, badge_id: str) -> "BadgeAwarded":
        """Create new BadgeAwarded event with generated id and current timestamp."""
        return cls(
            event_id=uuid4(),
            occurred_at=datetime.now(timezone.utc),
            user_id=user_id,
            badge_id=badge_id,
        )
