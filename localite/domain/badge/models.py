"""
Badge domain models.

Static badge definitions, per-user grants and trigger inputs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BadgeType(str, Enum):
    """Badge category tags."""

    GROWTH_MILESTONE = "growth_milestone"
    TASK_ACHIEVEMENT = "task_achievement"
    EXPLORATION_ACHIEVEMENT = "exploration_achievement"
    SOCIAL_SHARE = "social_share"
    EVENT_LIMITED = "event_limited"
    LOCATION_LIMITED = "location_limited"


class DisplayType(str, Enum):
    """Where an award is surfaced in the app. Does not affect award logic."""

    MODAL = "modal"
    CHAT = "chat"


class BadgeTriggerType(str, Enum):
    """In-app events that may cause a badge evaluation."""

    FIRST_LOGIN = "first_login"
    TOUR_COMPLETED = "tour_completed"
    QUIZ_COMPLETED = "quiz_completed"
    SHARE_JOURNEY = "share_journey"
    LOCATION_SPECIFIC = "location_specific"


class Badge(BaseModel):
    """
    Static achievement definition.

    ``condition`` and ``trigger`` document when the badge fires; they are
    not evaluated. The machine rules live in ``badge.rules``.

    Example:
        >>> badge = Badge(
        ...     id="B2-1",
        ...     type=BadgeType.GROWTH_MILESTONE,
        ...     name="Sprout Debut",
        ...     description="First successful login",
        ...     condition="First registration",
        ...     trigger="After first login",
        ... )
        >>> badge.display_type
        <DisplayType.MODAL: 'modal'>
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable, globally unique key")
    type: BadgeType
    name: str = Field(..., min_length=1)
    english_name: str = ""
    description: str = ""
    badge_image: str = ""
    share_image: str = ""
    display_type: DisplayType = DisplayType.MODAL
    condition: str = ""
    trigger: str = ""


class UserBadge(BaseModel):
    """
    Grant record: user ``user_id`` holds badge ``badge_id``.

    At most one grant per (user_id, badge_id), ever. Created only by the
    achievement engine; never mutated.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    badge_id: str = Field(..., min_length=1)
    awarded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_shared: bool = False

    @field_validator("awarded_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are read as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def grant_id(self) -> str:
        """Deterministic document id for this grant."""
        return grant_document_id(self.user_id, self.badge_id)


def grant_document_id(user_id: str, badge_id: str) -> str:
    """Document id of the (user, badge) grant; makes create-if-absent atomic."""
    return f"{user_id}__{badge_id}"


class BadgeTriggerMetadata(BaseModel):
    """
    Loosely-typed trigger payload supplied by the app layer.

    Missing fields fall back to neutral values: counts to 0, place
    identifiers to "". Both camelCase (app payloads) and snake_case keys
    are accepted; unknown keys are kept.

    Example:
        >>> meta = BadgeTriggerMetadata.model_validate({"completedToursCount": 3})
        >>> meta.completed_tours_count
        3
        >>> meta.quiz_correct_answers
        0
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    completed_tours_count: int = Field(default=0, alias="completedToursCount")
    quiz_correct_answers: int = Field(default=0, alias="quizCorrectAnswers")
    share_count: int = Field(default=0, alias="shareCount")
    place_name: str = Field(default="", alias="placeName")
    place_id: str = Field(default="", alias="placeId")
    location_id: str = Field(default="", alias="locationId")

    @field_validator(
        "completed_tours_count", "quiz_correct_answers", "share_count", mode="before"
    )
    @classmethod
    def default_count(cls, v: Optional[object]) -> object:
        """None means "not supplied"."""
        return 0 if v is None else v

    @field_validator("place_name", "place_id", "location_id", mode="before")
    @classmethod
    def default_text(cls, v: Optional[object]) -> object:
        return "" if v is None else v
