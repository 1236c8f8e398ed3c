"""Badge domain: definitions, catalog and award rules."""

from localite.domain.badge.models import (
    Badge,
    BadgeTriggerMetadata,
    BadgeTriggerType,
    BadgeType,
    DisplayType,
    UserBadge,
)
from localite.domain.badge.catalog import BADGES, BadgeIds, get_badge_by_id

__all__ = [
    "Badge",
    "BadgeTriggerMetadata",
    "BadgeTriggerType",
    "BadgeType",
    "DisplayType",
    "UserBadge",
    "BADGES",
    "BadgeIds",
    "get_badge_by_id",
]
