"""
Badge award rules.

Deterministic mapping from a trigger event and its metadata to the
candidate badge ids to grant. Each rule yields at most one candidate per
evaluation. Whether the user already holds a candidate is not checked
here: at-most-once is enforced by the grant layer.

Thresholds are inclusive ("at least") and evaluated from the largest
downward, so a single evaluation only yields the highest tier earned.
"""

from __future__ import annotations

from typing import Optional, Sequence

from localite.domain.badge.catalog import BadgeIds
from localite.domain.badge.models import BadgeTriggerMetadata, BadgeTriggerType

Tier = tuple[int, str]

TOUR_TIERS: tuple[Tier, ...] = (
    (10, BadgeIds.TOURS_COMPLETED_10),
    (5, BadgeIds.TOURS_COMPLETED_5),
    (3, BadgeIds.TOURS_COMPLETED_3),
)

QUIZ_TIERS: tuple[Tier, ...] = (
    (10, BadgeIds.QUIZ_COMPLETED_10),
    (5, BadgeIds.QUIZ_COMPLETED_5),
    (1, BadgeIds.QUIZ_COMPLETED_1),
)

# badge id -> lowercase tokens matched against place name / place id
LOCATION_TOKENS: dict[str, tuple[str, ...]] = {
    BadgeIds.LOCATION_ZHONGLIAO: ("忠寮", "zhongliao"),
}


def highest_tier(count: int, tiers: Sequence[Tier]) -> Optional[str]:
    """Badge id of the highest tier whose threshold ``count`` reaches.

    Example:
        >>> highest_tier(7, TOUR_TIERS)
        'B2-3'
        >>> highest_tier(2, TOUR_TIERS) is None
        True
    """
    for threshold, badge_id in sorted(tiers, key=lambda tier: tier[0], reverse=True):
        if count >= threshold:
            return badge_id
    return None


def matching_locations(place_name: str, place_id: str) -> list[str]:
    """Location badge ids whose tokens appear in the place name or id."""
    haystacks = (place_name.lower(), place_id.lower())
    return [
        badge_id
        for badge_id, tokens in LOCATION_TOKENS.items()
        if any(token in text for token in tokens for text in haystacks)
    ]


def candidate_badges(
    trigger: BadgeTriggerType,
    metadata: BadgeTriggerMetadata,
) -> list[str]:
    """Evaluate the rule table for one trigger.

    Args:
        trigger: Trigger type
        metadata: Trigger payload (missing fields already defaulted)

    Returns:
        Candidate badge ids, in rule order (may be empty)
    """
    if trigger is BadgeTriggerType.FIRST_LOGIN:
        return [BadgeIds.FIRST_LOGIN]

    if trigger is BadgeTriggerType.TOUR_COMPLETED:
        tier = highest_tier(metadata.completed_tours_count, TOUR_TIERS)
        return [tier] if tier else []

    if trigger is BadgeTriggerType.QUIZ_COMPLETED:
        tier = highest_tier(metadata.quiz_correct_answers, QUIZ_TIERS)
        return [tier] if tier else []

    if trigger is BadgeTriggerType.LOCATION_SPECIFIC:
        return matching_locations(metadata.place_name, metadata.place_id)

    # share_journey is reserved: no rule wired yet
    return []
