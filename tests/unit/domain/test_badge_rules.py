"""Unit tests for the badge catalog, trigger metadata and award rules."""

import pytest

from localite.domain.badge.catalog import (
    BADGES,
    BadgeIds,
    get_badge_by_id,
    get_badges_by_type,
)
from localite.domain.badge.models import (
    BadgeTriggerMetadata,
    BadgeTriggerType,
    BadgeType,
    UserBadge,
    grant_document_id,
)
from localite.domain.badge.rules import (
    QUIZ_TIERS,
    TOUR_TIERS,
    candidate_badges,
    highest_tier,
    matching_locations,
)


class TestCatalog:
    """Static catalog lookups."""

    def test_ids_are_unique(self) -> None:
        ids = [badge.id for badge in BADGES]
        assert len(ids) == len(set(ids))

    def test_every_rule_target_is_in_catalog(self) -> None:
        targets = [badge_id for _, badge_id in TOUR_TIERS + QUIZ_TIERS]
        targets += [BadgeIds.FIRST_LOGIN, BadgeIds.LOCATION_ZHONGLIAO]
        for badge_id in targets:
            assert get_badge_by_id(badge_id) is not None

    def test_lookup(self) -> None:
        badge = get_badge_by_id("B2-1")
        assert badge is not None
        assert badge.type is BadgeType.GROWTH_MILESTONE

    def test_unknown_id(self) -> None:
        assert get_badge_by_id("B9-9") is None

    def test_by_type(self) -> None:
        growth = get_badges_by_type(BadgeType.GROWTH_MILESTONE)
        assert [badge.id for badge in growth] == ["B2-1", "B2-2", "B2-3", "B2-4"]

    def test_badges_are_immutable(self) -> None:
        badge = get_badge_by_id("B2-1")
        with pytest.raises(Exception):
            badge.name = "changed"  # type: ignore[misc]


class TestTriggerMetadata:
    """Loosely-typed trigger payloads."""

    def test_camel_case_aliases(self) -> None:
        meta = BadgeTriggerMetadata.model_validate(
            {"completedToursCount": 3, "placeName": "忠寮", "placeId": "p1"}
        )
        assert meta.completed_tours_count == 3
        assert meta.place_name == "忠寮"
        assert meta.place_id == "p1"

    def test_snake_case_names(self) -> None:
        meta = BadgeTriggerMetadata.model_validate({"quiz_correct_answers": 4})
        assert meta.quiz_correct_answers == 4

    def test_missing_fields_default_to_neutral(self) -> None:
        meta = BadgeTriggerMetadata()
        assert meta.completed_tours_count == 0
        assert meta.quiz_correct_answers == 0
        assert meta.place_name == ""

    def test_none_counts_become_zero(self) -> None:
        meta = BadgeTriggerMetadata.model_validate(
            {"completedToursCount": None, "placeName": None}
        )
        assert meta.completed_tours_count == 0
        assert meta.place_name == ""

    def test_unknown_keys_are_kept(self) -> None:
        meta = BadgeTriggerMetadata.model_validate({"sessionId": "s-1"})
        assert meta.model_extra == {"sessionId": "s-1"}


class TestHighestTier:
    """Inclusive thresholds, largest first."""

    @pytest.mark.parametrize(
        "count,expected",
        [(0, None), (2, None), (3, "B2-2"), (4, "B2-2"), (5, "B2-3"), (9, "B2-3"), (10, "B2-4"), (250, "B2-4")],
    )
    def test_tour_tiers(self, count: int, expected) -> None:
        assert highest_tier(count, TOUR_TIERS) == expected

    @pytest.mark.parametrize(
        "count,expected", [(0, None), (1, "B3-1"), (4, "B3-1"), (5, "B3-2"), (10, "B3-3")]
    )
    def test_quiz_tiers(self, count: int, expected) -> None:
        assert highest_tier(count, QUIZ_TIERS) == expected

    def test_tier_order_does_not_matter(self) -> None:
        assert highest_tier(6, tuple(reversed(TOUR_TIERS))) == "B2-3"

    def test_threshold_monotonicity(self) -> None:
        """A larger count never yields a lower tier."""
        thresholds = {badge_id: threshold for threshold, badge_id in TOUR_TIERS}
        previous = -1
        for count in range(0, 30):
            tier = highest_tier(count, TOUR_TIERS)
            current = thresholds[tier] if tier else -1
            assert current >= previous
            previous = current


class TestLocationMatching:
    """Location tokens match place names and ids, case-insensitively."""

    def test_chinese_token(self) -> None:
        assert matching_locations("忠寮社區導覽", "") == ["B7-1"]

    def test_latin_token_in_place_id(self) -> None:
        assert matching_locations("", "ZhongLiao-001") == ["B7-1"]

    def test_no_match(self) -> None:
        assert matching_locations("Tamsui Old Street", "tamsui") == []


class TestCandidateBadges:
    """Rule table evaluation."""

    def test_first_login(self) -> None:
        assert candidate_badges(BadgeTriggerType.FIRST_LOGIN, BadgeTriggerMetadata()) == ["B2-1"]

    def test_tour_completed_highest_tier_only(self) -> None:
        meta = BadgeTriggerMetadata(completed_tours_count=12)
        assert candidate_badges(BadgeTriggerType.TOUR_COMPLETED, meta) == ["B2-4"]

    def test_tour_completed_below_threshold(self) -> None:
        meta = BadgeTriggerMetadata(completed_tours_count=2)
        assert candidate_badges(BadgeTriggerType.TOUR_COMPLETED, meta) == []

    def test_quiz_missing_count_grants_nothing(self) -> None:
        assert candidate_badges(BadgeTriggerType.QUIZ_COMPLETED, BadgeTriggerMetadata()) == []

    def test_location_specific(self) -> None:
        meta = BadgeTriggerMetadata(place_name="Zhongliao village")
        assert candidate_badges(BadgeTriggerType.LOCATION_SPECIFIC, meta) == ["B7-1"]

    def test_share_journey_is_reserved(self) -> None:
        meta = BadgeTriggerMetadata(share_count=5)
        assert candidate_badges(BadgeTriggerType.SHARE_JOURNEY, meta) == []


class TestUserBadge:
    """Grant records."""

    def test_grant_id_is_deterministic(self) -> None:
        grant = UserBadge(user_id="u1", badge_id="B2-1")
        assert grant.grant_id == grant_document_id("u1", "B2-1") == "u1__B2-1"

    def test_awarded_at_is_utc(self) -> None:
        assert UserBadge(user_id="u1", badge_id="B2-1").awarded_at.tzinfo is not None
