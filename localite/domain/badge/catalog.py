"""
Static badge catalog.

Version-controlled, read-only list of badge definitions keyed by id.
The engine never infers new definitions at runtime.
"""

from __future__ import annotations

from typing import Optional

from localite.domain.badge.models import Badge, BadgeType, DisplayType


class BadgeIds:
    """Catalog ids referenced by the award rules."""

    FIRST_LOGIN = "B2-1"
    TOURS_COMPLETED_3 = "B2-2"
    TOURS_COMPLETED_5 = "B2-3"
    TOURS_COMPLETED_10 = "B2-4"
    QUIZ_COMPLETED_1 = "B3-1"
    QUIZ_COMPLETED_5 = "B3-2"
    QUIZ_COMPLETED_10 = "B3-3"
    FIRST_SHARE = "B5-1"
    LOCATION_ZHONGLIAO = "B7-1"


BADGES: tuple[Badge, ...] = (
    # ═══════════════════════════════════════════════════════════
    # GROWTH MILESTONES
    # ═══════════════════════════════════════════════════════════
    Badge(
        id=BadgeIds.FIRST_LOGIN,
        type=BadgeType.GROWTH_MILESTONE,
        name="綠芽初登場",
        english_name="babyron",
        description="首次成功登入，你已解鎖「綠芽」限定導覽員，獲得「綠芽初登場」徽章",
        badge_image="B2-1",
        share_image="B2-1-share",
        display_type=DisplayType.MODAL,
        condition="首次註冊成功",
        trigger="首次登入/註冊後",
    ),
    Badge(
        id=BadgeIds.TOURS_COMPLETED_3,
        type=BadgeType.GROWTH_MILESTONE,
        name="探索者1號",
        english_name="map",
        description="完成3次導覽，獲得「探索者1號」徽章",
        badge_image="B2-2",
        share_image="B2-2-share",
        display_type=DisplayType.MODAL,
        condition="不限時間完成任意3個導覽點",
        trigger="生成完成3份導覽遊記後",
    ),
    Badge(
        id=BadgeIds.TOURS_COMPLETED_5,
        type=BadgeType.GROWTH_MILESTONE,
        name="探索者2號",
        english_name="maginifer",
        description="完成5次導覽，獲得「探索者2號」徽章",
        badge_image="B2-3",
        share_image="B2-3-share",
        display_type=DisplayType.MODAL,
        condition="不限時間完成任意5個導覽點",
        trigger="生成完成5份導覽遊記後",
    ),
    Badge(
        id=BadgeIds.TOURS_COMPLETED_10,
        type=BadgeType.GROWTH_MILESTONE,
        name="探索者3號",
        english_name="compass",
        description="完成10次導覽，獲得「探索者3號」徽章",
        badge_image="B2-4",
        share_image="B2-4-share",
        display_type=DisplayType.MODAL,
        condition="不限時間完成任意10個導覽點",
        trigger="生成完成10份導覽遊記後",
    ),
    # ═══════════════════════════════════════════════════════════
    # TASK ACHIEVEMENTS (quiz)
    # ═══════════════════════════════════════════════════════════
    Badge(
        id=BadgeIds.QUIZ_COMPLETED_1,
        type=BadgeType.TASK_ACHIEVEMENT,
        name="小小答題王",
        english_name="quiz-1",
        description="答對第1題導覽問答，獲得「小小答題王」徽章",
        badge_image="B3-1",
        share_image="B3-1-share",
        display_type=DisplayType.CHAT,
        condition="導覽問答答對1題",
        trigger="問答完成後",
    ),
    Badge(
        id=BadgeIds.QUIZ_COMPLETED_5,
        type=BadgeType.TASK_ACHIEVEMENT,
        name="在地知識家",
        english_name="quiz-5",
        description="累計答對5題導覽問答，獲得「在地知識家」徽章",
        badge_image="B3-2",
        share_image="B3-2-share",
        display_type=DisplayType.CHAT,
        condition="導覽問答累計答對5題",
        trigger="問答完成後",
    ),
    Badge(
        id=BadgeIds.QUIZ_COMPLETED_10,
        type=BadgeType.TASK_ACHIEVEMENT,
        name="導覽問答達人",
        english_name="quiz-10",
        description="累計答對10題導覽問答，獲得「導覽問答達人」徽章",
        badge_image="B3-3",
        share_image="B3-3-share",
        display_type=DisplayType.CHAT,
        condition="導覽問答累計答對10題",
        trigger="問答完成後",
    ),
    # ═══════════════════════════════════════════════════════════
    # SOCIAL SHARE (trigger reserved, no rule wired)
    # ═══════════════════════════════════════════════════════════
    Badge(
        id=BadgeIds.FIRST_SHARE,
        type=BadgeType.SOCIAL_SHARE,
        name="分享小達人",
        english_name="share-1",
        description="首次分享導覽遊記，獲得「分享小達人」徽章",
        badge_image="B5-1",
        share_image="B5-1-share",
        display_type=DisplayType.MODAL,
        condition="首次分享導覽遊記",
        trigger="分享遊記後",
    ),
    # ═══════════════════════════════════════════════════════════
    # LOCATION LIMITED
    # ═══════════════════════════════════════════════════════════
    Badge(
        id=BadgeIds.LOCATION_ZHONGLIAO,
        type=BadgeType.LOCATION_LIMITED,
        name="忠忠初登場",
        english_name="zhongliao",
        description="造訪忠寮地區，獲得「忠忠初登場」地點限定徽章",
        badge_image="B7-1",
        share_image="B7-1-share",
        display_type=DisplayType.CHAT,
        condition="於忠寮地區完成導覽",
        trigger="進入忠寮導覽點後",
    ),
)

_BY_ID: dict[str, Badge] = {badge.id: badge for badge in BADGES}


def get_badge_by_id(badge_id: str) -> Optional[Badge]:
    """Look up a badge definition.

    Example:
        >>> get_badge_by_id("B2-1").english_name
        'babyron'
        >>> get_badge_by_id("missing") is None
        True
    """
    return _BY_ID.get(badge_id)


def get_badges_by_type(badge_type: BadgeType) -> list[Badge]:
    """All badges of one category, in catalog order."""
    return [badge for badge in BADGES if badge.type == badge_type]
