"""
Achievement engine.

Evaluates trigger events against the badge rule table and records
at-most-once grants. A grant is a create-if-absent of the document
``user_badges/{user_id}__{badge_id}``, so concurrent awards of the same
badge to the same user yield exactly one grant.
"""

from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Union

import pydantic
import structlog

from localite.domain.badge.catalog import get_badge_by_id
from localite.domain.badge.models import (
    Badge,
    BadgeTriggerMetadata,
    BadgeTriggerType,
    UserBadge,
    grant_document_id,
)
from localite.domain.badge.rules import candidate_badges
from localite.domain.shared.errors import BadgeServiceError, StoreError, ValidationError
from localite.domain.shared.events import BadgeAwarded
from localite.domain.shared.ports.event_bus import IEventBus
from localite.infrastructure.persistence.record_store import USER_BADGES, RecordStore

logger = structlog.get_logger(__name__)

MetadataInput = Union[BadgeTriggerMetadata, Mapping[str, Any], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} cannot be empty")
    return value


class AchievementEngine:
    """Badge evaluation and bookkeeping.

    Example:
        >>> engine = AchievementEngine(RecordStore(InMemoryDocumentStore()))
        >>> awarded = await engine.check_conditions(
        ...     "user_1", "tour_completed", {"completedToursCount": 5}
        ... )
        >>> [badge.id for badge in awarded]
        ['B2-3']
    """

    def __init__(
        self,
        records: RecordStore,
        event_bus: Optional[IEventBus] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Initialize engine.

        Args:
            records: Record store facade
            event_bus: Receives a BadgeAwarded event per new grant
            clock: Award timestamp source (default UTC now)
        """
        self._records = records
        self._event_bus = event_bus
        self._clock = clock or _utc_now

    async def check_conditions(
        self,
        user_id: str,
        trigger_type: Union[BadgeTriggerType, str],
        metadata: MetadataInput = None,
    ) -> List[Badge]:
        """Evaluate one trigger and grant what it earns.

        Args:
            user_id: User to evaluate
            trigger_type: One of BadgeTriggerType (enum or its value)
            metadata: Trigger payload; missing fields use neutral defaults

        Returns:
            Badges newly granted by this call (already-held ones excluded)

        Raises:
            ValidationError: Blank user id, unknown trigger, malformed metadata
            BadgeServiceError: Store failure
        """
        _require(user_id, "User ID")
        trigger = self._parse_trigger(trigger_type)
        meta = self._parse_metadata(metadata)

        candidates = candidate_badges(trigger, meta)
        if not candidates:
            logger.debug("no_badge_rule_matched", user_id=user_id, trigger=trigger.value)
            return []

        awarded: List[Badge] = []
        for badge_id in candidates:
            if await self.award_badge(user_id, badge_id):
                badge = get_badge_by_id(badge_id)
                if badge is not None:
                    awarded.append(badge)
        return awarded

    async def check_conditions_quietly(
        self,
        user_id: str,
        trigger_type: Union[BadgeTriggerType, str],
        metadata: MetadataInput = None,
    ) -> List[Badge]:
        """Like check_conditions, but a store failure yields [] instead of raising.

        For gameplay flows, where a missed badge must not interrupt the
        user. Validation errors still propagate.
        """
        try:
            return await self.check_conditions(user_id, trigger_type, metadata)
        except BadgeServiceError as e:
            logger.error(
                "badge_check_failed",
                user_id=user_id,
                trigger=str(trigger_type),
                operation=e.operation,
                error=str(e.__cause__ or e),
            )
            return []

    async def award_badge(self, user_id: str, badge_id: str) -> bool:
        """Grant ``badge_id`` to ``user_id`` unless already held.

        Returns:
            True if a new grant was written, False if the user already
            held the badge

        Raises:
            ValidationError: Blank ids or badge not in the catalog
            BadgeServiceError: Store failure
        """
        _require(user_id, "User ID")
        _require(badge_id, "Badge ID")
        if get_badge_by_id(badge_id) is None:
            raise ValidationError(f"Unknown badge: {badge_id}")

        grant = UserBadge(user_id=user_id, badge_id=badge_id, awarded_at=self._clock())
        try:
            created = await self._records.create(
                None, USER_BADGES, grant.grant_id, grant.model_dump()
            )
        except StoreError as e:
            raise BadgeServiceError("award_badge", user_id, badge_id) from e

        if not created:
            logger.info("badge_already_owned", user_id=user_id, badge_id=badge_id)
            return False

        logger.info(
            "badge_awarded",
            user_id=user_id,
            badge_id=badge_id,
            awarded_at=grant.awarded_at.isoformat(),
        )
        if self._event_bus is not None:
            await self._event_bus.publish(BadgeAwarded.create(user_id, badge_id))
        return True

    async def get_user_grants(self, user_id: str) -> List[UserBadge]:
        """All grants of a user, oldest first."""
        _require(user_id, "User ID")
        try:
            documents = await self._records.query(USER_BADGES, where={"user_id": user_id})
        except StoreError as e:
            raise BadgeServiceError("get_user_grants", user_id) from e

        grants = [UserBadge.model_validate(doc.data) for doc in documents]
        return sorted(grants, key=lambda grant: grant.awarded_at)

    async def get_user_badges(self, user_id: str) -> List[Badge]:
        """Catalog entries for every badge the user holds, oldest grant first.

        Grants whose badge has left the catalog are skipped.
        """
        badges: List[Badge] = []
        for grant in await self.get_user_grants(user_id):
            badge = get_badge_by_id(grant.badge_id)
            if badge is None:
                logger.warning("grant_for_unknown_badge", user_id=user_id, badge_id=grant.badge_id)
                continue
            badges.append(badge)
        return badges

    async def has_user_badge(self, user_id: str, badge_id: str) -> bool:
        _require(user_id, "User ID")
        _require(badge_id, "Badge ID")
        try:
            document = await self._records.get(
                None, USER_BADGES, grant_document_id(user_id, badge_id)
            )
        except StoreError as e:
            raise BadgeServiceError("has_user_badge", user_id, badge_id) from e
        return document is not None

    @staticmethod
    def _parse_trigger(trigger_type: Union[BadgeTriggerType, str]) -> BadgeTriggerType:
        try:
            return BadgeTriggerType(trigger_type)
        except ValueError:
            raise ValidationError(f"Unknown trigger type: {trigger_type!r}")

    @staticmethod
    def _parse_metadata(metadata: MetadataInput) -> BadgeTriggerMetadata:
        if isinstance(metadata, BadgeTriggerMetadata):
            return metadata
        try:
            return BadgeTriggerMetadata.model_validate(dict(metadata or {}))
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid trigger metadata: {e}") from e
