"""
Activity record manager.

Per-user journey records stored under ``users/{owner_id}/journeys``.
One record per (date, place_name) per owner: saving the same key again
replaces the earlier record in place. New records get an id derived
from (owner, date, place_name) and are written create-if-absent, so two
concurrent first saves of the same key land on one document. Reads
tolerate legacy documents written in camelCase or with missing fields,
and ``get`` falls back to the flat ``journeys`` collection for records
not yet migrated.
"""

from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional
from uuid import NAMESPACE_URL, uuid5

import pydantic
import structlog

from localite.domain.journey.models import (
    DEFAULT_END,
    DEFAULT_PLACE,
    DEFAULT_START,
    DEFAULT_TITLE,
    DEFAULT_WEATHER,
    OWNER_FIELDS,
    ActivityRecord,
    ActivityRecordInput,
    TimeRange,
    sort_by_recency,
)
from localite.domain.shared.errors import (
    RecordNotFoundError,
    RecordSyncError,
    StoreError,
    ValidationError,
)
from localite.domain.shared.ports.document_store import Document, StoredDocument
from localite.domain.shared.timestamps import NormalizedDate, TimestampNormalizer
from localite.infrastructure.persistence.record_store import JOURNEYS, RecordStore

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _identity_record_id(owner_id: str, day: str, place_name: str) -> str:
    """Stable id of the (owner, date, place_name) record."""
    name = f"localite:{owner_id}/{day}/{place_name}"
    return f"journey-{uuid5(NAMESPACE_URL, name).hex}"


def _require(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} cannot be empty")
    return value


def _first(data: Document, *keys: str) -> Any:
    """First non-empty value among ``keys`` (snake_case, then legacy camelCase)."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _owned_by(data: Document, owner_id: str) -> bool:
    return any(data.get(field) == owner_id for field in OWNER_FIELDS)


def _parse_datetime(value: Any, fallback: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, Mapping) and "seconds" in value:
        return datetime.fromtimestamp(float(value["seconds"]), tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return fallback


class ActivityRecordManager:
    """Create, replace, list and remove a user's journey records.

    Example:
        >>> manager = ActivityRecordManager(RecordStore(InMemoryDocumentStore()))
        >>> record = await manager.upsert(
        ...     ActivityRecordInput(
        ...         owner_id="user_1",
        ...         place_name="Zhongliao",
        ...         timestamp={"seconds": 1757836800, "nanoseconds": 0},
        ...     )
        ... )
        >>> record.date
        '2025-09-14'
    """

    def __init__(
        self,
        records: RecordStore,
        normalizer: Optional[TimestampNormalizer] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        """Initialize manager.

        Args:
            records: Record store facade
            normalizer: Date normalizer (default: UTC clock)
            clock: created_at/updated_at source (default UTC now)
            id_factory: New record ids (default: derived from owner, date
                and place, ``journey-<hex>``)
        """
        self._records = records
        self._normalizer = normalizer or TimestampNormalizer()
        self._clock = clock or _utc_now
        self._id_factory = id_factory

    # ============================================================
    # Writes
    # ============================================================

    async def upsert(self, record: ActivityRecordInput) -> ActivityRecord:
        """Save a record, replacing the owner's record with the same (date, place).

        The replaced record keeps its id and created_at; every other
        field comes from ``record``. A new record is created only if
        absent, so a concurrent first save of the same key is replaced
        instead of duplicated.

        Raises:
            ValidationError: Blank owner id
            RecordSyncError: Store failure
        """
        owner_id = _require(record.owner_id, "Owner ID")
        resolved = self._resolve_date(record)
        place_name = record.place_name or record.title or DEFAULT_PLACE
        title = record.title or record.place_name or DEFAULT_TITLE

        if resolved.is_fallback:
            logger.warning(
                "journey_date_needs_review",
                owner_id=owner_id,
                place_name=place_name,
                date=resolved.value,
            )

        record_id: Optional[str] = None
        try:
            # Matched after mapping so legacy camelCase documents count too
            documents = await self._records.query(JOURNEYS, owner_id=owner_id)
            existing = next(
                (
                    found
                    for found in (self._from_document(doc, owner_id) for doc in documents)
                    if found.identity_key == (resolved.value, place_name)
                ),
                None,
            )
            now = self._clock()
            record_id = (
                existing.id if existing else self._next_id(owner_id, resolved.value, place_name)
            )

            saved = ActivityRecord(
                id=record_id,
                owner_id=owner_id,
                date=resolved.value,
                title=title,
                place_name=place_name,
                photos=list(record.photos),
                weather=record.weather or DEFAULT_WEATHER,
                content=record.content,
                time_range=record.time_range,
                date_needs_review=resolved.is_fallback,
                created_at=existing.created_at if existing else now,
                updated_at=now,
            )
            replaced = existing is not None
            if replaced:
                await self._records.put(owner_id, JOURNEYS, record_id, self._to_document(saved))
            elif not await self._records.create(
                owner_id, JOURNEYS, record_id, self._to_document(saved)
            ):
                # A concurrent first save of the same key got there first
                replaced = True
                winner = await self._records.get(owner_id, JOURNEYS, record_id)
                if winner is not None:
                    created_at = self._from_document(winner, owner_id).created_at
                    saved = saved.model_copy(update={"created_at": created_at})
                await self._records.put(owner_id, JOURNEYS, record_id, self._to_document(saved))
            await self._records.refresh_owner_stats(owner_id, JOURNEYS)
        except StoreError as e:
            raise RecordSyncError("upsert", owner_id, record_id) from e

        logger.info(
            "journey_saved",
            owner_id=owner_id,
            record_id=record_id,
            date=saved.date,
            place_name=place_name,
            replaced=replaced,
        )
        return saved

    async def remove(self, owner_id: str, record_id: str) -> None:
        """Delete one record.

        Raises:
            ValidationError: Blank ids
            RecordNotFoundError: No such record for this owner
            RecordSyncError: Store failure
        """
        _require(owner_id, "Owner ID")
        _require(record_id, "Record ID")
        try:
            deleted = await self._records.delete(owner_id, JOURNEYS, record_id)
            if not deleted:
                raise RecordNotFoundError(owner_id, record_id)
            await self._records.refresh_owner_stats(owner_id, JOURNEYS)
        except StoreError as e:
            raise RecordSyncError("remove", owner_id, record_id) from e

        logger.info("journey_removed", owner_id=owner_id, record_id=record_id)

    # ============================================================
    # Reads
    # ============================================================

    async def get(self, owner_id: str, record_id: str) -> Optional[ActivityRecord]:
        """One record, read from the owner's subcollection first.

        Records not yet migrated are read from the flat ``journeys``
        collection, but only when their owner field names ``owner_id``.
        """
        _require(owner_id, "Owner ID")
        _require(record_id, "Record ID")
        try:
            document = await self._records.get(owner_id, JOURNEYS, record_id)
            if document is None:
                document = await self._records.get(None, JOURNEYS, record_id)
                if document is None or not _owned_by(document.data, owner_id):
                    return None
                logger.debug("journey_read_from_flat", owner_id=owner_id, record_id=record_id)
        except StoreError as e:
            raise RecordSyncError("get", owner_id, record_id) from e
        return self._from_document(document, owner_id)

    async def list_by_owner(self, owner_id: str) -> List[ActivityRecord]:
        """All records, newest date first, later start time first within a day."""
        _require(owner_id, "Owner ID")
        return sort_by_recency(await self._load(owner_id, "list_by_owner"))

    async def list_by_date(self, owner_id: str, date: Any) -> List[ActivityRecord]:
        """Records of one day; ``date`` accepts any timestamp representation."""
        _require(owner_id, "Owner ID")
        day = self._canonical(date)
        records = await self._load(owner_id, "list_by_date")
        return sort_by_recency([record for record in records if record.date == day])

    async def list_between(self, owner_id: str, start: Any, end: Any) -> List[ActivityRecord]:
        """Records with ``start <= date <= end`` (inclusive)."""
        _require(owner_id, "Owner ID")
        first_day = self._canonical(start)
        last_day = self._canonical(end)
        records = await self._load(owner_id, "list_between")
        return sort_by_recency(
            [record for record in records if first_day <= record.date <= last_day]
        )

    async def has_records_on(self, owner_id: str, date: Any) -> bool:
        return bool(await self.list_by_date(owner_id, date))

    async def _load(self, owner_id: str, operation: str) -> List[ActivityRecord]:
        # Legacy documents may lack a stored date, so filtering happens after mapping
        try:
            documents = await self._records.query(JOURNEYS, owner_id=owner_id)
        except StoreError as e:
            raise RecordSyncError(operation, owner_id) from e
        return [self._from_document(document, owner_id) for document in documents]

    # ============================================================
    # Mapping
    # ============================================================

    def _canonical(self, value: Any) -> str:
        if self._normalizer.is_canonical(value):
            return value
        return self._normalizer.normalize(value)

    def _resolve_date(self, record: ActivityRecordInput) -> NormalizedDate:
        if self._normalizer.is_canonical(record.date):
            return NormalizedDate(record.date)
        source = record.timestamp if record.timestamp is not None else record.date
        return self._normalizer.resolve(source)

    def _next_id(self, owner_id: str, day: str, place_name: str) -> str:
        if self._id_factory is not None:
            return self._id_factory()
        return _identity_record_id(owner_id, day, place_name)

    @staticmethod
    def _to_document(record: ActivityRecord) -> Document:
        """Stored shape; the owner is the partition, not a field."""
        return record.model_dump(mode="json", exclude={"id", "owner_id"})

    def _from_document(self, document: StoredDocument, owner_id: str) -> ActivityRecord:
        data = document.data
        now = self._clock()

        stored_date = data.get("date")
        if self._normalizer.is_canonical(stored_date):
            date = NormalizedDate(stored_date)
        else:
            date = self._normalizer.resolve(_first(data, "created_at", "createdAt", "date"))

        place = _first(data, "place_name", "placeName")
        title = _first(data, "title")

        raw_range = _first(data, "time_range", "timeRange") or {}
        try:
            time_range = TimeRange(
                start=raw_range.get("start") or DEFAULT_START,
                end=raw_range.get("end") or DEFAULT_END,
            )
        except (AttributeError, pydantic.ValidationError):
            logger.warning("journey_time_range_invalid", record_id=document.id, value=raw_range)
            time_range = TimeRange()

        created_at = _parse_datetime(_first(data, "created_at", "createdAt"), now)
        return ActivityRecord(
            id=document.id,
            owner_id=owner_id,
            date=date.value,
            title=title or place or DEFAULT_TITLE,
            place_name=place or title or DEFAULT_PLACE,
            photos=list(data.get("photos") or []),
            weather=data.get("weather") or DEFAULT_WEATHER,
            content=_first(
                data, "content", "summary", "generated_content", "generatedContent"
            )
            or "",
            time_range=time_range,
            date_needs_review=bool(
                _first(data, "date_needs_review", "dateNeedsReview") or date.is_fallback
            ),
            created_at=created_at,
            updated_at=_parse_datetime(_first(data, "updated_at", "updatedAt"), created_at),
        )
