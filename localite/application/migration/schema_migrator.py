"""
Journey schema migrator.

Moves journey records from the flat ``journeys`` collection (owner kept
in a ``user_id`` or legacy ``userId`` field) to per-owner subcollections
``users/{owner_id}/journeys`` (owner implied by the path), and back.
Rollback re-attaches the owner under the key the flat copy used, and
under ``user_id`` for records that never had a flat copy.

Writes are committed in chunks below the store's per-batch ceiling; a
chunk is committed before the next one is built. Migrate keeps the flat
copies so both layouts can serve reads during the cut-over. Document ids
are preserved, so re-running either direction rewrites the same
documents instead of duplicating them.
"""

from enum import Enum
from typing import Awaitable, Dict, Iterable, List, Optional, Sequence, TypeVar

import structlog
from pydantic import BaseModel, Field

from localite.domain.journey.models import OWNER_FIELD, OWNER_FIELDS
from localite.domain.shared.errors import MigrationError, StoreError
from localite.domain.shared.ports.document_store import Document, StoredDocument, WriteOp
from localite.infrastructure.config import get_migration_batch_limit
from localite.infrastructure.persistence.record_store import JOURNEYS, RecordStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class MigrationMode(str, Enum):
    """What a run does before verifying."""

    DRY_RUN = "dry_run"
    MIGRATE = "migrate"
    ROLLBACK = "rollback"


class MigrationPlan(BaseModel):
    """Pre-run summary of the flat collection."""

    total_records: int = 0
    records_per_owner: Dict[str, int] = Field(default_factory=dict)
    skipped_ids: List[str] = Field(default_factory=list)

    @property
    def migratable_records(self) -> int:
        return sum(self.records_per_owner.values())


class VerificationReport(BaseModel):
    """
    Flat vs partitioned record counts.

    Consistent states:
      * flat-only: no partitioned records (before migrate, after rollback)
      * mirrored: every owner has as many partitioned records as owned
        flat records (after migrate)
    """

    flat_records: int = 0
    flat_owned_records: int = 0
    partitioned_records: int = 0
    mismatched_owners: Dict[str, tuple[int, int]] = Field(default_factory=dict)

    @property
    def is_flat_only(self) -> bool:
        return self.partitioned_records == 0

    @property
    def is_mirrored(self) -> bool:
        return (
            not self.mismatched_owners
            and self.flat_owned_records == self.partitioned_records
        )

    @property
    def consistent(self) -> bool:
        return self.is_flat_only or self.is_mirrored


class MigrationReport(BaseModel):
    """Outcome of one ``SchemaMigrator.run``."""

    mode: MigrationMode
    plan: MigrationPlan
    written: int = 0
    deleted: int = 0
    chunks: int = 0
    owners_refreshed: int = 0
    verification: VerificationReport


class SchemaMigrator:
    """Migrates, rolls back and verifies the journey storage layout.

    Example:
        >>> migrator = SchemaMigrator(RecordStore(store), batch_limit=450)
        >>> report = await migrator.run(MigrationMode.MIGRATE)
        >>> report.verification.consistent
        True
    """

    def __init__(
        self,
        records: RecordStore,
        batch_limit: Optional[int] = None,
        collection: str = JOURNEYS,
    ) -> None:
        """Initialize migrator.

        Args:
            records: Record store facade
            batch_limit: Operations per chunk (default MIGRATION_BATCH_LIMIT,
                450); at least 2 and at most the store's ceiling
            collection: Collection moved between the two layouts

        Raises:
            ValueError: batch_limit out of range
        """
        limit = batch_limit if batch_limit is not None else get_migration_batch_limit()
        if limit < 2 or limit > records.max_batch_operations:
            raise ValueError(
                f"batch_limit must be between 2 and {records.max_batch_operations}, got {limit}"
            )
        self._records = records
        self._batch_limit = limit
        self._collection = collection

    @property
    def batch_limit(self) -> int:
        return self._batch_limit

    async def run(self, mode: MigrationMode) -> MigrationReport:
        """Summarize, execute ``mode``, then verify.

        Raises:
            MigrationError: A chunk or a stats refresh failed; earlier
                chunks stay committed
        """
        plan = await self.plan()
        self._log_plan(plan)

        written = deleted = chunks = owners_refreshed = 0
        if mode is MigrationMode.MIGRATE:
            written, chunks, owners_refreshed = await self._migrate(plan)
        elif mode is MigrationMode.ROLLBACK:
            written, deleted, chunks, owners_refreshed = await self._rollback()
        else:
            logger.info("Dry run: no writes", records=plan.migratable_records)

        verification = await self.verify()
        return MigrationReport(
            mode=mode,
            plan=plan,
            written=written,
            deleted=deleted,
            chunks=chunks,
            owners_refreshed=owners_refreshed,
            verification=verification,
        )

    # ============================================================
    # Planning
    # ============================================================

    async def plan(self) -> MigrationPlan:
        """Read the flat collection and group records by owner."""
        documents = await self._read_flat()
        per_owner: Dict[str, int] = {}
        skipped: List[str] = []
        for document in documents:
            owner_id = _owner_of(document.data)
            if owner_id is None:
                logger.warning("Journey has no owner, skipping", record_id=document.id)
                skipped.append(document.id)
                continue
            per_owner[owner_id] = per_owner.get(owner_id, 0) + 1
        return MigrationPlan(
            total_records=len(documents),
            records_per_owner=per_owner,
            skipped_ids=skipped,
        )

    # ============================================================
    # Migrate / rollback
    # ============================================================

    async def _migrate(self, plan: MigrationPlan) -> tuple[int, int, int]:
        groups: List[List[WriteOp]] = []
        for document in await self._read_flat():
            owner_id = _owner_of(document.data)
            if owner_id is None:
                continue
            target = self._records.document(owner_id, self._collection, document.id)
            groups.append([WriteOp.set(target, _without_owner(document.data))])

        chunks, written = await self._commit_in_chunks(groups)
        refreshed = await self._refresh_stats(plan.records_per_owner, chunks, written)
        logger.info("Migration completed", written=written, chunks=chunks)
        return written, chunks, refreshed

    async def _rollback(self) -> tuple[int, int, int, int]:
        # Owner key names of the surviving flat copies, so legacy `userId`
        # documents come back as they were written
        flat_owner_keys = {
            document.id: _owner_keys(document.data) for document in await self._read_flat()
        }
        owners = await self._guarded_read(self._records.list_owners(self._collection))
        groups: List[List[WriteOp]] = []
        for owner_id in owners:
            documents = await self._guarded_read(
                self._records.query(self._collection, owner_id=owner_id)
            )
            logger.info("Rolling back owner", owner_id=owner_id, records=len(documents))
            for document in documents:
                flat = self._records.document(None, self._collection, document.id)
                nested = self._records.document(owner_id, self._collection, document.id)
                keys = flat_owner_keys.get(document.id) or (OWNER_FIELD,)
                restored = {
                    **_without_owner(document.data),
                    **{key: owner_id for key in keys},
                }
                # Restore and delete travel in the same chunk
                groups.append([WriteOp.set(flat, restored), WriteOp.delete(nested)])

        chunks, operations = await self._commit_in_chunks(groups)
        refreshed = await self._refresh_stats(owners, chunks, operations)
        restored_count = operations // 2
        logger.info("Rollback completed", restored=restored_count, chunks=chunks)
        return restored_count, restored_count, chunks, refreshed

    async def _commit_in_chunks(self, groups: Sequence[List[WriteOp]]) -> tuple[int, int]:
        """Commit op groups in chunks of at most batch_limit ops; groups never split.

        Returns:
            (chunks committed, operations committed)
        """
        committed_chunks = committed_ops = 0
        chunk: List[WriteOp] = []

        async def flush() -> None:
            nonlocal committed_chunks, committed_ops, chunk
            if not chunk:
                return
            try:
                await self._records.batch_write(chunk)
            except StoreError as e:
                raise MigrationError(
                    f"Chunk {committed_chunks + 1} failed: {e}",
                    committed_chunks=committed_chunks,
                    committed_operations=committed_ops,
                ) from e
            committed_chunks += 1
            committed_ops += len(chunk)
            logger.info(
                "Chunk committed",
                chunk=committed_chunks,
                operations=len(chunk),
                total_operations=committed_ops,
            )
            chunk = []

        for group in groups:
            if len(chunk) + len(group) > self._batch_limit:
                await flush()
            chunk.extend(group)
        await flush()

        return committed_chunks, committed_ops

    async def _refresh_stats(
        self, owners: Iterable[str], chunks: int, operations: int
    ) -> int:
        refreshed = 0
        for owner_id in owners:
            try:
                await self._records.refresh_owner_stats(owner_id, self._collection)
            except StoreError as e:
                raise MigrationError(
                    f"Stats refresh failed for owner {owner_id}: {e}",
                    committed_chunks=chunks,
                    committed_operations=operations,
                ) from e
            refreshed += 1
        return refreshed

    # ============================================================
    # Verification
    # ============================================================

    async def verify(self) -> VerificationReport:
        """Compare flat and partitioned counts; a mismatch is logged, not raised."""
        documents = await self._read_flat()
        flat_per_owner: Dict[str, int] = {}
        for document in documents:
            owner_id = _owner_of(document.data)
            if owner_id is not None:
                flat_per_owner[owner_id] = flat_per_owner.get(owner_id, 0) + 1

        partitioned_per_owner: Dict[str, int] = {}
        for owner_id in await self._guarded_read(self._records.list_owners(self._collection)):
            partitioned_per_owner[owner_id] = await self._guarded_read(
                self._records.count(self._collection, owner_id=owner_id)
            )

        partitioned_total = sum(partitioned_per_owner.values())
        mismatched: Dict[str, tuple[int, int]] = {}
        if partitioned_total:
            for owner_id in set(flat_per_owner) | set(partitioned_per_owner):
                flat_count = flat_per_owner.get(owner_id, 0)
                nested_count = partitioned_per_owner.get(owner_id, 0)
                if flat_count != nested_count:
                    mismatched[owner_id] = (flat_count, nested_count)

        report = VerificationReport(
            flat_records=len(documents),
            flat_owned_records=sum(flat_per_owner.values()),
            partitioned_records=partitioned_total,
            mismatched_owners=mismatched,
        )
        if report.consistent:
            logger.info(
                "Verification passed",
                state="flat_only" if report.is_flat_only else "mirrored",
                flat=report.flat_owned_records,
                partitioned=report.partitioned_records,
            )
        else:
            logger.warning(
                "Verification mismatch",
                flat=report.flat_owned_records,
                partitioned=report.partitioned_records,
                mismatched_owners=mismatched,
            )
        return report

    # ============================================================
    # Helpers
    # ============================================================

    async def _read_flat(self) -> List[StoredDocument]:
        return await self._guarded_read(self._records.query(self._collection))

    @staticmethod
    async def _guarded_read(awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except StoreError as e:
            raise MigrationError(f"Read failed: {e}") from e

    @staticmethod
    def _log_plan(plan: MigrationPlan) -> None:
        logger.info(
            "Migration plan",
            total=plan.total_records,
            migratable=plan.migratable_records,
            skipped=len(plan.skipped_ids),
            owners=len(plan.records_per_owner),
        )
        for owner_id, count in sorted(plan.records_per_owner.items()):
            logger.info("Owner records", owner_id=owner_id, records=count)


def _owner_of(data: Document) -> Optional[str]:
    for field in OWNER_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _without_owner(data: Document) -> Document:
    return {key: value for key, value in data.items() if key not in OWNER_FIELDS}


def _owner_keys(data: Document) -> tuple[str, ...]:
    return tuple(field for field in OWNER_FIELDS if field in data)
