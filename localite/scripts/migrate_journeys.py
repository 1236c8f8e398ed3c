#!/usr/bin/env python3
"""
Journey storage migration.

Moves journey records from the flat ``journeys`` collection to per-user
subcollections, or back with ``--rollback``. Verification always runs
at the end.

Usage:
    python -m localite.scripts.migrate_journeys [--dry-run] [--rollback] [--batch-limit N]

Exit codes:
    0: success, or finished with a verification mismatch warning
    1: unrecoverable error, or REPOSITORY_BACKEND=inmemory
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import structlog
from dotenv import load_dotenv

from localite.application.migration.schema_migrator import (
    MigrationMode,
    MigrationPlan,
    MigrationReport,
    SchemaMigrator,
)
from localite.domain.shared.errors import DomainError, MigrationError
from localite.infrastructure.config import get_repository_backend
from localite.infrastructure.logging_config import configure_logging
from localite.infrastructure.persistence.factory import create_record_store
from localite.infrastructure.persistence.record_store import RecordStore

logger = structlog.get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Migrate journeys between the flat and per-user layouts."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be migrated without writing (wins over --rollback)",
    )
    parser.add_argument(
        "--rollback",
        action="store_true",
        help="Move per-user journeys back to the flat collection",
    )
    parser.add_argument(
        "--batch-limit",
        type=int,
        default=None,
        help="Operations per committed chunk (default: MIGRATION_BATCH_LIMIT or 450)",
    )
    return parser.parse_args(argv)


def select_mode(args: argparse.Namespace) -> MigrationMode:
    if args.dry_run:
        return MigrationMode.DRY_RUN
    if args.rollback:
        return MigrationMode.ROLLBACK
    return MigrationMode.MIGRATE


def print_plan(mode: MigrationMode, plan: MigrationPlan) -> None:
    print(f"\n📋 Mode: {mode.value}")
    print(f"   Flat records: {plan.total_records}")
    print(f"   Owners: {len(plan.records_per_owner)}")
    for owner_id, count in sorted(plan.records_per_owner.items()):
        print(f"     👤 {owner_id}: {count}")
    if plan.skipped_ids:
        print(f"   ⚠️  Skipped (no owner): {len(plan.skipped_ids)}")


def print_summary(report: MigrationReport) -> None:
    verification = report.verification

    if report.mode is not MigrationMode.DRY_RUN:
        print(
            f"\n📦 Written: {report.written}  Deleted: {report.deleted}  "
            f"Chunks: {report.chunks}  Owners refreshed: {report.owners_refreshed}"
        )

    print("\n🔍 Verification")
    print(f"   Flat (owned): {verification.flat_owned_records}")
    print(f"   Per-user: {verification.partitioned_records}")
    if verification.consistent:
        print("   ✅ Consistent")
    else:
        print("   ⚠️  Mismatch")
        for owner_id, (flat, nested) in sorted(verification.mismatched_owners.items()):
            print(f"     👤 {owner_id}: flat={flat} per-user={nested}")


async def main(
    argv: Optional[Sequence[str]] = None,
    records: Optional[RecordStore] = None,
) -> int:
    """Run the migration.

    Args:
        argv: Command line arguments (default: sys.argv)
        records: Record store (default: from REPOSITORY_BACKEND, which
            must not be the in-memory backend)

    Returns:
        Process exit code
    """
    args = parse_args(argv)
    mode = select_mode(args)

    if records is None and get_repository_backend() == "inmemory":
        logger.error("Refusing to migrate the in-memory backend", mode=mode.value)
        print("❌ REPOSITORY_BACKEND=inmemory has no journeys to migrate; set it to mongodb")
        return 1

    try:
        migrator = SchemaMigrator(records or create_record_store(), batch_limit=args.batch_limit)
        logger.info("Starting journey migration", mode=mode.value, batch_limit=migrator.batch_limit)
        print_plan(mode, await migrator.plan())
        report = await migrator.run(mode)
    except MigrationError as e:
        logger.error("Migration failed", mode=mode.value, error=str(e))
        print(
            f"\n❌ Stopped after {e.committed_chunks} committed chunks "
            f"({e.committed_operations} operations); re-run to resume"
        )
        return 1
    except (DomainError, ValueError) as e:
        logger.error("Migration failed", mode=mode.value, error=str(e))
        print(f"\n❌ {e}")
        return 1

    print_summary(report)
    if not report.verification.consistent:
        logger.warning("Migration finished with verification mismatch", mode=mode.value)
    else:
        logger.info("Migration finished", mode=mode.value)
    return 0


def run() -> None:
    """Console entry point."""
    load_dotenv()
    configure_logging()
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
