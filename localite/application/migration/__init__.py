"""Journey schema migration."""

from localite.application.migration.schema_migrator import (
    MigrationMode,
    MigrationPlan,
    MigrationReport,
    SchemaMigrator,
    VerificationReport,
)

__all__ = [
    "MigrationMode",
    "MigrationPlan",
    "MigrationReport",
    "SchemaMigrator",
    "VerificationReport",
]
