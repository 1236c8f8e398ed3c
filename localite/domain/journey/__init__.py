"""Journey domain: activity records and their ordering."""

from localite.domain.journey.models import (
    ActivityRecord,
    ActivityRecordInput,
    TimeRange,
    sort_by_recency,
)

__all__ = [
    "ActivityRecord",
    "ActivityRecordInput",
    "TimeRange",
    "sort_by_recency",
]
