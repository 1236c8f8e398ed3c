"""Journey record application services."""

from localite.application.journey.record_manager import ActivityRecordManager

__all__ = ["ActivityRecordManager"]
