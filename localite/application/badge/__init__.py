"""Badge application services."""

from localite.application.badge.achievement_engine import AchievementEngine

__all__ = ["AchievementEngine"]
