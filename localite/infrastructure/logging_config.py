"""structlog configuration shared by the scripts."""

import logging

import structlog

from localite.infrastructure.config import get_log_level


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for console output.

    Args:
        level: Level name (default: LOG_LEVEL env var, then INFO)
    """
    level_name = (level or get_log_level()).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
