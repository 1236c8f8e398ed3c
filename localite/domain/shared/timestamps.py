"""
Timestamp normalization.

Reduces the heterogeneous time representations found in journey
documents (store-native timestamps, ISO strings, epoch numbers, native
datetimes) to the canonical ``YYYY-MM-DD`` calendar date.

Normalization is total: a bad timestamp never blocks a save. Inputs that
cannot be decoded, or that decode outside [1970-01-01, 2100-01-01], fall
back to today's date and log a warning. Dates are sliced in UTC so the
result does not depend on the host timezone.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)

# 2100-01-01T00:00:00Z in epoch milliseconds
MAX_EPOCH_MS = 4_102_444_800_000
MIN_EPOCH_MS = 0

# Numbers up to this value are epoch seconds, above it milliseconds
SECONDS_THRESHOLD = 9_999_999_999

_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d %b %Y",
    "%b %d %Y",
    "%B %d, %Y",
)

_MISSING = object()


@dataclass(frozen=True)
class NormalizedDate:
    """Result of normalizing a timestamp.

    Attributes:
        value: Canonical ``YYYY-MM-DD`` date.
        is_fallback: True when the input was rejected and today was used.
    """

    value: str
    is_fallback: bool = False

    def __str__(self) -> str:
        return self.value


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampNormalizer:
    """Converts any supported time representation to a canonical date.

    Precedence:
    1. ``{seconds, nanoseconds}`` pair (mapping or attribute)
    2. ISO-8601 string containing ``T``
    3. Epoch number (seconds if <= 9_999_999_999, else milliseconds)
    4. ``datetime`` / ``date``
    5. Object exposing ``to_date()`` / ``toDate()``
    6. Generic date parsing of ``str(value)``

    Examples:
        >>> normalizer = TimestampNormalizer()
        >>> normalizer.normalize({"seconds": 1757836800, "nanoseconds": 0})
        '2025-09-14'
        >>> normalizer.normalize("2025-09-14T07:49:00Z")
        '2025-09-14'
        >>> normalizer.normalize(1757836800000)
        '2025-09-14'
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        """Initialize normalizer.

        Args:
            clock: Returns "now"; injectable for tests (default UTC now)
        """
        self._clock = clock or _utc_now

    def today(self) -> str:
        """Today's canonical date (UTC)."""
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(timezone.utc)
        return now.date().isoformat()

    def normalize(self, value: Any) -> str:
        """Normalize ``value`` to ``YYYY-MM-DD``. Never raises."""
        return self.resolve(value).value

    def resolve(self, value: Any) -> NormalizedDate:
        """Normalize ``value`` and report whether the fallback was used."""
        if value is None:
            logger.warning("invalid_timestamp", reason="missing", fallback="today")
            return NormalizedDate(self.today(), is_fallback=True)

        try:
            epoch_ms = self._to_epoch_ms(value)
        except Exception as e:
            logger.warning(
                "invalid_timestamp",
                reason="conversion_error",
                value=_preview(value),
                error=str(e),
            )
            return NormalizedDate(self.today(), is_fallback=True)

        if epoch_ms is None or math.isnan(epoch_ms) or not (
            MIN_EPOCH_MS <= epoch_ms <= MAX_EPOCH_MS
        ):
            logger.warning(
                "invalid_timestamp",
                reason="unparseable" if epoch_ms is None else "out_of_range",
                value=_preview(value),
            )
            return NormalizedDate(self.today(), is_fallback=True)

        day = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).date()
        return NormalizedDate(day.isoformat())

    def is_canonical(self, value: Any) -> bool:
        """True if ``value`` already is a valid in-range ``YYYY-MM-DD`` string."""
        if not isinstance(value, str) or len(value) != 10:
            return False
        try:
            parsed = date.fromisoformat(value)
        except ValueError:
            return False
        return MIN_EPOCH_MS <= _date_to_ms(parsed) <= MAX_EPOCH_MS

    # ============================================================
    # Decoding
    # ============================================================

    def _to_epoch_ms(self, value: Any) -> Optional[float]:
        seconds = _seconds_of(value)
        if seconds is not _MISSING:
            return float(seconds) * 1000

        if isinstance(value, str) and "T" in value:
            return _datetime_to_ms(_parse_iso(value))

        if isinstance(value, (int, float)) and not isinstance(value, bool):
            number = float(value)
            return number if number > SECONDS_THRESHOLD else number * 1000

        native = _as_native(value)
        if native is not None:
            return native

        converter = getattr(value, "to_date", None) or getattr(value, "toDate", None)
        if callable(converter):
            return _as_native(converter())

        return _parse_generic(str(value))


def _seconds_of(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value.get("seconds", _MISSING)
    # Attribute pairs need both halves; timedelta alone has ``seconds``
    if hasattr(value, "seconds") and hasattr(value, "nanoseconds"):
        return value.seconds
    return _MISSING


def _as_native(value: Any) -> Optional[float]:
    if isinstance(value, datetime):
        return _datetime_to_ms(value)
    if isinstance(value, date):
        return float(_date_to_ms(value))
    return None


def _datetime_to_ms(dt: datetime) -> float:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp() * 1000


def _date_to_ms(d: date) -> int:
    midnight = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    return int(midnight.timestamp() * 1000)


def _parse_iso(text: str) -> datetime:
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _parse_generic(text: str) -> Optional[float]:
    text = text.strip()
    if not text:
        return None
    try:
        return float(_date_to_ms(date.fromisoformat(text)))
    except ValueError:
        pass
    try:
        return _datetime_to_ms(_parse_iso(text))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return _datetime_to_ms(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def _preview(value: Any) -> str:
    text = repr(value)
    return text if len(text) <= 80 else text[:77] + "..."


_default_normalizer = TimestampNormalizer()


def normalize_date(value: Any) -> str:
    """Normalize with the module default normalizer (UTC clock)."""
    return _default_normalizer.normalize(value)
