"""
Instant: an immutable point in time with millisecond resolution.

Instants are the slot keys of a schedule. They order totally, subtract to a
signed number of milliseconds, and coerce to their epoch milliseconds for
structural fingerprints, so ``Instant(1)`` and another ``Instant(1)`` address
the same StructuralMap entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True, order=True, slots=True)
class Instant:
    """A UTC point in time as integer epoch milliseconds."""

    epoch_ms: int

    def __post_init__(self) -> None:
        if isinstance(self.epoch_ms, bool) or not isinstance(self.epoch_ms, int):
            raise TypeError(f"epoch_ms must be an int, got {type(self.epoch_ms).__name__}")

    def to_primitive(self) -> int:
        return self.epoch_ms

    @classmethod
    def from_datetime(cls, dt: datetime) -> Instant:
        """Convert a datetime; naive datetimes are taken as UTC."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delta = dt - _EPOCH
        return cls((delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000)

    @classmethod
    def parse(cls, text: str) -> Instant:
        """
        Parse an ISO 8601 date or datetime.

        A bare date (``2020-01-01``) is midnight UTC; a datetime without an
        offset is taken as UTC.
        """
        text = text.strip()
        if len(text) == 10:
            return cls.from_date(date.fromisoformat(text))
        return cls.from_datetime(datetime.fromisoformat(text.replace("Z", "+00:00")))

    @classmethod
    def from_date(cls, d: date) -> Instant:
        return cls.from_datetime(datetime(d.year, d.month, d.day, tzinfo=timezone.utc))

    @classmethod
    def coerce(cls, value: Instant | datetime | date | str | int) -> Instant:
        """Build an Instant from any supported time representation."""
        if isinstance(value, Instant):
            return value
        if isinstance(value, datetime):
            return cls.from_datetime(value)
        if isinstance(value, date):
            return cls.from_date(value)
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to Instant")

    @classmethod
    def now(cls) -> Instant:
        return cls.from_datetime(datetime.now(timezone.utc))

    def to_datetime(self) -> datetime:
        """Aware UTC datetime for this instant."""
        return _EPOCH + timedelta(milliseconds=self.epoch_ms)

    def isoformat(self) -> str:
        return self.to_datetime().isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def __add__(self, ms: int) -> Instant:
        if isinstance(ms, Instant):
            return NotImplemented
        return Instant(self.epoch_ms + int(ms))

    def __sub__(self, other: Instant | int) -> int | Instant:  # type: ignore[override]
        if isinstance(other, Instant):
            return self.epoch_ms - other.epoch_ms
        return Instant(self.epoch_ms - int(other))

    def __str__(self) -> str:
        return self.isoformat()
