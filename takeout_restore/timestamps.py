"""Timestamp normalizer: turn sidecar date records into EXIF date-time values.

Takeout sidecars carry each date twice, as epoch seconds (``timestamp``) and
as an English display string (``formatted``), e.g.::

    "photoTakenTime": {"timestamp": "1609459200",
                       "formatted": "Jan 1, 2021, 12:00:00 AM UTC"}

The epoch value is preferred; the formatted string is only read when the
epoch value is absent or unusable. Both are taken as UTC wall-clock time and
no timezone conversion happens, since EXIF dates carry no offset.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import re
from typing import Mapping

from .errors import MalformedTimestamp, MissingField
from .sidecar import SidecarRecord

EXIF_DT_FMT = "%Y:%m:%d %H:%M:%S"

TAKEN_FIELD = "photoTakenTime"
CREATION_FIELD = "creationTime"

SOURCE_EPOCH = "timestamp"
SOURCE_FORMATTED = "formatted"

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# "Jan 1, 2021 12:00:00 AM UTC" and the newer "Jan 1, 2021, 12:00:00 AM UTC"
_FORMATTED_PATTERN = re.compile(
    r"^\s*([A-Za-z]{3,9})\.?\s+(\d{1,2}),\s*(\d{4}),?\s+"
    r"(\d{1,2}):(\d{2}):(\d{2})\s*([AaPp][Mm])\s+UTC\s*$"
)
_EPOCH_PATTERN = re.compile(r"^\s*-?\d+\s*$")


@dataclass(frozen=True)
class NormalizedTimestamp:
    """A calendar date-time without timezone, as EXIF stores it."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int

    def __post_init__(self):
        if not 1 <= self.year <= 9999:
            raise MalformedTimestamp(self.year, f"Year out of range: {self.year}")
        try:
            datetime(self.year, self.month, self.day, self.hour, self.minute, self.second)
        except (TypeError, ValueError) as exc:
            raise MalformedTimestamp(
                (self.year, self.month, self.day, self.hour, self.minute, self.second), str(exc)
            ) from exc

    @classmethod
    def from_datetime(cls, dt: datetime) -> "NormalizedTimestamp":
        return cls(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)

    def to_datetime(self) -> datetime:
        return datetime(self.year, self.month, self.day, self.hour, self.minute, self.second)

    def render(self) -> str:
        """EXIF form ``YYYY:MM:DD HH:MM:SS``."""
        return (
            f"{self.year:04d}:{self.month:02d}:{self.day:02d} "
            f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        )

    def exif_bytes(self) -> bytes:
        """ASCII value with its terminating NUL, 20 bytes."""
        return self.render().encode("ascii") + b"\x00"

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class SidecarDates:
    """Both capture dates of one sidecar and where each one was read from."""

    taken: NormalizedTimestamp
    created: NormalizedTimestamp
    taken_source: str
    created_source: str


def parse_epoch(value) -> NormalizedTimestamp:
    """Parse an epoch-seconds value (int or digit string) as UTC."""
    if isinstance(value, bool):
        raise MalformedTimestamp(value)
    if not isinstance(value, int) and not (isinstance(value, str) and _EPOCH_PATTERN.match(value)):
        raise MalformedTimestamp(value)
    try:
        # int() refuses digit strings past the interpreter's conversion limit
        dt = datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedTimestamp(value, f"Epoch value out of range: {value!r}") from exc
    return NormalizedTimestamp.from_datetime(dt)


def parse_formatted(value) -> NormalizedTimestamp:
    """Parse ``<Mon> <D>, <YYYY>[,] <h>:<mm>:<ss> <AM|PM> UTC``."""
    if not isinstance(value, str):
        raise MalformedTimestamp(value)
    # Takeout puts a narrow no-break space before AM/PM in newer exports
    cleaned = value.replace("\u202f", " ").replace("\xa0", " ")
    match = _FORMATTED_PATTERN.match(cleaned)
    if not match:
        raise MalformedTimestamp(value)
    mon, day, year, hour, minute, second, meridiem = match.groups()
    month = _MONTHS.get(mon[:3].lower())
    if month is None:
        raise MalformedTimestamp(value, f"Unknown month name in {value!r}")
    hour = int(hour)
    if not 1 <= hour <= 12:
        raise MalformedTimestamp(value, f"Hour out of 12-hour range in {value!r}")
    hour %= 12
    if meridiem.lower() == "pm":
        hour += 12
    return NormalizedTimestamp(int(year), month, int(day), hour, int(minute), int(second))


def normalize_field(record: SidecarRecord, field: str) -> tuple[NormalizedTimestamp, str]:
    """Return the timestamp stored under `field` and the representation it came from."""
    sub = record.lookup(field)
    if not isinstance(sub, Mapping):
        raise MissingField(field)

    epoch = sub.get(SOURCE_EPOCH)
    formatted = sub.get(SOURCE_FORMATTED)
    if epoch is None and formatted is None:
        raise MissingField(f"{field}.{SOURCE_EPOCH}")

    if epoch is not None:
        try:
            return parse_epoch(epoch), SOURCE_EPOCH
        except MalformedTimestamp:
            if formatted is None:
                raise
            logging.debug("Epoch value %r for %s unusable, trying formatted string", epoch, field)
    return parse_formatted(formatted), SOURCE_FORMATTED


def normalize(record: SidecarRecord) -> SidecarDates:
    """Extract taken and creation dates from a sidecar record.

    Raises MissingField when either sub-record (or both of its values) is
    absent, MalformedTimestamp when the value present cannot be parsed.
    """
    taken, taken_source = normalize_field(record, TAKEN_FIELD)
    created, created_source = normalize_field(record, CREATION_FIELD)
    logging.debug(
        "Sidecar %s: taken=%s (%s) created=%s (%s)",
        record.source, taken, taken_source, created, created_source,
    )
    return SidecarDates(taken, created, taken_source, created_source)
