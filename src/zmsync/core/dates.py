"""Date handling for event directories.

Event directories encode their timestamp in the last five path segments:

    <root>/.../YY/MM/DD/HH/mm

This module provides:
- decode_event_path: Parse the timestamp encoded in a directory path
- DateRange: Optional lower/upper bound filter for event timestamps
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePath

# Two-digit years are always read as 20YY
CENTURY = 2000

DATE_SEGMENTS = 5


class MalformedPathError(ValueError):
    """Path does not end with a valid YY/MM/DD/HH/mm sequence."""


def _parse_segment(segment: str, path: PurePath) -> int:
    if len(segment) != 2 or not (segment.isascii() and segment.isdigit()):
        raise MalformedPathError(f"Not a two-digit date segment {segment!r} in {path}")
    return int(segment)


def decode_event_path(path: str | PurePath) -> datetime:
    """Decode the timestamp of an event directory.

    Args:
        path: Directory path whose trailing segments are YY/MM/DD/HH/mm.

    Returns:
        Naive datetime with minute resolution.

    Raises:
        MalformedPathError: If the trailing segments are missing or do not
            form a valid date and time.
    """
    path = PurePath(path)
    if len(path.parts) < DATE_SEGMENTS:
        raise MalformedPathError(f"Too few path segments for a date: {path}")

    segments = path.parts[-DATE_SEGMENTS:]
    year, month, day, hour, minute = (_parse_segment(s, path) for s in segments)
    try:
        return datetime(CENTURY + year, month, day, hour, minute)
    except ValueError as e:
        raise MalformedPathError(f"Invalid date in {path}: {e}") from e


@dataclass(frozen=True)
class DateRange:
    """Time window for event selection.

    Both bounds are exclusive; a missing bound leaves that side open.

    Attributes:
        start: Events must be strictly after this point (None = unbounded).
        end: Events must be strictly before this point (None = unbounded).
    """

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        """Reject empty windows."""
        if self.start is not None and self.end is not None and self.start >= self.end:
            raise ValueError(f"Range start {self.start} is not before end {self.end}")

    @classmethod
    def unbounded(cls) -> DateRange:
        """Range accepting every timestamp."""
        return cls()

    def contains(self, timestamp: datetime) -> bool:
        """Check whether a timestamp falls inside the range."""
        if self.start is not None and not timestamp > self.start:
            return False
        return self.end is None or timestamp < self.end

    def __str__(self) -> str:
        start = self.start.isoformat() if self.start else "-inf"
        end = self.end.isoformat() if self.end else "+inf"
        return f"({start}, {end})"
