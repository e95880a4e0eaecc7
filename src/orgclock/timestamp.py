"""Timestamp value type and wrapped-timestamp extraction.

A timestamp is an instant plus the document line it was read from. Clock
lines store timestamps in their wrapped form, e.g. ``[2023-01-01 Sun 09:00]``
for inactive and ``<2023-01-01 Sun 09:00>`` for active timestamps.
"""

import re
from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from orgclock.errors import TimestampParseError

_EPOCH = datetime(1970, 1, 1)

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_CLOSING = {"[": "]", "<": ">"}

# Date, optional day name, optional time, optional repeater/warning cookies
_WRAPPED_RE = re.compile(
    r"([\[<])"
    r"(\d{4})-(\d{2})-(\d{2})"
    r"(?:\s+[^\s\d\]>+-]+)?"
    r"(?:\s+(\d{1,2}):(\d{2}))?"
    r"(?:\s+[.+-]{1,2}\d+[hdwmy](?:/\d+[hdwmy])?)*"
    r"\s*([\]>])"
)


class Timestamp(BaseModel):
    """A point in time read from, or written to, a document.

    Attributes:
        value: The instant, as a naive local datetime.
        active: True for ``<...>`` timestamps, False for ``[...]``.
        has_time: False for date-only timestamps.
        line: 1-based document line the timestamp came from, if any.
        type: Tag set by the consumer that claimed this timestamp.
    """

    model_config = ConfigDict(frozen=True)

    value: datetime
    active: bool = False
    has_time: bool = True
    line: int | None = None
    type: str | None = None

    @classmethod
    def now(
        cls,
        active: bool = False,
        moment: datetime | None = None,
        line: int | None = None,
    ) -> "Timestamp":
        """Current wall-clock time, truncated to the minute.

        Args:
            active: Whether the timestamp renders as active.
            moment: Overrides the wall clock (used for injected clocks).
            line: Source line to record.
        """
        value = (moment or datetime.now()).replace(second=0, microsecond=0)
        return cls(value=value, active=active, line=line)

    @classmethod
    def from_string(cls, text: str, line: int | None = None) -> "Timestamp":
        """Parse a single wrapped timestamp.

        Raises:
            TimestampParseError: If ``text`` is not a wrapped timestamp.
        """
        match = _WRAPPED_RE.fullmatch(text.strip())
        if not match:
            raise TimestampParseError(f"Not a timestamp: {text!r}")
        timestamp = _from_match(match, line)
        if timestamp is None:
            raise TimestampParseError(f"Not a timestamp: {text!r}")
        return timestamp

    @property
    def seconds(self) -> float:
        """Seconds since the epoch, ignoring time zones."""
        return (self.value - _EPOCH).total_seconds()

    def is_between(self, start: "Timestamp", end: "Timestamp") -> bool:
        """Inclusive range test."""
        return start.value <= self.value <= end.value

    def to_wrapped_string(self) -> str:
        opening, closing = ("<", ">") if self.active else ("[", "]")
        text = f"{self.value:%Y-%m-%d} {_DAY_NAMES[self.value.weekday()]}"
        if self.has_time:
            text += f" {self.value:%H:%M}"
        return f"{opening}{text}{closing}"

    # Comparison is by instant only; line and tags are metadata.

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Timestamp):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __lt__(self, other: "Timestamp") -> bool:
        return self.value < other.value

    def __le__(self, other: "Timestamp") -> bool:
        return self.value <= other.value

    def __gt__(self, other: "Timestamp") -> bool:
        return self.value > other.value

    def __ge__(self, other: "Timestamp") -> bool:
        return self.value >= other.value

    def __str__(self) -> str:
        return self.to_wrapped_string()


def _from_match(match: re.Match[str], line: int | None) -> Timestamp | None:
    opening, year, month, day, hour, minute, closing = match.groups()
    if _CLOSING[opening] != closing:
        return None
    try:
        value = datetime(
            int(year),
            int(month),
            int(day),
            int(hour) if hour else 0,
            int(minute) if minute else 0,
        )
    except ValueError:
        return None
    return Timestamp(
        value=value,
        active=opening == "<",
        has_time=hour is not None,
        line=line,
    )


def find_timestamps(lines: Iterable[str], first_line: int = 1) -> list[Timestamp]:
    """Extract every wrapped timestamp from a block of lines.

    Invalid calendar dates and mismatched brackets are skipped.

    Args:
        lines: Text lines, in document order.
        first_line: Document line number of the first line.

    Returns:
        Timestamps in reading order, each tagged with its source line.
    """
    found: list[Timestamp] = []
    for offset, text in enumerate(lines):
        for match in _WRAPPED_RE.finditer(text):
            timestamp = _from_match(match, first_line + offset)
            if timestamp is not None:
                found.append(timestamp)
    return found
