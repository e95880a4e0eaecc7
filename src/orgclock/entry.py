"""Clock entry types.

A clock entry is either open (still running) or closed. Closing an open
entry produces a new ``ClosedEntry`` carrying the same identifier; entries
are never mutated in place.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field

from orgclock.duration import Duration
from orgclock.timestamp import Timestamp


def _new_id() -> str:
    return uuid.uuid4().hex


class OpenEntry(BaseModel):
    """A running clock: started, not yet stopped."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, description="Stable entry identifier")
    start_time: Timestamp = Field(..., description="When the clock started")

    @property
    def end_time(self) -> None:
        return None

    @property
    def duration(self) -> None:
        return None

    @property
    def is_open(self) -> bool:
        return True

    def close(self, end_time: Timestamp) -> "ClosedEntry":
        """Stop the clock at ``end_time``."""
        return ClosedEntry(id=self.id, start_time=self.start_time, end_time=end_time)


class ClosedEntry(BaseModel):
    """A finished clock interval."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, description="Stable entry identifier")
    start_time: Timestamp = Field(..., description="When the clock started")
    end_time: Timestamp = Field(..., description="When the clock stopped")

    @property
    def duration(self) -> Duration:
        return Duration.from_seconds(self.end_time.seconds - self.start_time.seconds)

    @property
    def is_open(self) -> bool:
        return False


LogEntry = OpenEntry | ClosedEntry


def make_entry(start_time: Timestamp, end_time: Timestamp | None = None) -> LogEntry:
    """Build an open or closed entry depending on whether ``end_time`` is set."""
    if end_time is None:
        return OpenEntry(start_time=start_time)
    return ClosedEntry(start_time=start_time, end_time=end_time)
