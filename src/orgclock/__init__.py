"""orgclock - clock-in/clock-out time tracking inside plain-text logbook drawers."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("orgclock")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from orgclock.document import DocumentEditPort, TextDocument, View
from orgclock.duration import Duration
from orgclock.entry import ClosedEntry, LogEntry, OpenEntry
from orgclock.logbook import Logbook
from orgclock.parser import ClockLineParser
from orgclock.range import Range
from orgclock.timestamp import Timestamp

__all__ = [
    "ClockLineParser",
    "ClosedEntry",
    "DocumentEditPort",
    "Duration",
    "LogEntry",
    "Logbook",
    "OpenEntry",
    "Range",
    "TextDocument",
    "Timestamp",
    "View",
]
