"""Exception types raised by orgclock."""


class OrgClockError(Exception):
    """Base class for all orgclock errors."""


class TimestampParseError(OrgClockError, ValueError):
    """Raised when text cannot be read as a wrapped timestamp."""


class ClockConflictError(OrgClockError):
    """Raised when clocking in while another clock is still running."""


class LogbookNotFoundError(OrgClockError):
    """Raised when an operation needs a logbook drawer that does not exist."""
