"""Logbook: clock entries of one section and the drawer that stores them.

The logbook keeps its in-memory entries and the drawer text in step. Every
entry has a stable identifier, and the logbook tracks the document line of
each identifier, shifting the mapping whenever it inserts or deletes a line.

Drawer layout:

    :LOGBOOK:
    CLOCK: [2024-05-01 Wed 09:00]
    CLOCK: [2024-04-30 Tue 10:00]--[2024-04-30 Tue 11:30] =>  1:30
    :END:
"""

import logging
import re
from collections.abc import Callable, Sequence
from datetime import datetime

from orgclock.config import Settings
from orgclock.config import settings as default_settings
from orgclock.document import DocumentEditPort, SectionInfo, TextDocument, find_logbook, read_range
from orgclock.duration import Duration
from orgclock.entry import ClosedEntry, LogEntry, OpenEntry
from orgclock.errors import ClockConflictError
from orgclock.parser import clock_parser
from orgclock.range import Range
from orgclock.timestamp import Timestamp, find_timestamps

logger = logging.getLogger(__name__)

# Trailing "=> H:MM" estimate, sign allowed
_ESTIMATE_RE = re.compile(r"\s*=>\s*[-+]?\d+:\d+\s*$")
_INDENT_RE = re.compile(r"^\s*")

Clock = Callable[[], datetime]
Notifier = Callable[[str], None]


class Logbook:
    """Clock entries of a section, backed by a logbook drawer.

    Every entry must know its clock line through ``start_time.line``;
    entries without one raise ValueError on construction.

    Attributes:
        range: Lines of the drawer, delimiters included.
        items: Entries in top-to-bottom line order.
        document: Document the drawer lives in.
    """

    def __init__(
        self,
        range: Range,
        items: Sequence[LogEntry] | None = None,
        document: DocumentEditPort | None = None,
        clock: Clock | None = None,
        notify: Notifier | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.range = range
        self.items: list[LogEntry] = list(items or [])
        self.document = document
        self.settings = settings or default_settings
        self._clock = clock or datetime.now
        self._notify = notify or logger.info
        self._lines: dict[str, int] = {}
        self._track(self.items)

    # -- construction -----------------------------------------------------

    @classmethod
    def parse(
        cls,
        document: DocumentEditPort,
        range: Range,
        tokens: Sequence[Timestamp] | None = None,
        **kwargs,
    ) -> "Logbook":
        """Build a logbook from the drawer at ``range``.

        Args:
            document: Document holding the drawer.
            range: Lines of the drawer.
            tokens: Pre-extracted timestamps. Read from the drawer when omitted.
            **kwargs: Passed on to the constructor (clock, notify, settings).
        """
        lines = read_range(document, range)
        if tokens is None:
            tokens = find_timestamps(lines, range.start_line)
        items = clock_parser.parse(lines, range, tokens)
        logger.debug(f"Parsed {len(items)} clock entries from lines {range.start_line}-{range.end_line}")
        return cls(range=range, items=items, document=document, **kwargs)

    @classmethod
    def from_document(
        cls,
        document: TextDocument,
        start: int = 1,
        end: int | None = None,
        **kwargs,
    ) -> "Logbook | None":
        """Parse the first logbook drawer between ``start`` and ``end``, if any."""
        settings = kwargs.get("settings") or default_settings
        region = find_logbook(document, start, end, drawer_name=settings.drawer_name)
        if region is None:
            return None
        return cls.parse(document, region, **kwargs)

    @classmethod
    def new_from_section(
        cls,
        section: SectionInfo,
        document: DocumentEditPort,
        clock: Clock | None = None,
        notify: Notifier | None = None,
        settings: Settings | None = None,
    ) -> "Logbook":
        """Create a drawer with one running clock in ``section``.

        The drawer goes after the property drawer if there is one, else
        after the planning line, else right under the headline.
        """
        settings = settings or default_settings
        clock = clock or datetime.now
        anchor = section.logbook_anchor
        indent = " " * (section.level + 1) if settings.indent_mode == "indent" else ""

        date = Timestamp.now(active=False, moment=clock(), line=anchor + 2)
        document.append_lines(
            anchor,
            [
                f"{indent}{settings.drawer_start}",
                f"{indent}CLOCK: {date.to_wrapped_string()}",
                f"{indent}:END:",
            ],
        )
        logger.info(f"Created logbook after line {anchor}")

        logbook = cls(
            range=Range(start_line=anchor + 1, end_line=anchor + 3),
            items=[OpenEntry(start_time=date)],
            document=document,
            clock=clock,
            notify=notify,
            settings=settings,
        )
        logbook._notify(f"Clock starts at {date.to_wrapped_string()}")
        return logbook

    def add(self, lines: Sequence[str], range: Range, tokens: Sequence[Timestamp]) -> list[LogEntry]:
        """Append entries parsed from more drawer lines.

        Returns:
            The entries added.
        """
        items = clock_parser.parse(lines, range, tokens)
        if items:
            self.items.extend(items)
            self._track(items)
        return items

    # -- queries ----------------------------------------------------------

    def is_active(self) -> bool:
        return self.get_active() is not None

    def get_active(self) -> OpenEntry | None:
        """First running entry, if any."""
        for item in self.items:
            if isinstance(item, OpenEntry):
                return item
        return None

    def entries_between(
        self,
        from_time: Timestamp | None = None,
        to_time: Timestamp | None = None,
    ) -> list[ClosedEntry]:
        """Closed entries that start or end inside ``[from_time, to_time]``.

        Without both bounds every closed entry is returned.
        """
        has_range = from_time is not None and to_time is not None
        selected = []
        for item in self.items:
            if not isinstance(item, ClosedEntry):
                continue
            if not has_range or (
                item.start_time.is_between(from_time, to_time)
                or item.end_time.is_between(from_time, to_time)
            ):
                selected.append(item)
        return selected

    def get_total_minutes(
        self,
        from_time: Timestamp | None = None,
        to_time: Timestamp | None = None,
    ) -> int:
        return sum(item.duration.minutes for item in self.entries_between(from_time, to_time))

    def get_total(
        self,
        from_time: Timestamp | None = None,
        to_time: Timestamp | None = None,
    ) -> Duration:
        return Duration.from_minutes(self.get_total_minutes(from_time, to_time))

    def get_total_with_active(self) -> Duration:
        """Total of closed entries plus the time elapsed on the running clock."""
        duration = self.get_total()
        active = self.get_active()
        if active is None:
            return duration
        elapsed = (self._clock() - active.start_time.value).total_seconds()
        return duration + Duration.from_seconds(elapsed)

    def line_of(self, entry: LogEntry) -> int | None:
        """Current document line of ``entry``."""
        return self._lines.get(entry.id)

    def entry_at(self, line: int) -> LogEntry | None:
        """Entry whose clock line is ``line``."""
        for item in self.items:
            if self._lines.get(item.id) == line:
                return item
        return None

    # -- mutations --------------------------------------------------------

    def clock_in(self) -> OpenEntry:
        """Start a clock on a new line right under the drawer opening.

        A running clock is stopped first, or rejected, depending on
        ``settings.clock_in_policy``.

        Raises:
            ClockConflictError: If a clock runs and the policy is ``reject``.
        """
        document = self._require_document()
        active = self.get_active()
        if active is not None:
            if self.settings.clock_in_policy == "reject":
                raise ClockConflictError(
                    f"Clock already running since {active.start_time.to_wrapped_string()}"
                )
            while active is not None:
                logger.info("Stopping running clock before clocking in")
                self.clock_out()
                active = self.get_active()

        indent = _INDENT_RE.match(document.get_line(self.range.start_line)).group(0)
        line_nr = self.range.start_line + 1
        date = self._now(line_nr)

        document.append_lines(self.range.start_line, [f"{indent}CLOCK: {date.to_wrapped_string()}"])
        self._shift(line_nr, 1)

        entry = OpenEntry(start_time=date)
        self.items.insert(0, entry)
        self._lines[entry.id] = line_nr

        self._notify(f"Clock starts at {date.to_wrapped_string()}")
        return entry

    def clock_out(self) -> ClosedEntry | None:
        """Stop the running clock and write the end time and duration.

        Returns:
            The closed entry, or None if no clock was running.
        """
        active = self.get_active()
        if active is None:
            return None

        document = self._require_document()
        line_nr = self._lines[active.id]
        line = document.get_line(line_nr)

        closed = active.close(self._now(line_nr))
        minutes = closed.duration.to_string(self.settings.time_format)
        end = closed.end_time.to_wrapped_string()

        self._replace(active, closed)
        document.set_line(line_nr, f"{line}--{end} => {minutes}")

        self._notify(f"Clock stopped at {end} after {minutes}")
        return closed

    def cancel_active_clock(self) -> OpenEntry | None:
        """Delete the running clock's line and drop the entry.

        Returns:
            The cancelled entry, or None if no clock was running.
        """
        active = self.get_active()
        if active is None:
            return None

        document = self._require_document()
        line_nr = self._lines.pop(active.id)
        document.delete_line(line_nr)
        self.items.remove(active)
        self._shift(line_nr + 1, -1)

        logger.info(f"Cancelled clock started at {active.start_time.to_wrapped_string()}")
        return active

    def update_entry(
        self,
        line: int,
        start_time: Timestamp | None = None,
        end_time: Timestamp | None = None,
    ) -> LogEntry | None:
        """Replace the timestamps of the entry on ``line`` without touching its text.

        Used when the timestamps were edited in the document directly.
        Follow with ``recalculate_estimate`` to refresh the ``=>`` suffix.
        """
        entry = self.entry_at(line)
        if entry is None:
            return None

        start_time = start_time or entry.start_time
        if isinstance(entry, ClosedEntry):
            updated = ClosedEntry(id=entry.id, start_time=start_time, end_time=end_time or entry.end_time)
        elif end_time is not None:
            updated = OpenEntry(id=entry.id, start_time=start_time).close(end_time)
        else:
            updated = OpenEntry(id=entry.id, start_time=start_time)
        self._replace(entry, updated)
        return updated

    def recalculate_estimate(self, line: int) -> None:
        """Rewrite the ``=> H:MM`` suffix of a closed clock line.

        No-op when ``line`` holds no entry or a running one. The cursor
        position is kept.
        """
        item = self.entry_at(line)
        if not isinstance(item, ClosedEntry):
            return

        document = self._require_document()
        content = _ESTIMATE_RE.sub("", document.get_line(line))
        content = f"{content} => {item.duration.to_string(self.settings.time_format)}"

        view = document.save_view()
        document.set_line(line, content)
        document.restore_view(view)
        logger.debug(f"Recalculated estimate on line {line}")

    # -- helpers ----------------------------------------------------------

    def _now(self, line: int) -> Timestamp:
        return Timestamp.now(active=False, moment=self._clock(), line=line)

    def _require_document(self) -> DocumentEditPort:
        if self.document is None:
            raise RuntimeError("Logbook is not attached to a document")
        return self.document

    def _track(self, items: Sequence[LogEntry]) -> None:
        for item in items:
            if item.start_time.line is None:
                raise ValueError(f"Entry {item.id} has no source line")
            self._lines[item.id] = item.start_time.line

    def _replace(self, old: LogEntry, new: LogEntry) -> None:
        self.items[self.items.index(old)] = new

    def _shift(self, line: int, delta: int) -> None:
        """Move tracked lines at or below ``line`` by ``delta``."""
        for entry_id, entry_line in self._lines.items():
            if entry_line >= line:
                self._lines[entry_id] = entry_line + delta
        self.range = self.range.shifted(line, delta)
        logger.debug(f"Shifted lines from {line} by {delta}; drawer now {self.range.start_line}-{self.range.end_line}")
