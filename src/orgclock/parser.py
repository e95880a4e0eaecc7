"""Parse clock lines of a logbook drawer into entries."""

import logging
import re
from collections.abc import Sequence

from orgclock.entry import LogEntry, make_entry
from orgclock.range import Range
from orgclock.timestamp import Timestamp

logger = logging.getLogger(__name__)

# Drawer property: optional leading colon, key, colon, value
_PROPERTY_RE = re.compile(r"^\s*:?([^:]*?):\s*(.*)$")

CLOCK_KEY = "CLOCK"
LOGBOOK_TYPE = "LOGBOOK"


class ClockLineParser:
    """Turns the text of a logbook drawer into clock entries.

    Parsing is permissive: lines that are not ``CLOCK:`` properties, or
    that carry no timestamp, are skipped rather than reported.
    """

    def parse(
        self,
        lines: Sequence[str],
        region_range: Range,
        tokens: Sequence[Timestamp],
    ) -> list[LogEntry]:
        """Parse clock entries.

        Args:
            lines: Drawer lines including the opening and closing delimiters.
            region_range: Document range the lines were read from.
            tokens: Timestamps found in the document, tagged with their line.

        Returns:
            Entries in top-to-bottom line order.
        """
        entries: list[LogEntry] = []
        for offset, text in enumerate(lines[1:-1], start=1):
            key = property_key(text)
            if key is None or key.upper() != CLOCK_KEY:
                continue

            line_nr = region_range.start_line + offset
            line_tokens = [
                token.model_copy(update={"type": LOGBOOK_TYPE})
                for token in tokens
                if token.line == line_nr
            ]
            if not line_tokens:
                logger.debug(f"Skipping clock line {line_nr} without timestamps")
                continue

            end_time = line_tokens[1] if len(line_tokens) > 1 else None
            entries.append(make_entry(line_tokens[0], end_time))

        return entries


def property_key(text: str) -> str | None:
    """Key of a drawer property line, or None if the line is not one."""
    match = _PROPERTY_RE.match(text)
    if not match:
        return None
    return match.group(1).strip()


# Shared parser instance
clock_parser = ClockLineParser()
