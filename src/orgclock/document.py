"""Document access for the logbook.

The logbook edits its host document only through ``DocumentEditPort``.
``TextDocument`` is the list-backed implementation used by the CLI and
the tests; an editor integration would supply its own.
"""

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from filelock import FileLock
from pydantic import BaseModel, ConfigDict

from orgclock.range import Range

logger = logging.getLogger(__name__)

_HEADLINE_RE = re.compile(r"^(\*+)\s")
_PLANNING_RE = re.compile(r"^\s*(SCHEDULED|DEADLINE|CLOSED):", re.IGNORECASE)
_DRAWER_END_RE = re.compile(r"^\s*:END:\s*$", re.IGNORECASE)


class View(BaseModel):
    """Cursor and viewport position."""

    model_config = ConfigDict(frozen=True)

    line: int = 1
    column: int = 0
    top_line: int = 1


class DocumentEditPort(Protocol):
    """Line-level editing primitives. Lines are 1-based."""

    def get_line(self, line: int) -> str: ...

    def set_line(self, line: int, text: str) -> None: ...

    def append_lines(self, after_line: int, lines: list[str]) -> None: ...

    def delete_line(self, line: int) -> None: ...

    def save_view(self) -> View: ...

    def restore_view(self, view: View) -> None: ...


class TextDocument:
    """An editable document held as a list of lines.

    Example:
        with TextDocument.editing("notes.org") as doc:
            doc.set_line(3, "CLOCK: [2024-05-01 Wed 09:00]")
    """

    def __init__(
        self,
        lines: list[str] | None = None,
        path: str | Path | None = None,
        lock_timeout: float = 10.0,
        lock: FileLock | None = None,
    ) -> None:
        self.lines: list[str] = list(lines or [])
        self.path = Path(path) if path is not None else None
        self.lock_timeout = lock_timeout
        self.view = View()
        self.dirty = False
        self._lock = lock

    @classmethod
    def from_text(cls, text: str) -> "TextDocument":
        return cls(text.splitlines())

    @classmethod
    def load(
        cls,
        path: str | Path,
        lock_timeout: float = 10.0,
        lock: FileLock | None = None,
    ) -> "TextDocument":
        """Read a document from disk.

        Args:
            path: File to read.
            lock_timeout: Seconds to wait for the file lock.
            lock: Lock on ``path`` to reuse, e.g. one already held by ``editing``.

        Raises:
            FileNotFoundError: If the file does not exist.
            filelock.Timeout: If another process holds the lock.
        """
        path = Path(path)
        lock = lock or FileLock(str(_lock_path(path)), timeout=lock_timeout)
        with lock:
            content = path.read_text(encoding="utf-8")
        logger.debug(f"Loaded {path}")
        return cls(content.splitlines(), path=path, lock_timeout=lock_timeout, lock=lock)

    @classmethod
    @contextmanager
    def editing(cls, path: str | Path, lock_timeout: float = 10.0) -> Iterator["TextDocument"]:
        """Load ``path`` and hold its file lock until the block ends.

        The document is saved on a clean exit if it changed. Nothing is
        written when the block raises.

        Example:
            with TextDocument.editing("todo.org") as doc:
                Logbook.from_document(doc).clock_in()
        """
        path = Path(path)
        lock = FileLock(str(_lock_path(path)), timeout=lock_timeout)
        with lock:
            document = cls.load(path, lock_timeout, lock=lock)
            yield document
            if document.dirty:
                document.save()

    def save(self, path: str | Path | None = None) -> Path:
        """Write the document to disk, under a file lock.

        Args:
            path: Target file. Defaults to the path the document was loaded from.

        Returns:
            The path written.
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("No path to save the document to")

        target.parent.mkdir(parents=True, exist_ok=True)
        content = "\n".join(self.lines) + "\n" if self.lines else ""
        with self._lock_for(target):
            target.write_text(content, encoding="utf-8")
        self.dirty = False
        logger.debug(f"Saved {len(self.lines)} lines to {target}")
        return target

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def __len__(self) -> int:
        return len(self.lines)

    # -- edit port --------------------------------------------------------

    def get_line(self, line: int) -> str:
        self._check_line(line)
        return self.lines[line - 1]

    def set_line(self, line: int, text: str) -> None:
        self._check_line(line)
        self.lines[line - 1] = text
        self.dirty = True

    def append_lines(self, after_line: int, lines: list[str]) -> None:
        """Insert ``lines`` after ``after_line`` (0 inserts at the top)."""
        if not 0 <= after_line <= len(self.lines):
            raise IndexError(f"Line {after_line} out of range (1-{len(self.lines)})")
        self.lines[after_line:after_line] = lines
        self.dirty = True

    def delete_line(self, line: int) -> None:
        self._check_line(line)
        del self.lines[line - 1]
        self.dirty = True

    def save_view(self) -> View:
        return self.view

    def restore_view(self, view: View) -> None:
        last = max(len(self.lines), 1)
        self.view = View(
            line=min(view.line, last),
            column=view.column,
            top_line=min(view.top_line, last),
        )

    def _check_line(self, line: int) -> None:
        if not 1 <= line <= len(self.lines):
            raise IndexError(f"Line {line} out of range (1-{len(self.lines)})")

    def _lock_for(self, target: Path) -> FileLock:
        # Reentrant: inside editing() this re-enters the lock already held.
        if self._lock is not None and target == self.path:
            return self._lock
        return FileLock(str(_lock_path(target)), timeout=self.lock_timeout)


def _lock_path(path: Path) -> Path:
    return path.with_name(path.name + ".lock")


def read_range(document: DocumentEditPort, region: Range) -> list[str]:
    """Read every line of ``region``, delimiters included."""
    return [document.get_line(n) for n in range(region.start_line, region.end_line + 1)]


def find_logbook(
    document: TextDocument,
    start: int = 1,
    end: int | None = None,
    drawer_name: str = "LOGBOOK",
) -> Range | None:
    """Locate the first logbook drawer between ``start`` and ``end``."""
    return find_drawer(document, drawer_name, start, end)


def find_drawer(
    document: TextDocument,
    name: str,
    start: int = 1,
    end: int | None = None,
) -> Range | None:
    """Locate the first ``:NAME:`` ... ``:END:`` drawer between ``start`` and ``end``.

    Returns:
        Range spanning the opening and closing delimiters, or None.
    """
    end = len(document) if end is None else min(end, len(document))
    opening = re.compile(rf"^\s*:{re.escape(name)}:\s*$", re.IGNORECASE)

    for line_nr in range(start, end + 1):
        if not opening.match(document.get_line(line_nr)):
            continue
        for close_nr in range(line_nr + 1, end + 1):
            if _DRAWER_END_RE.match(document.get_line(close_nr)):
                return Range(start_line=line_nr, end_line=close_nr)
        logger.debug(f"Unterminated drawer at line {line_nr}")
        return None
    return None


class SectionInfo(BaseModel):
    """What the logbook needs to know about the section it lives in.

    Attributes:
        start_line: Headline line.
        end_line: Last line of the section body (before the next headline
            of the same or a higher level).
        level: Number of leading stars.
        has_planning: True if the line after the headline is a planning line.
        properties_end_line: ``:END:`` line of the property drawer, if any.
    """

    start_line: int
    end_line: int
    level: int
    has_planning: bool = False
    properties_end_line: int | None = None

    @property
    def logbook_anchor(self) -> int:
        """Line after which a new logbook drawer goes."""
        if self.properties_end_line is not None:
            return self.properties_end_line
        if self.has_planning:
            return self.start_line + 1
        return self.start_line


def section_at(document: TextDocument, line: int) -> SectionInfo:
    """Inspect the section whose headline is at ``line``.

    Raises:
        ValueError: If ``line`` is not a headline.
    """
    match = _HEADLINE_RE.match(document.get_line(line))
    if not match:
        raise ValueError(f"Line {line} is not a headline")
    level = len(match.group(1))

    end_line = len(document)
    for line_nr in range(line + 1, len(document) + 1):
        other = _HEADLINE_RE.match(document.get_line(line_nr))
        if other and len(other.group(1)) <= level:
            end_line = line_nr - 1
            break

    has_planning = line < end_line and bool(_PLANNING_RE.match(document.get_line(line + 1)))

    properties_end_line = None
    drawer_line = line + 2 if has_planning else line + 1
    if drawer_line <= end_line:
        properties = find_drawer(document, "PROPERTIES", drawer_line, end_line)
        if properties is not None and properties.start_line == drawer_line:
            properties_end_line = properties.end_line

    return SectionInfo(
        start_line=line,
        end_line=end_line,
        level=level,
        has_planning=has_planning,
        properties_end_line=properties_end_line,
    )


def is_headline(text: str) -> bool:
    return _HEADLINE_RE.match(text) is not None
