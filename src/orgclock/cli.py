"""Command-line interface for orgclock.

Clocks time against headlines of a plain-text outline file. Each headline
keeps its clock lines in a logbook drawer right below it:

    * Write report
      :LOGBOOK:
      CLOCK: [2024-05-01 Wed 09:00]--[2024-05-01 Wed 10:15] =>  1:15
      :END:
"""

import argparse
import logging
import sys
from pathlib import Path

from filelock import Timeout
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from orgclock import __version__
from orgclock.config import settings
from orgclock.document import TextDocument, find_logbook, is_headline, section_at
from orgclock.duration import Duration
from orgclock.errors import LogbookNotFoundError, OrgClockError
from orgclock.logbook import Logbook
from orgclock.timestamp import Timestamp

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    fmt = "%(name)s: %(message)s" if verbose else "%(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[RichHandler(rich_tracebacks=True, console=console, show_path=verbose)],
    )


def notify(message: str) -> None:
    """Print a status message for the user."""
    console.print(f"[green]{message}[/green]")


def _load(path: Path) -> TextDocument:
    return TextDocument.load(path, lock_timeout=settings.lock_timeout)


def _editing(path: Path):
    return TextDocument.editing(path, lock_timeout=settings.lock_timeout)


def _body_end(document: TextDocument, heading: int) -> int:
    """Last line before the next headline of any level."""
    for line_nr in range(heading + 1, len(document) + 1):
        if is_headline(document.get_line(line_nr)):
            return line_nr - 1
    return len(document)


def _headlines(document: TextDocument) -> list[int]:
    return [
        n for n in range(1, len(document) + 1)
        if is_headline(document.get_line(n))
    ]


def load_section_logbook(document: TextDocument, heading: int) -> Logbook | None:
    """Parse the logbook drawer of the headline at ``heading``, if it has one."""
    section = section_at(document, heading)
    return Logbook.from_document(
        document,
        start=section.start_line + 1,
        end=_body_end(document, heading),
        notify=notify,
        settings=settings,
    )


def _require_logbook(document: TextDocument, heading: int) -> Logbook:
    logbook = load_section_logbook(document, heading)
    if logbook is None:
        raise LogbookNotFoundError(f"No logbook under the headline at line {heading}")
    return logbook


def cmd_in(args: argparse.Namespace) -> None:
    """Clock in on a headline, creating its logbook if needed."""
    with _editing(args.file) as document:
        logbook = load_section_logbook(document, args.heading)
        if logbook is None:
            Logbook.new_from_section(
                section_at(document, args.heading),
                document,
                notify=notify,
                settings=settings,
            )
        else:
            logbook.clock_in()


def cmd_out(args: argparse.Namespace) -> None:
    """Clock out of a headline."""
    with _editing(args.file) as document:
        logbook = _require_logbook(document, args.heading)
        closed = logbook.clock_out()
    if closed is None:
        console.print("[yellow]No clock running.[/yellow]")


def cmd_cancel(args: argparse.Namespace) -> None:
    """Cancel the running clock of a headline."""
    with _editing(args.file) as document:
        logbook = _require_logbook(document, args.heading)
        cancelled = logbook.cancel_active_clock()
    if cancelled is None:
        console.print("[yellow]No clock running.[/yellow]")
        return
    console.print(f"Cancelled clock started at {cancelled.start_time.to_wrapped_string()}")


def cmd_status(args: argparse.Namespace) -> None:
    """Show the running clock and total time of a headline."""
    document = _load(args.file)
    logbook = _require_logbook(document, args.heading)
    active = logbook.get_active()
    if active is None:
        console.print("No clock running.")
    else:
        console.print(f"Clock running since {active.start_time.to_wrapped_string()}")
    console.print(f"Total: [bold]{logbook.get_total_with_active()}[/bold]")


def cmd_report(args: argparse.Namespace) -> None:
    """Show clocked totals per headline, optionally within a time window."""
    from_time = Timestamp.from_string(args.from_time) if args.from_time else None
    to_time = Timestamp.from_string(args.to_time) if args.to_time else None
    if (from_time is None) != (to_time is None):
        raise OrgClockError("--from and --to must be given together")

    document = _load(args.file)
    headings = [args.heading] if args.heading else _headlines(document)

    table = Table(title=f"Clock report: {args.file}")
    table.add_column("Line", style="cyan", justify="right")
    table.add_column("Headline", style="white")
    table.add_column("Entries", style="magenta", justify="right")
    table.add_column("Total", style="green", justify="right")

    grand_total = 0
    for heading in headings:
        logbook = load_section_logbook(document, heading)
        if logbook is None:
            continue
        entries = logbook.entries_between(from_time, to_time)
        minutes = logbook.get_total_minutes(from_time, to_time)
        grand_total += minutes
        table.add_row(
            str(heading),
            document.get_line(heading).lstrip("* "),
            str(len(entries)),
            logbook.get_total(from_time, to_time).to_string(settings.time_format),
        )

    console.print(table)
    total = Duration.from_minutes(grand_total).to_string(settings.time_format)
    console.print(f"Total: [bold]{total}[/bold]")


def cmd_recalc(args: argparse.Namespace) -> None:
    """Refresh the => duration of the clock line at LINE."""
    with _editing(args.file) as document:
        start = 1
        while True:
            region = find_logbook(document, start, drawer_name=settings.drawer_name)
            if region is None:
                raise LogbookNotFoundError(f"Line {args.line} is not inside a logbook")
            if region.contains(args.line):
                break
            start = region.end_line + 1

        logbook = Logbook.parse(document, region, notify=notify, settings=settings)
        logbook.recalculate_estimate(args.line)


def cmd_version(args: argparse.Namespace) -> None:
    """Show version and configuration information."""
    console.print(f"[bold]orgclock[/bold] v{__version__}")
    console.print(f"Indent mode: {settings.indent_mode}")
    console.print(f"Clock-in policy: {settings.clock_in_policy}")


def _add_heading_command(subparsers, name: str, func, help_text: str) -> argparse.ArgumentParser:
    sub = subparsers.add_parser(name, help=help_text, description=help_text)
    sub.add_argument("file", type=Path, help="Outline file")
    sub.add_argument(
        "--heading", type=int, required=True,
        help="Line number of the headline to clock against"
    )
    sub.set_defaults(func=func)
    return sub


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="orgclock",
        description="Clock time against headlines of a plain-text outline.",
        epilog="""Examples:
  orgclock in todo.org --heading 3       Start a clock on the headline at line 3
  orgclock out todo.org --heading 3      Stop it
  orgclock report todo.org               Totals per headline""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    _add_heading_command(subparsers, "in", cmd_in, "Start a clock on a headline")
    _add_heading_command(subparsers, "out", cmd_out, "Stop the running clock")
    _add_heading_command(subparsers, "cancel", cmd_cancel, "Discard the running clock")
    _add_heading_command(subparsers, "status", cmd_status, "Show the running clock and total")

    report_parser = subparsers.add_parser(
        "report",
        help="Show clocked time per headline",
        description="Sum closed clock entries per headline. With --from/--to, only "
                    "entries starting or ending inside the window count."
    )
    report_parser.add_argument("file", type=Path, help="Outline file")
    report_parser.add_argument(
        "--heading", type=int,
        help="Only report the headline at this line"
    )
    report_parser.add_argument(
        "--from", dest="from_time",
        help="Window start, e.g. '[2024-05-01 Wed 00:00]'"
    )
    report_parser.add_argument(
        "--to", dest="to_time",
        help="Window end, e.g. '[2024-05-07 Tue 23:59]'"
    )
    report_parser.set_defaults(func=cmd_report)

    recalc_parser = subparsers.add_parser(
        "recalc",
        help="Refresh the duration of a clock line",
        description="Rewrite the '=> H:MM' suffix of a closed clock line from its timestamps."
    )
    recalc_parser.add_argument("file", type=Path, help="Outline file")
    recalc_parser.add_argument("line", type=int, help="Line number of the clock line")
    recalc_parser.set_defaults(func=cmd_recalc)

    version_parser = subparsers.add_parser("version", help="Show version information")
    version_parser.set_defaults(func=cmd_version)

    args = parser.parse_args()
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        args.func(args)
    except (OrgClockError, ValueError, FileNotFoundError, Timeout) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
