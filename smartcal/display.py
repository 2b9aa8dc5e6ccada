"""
Terminal rendering (agenda, week timetable, conflicts, statistics).

Everything prints through a rich Console; tests pass their own Console
recording into a StringIO.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from smartcal.conflicts import conflict_pairs, find_conflicts
from smartcal.keys import event_identity
from smartcal.normalize import calendar_label, event_location, parse_timestamp

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

_console = Console()


def _out(console: Optional[Console]) -> Console:
    return console if console is not None else _console


def _start(ev: dict[str, Any]) -> datetime:
    return parse_timestamp(ev.get("start")) or datetime.min


def _event_line(ev: dict[str, Any]) -> str:
    start = parse_timestamp(ev.get("start"))
    end = parse_timestamp(ev.get("end"))
    span = f"{start:%H:%M}-{end:%H:%M}" if start and end else ""
    loc = event_location(ev)
    bits = [span, calendar_label(ev)]
    if loc:
        bits.append(f"@ {loc}")
    return " | ".join([b for b in bits if b])


def print_timetables(timetables: list[dict[str, Any]], program_years: dict[str, Any], console: Optional[Console] = None) -> None:
    out = _out(console)
    if not timetables:
        out.print("No timetables configured.")
        return

    table = Table(title="Timetables", box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Years", justify="right")
    table.add_column("URL")
    for i, t in enumerate(timetables, start=1):
        name = str(t.get("name", ""))
        years = program_years.get(name)
        table.add_row(str(i), f"[bold cyan]{name}[/]", str(years) if years else "auto", str(t.get("url", "")))
    out.print(table)


def print_agenda(events: list[dict[str, Any]], console: Optional[Console] = None) -> None:
    """
    All events grouped by date; conflicting events are marked with "!".
    """
    out = _out(console)
    if not events:
        out.print("No events.")
        return

    conflicting = find_conflicts(events)

    by_date: dict[date, list[dict[str, Any]]] = defaultdict(list)
    for ev in events:
        by_date[_start(ev).date()].append(ev)

    for d in sorted(by_date):
        out.print(f"\n[bold]{d.isoformat()} ({WEEKDAYS[d.weekday()]})[/]")
        for ev in sorted(by_date[d], key=_start):
            marker = "[red]![/]" if event_identity(ev) in conflicting else "-"
            out.print(f"  {marker} {_event_line(ev)}", highlight=False)


def print_week(events: list[dict[str, Any]], year: int, week: int, console: Optional[Console] = None) -> None:
    """
    Mon..Fri columns for one ISO week.
    """
    out = _out(console)
    days = WEEKDAYS[:5]
    buckets: dict[str, list[dict[str, Any]]] = {d: [] for d in days}
    for ev in sorted(events, key=_start):
        start = _start(ev)
        iso = start.isocalendar()
        if (iso.year, iso.week) != (year, week):
            continue
        wd = WEEKDAYS[start.weekday()]
        if wd in buckets:
            buckets[wd].append(ev)

    if not any(buckets.values()):
        out.print("No events in that week.")
        return

    table = Table(title=f"Timetable {year}-W{week:02d}", box=box.SIMPLE)
    for day in days:
        table.add_column(day)
    rows = max(len(b) for b in buckets.values())
    for r in range(rows):
        table.add_row(*[_event_line(buckets[d][r]) if r < len(buckets[d]) else "" for d in days])
    out.print(table)


def print_conflicts(events: list[dict[str, Any]], console: Optional[Console] = None) -> int:
    """
    Print every conflicting pair; returns the number of pairs.
    """
    out = _out(console)
    pairs = sorted(conflict_pairs(events), key=lambda p: _start(p[0]))
    if not pairs:
        out.print("No conflicts found.")
        return 0

    table = Table(title=f"Conflicts found: {len(pairs)}", box=box.SIMPLE)
    table.add_column("Date")
    table.add_column("Event")
    table.add_column("")
    table.add_column("Overlaps with")
    for a, b in pairs:
        table.add_row(f"{_start(a):%Y-%m-%d}", _event_line(a), "↔", _event_line(b))
    out.print(table)
    return len(pairs)


def print_stats(stats: dict[str, Any], console: Optional[Console] = None) -> None:
    out = _out(console)
    table = Table(title="Statistics", box=box.SIMPLE, show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total events", str(stats["total_events"]))
    table.add_row("Total hours", f"{stats['total_hours']}")
    table.add_row("Hours this week", f"{stats['weekly_hours']}")
    table.add_row("Busiest day", str(stats["busiest_day"]))
    for year, count in sorted(stats["courses_by_year"].items(), key=lambda kv: str(kv[0])):
        table.add_row(f"Courses in year {year}", str(count))
    out.print(table)

    for c in stats["conflicts"]:
        when = f"{c['time']:%Y-%m-%d %H:%M}" if isinstance(c["time"], datetime) else ""
        out.print(f"[yellow]Conflict[/] {when}: {c['event1']} ↔ {c['event2']}", highlight=False)
