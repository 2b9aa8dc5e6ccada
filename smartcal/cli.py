"""
CLI (Command Line Interface).

Commands, e.g.:

    smartcal add <timetable url> [--name NAME]
    smartcal remove <name>
    smartcal list
    smartcal years <name> <n>
    smartcal courses [--init]
    smartcal select <program> [--years 1 2] [--course KEY ...]
    smartcal events [--all] [--week 2025-W43]
    smartcal conflicts
    smartcal stats
    smartcal export <file.ics>
    smartcal curricula <url> [--year N]
    smartcal sync
    smartcal feed [--profile ID | --urls JSON] [--out file.ics]

Note:
- Settings (timetables, filters, year overrides) live in <data dir>/settings.json
- Handlers return an exit code; main() exits via SystemExit
"""

from __future__ import annotations

import argparse
import logging
import re
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from smartcal import display
from smartcal.aggregate import fetch_schedule
from smartcal.client import TimetableClient
from smartcal.config import Config, load_config
from smartcal.curricula import (
    fetch_curricula,
    fetch_years,
    normalize_timetable_url,
    timetable_display_name,
)
from smartcal.errors import ConfigurationError
from smartcal.export_ics import export_events_to_ics
from smartcal.feed import build_feed
from smartcal.filters import apply_filters, group_by_program, merge_new_programs
from smartcal.stats import compute_stats
from smartcal.storage import JsonProfileStore, load_settings, profile_payload, save_settings, sync_profile

logger = logging.getLogger(__name__)

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _client(config: Config) -> TimetableClient:
    return TimetableClient(timeout=config.request_timeout, user_agent=config.user_agent)


def _fetch_events(config: Config, settings: dict[str, Any]) -> list[dict[str, Any]]:
    client = _client(config)
    try:
        return fetch_schedule(
            settings["timetables"],
            fetch=client.fetch_events,
            program_years=settings["program_years"],
            max_workers=config.max_workers,
        )
    finally:
        client.close()


def _selected_events(config: Config, settings: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Fetch all configured timetables and apply the saved filter.
    """
    events = _fetch_events(config, settings)
    return apply_filters(
        events,
        settings["filters"],
        settings["course_keys"],
        empty_means_all=config.empty_selection_means_all,
    )


# ---------------------------------------------------------------------------
# Timetable configuration
# ---------------------------------------------------------------------------


def _cmd_add(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    info = normalize_timetable_url(args.url or "", args.name or "")
    if info is None:
        console.print("Invalid timetable URL.")
        return 1

    name = (args.name or "").strip()
    if not name:
        if info["is_complete"]:
            name = timetable_display_name(info["program_name"], info["anno"], info["curricula"])
        else:
            name = info["program_name"] or info["url"]

    if any(t["name"] == name for t in settings["timetables"]):
        console.print(f"Already configured: {name}")
        return 0

    settings["timetables"].append({"url": info["url"], "name": name})
    save_settings(settings, config.settings_path)
    console.print(f"Added: {name} ({info['program_type']}, {info['max_years']} years)")
    return 0


def _cmd_remove(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    name = (args.name or "").strip()
    remaining = [t for t in settings["timetables"] if t["name"] != name]
    if len(remaining) == len(settings["timetables"]):
        console.print(f"Not configured: {name}")
        return 1

    settings["timetables"] = remaining
    settings["program_years"].pop(name, None)
    save_settings(settings, config.settings_path)
    console.print(f"Removed: {name} (timetables: {len(remaining)})")
    return 0


def _cmd_list(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    display.print_timetables(settings["timetables"], settings["program_years"], console=console)
    return 0


def _cmd_years(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    if args.count < 1 or args.count > 6:
        console.print("Year count must be between 1 and 6.")
        return 1
    if not any(t["name"] == args.name for t in settings["timetables"]):
        console.print(f"Not configured: {args.name}")
        return 1

    settings["program_years"][args.name] = args.count
    save_settings(settings, config.settings_path)
    console.print(f"{args.name}: {args.count} years")
    return 0


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _cmd_courses(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    events = _fetch_events(config, settings)
    groups = group_by_program(events, settings["program_years"])
    if not groups:
        console.print("No events found.")
        return 0

    for group in groups.values():
        table = Table(title=f"{group.display_name} (years: {', '.join(map(str, group.years))})")
        table.add_column("Year", justify="right")
        table.add_column("Course")
        table.add_column("Instructor")
        table.add_column("Key")
        for key, course in sorted(group.courses.items(), key=lambda kv: (kv[1]["year"] or 0, str(kv[1]["title"]))):
            table.add_row(str(course["year"] or ""), str(course["title"] or ""), str(course["docente"] or ""), key)
        console.print(table)

    if args.init:
        settings["filters"] = merge_new_programs(settings["filters"], groups)
        save_settings(settings, config.settings_path)
        console.print(f"Filters initialised for {len(groups)} programs.")
    return 0


def _cmd_select(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    program = (args.program or "").strip()
    if not program:
        console.print("Please provide a program name.")
        return 1

    if args.clear:
        settings["filters"].pop(program, None)
        save_settings(settings, config.settings_path)
        console.print(f"Filter removed: {program}")
        return 0

    entry = settings["filters"].get(program)
    entry = dict(entry) if isinstance(entry, dict) else {}
    if args.years is not None:
        entry["selectedYears"] = sorted(set(args.years))
    if args.course is not None:
        entry["selectedCourses"] = list(dict.fromkeys(args.course))
    settings["filters"][program] = entry
    save_settings(settings, config.settings_path)
    console.print(f"Filter saved: {program} {entry}", highlight=False)
    return 0


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

_WEEK = re.compile(r"^(\d{4})-W(\d{1,2})$")


def _cmd_events(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    if args.all:
        events = _fetch_events(config, settings)
    else:
        events = _selected_events(config, settings)

    if args.week:
        m = _WEEK.match(args.week.strip())
        if not m:
            console.print("Week must look like 2025-W43.")
            return 1
        display.print_week(events, int(m.group(1)), int(m.group(2)), console=console)
        return 0

    display.print_agenda(events, console=console)
    return 0


def _cmd_conflicts(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    display.print_conflicts(_selected_events(config, settings), console=console)
    return 0


def _cmd_stats(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    display.print_stats(compute_stats(_selected_events(config, settings)), console=console)
    return 0


def _cmd_export(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    out_path = (args.out or "").strip()
    if not out_path:
        console.print("Please provide output .ics path.")
        return 1

    events = _selected_events(config, settings)
    if not events:
        console.print("No selected events to export.")
        return 0

    n = export_events_to_ics(events, out_path)
    console.print(f"Exported {n} events to: {out_path}")
    return 0


# ---------------------------------------------------------------------------
# Discovery, sync, feed
# ---------------------------------------------------------------------------


def _cmd_curricula(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    client = _client(config)
    try:
        if args.year is None:
            options = fetch_years(args.url, client=client)
            label = "years"
        else:
            options = fetch_curricula(args.url, args.year, client=client)
            label = f"curricula for year {args.year}"
    finally:
        client.close()

    if not options:
        console.print(f"No {label} found.")
        return 1

    console.print(f"Available {label}:")
    for opt in options:
        console.print(f"  {opt['value']}  {opt['label']}", highlight=False)
    return 0


def _cmd_sync(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    store = JsonProfileStore(config.profiles_path)
    if not sync_profile(store, profile_payload(settings)):
        console.print("Nothing to sync: configure at least one timetable first.")
        return 1
    console.print(f"Profile synced: {settings['profile_id']}")
    return 0


def _cmd_feed(args: argparse.Namespace, config: Config, settings: dict[str, Any]) -> int:
    store = JsonProfileStore(config.profiles_path)
    profile_id = args.profile if args.profile is not None else (None if args.urls else settings["profile_id"])
    client = _client(config)
    try:
        text = build_feed(
            store,
            profile_id=profile_id,
            urls_param=args.urls,
            fetch=client.fetch_events,
            empty_means_all=config.empty_selection_means_all,
        )
    except ConfigurationError as exc:
        console.print(str(exc))
        return 1
    finally:
        client.close()

    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        console.print(f"Feed written to: {out}")
    else:
        print(text, end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="smartcal", description="SmartCal CLI")
    parser.add_argument("--config", type=str, default=None, help="Path to config.json")
    parser.add_argument("--data-dir", type=str, default=None, help="Override the data directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_add = sub.add_parser("add", help="Add a timetable URL")
    p_add.add_argument("url", type=str, help="Timetable URL (…/@@orario_reale_json?anno=1&curricula=GEN)")
    p_add.add_argument("--name", type=str, default="", help="Display name (e.g. 'DTM - Year 1 - GEN')")

    p_remove = sub.add_parser("remove", help="Remove a timetable by name")
    p_remove.add_argument("name", type=str)

    sub.add_parser("list", help="List configured timetables")

    p_years = sub.add_parser("years", help="Set the number of years of a program manually")
    p_years.add_argument("name", type=str)
    p_years.add_argument("count", type=int)

    p_courses = sub.add_parser("courses", help="List courses (and their keys) of the configured programs")
    p_courses.add_argument("--init", action="store_true", help="Select everything for programs without a filter")

    p_select = sub.add_parser("select", help="Set the filter of one program")
    p_select.add_argument("program", type=str, help="Base program name (text before ' - ')")
    p_select.add_argument("--years", type=int, nargs="*", default=None)
    p_select.add_argument("--course", type=str, action="append", default=None, help="CourseKey (repeatable)")
    p_select.add_argument("--clear", action="store_true", help="Remove the program's filter entry")

    p_events = sub.add_parser("events", help="Show the agenda of the filtered events")
    p_events.add_argument("--all", action="store_true", help="Ignore filters")
    p_events.add_argument("--week", type=str, default=None, help="ISO week, e.g. 2025-W43")

    sub.add_parser("conflicts", help="Show schedule conflicts among filtered events")
    sub.add_parser("stats", help="Show schedule statistics")

    p_export = sub.add_parser("export", help="Export filtered events to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")

    p_cur = sub.add_parser("curricula", help="List years (or curricula of one year) of a program page")
    p_cur.add_argument("url", type=str)
    p_cur.add_argument("--year", type=int, default=None)

    sub.add_parser("sync", help="Store the current configuration as a subscription profile")

    p_feed = sub.add_parser("feed", help="Build the subscription feed")
    p_feed.add_argument("--profile", type=str, default=None)
    p_feed.add_argument("--urls", type=str, default=None, help="Inline JSON configuration")
    p_feed.add_argument("--out", type=str, default=None)

    return parser


_HANDLERS = {
    "add": _cmd_add,
    "remove": _cmd_remove,
    "list": _cmd_list,
    "years": _cmd_years,
    "courses": _cmd_courses,
    "select": _cmd_select,
    "events": _cmd_events,
    "conflicts": _cmd_conflicts,
    "stats": _cmd_stats,
    "export": _cmd_export,
    "curricula": _cmd_curricula,
    "sync": _cmd_sync,
    "feed": _cmd_feed,
}


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as exc:
        console.print(str(exc))
        raise SystemExit(2)
    if args.data_dir:
        config.data_dir = Path(args.data_dir).expanduser()

    _configure_logging("DEBUG" if args.verbose else config.log_level)

    settings = load_settings(config.settings_path)
    handler = _HANDLERS.get(args.command)
    if handler is None:
        raise SystemExit(2)
    raise SystemExit(handler(args, config, settings))
