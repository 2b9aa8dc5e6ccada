"""
iCalendar (.ics) export.

We convert canonical events into a calendar that can be imported into or
subscribed from:
- Google Calendar
- Outlook
- Apple Calendar
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from smartcal.keys import event_identity
from smartcal.normalize import LOCAL_TIMEZONE, event_location, parse_timestamp

CALENDAR_NAME = "UniBo Calendar"


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _dt_local(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M%S")


def _description(ev: dict[str, Any]) -> str:
    lines = [
        f"Course: {ev.get('title') or ''}",
        f"Instructor: {ev.get('docente') or 'N/A'}",
        f"Program: {ev.get('program') or ''}",
    ]
    note = ev.get("note")
    if isinstance(note, str) and note.strip():
        lines.append(f"Notes: {note.strip()}")
    return "\n".join(lines)


def render_ics(events: list[dict[str, Any]]) -> str:
    """
    Render events as ICS text. Events without valid times are skipped.
    """
    lines: list[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//SmartCal//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{CALENDAR_NAME}",
        f"X-WR-TIMEZONE:{LOCAL_TIMEZONE}",
    ]

    dtstamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    for ev in events:
        start = parse_timestamp(ev.get("start"))
        end = parse_timestamp(ev.get("end"))
        if start is None or end is None:
            continue

        title = str(ev.get("title") or "").strip() or "SmartCal Event"
        program = str(ev.get("program") or "").strip()
        uid = event_identity(ev).replace(" ", "-") + "@smartcal"
        location = event_location(ev)

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(uid)}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART:{_dt_local(start)}")
        lines.append(f"DTEND:{_dt_local(end)}")
        lines.append(f"SUMMARY:{_ics_escape(title)}")
        lines.append(f"DESCRIPTION:{_ics_escape(_description(ev))}")
        if location:
            lines.append(f"LOCATION:{_ics_escape(location)}")
        if program:
            lines.append(f"CATEGORIES:{_ics_escape(program)}")
        lines.append("STATUS:CONFIRMED")
        lines.append("TRANSP:OPAQUE")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    return "\r\n".join(lines) + "\r\n"


def export_events_to_ics(events: list[dict[str, Any]], out_path: str | Path) -> int:
    """
    Export events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    text = render_ics(events)
    out.write_text(text, encoding="utf-8")
    return text.count("BEGIN:VEVENT")
