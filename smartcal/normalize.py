"""
Event normalization (raw upstream record -> canonical event dict).

The timetable endpoint returns one JSON list per (program, year). Each record
is copied, tagged with the year and program it was requested for, and its
"start"/"end" strings are parsed into datetimes.

Important rules:
- a record without a usable start/end is dropped, never raised
- start must be strictly before end
- the raw record is never mutated
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

from smartcal.model import Room

logger = logging.getLogger(__name__)

# timetables are published in Italian local time
LOCAL_TIMEZONE = "Europe/Rome"
_LOCAL_TZ = ZoneInfo(LOCAL_TIMEZONE)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an upstream timestamp into a naive datetime.

    Accepts datetime objects and ISO-8601 strings such as
    "2025-10-01T09:00:00" or "2025-10-01T08:00:00.000Z".
    Aware values are converted to Europe/Rome wall-clock time and made
    naive, so every timestamp is local time and they all compare.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(_LOCAL_TZ).replace(tzinfo=None)
    return dt


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def normalize_record(
    raw: Any,
    year: int,
    program: str,
    timetable_url: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    """
    Build one canonical event from a raw record, or None if it is unusable.
    """
    if not isinstance(raw, dict):
        return None

    start = parse_timestamp(raw.get("start"))
    end = parse_timestamp(raw.get("end"))
    if start is None or end is None:
        logger.debug("Dropping record without usable start/end: %r", raw.get("title"))
        return None
    if end <= start:
        logger.debug("Dropping record with end <= start: %r", raw.get("title"))
        return None

    event = dict(raw)
    event["year"] = year
    event["program"] = program
    event["start"] = start
    event["end"] = end
    if timetable_url:
        event["_timetable_url"] = timetable_url
    return event


def normalize_records(
    records: Any,
    year: int,
    program: str,
    timetable_url: Optional[str] = None,
) -> list[dict[str, Any]]:
    if not isinstance(records, list):
        return []

    out: list[dict[str, Any]] = []
    for raw in records:
        event = normalize_record(raw, year, program, timetable_url)
        if event is not None:
            out.append(event)
    return out


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

_BRACKETS = re.compile(r"\[.*?\]\s*")


def format_event_title(event: Optional[dict[str, Any]]) -> str:
    """
    Strip "[DTM - 2 - ]" style prefixes and program words from a title.

    "[DTM - 2 - ]   Analisi dei Dati" -> "Analisi dei Dati"
    """
    if not event:
        return ""

    title = str(event.get("title") or "")
    display = _BRACKETS.sub("", title)

    program = event.get("program")
    if program and str(program) in display:
        for part in str(program).split(" "):
            # only substantial words, not short prepositions
            if len(part) > 3:
                display = re.sub(re.escape(part), "", display, flags=re.IGNORECASE).strip()

    display = display.strip(" -")
    display = re.sub(r"\s{2,}", " ", display)

    if not display.strip():
        display = _BRACKETS.sub("", title)

    return display.strip()


def calendar_label(event: dict[str, Any]) -> str:
    return f"{format_event_title(event)} - {event.get('docente') or 'No Instructor'}"


def event_location(event: dict[str, Any]) -> str:
    """
    Location text from the first room, "" when the event has no rooms.
    """
    rooms = event.get("aule")
    if not isinstance(rooms, list) or not rooms:
        return ""
    room = Room.from_raw(rooms[0])
    return room.label if room is not None else ""
