"""
Schedule statistics (hours, busiest day, courses per year, conflicts).
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from smartcal.conflicts import conflict_pairs
from smartcal.keys import numeric_year
from smartcal.normalize import parse_timestamp

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MAX_LISTED_CONFLICTS = 5


def _week_bounds(now: datetime) -> tuple[datetime, datetime]:
    monday = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return monday, monday + timedelta(days=7)


def compute_stats(events: list[dict[str, Any]], now: Optional[datetime] = None) -> dict[str, Any]:
    if not events:
        return {
            "total_hours": 0.0,
            "weekly_hours": 0.0,
            "total_events": 0,
            "busiest_day": "N/A",
            "courses_by_year": {},
            "conflicts": [],
            "hour_distribution": [0] * 24,
            "day_distribution": [0] * 7,
        }

    week_start, week_end = _week_bounds(now or datetime.now())

    total_minutes = 0.0
    weekly_minutes = 0.0
    hours = [0] * 24
    days = [0] * 7
    courses_by_year: dict[Any, set[str]] = {}

    for ev in events:
        start = parse_timestamp(ev.get("start"))
        end = parse_timestamp(ev.get("end"))
        if start is None or end is None:
            continue

        minutes = (end - start).total_seconds() / 60
        total_minutes += minutes
        if week_start <= start < week_end:
            weekly_minutes += minutes

        year = numeric_year(ev.get("year")) or "Unknown"
        courses_by_year.setdefault(year, set()).add(str(ev.get("title") or ""))

        hours[start.hour] += 1
        days[start.weekday()] += 1

    conflicts = [
        {
            "event1": a.get("title"),
            "event2": b.get("title"),
            "time": parse_timestamp(a.get("start")),
        }
        for a, b in conflict_pairs(events)[:MAX_LISTED_CONFLICTS]
    ]

    busiest = days.index(max(days))

    return {
        "total_hours": round(total_minutes / 60, 1),
        "weekly_hours": round(weekly_minutes / 60, 1),
        "total_events": len(events),
        "busiest_day": DAY_NAMES[busiest],
        "courses_by_year": {year: len(titles) for year, titles in courses_by_year.items()},
        "conflicts": conflicts,
        "hour_distribution": hours,
        "day_distribution": days,
    }
