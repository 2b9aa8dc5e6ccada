"""
Central data model definitions used across the project.

Events themselves stay plain dicts (the upstream JSON objects plus
"year", "program" and parsed "start"/"end"), so unknown upstream fields
survive the pipeline untouched. The canonical event keys are:

    title, start, end, program, year, docente, cfu, aule, note, _timetable_url

The dataclasses below describe the structures around the events:
rooms, configured timetables, per-program selections and profiles.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional


def year_overrides(raw: Any) -> dict[str, int]:
    """
    Keep the positive integer entries of a {timetable name: year count} mapping.
    """
    if not isinstance(raw, dict):
        return {}
    return {str(k): v for k, v in raw.items() if isinstance(v, int) and not isinstance(v, bool) and v > 0}


@dataclass
class Room:
    """
    One entry of an event's "aule" list.
    """

    building: str = ""
    resource: str = ""
    address: str = ""

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["Room"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            building=str(raw.get("des_ubicazione") or "").strip(),
            resource=str(raw.get("des_risorsa") or "").strip(),
            address=str(raw.get("des_indirizzo") or "").strip(),
        )

    @property
    def label(self) -> str:
        return f"{self.building} - {self.resource}"


@dataclass
class TimetableEntry:
    """
    One configured timetable: the JSON endpoint URL and its display name,
    e.g. "DTM - Year 1 - GEN".
    """

    url: str
    name: str

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["TimetableEntry"]:
        if not isinstance(raw, dict):
            return None
        url = str(raw.get("url") or "").strip()
        name = str(raw.get("name") or "").strip()
        if not url:
            return None
        return cls(url=url, name=name or url)

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "name": self.name}


@dataclass
class ProgramSelection:
    """
    Filter entry for one base program name.
    """

    selected_years: list[int] = field(default_factory=list)
    selected_courses: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"selectedYears": list(self.selected_years), "selectedCourses": list(self.selected_courses)}


@dataclass
class ProgramGroup:
    """
    Events of one base program, with the years and distinct courses found in them.
    """

    name: str
    display_name: str
    events: list[dict[str, Any]] = field(default_factory=list)
    years: list[int] = field(default_factory=list)
    courses: dict[str, dict[str, Any]] = field(default_factory=dict)
    configured_years: Optional[int] = None


@dataclass
class Profile:
    """
    Server-side subscription profile, stored per profile id.
    """

    timetables: list[dict[str, Any]]
    filters: dict[str, Any] = field(default_factory=dict)
    course_keys: list[str] = field(default_factory=list)
    program_years: dict[str, int] = field(default_factory=dict)
    updated_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timetables": list(self.timetables),
            "filters": dict(self.filters),
            "courseKeys": list(self.course_keys),
            "programYears": dict(self.program_years),
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Profile":
        timetables = raw.get("timetables")
        filters = raw.get("filters")
        course_keys = raw.get("courseKeys")
        updated_at = raw.get("updatedAt")
        return cls(
            timetables=list(timetables) if isinstance(timetables, list) else [],
            filters=dict(filters) if isinstance(filters, dict) else {},
            course_keys=[str(k) for k in course_keys] if isinstance(course_keys, list) else [],
            program_years=year_overrides(raw.get("programYears")),
            updated_at=float(updated_at) if isinstance(updated_at, (int, float)) else time.time(),
        )
