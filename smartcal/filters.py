"""
Program / year / course filtering.

A filter maps a base program name ("DTM" for "DTM - Year 2 - GEN") to the
years and CourseKeys the user selected:

    {"DTM": {"selectedYears": [1, 2], "selectedCourses": ["Basi di SE_1_DTM - Year 1"]}}

An optional allow-list of CourseKeys ("course_keys") is applied on top.

Selection semantics:
- no filter at all (None, {}, or not a mapping) -> every event, narrowed only by the allow-list
- a program without an entry -> none of its events
- a missing or non-list selectedYears/selectedCourses field -> no constraint
- an explicitly empty list -> nothing selected (unless empty_means_all=True)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from smartcal.keys import base_program_name, course_key, numeric_year
from smartcal.model import ProgramGroup, ProgramSelection


def _allow_list(course_keys: Optional[Iterable[str]]) -> Optional[set[str]]:
    if not course_keys or isinstance(course_keys, str):
        return None
    keys = {str(k) for k in course_keys}
    return keys or None


def _selection(entry: dict[str, Any], field: str, empty_means_all: bool) -> Optional[list[Any]]:
    """
    Return the selected values of one field, or None for "no constraint".
    """
    values = entry.get(field)
    if not isinstance(values, list):
        return None
    if not values and empty_means_all:
        return None
    return values


def apply_filters(
    events: list[dict[str, Any]],
    filters: Any,
    course_keys: Optional[Iterable[str]] = None,
    empty_means_all: bool = False,
) -> list[dict[str, Any]]:
    """
    Keep the events matching the filter and the allow-list, in input order.
    """
    allowed = _allow_list(course_keys)

    if not isinstance(filters, dict) or not filters:
        if allowed is not None:
            return [ev for ev in events if course_key(ev) in allowed]
        return list(events)

    out: list[dict[str, Any]] = []
    for ev in events:
        program = ev.get("program")
        if not program:
            continue

        entry = filters.get(base_program_name(program))
        if not isinstance(entry, dict):
            if not entry:
                continue
            # unusable entry: program is present but unconstrained
            entry = {}

        key = course_key(ev)

        years = _selection(entry, "selectedYears", empty_means_all)
        if years is not None:
            wanted_years = {y for y in (numeric_year(v) for v in years) if y is not None}
            if numeric_year(ev.get("year")) not in wanted_years:
                continue

        courses = _selection(entry, "selectedCourses", empty_means_all)
        if courses is not None and key not in {str(c) for c in courses}:
            continue

        if allowed is not None and key not in allowed:
            continue

        out.append(ev)
    return out


def has_active_filter(filters: Any, course_keys: Optional[Iterable[str]] = None) -> bool:
    return (isinstance(filters, dict) and bool(filters)) or _allow_list(course_keys) is not None


def filter_for_export(
    events: list[dict[str, Any]],
    filters: Any,
    course_keys: Optional[Iterable[str]] = None,
    empty_means_all: bool = False,
) -> list[dict[str, Any]]:
    """
    Feed rule: the filtered events; an empty feed if an active filter matched
    nothing; every event if no filter is configured.
    """
    filtered = apply_filters(events, filters, course_keys, empty_means_all=empty_means_all)
    if filtered:
        return filtered
    if has_active_filter(filters, course_keys):
        return []
    return list(events)


# ---------------------------------------------------------------------------
# Program groups and default selections
# ---------------------------------------------------------------------------


def _display_program_name(program: str) -> str:
    parts = program.split(" - ")
    return f"{parts[0]} - {parts[1]}" if len(parts) > 1 else parts[0]


def group_by_program(
    events: list[dict[str, Any]],
    program_years: Optional[dict[str, int]] = None,
) -> dict[str, ProgramGroup]:
    """
    Group events by base program name, collecting their years and distinct courses.

    If the user configured a year count for a program, the full 1..n range is
    offered instead of only the years found in the events.
    """
    configured = program_years or {}
    groups: dict[str, ProgramGroup] = {}
    years_seen: dict[str, set[int]] = {}

    for ev in events:
        program = ev.get("program")
        if not program:
            continue
        program = str(program)
        base = base_program_name(program)

        group = groups.get(base)
        if group is None:
            group = ProgramGroup(
                name=program,
                display_name=_display_program_name(program),
                configured_years=numeric_year(configured.get(program)),
            )
            groups[base] = group
            years_seen[base] = set()

        group.events.append(ev)

        year = numeric_year(ev.get("year"))
        if year:
            years_seen[base].add(year)

        key = course_key(ev)
        if key not in group.courses:
            group.courses[key] = {
                "title": ev.get("title"),
                "docente": ev.get("docente"),
                "cfu": ev.get("cfu"),
                "year": year,
                "program": program,
            }

    for base, group in groups.items():
        if group.configured_years:
            group.years = list(range(1, group.configured_years + 1))
        else:
            group.years = sorted(years_seen[base])

    return groups


def default_filters(groups: dict[str, ProgramGroup]) -> dict[str, dict[str, Any]]:
    """
    A filter that selects every year and every course of every program.
    """
    return {
        base: ProgramSelection(selected_years=list(group.years), selected_courses=list(group.courses)).to_dict()
        for base, group in groups.items()
    }


def merge_new_programs(filters: Any, groups: dict[str, ProgramGroup]) -> dict[str, Any]:
    """
    Add a select-everything entry for each program the filter does not know yet.
    Existing entries are kept as they are.
    """
    merged: dict[str, Any] = dict(filters) if isinstance(filters, dict) else {}
    for base, selection in default_filters(groups).items():
        if base not in merged:
            merged[base] = selection
    return merged
