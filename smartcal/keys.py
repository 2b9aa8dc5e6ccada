"""
Identity keys for events.

Two formats exist and every module must build them through this file:

- CourseKey      "<title>_<year>_<program>"   (filtering, course selection)
- EventIdentity  "<title>_<start>_<program>"  (conflict set membership)

A CourseKey ignores the date, so every session of one course shares it.
An EventIdentity ignores the year and includes the start, so two sessions of
the same course on different days are distinct.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

PROGRAM_SEPARATOR = " - "


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def numeric_year(value: Any) -> Optional[int]:
    """
    Coerce a year value ("2", 2, 2.0, " 2 ") to int.
    Returns None when the value is not a whole number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def course_key(event: Mapping[str, Any]) -> str:
    year = numeric_year(event.get("year"))
    # records without a usable year still get one stable key
    year_text = str(year) if year is not None else "NaN"
    return f"{_text(event.get('title'))}_{year_text}_{_text(event.get('program'))}"


def event_identity(event: Mapping[str, Any]) -> str:
    # start is stringified as-is, never re-parsed
    return f"{_text(event.get('title'))}_{_text(event.get('start'))}_{_text(event.get('program'))}"


def base_program_name(program: Any) -> str:
    """
    "DTM - Year 2 - GEN" -> "DTM"
    """
    return _text(program).split(PROGRAM_SEPARATOR)[0]
