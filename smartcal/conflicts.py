"""
Conflict detection.

Given canonical events, detect pairs whose time intervals overlap.
Overlap rule (a against b):
    a.start in [b.start, b.end)
    OR a.end in (b.start, b.end]
    OR a contains b
Touching intervals (a.end == b.start) are NOT a conflict.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from smartcal.keys import event_identity
from smartcal.normalize import parse_timestamp


def _interval(event: dict[str, Any]) -> Optional[tuple[datetime, datetime]]:
    start = parse_timestamp(event.get("start"))
    end = parse_timestamp(event.get("end"))
    if start is None or end is None:
        return None
    return start, end


def _intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return (
        (b_start <= a_start < b_end)
        or (b_start < a_end <= b_end)
        or (a_start <= b_start and a_end >= b_end)
    )


def overlaps(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """
    True if the two events share a time instant that is not just a boundary.
    Events with unparseable times never overlap.
    """
    ia = _interval(a)
    ib = _interval(b)
    if ia is None or ib is None:
        return False
    return _intervals_overlap(ia[0], ia[1], ib[0], ib[1])


def conflict_pairs(events: list[dict[str, Any]]) -> list[tuple[dict[str, Any], dict[str, Any]]]:
    """
    Find overlapping event pairs (A,B), each pair appears once (i<j).
    """
    # Pre-parse times once; invalid events simply never pair up
    parsed = [(_interval(ev), ev) for ev in events]

    pairs: list[tuple[dict[str, Any], dict[str, Any]]] = []
    # O(n^2) is fine for one term of sessions
    for i in range(len(parsed)):
        iv1, ev1 = parsed[i]
        if iv1 is None:
            continue
        for j in range(i + 1, len(parsed)):
            iv2, ev2 = parsed[j]
            if iv2 is None:
                continue
            if _intervals_overlap(iv1[0], iv1[1], iv2[0], iv2[1]):
                pairs.append((ev1, ev2))
    return pairs


def find_conflicts(events: list[dict[str, Any]]) -> set[str]:
    """
    Return the identities of every event that overlaps at least one other event.
    """
    conflicting: set[str] = set()
    for a, b in conflict_pairs(events):
        conflicting.add(event_identity(a))
        conflicting.add(event_identity(b))
    return conflicting


def has_conflict(event: dict[str, Any], all_events: list[dict[str, Any]]) -> bool:
    return event_identity(event) in find_conflicts(all_events)


def get_conflicting_events(event: dict[str, Any], all_events: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    All events overlapping `event`, excluding `event` itself.

    Only the very same object is excluded: a distinct record with identical
    fields is still reported as a conflict partner.
    """
    return [other for other in all_events if other is not event and overlaps(event, other)]
