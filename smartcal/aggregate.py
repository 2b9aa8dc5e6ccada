"""
Timetable aggregation.

One configured timetable URL covers a whole degree program; the upstream API
serves one year at a time ("anno=<n>"). For every program we therefore issue
one request per year, 1..max_years, where max_years depends on the program type:

    /laurea/        bachelor's      3 years
    /magistrale/    master's        2 years
    /magistralecu/  single-cycle    6 years

A manually configured year count takes precedence over the detection.

All (program, year) requests run concurrently. A failing request contributes
an empty list; it never aborts its siblings. Results are merged only after
every request has settled: programs in input order, years ascending.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from smartcal.client import TimetableClient
from smartcal.errors import FetchError
from smartcal.keys import numeric_year
from smartcal.model import TimetableEntry
from smartcal.normalize import normalize_records

logger = logging.getLogger(__name__)

FetchFn = Callable[[str], Any]

BACHELOR_YEARS = 3
MASTER_YEARS = 2
SINGLE_CYCLE_YEARS = 6
DEFAULT_MAX_WORKERS = 8

_SINGLE_CYCLE_URL_MARKERS = ("/magistralecu/", "single-cycle", "singlecycle", "ciclo-unico", "ciclounico")
_SINGLE_CYCLE_NAME_MARKERS = ("single cycle", "ciclo unico", "6 year", "6-year")


# ---------------------------------------------------------------------------
# Program type and URLs
# ---------------------------------------------------------------------------


def detect_max_years(url: str, name: str = "", override: Any = None) -> int:
    """
    Number of degree years to fetch for one timetable URL.
    """
    manual = numeric_year(override)
    if manual is not None and manual > 0:
        return manual

    is_single_cycle = any(m in url for m in _SINGLE_CYCLE_URL_MARKERS) or any(
        m in (name or "").lower() for m in _SINGLE_CYCLE_NAME_MARKERS
    )
    is_masters = "/magistrale/" in url and "/magistralecu/" not in url

    if is_masters:
        return MASTER_YEARS
    if is_single_cycle:
        return SINGLE_CYCLE_YEARS
    return BACHELOR_YEARS


def year_url(url: str, year: int) -> str:
    """
    Return `url` with its "anno" parameter set to `year`.
    "curricula" and any other parameters are kept.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"Not an absolute URL: {url!r}")

    params = parse_qsl(parts.query, keep_blank_values=True)
    curricula = [(k, v) for k, v in params if k == "curricula"]
    rest = [(k, v) for k, v in params if k not in ("anno", "curricula")]
    query = urlencode(rest + [("anno", str(year))] + curricula[:1])
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


@dataclass
class _YearRequest:
    program: str
    year: int
    url: str


def _plan_program(url: str, name: str, override: Any = None) -> list[_YearRequest]:
    max_years = detect_max_years(url, name, override)
    logger.info("Fetching %d years for %s", max_years, name)
    try:
        return [_YearRequest(program=name, year=y, url=year_url(url, y)) for y in range(1, max_years + 1)]
    except ValueError as exc:
        logger.warning("Skipping %s: %s", name, exc)
        return []


def _fetch_year(fetch: FetchFn, req: _YearRequest) -> list[dict[str, Any]]:
    """
    Fetch and normalize one (program, year). Never raises.
    """
    try:
        records = fetch(req.url)
    except FetchError as exc:
        logger.warning("Error fetching %s year %d: %s", req.program, req.year, exc)
        return []
    except Exception:
        logger.exception("Unexpected error fetching %s year %d", req.program, req.year)
        return []

    events = normalize_records(records, req.year, req.program, timetable_url=req.url)
    if events:
        logger.debug("Found %d events for %s year %d", len(events), req.program, req.year)
    else:
        logger.debug("No events found for %s year %d", req.program, req.year)
    return events


def _run(fetch: Optional[FetchFn], plan: list[_YearRequest], max_workers: int) -> list[list[dict[str, Any]]]:
    """
    Run all requests concurrently; return one sub-list per request, in request order.
    """
    if not plan:
        return []

    client: Optional[TimetableClient] = None
    if fetch is None:
        client = TimetableClient()
        fetch = client.fetch_events

    try:
        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(plan)))) as pool:
            futures = [pool.submit(_fetch_year, fetch, req) for req in plan]
            return [f.result() for f in futures]
    finally:
        if client is not None:
            client.close()


def fetch_program_schedule(
    url: str,
    name: str,
    fetch: Optional[FetchFn] = None,
    max_years: Any = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[dict[str, Any]]:
    """
    Fetch every year of one program and return the merged canonical events.
    """
    chunks = _run(fetch, _plan_program(url, name, max_years), max_workers)
    return [ev for chunk in chunks for ev in chunk]


def fetch_schedule(
    timetables: Any,
    fetch: Optional[FetchFn] = None,
    program_years: Optional[dict[str, Any]] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[dict[str, Any]]:
    """
    Fetch all configured timetables.

    `timetables` is a list of {"url", "name"} mappings (or TimetableEntry);
    malformed entries are skipped. No timetables -> [].
    """
    if not isinstance(timetables, list) or not timetables:
        logger.info("No timetables configured")
        return []

    overrides = program_years or {}
    plan: list[_YearRequest] = []
    for raw in timetables:
        entry = raw if isinstance(raw, TimetableEntry) else TimetableEntry.from_raw(raw)
        if entry is None:
            logger.warning("Ignoring malformed timetable entry: %r", raw)
            continue
        plan.extend(_plan_program(entry.url, entry.name, overrides.get(entry.name)))

    chunks = _run(fetch, plan, max_workers)
    events = [ev for chunk in chunks for ev in chunk]
    logger.info("Total events fetched: %d", len(events))
    return events
