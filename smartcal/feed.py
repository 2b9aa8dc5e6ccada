"""
Calendar feed (subscription) assembly.

A calendar app polls the feed with either a profile id (the configuration
was synced to the profile store beforehand) or an inline "urls" parameter
holding the configuration as JSON:

    [{"url": ..., "name": ...}, ...]
or  {"timetables": [...], "filters": {...}, "courseKeys": [...], "programYears": {...}}

The feed fetches every configured timetable, applies the filters and
renders ICS. Only a missing or broken configuration is reported to the
caller (ConfigurationError); fetch failures just make the feed smaller.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import unquote

from smartcal.aggregate import FetchFn, fetch_schedule
from smartcal.errors import ConfigurationError
from smartcal.export_ics import render_ics
from smartcal.filters import filter_for_export
from smartcal.model import year_overrides
from smartcal.storage import ProfileStore

logger = logging.getLogger(__name__)


@dataclass
class FeedConfig:
    timetables: list[Any]
    filters: Any = None
    course_keys: Optional[list[str]] = None
    profile_id: Optional[str] = None
    program_years: dict[str, int] = field(default_factory=dict)


def _parse_urls_param(urls_param: str) -> FeedConfig:
    try:
        parsed = json.loads(unquote(urls_param))
    except (ValueError, TypeError) as exc:
        logger.error("Failed to parse calendar configuration: %s", exc)
        raise ConfigurationError("Invalid calendar configuration") from exc

    if isinstance(parsed, list):
        return FeedConfig(timetables=parsed)

    if isinstance(parsed, dict):
        timetables = parsed.get("timetables")
        course_keys = parsed.get("courseKeys")
        if isinstance(timetables, list) and timetables:
            return FeedConfig(
                timetables=timetables,
                filters=parsed.get("filters"),
                course_keys=course_keys if isinstance(course_keys, list) else None,
                program_years=year_overrides(parsed.get("programYears")),
            )

    raise ConfigurationError("No valid timetables provided")


def resolve_feed_config(
    store: Optional[ProfileStore],
    profile_id: Optional[str] = None,
    urls_param: Optional[str] = None,
) -> FeedConfig:
    """
    Find the configuration for one feed request. The stored profile wins
    over the inline parameter.
    """
    if profile_id and store is not None:
        profile = store.get(profile_id)
        if profile is not None and profile.timetables:
            logger.info("Loaded %d timetables for profile %s", len(profile.timetables), profile_id)
            return FeedConfig(
                timetables=profile.timetables,
                filters=profile.filters or None,
                course_keys=profile.course_keys or None,
                profile_id=profile_id,
                program_years=dict(profile.program_years),
            )
        logger.warning("No stored timetable configuration found for profile %s", profile_id)
        if profile is not None and not urls_param:
            # known profile whose timetables were cleared
            raise ConfigurationError(
                "Calendar configuration missing. Re-open the app to refresh your subscription.", status=404
            )

    if not urls_param:
        raise ConfigurationError("No calendar configuration provided")

    config = _parse_urls_param(urls_param)
    config.profile_id = profile_id
    return config


def build_feed_events(
    config: FeedConfig,
    fetch: Optional[FetchFn] = None,
    empty_means_all: bool = False,
) -> list[dict[str, Any]]:
    events = fetch_schedule(config.timetables, fetch=fetch, program_years=config.program_years)
    return filter_for_export(events, config.filters, config.course_keys, empty_means_all=empty_means_all)


def build_feed(
    store: Optional[ProfileStore],
    profile_id: Optional[str] = None,
    urls_param: Optional[str] = None,
    fetch: Optional[FetchFn] = None,
    empty_means_all: bool = False,
) -> str:
    """
    Resolve the configuration, fetch, filter and render the ICS text.
    """
    config = resolve_feed_config(store, profile_id, urls_param)
    if profile_id:
        logger.info("Generating ICS for profile %s", profile_id)
    events = build_feed_events(config, fetch=fetch, empty_means_all=empty_means_all)
    return render_ics(events)
