"""
Persistent storage.

Two kinds of state live here:

- the local user settings (settings.json): configured timetables, manual
  year counts, the program filter, the CourseKey allow-list and the profile id
- the subscription profiles (profiles.json), keyed by profile id, that the
  calendar feed reads when a calendar app polls it

Profile stores are passed explicitly to whoever needs them; there is no
module-level store. Writes are last-write-wins per profile id.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Optional

from smartcal.model import Profile, TimetableEntry, year_overrides

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Local settings
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS: dict[str, Any] = {
    "profile_id": "",
    "timetables": [],
    "program_years": {},
    "filters": {},
    "course_keys": [],
}


def _default_settings_path() -> Path:
    """
    Return the default path of settings.json in the user's data directory.

    Using a function instead of a constant makes testing easier,
    because tests can override the path.
    """
    return Path.home() / ".smartcal" / "settings.json"


def _clean_settings(data: Any) -> dict[str, Any]:
    settings = {k: (v.copy() if isinstance(v, (dict, list)) else v) for k, v in DEFAULT_SETTINGS.items()}
    if not isinstance(data, dict):
        return settings

    if isinstance(data.get("profile_id"), str):
        settings["profile_id"] = data["profile_id"].strip()

    timetables = data.get("timetables")
    if isinstance(timetables, list):
        entries = [TimetableEntry.from_raw(t) for t in timetables]
        settings["timetables"] = [e.to_dict() for e in entries if e is not None]

    settings["program_years"] = year_overrides(data.get("program_years"))

    if isinstance(data.get("filters"), dict):
        settings["filters"] = data["filters"]

    keys = data.get("course_keys")
    if isinstance(keys, list):
        settings["course_keys"] = [k for k in keys if isinstance(k, str)]

    return settings


def load_settings(path: str | Path | None = None) -> dict[str, Any]:
    """
    Load settings.json.

    Returns the default settings if the file does not exist or is invalid;
    invalid individual fields are replaced by their defaults.
    A profile id is generated on first use and saved.
    """
    settings_path = Path(path) if path is not None else _default_settings_path()

    data: Any = None
    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", settings_path, exc)

    settings = _clean_settings(data)
    if not settings["profile_id"]:
        settings["profile_id"] = f"cal-{uuid.uuid4()}"
        save_settings(settings, settings_path)
    return settings


def save_settings(settings: dict[str, Any], path: str | Path | None = None) -> None:
    """
    Save settings.json. Creates parent directories if needed.
    """
    settings_path = Path(path) if path is not None else _default_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    payload = _clean_settings(settings)
    settings_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


# ---------------------------------------------------------------------------
# Profile stores
# ---------------------------------------------------------------------------


class ProfileStore:
    """
    Key-value store of subscription profiles.
    """

    def get(self, profile_id: str) -> Optional[Profile]:
        raise NotImplementedError

    def set(self, profile_id: str, profile: Profile) -> None:
        raise NotImplementedError


class MemoryProfileStore(ProfileStore):
    def __init__(self) -> None:
        self._profiles: dict[str, Profile] = {}

    def get(self, profile_id: str) -> Optional[Profile]:
        return self._profiles.get(profile_id)

    def set(self, profile_id: str, profile: Profile) -> None:
        self._profiles[profile_id] = profile


class JsonProfileStore(ProfileStore):
    """
    Profiles kept in one JSON file: {"<profile id>": {...}, ...}.
    Every write rewrites the whole file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable profile file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, profile_id: str) -> Optional[Profile]:
        raw = self._read().get(profile_id)
        if not isinstance(raw, dict):
            return None
        return Profile.from_dict(raw)

    def set(self, profile_id: str, profile: Profile) -> None:
        data = self._read()
        data[profile_id] = profile.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def sync_profile(store: ProfileStore, payload: Any) -> bool:
    """
    Store a {profileId, timetables, filters, courseKeys, programYears} payload.

    Returns False (and stores nothing) when the profile id or the timetables
    are missing.
    """
    if not isinstance(payload, dict):
        return False

    profile_id = payload.get("profileId")
    if not profile_id or not isinstance(profile_id, str):
        logger.warning("Profile sync rejected: missing profileId")
        return False

    timetables = payload.get("timetables")
    if not isinstance(timetables, list) or not timetables:
        logger.warning("Profile sync rejected for %s: no timetables provided", profile_id)
        return False

    profile = Profile.from_dict(
        {
            "timetables": timetables,
            "filters": payload.get("filters") or {},
            "courseKeys": payload.get("courseKeys"),
            "programYears": payload.get("programYears"),
        }
    )
    store.set(profile_id, profile)
    logger.info("Stored timetable configuration for profile %s (%d entries)", profile_id, len(timetables))
    return True


def profile_payload(settings: dict[str, Any]) -> dict[str, Any]:
    """
    Build the sync payload from local settings.
    """
    return {
        "profileId": settings.get("profile_id") or "anonymous",
        "timetables": list(settings.get("timetables") or []),
        "filters": dict(settings.get("filters") or {}),
        "courseKeys": list(settings.get("course_keys") or []),
        "programYears": dict(settings.get("program_years") or {}),
    }
