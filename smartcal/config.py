"""
Configuration loading.

- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
- The config file is JSON; a missing file means defaults.
- A few values can be overridden from the environment:
  SMARTCAL_DATA_DIR, SMARTCAL_TIMEOUT, SMARTCAL_LOG_LEVEL.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _default_data_dir() -> Path:
    return Path.home() / ".smartcal"


@dataclass
class Config:
    """Typed configuration.

    Fields:
        data_dir: where settings.json and profiles.json live
        request_timeout: seconds to wait for one upstream request
        max_workers: thread pool size for concurrent fetches
        user_agent: User-Agent header sent upstream
        log_level: logging level name
        empty_selection_means_all: treat an explicitly empty selectedYears /
            selectedCourses list as "everything" instead of "nothing"
    """

    data_dir: Path = field(default_factory=_default_data_dir)
    request_timeout: float = 10.0
    max_workers: int = 8
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"
    empty_selection_means_all: bool = False

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def profiles_path(self) -> Path:
        return self.data_dir / "profiles.json"

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "Config":
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric values are coerced; out-of-range or malformed values fall back to
        the defaults with a warning.
        """
        if data is None:
            data = {}
        defaults = cls()

        data_dir = data.get("data_dir")
        data_dir_path = Path(str(data_dir)).expanduser() if data_dir else defaults.data_dir

        def _coerce_number(key: str, default: float, cast: type) -> Any:
            raw = data.get(key, default)
            try:
                value = cast(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not a number; using default %s", key, raw, default)
                return default
            if value <= 0:
                logger.warning("Config %s=%r must be positive; using default %s", key, raw, default)
                return default
            return value

        timeout = _coerce_number("request_timeout", defaults.request_timeout, float)
        max_workers = _coerce_number("max_workers", defaults.max_workers, int)

        user_agent = data.get("user_agent") or defaults.user_agent
        log_level = str(data.get("log_level") or defaults.log_level).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            logger.warning("Config log_level=%r is unknown; using default %s", log_level, defaults.log_level)
            log_level = defaults.log_level

        return cls(
            data_dir=data_dir_path,
            request_timeout=timeout,
            max_workers=max_workers,
            user_agent=str(user_agent),
            log_level=log_level,
            empty_selection_means_all=bool(data.get("empty_selection_means_all", False)),
        )


def _env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    merged = dict(raw)
    if os.environ.get("SMARTCAL_DATA_DIR"):
        merged["data_dir"] = os.environ["SMARTCAL_DATA_DIR"]
    if os.environ.get("SMARTCAL_TIMEOUT"):
        merged["request_timeout"] = os.environ["SMARTCAL_TIMEOUT"]
    if os.environ.get("SMARTCAL_LOG_LEVEL"):
        merged["log_level"] = os.environ["SMARTCAL_LOG_LEVEL"]
    return merged


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a JSON file and return a Config instance.

    Behavior:
    - If the file is missing: defaults (plus environment overrides).
    - If the file is not valid JSON or its top level is not a mapping: ValueError.
    """
    p = Path(path) if path else _default_data_dir() / "config.json"
    logger.debug("Attempting to load config from %s", p)

    raw: Any = {}
    if p.exists():
        try:
            raw = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValueError(f"Unable to parse config file {p}: {exc}") from exc
        if not isinstance(raw, dict):
            logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
            raise ValueError("Config file must contain a mapping at top level")
        logger.info("Loaded configuration from %s", p)
    else:
        logger.info("Config file %s not found; using defaults", p)

    return Config.from_dict(_env_overrides(raw))
