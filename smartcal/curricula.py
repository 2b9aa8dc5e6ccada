"""
Discovery of years and curricula for a degree program.

A program page (e.g. https://corsi.unibo.it/laurea/Informatica/orario-lezioni)
offers a <select name="anno"> with the available years, and the endpoint
"@@available_curricula?anno=<n>" lists the curricula of one year.
The final timetable JSON lives at "@@orario_reale_json?anno=<n>&curricula=<c>".

Lookups return None on any failure so callers can show "nothing found".
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup

from smartcal.aggregate import detect_max_years
from smartcal.client import TimetableClient
from smartcal.errors import FetchError

logger = logging.getLogger(__name__)

JSON_SUFFIX = "/@@orario_reale_json"

_PROGRAM_TYPES = {2: "master", 3: "bachelor", 6: "single-cycle"}


def _html_url(base_url: str) -> str:
    return base_url.split("?")[0].replace(JSON_SUFFIX, "").rstrip("/")


def parse_year_options(html: str) -> Optional[list[dict[str, str]]]:
    """
    Extract [{"value": "1", "label": "1° anno"}, ...] from the year <select>.
    """
    soup = BeautifulSoup(html, "html.parser")
    select = soup.select_one("select[name='anno']")
    if not select:
        return None

    years: list[dict[str, str]] = []
    for option in select.find_all("option"):
        value = option.get("value")
        if value is None:
            continue
        years.append({"value": str(value), "label": option.get_text(strip=True)})

    return years or None


def fetch_years(base_url: str, client: Optional[TimetableClient] = None) -> Optional[list[dict[str, str]]]:
    owned = client is None
    client = client or TimetableClient()
    try:
        html = client.fetch_text(_html_url(base_url))
    except FetchError as exc:
        logger.warning("Error fetching years for %s: %s", base_url, exc)
        return None
    finally:
        if owned:
            client.close()
    return parse_year_options(html)


def fetch_curricula(
    base_url: str, year: Any, client: Optional[TimetableClient] = None
) -> Optional[list[dict[str, str]]]:
    owned = client is None
    client = client or TimetableClient()
    url = f"{_html_url(base_url)}/@@available_curricula?anno={year}"
    try:
        data = client.fetch_json(url)
    except FetchError as exc:
        logger.warning("Error fetching curricula for %s: %s", base_url, exc)
        return None
    finally:
        if owned:
            client.close()

    if not isinstance(data, list):
        return None

    out: list[dict[str, str]] = []
    for item in data:
        if not isinstance(item, dict) or "value" not in item:
            continue
        value = str(item["value"])
        out.append({"value": value, "label": str(item.get("label") or value)})
    return out


def create_json_url(base_url: str, year: Any, curriculum: str) -> str:
    return f"{_html_url(base_url)}{JSON_SUFFIX}?anno={year}&curricula={curriculum}"


def program_name_from_url(url: str) -> str:
    """
    ".../laurea/DigitalTransformationManagement/@@orario_reale_json" -> "DigitalTransformationManagement"
    """
    segments = [s for s in urlsplit(url).path.split("/") if s and not s.startswith("@@")]
    skip = {"laurea", "magistrale", "magistralecu", "2cycle", "1cycle", "orario-lezioni", "timetable"}
    for seg in segments:
        if seg not in skip:
            return seg
    return ""


def timetable_display_name(program: str, year: Any, curriculum: Optional[str] = None) -> str:
    """
    "DTM", 1, "GEN" -> "DTM - Year 1 - GEN"
    """
    name = f"{program} - Year {year}"
    if curriculum:
        name += f" - {curriculum}"
    return name


def normalize_timetable_url(url: str, name: str = "") -> Optional[dict[str, Any]]:
    """
    Validate a user supplied timetable URL and describe it.

    Returns None for URLs that are not absolute http(s) URLs or whose "anno"
    is outside the program's year range.
    """
    parts = urlsplit((url or "").strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None

    query = parse_qs(parts.query)
    anno = (query.get("anno") or [None])[0]
    curricula = (query.get("curricula") or [None])[0]

    max_years = detect_max_years(url, name)
    if anno is not None:
        try:
            year_num = int(anno)
        except ValueError:
            return None
        if not 1 <= year_num <= max_years:
            return None

    html = _html_url(url)
    return {
        "url": create_json_url(html, anno, curricula) if anno and curricula else f"{html}{JSON_SUFFIX}",
        "program_name": program_name_from_url(url),
        "program_type": _PROGRAM_TYPES.get(max_years, "bachelor"),
        "max_years": max_years,
        "anno": anno,
        "curricula": curricula,
        "is_complete": bool(anno and curricula),
    }
