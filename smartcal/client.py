"""
HTTP access to the upstream timetable provider.

All network calls go through TimetableClient so that failures reach the
aggregator as one of three error types:

- UpstreamHTTPError  the server answered with an error status
- NoResponseError    no answer at all (timeout, connection problem)
- FetchSetupError    the request could not even be built (bad URL)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from smartcal.config import DEFAULT_USER_AGENT
from smartcal.errors import FetchError, FetchSetupError, NoResponseError, UpstreamHTTPError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class TimetableClient:
    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    def _get(self, url: str, accept: str) -> requests.Response:
        try:
            resp = self.session.get(url, headers={"Accept": accept}, timeout=self.timeout)
        except (requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema, requests.exceptions.InvalidURL) as exc:
            raise FetchSetupError(f"Invalid request URL: {exc}", url=url) from exc
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
            raise NoResponseError(f"No response from upstream server: {exc}", url=url) from exc
        except requests.exceptions.RequestException as exc:
            raise FetchSetupError(f"Request failed: {exc}", url=url) from exc

        if not resp.ok:
            raise UpstreamHTTPError(resp.status_code, resp.reason or "", url=url)
        return resp

    def fetch_json(self, url: str) -> Any:
        resp = self._get(url, "application/json")
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(f"Upstream returned invalid JSON: {exc}", url=url) from exc

    def fetch_events(self, url: str) -> list[Any]:
        """
        Fetch one timetable JSON list. A non-list payload counts as "no events".
        """
        data = self.fetch_json(url)
        if not isinstance(data, list):
            logger.warning("Expected a JSON list from %s, got %s", url, type(data).__name__)
            return []
        logger.debug("Fetched %d records from %s", len(data), url)
        return data

    def fetch_text(self, url: str) -> str:
        return self._get(url, "text/html").text

    def close(self) -> None:
        self.session.close()
