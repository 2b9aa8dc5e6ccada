"""
Exception types shared across the project.

Fetch errors are raised by the HTTP client and absorbed by the aggregator
(one failing year never aborts the others). ConfigurationError is the only
error that is meant to reach the user.
"""

from __future__ import annotations

from typing import Optional


class SmartCalError(Exception):
    """Base class for all SmartCal errors."""


class FetchError(SmartCalError):
    """A timetable request did not produce usable data."""

    def __init__(self, message: str, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class UpstreamHTTPError(FetchError):
    """The upstream server answered with a non-2xx status code."""

    def __init__(self, status: int, reason: str = "", url: str = "") -> None:
        super().__init__(f"Upstream server error {status} {reason}".strip(), url=url)
        self.status = status
        self.reason = reason


class NoResponseError(FetchError):
    """The request was sent but no response arrived (timeout, connection reset, DNS)."""


class FetchSetupError(FetchError):
    """The request could not be built (bad URL, invalid JSON body, local setup issue)."""


class ConfigurationError(SmartCalError):
    """The calendar configuration is missing or structurally invalid."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status if status is not None else 400
