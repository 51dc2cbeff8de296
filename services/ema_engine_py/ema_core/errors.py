"""Typed failures raised by the fetch and validation steps."""
from __future__ import annotations

from typing import Optional


class MarketDataError(Exception):
    """Base class for every failure surfaced to callers of the core."""


class HttpError(MarketDataError):
    """The server answered with a non-success status."""

    def __init__(self, status: int, status_text: str = ""):
        self.status = status
        self.status_text = status_text
        super().__init__(f"HTTP {status}: {status_text}".rstrip(": "))


class RateLimitError(HttpError):
    """Status 429 persisted through the whole attempt budget."""

    def __init__(self, status_text: str = "Too Many Requests", retry_after_ms: Optional[float] = None):
        super().__init__(429, status_text)
        self.retry_after_ms = retry_after_ms


class NetworkError(MarketDataError):
    """No response was received (connect error, timeout, broken stream)."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Network error: {cause!r}")


class ValidationError(MarketDataError):
    """The response body is not the shape the caller needs."""


def describe_error(err: BaseException, coin_id: str = "") -> str:
    """Translate a failure into the message shown to an end user."""
    if isinstance(err, HttpError) and err.status == 429:
        return "Rate limit exceeded. Please wait a moment and try again."
    if isinstance(err, HttpError) and err.status == 404:
        return f'Cryptocurrency "{coin_id}" not found. Please select a different coin.'
    if isinstance(err, ValidationError):
        return str(err)
    return (
        "Failed to fetch data from CoinGecko. Please try again later "
        "or select a different coin/timeframe."
    )
