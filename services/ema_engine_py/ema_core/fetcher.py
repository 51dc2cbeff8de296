# ema_core/fetcher.py
"""HTTP GET with retry on rate limits and transport failures.

Each attempt produces an ``_Attempt`` outcome (a value, a retryable
failure, or a terminal failure) and ``ResilientFetcher.fetch`` decides
from the outcome kind whether to wait and go again.  Backoff is strictly
deterministic: ``initial_backoff_ms * 2**i`` for attempt ``i`` (no jitter),
unless a 429 response carries ``Retry-After``.
"""
from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from . import config
from .errors import HttpError, MarketDataError, NetworkError, RateLimitError, ValidationError

logger = config.get_logger("ema_fetcher")

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class _Attempt:
    value: Any = None
    error: Optional[MarketDataError] = None
    retryable: bool = False
    delay_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def backoff_ms(initial_backoff_ms: float, attempt: int) -> float:
    """Delay before the retry that follows attempt ``attempt`` (0-based)."""
    return initial_backoff_ms * (2 ** attempt)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Return the ``Retry-After`` header as milliseconds, or None if unusable.

    Accepts delta-seconds (``"2"``, ``"1.5"``) and HTTP-dates.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=dt.timezone.utc)
        seconds = (when - dt.datetime.now(dt.timezone.utc)).total_seconds()
    return max(seconds, 0.0) * 1000


class ResilientFetcher:
    """Fetch JSON documents, retrying 429s and network failures.

    The client is injected or created per call, so concurrent ``fetch``
    calls never share mutable state beyond the (read-only) client.
    An injected client is used as-is, with its own headers and timeout.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = config.MAX_RETRIES,
        initial_backoff_ms: float = config.INITIAL_BACKOFF_MS,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = config.REQUEST_TIMEOUT_SECS,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._client = client
        self.max_retries = max_retries
        self.initial_backoff_ms = initial_backoff_ms
        self.headers = config.default_headers() if headers is None else headers
        self.timeout = timeout
        self._sleep = sleep

    async def fetch(
        self,
        url: str,
        max_retries: Optional[int] = None,
        initial_backoff_ms: Optional[float] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """GET ``url`` and return the parsed JSON body.

        Raises ``HttpError`` for non-429 failures straight away,
        ``RateLimitError`` when every attempt was rate limited and
        ``NetworkError`` when the last attempt got no response.
        """
        retries = self.max_retries if max_retries is None else max_retries
        backoff = self.initial_backoff_ms if initial_backoff_ms is None else initial_backoff_ms
        if retries < 1:
            raise ValueError("max_retries must be >= 1")
        if backoff <= 0:
            raise ValueError("initial_backoff_ms must be > 0")

        if self._client is not None:
            return await self._run(self._client, url, params, retries, backoff)
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            return await self._run(client, url, params, retries, backoff)

    async def _run(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]],
        retries: int,
        backoff: float,
    ) -> Any:
        outcome = _Attempt()
        for i in range(retries):
            outcome = await self._attempt(client, url, params, i, backoff)
            if outcome.ok:
                return outcome.value
            if not outcome.retryable or i == retries - 1:
                raise outcome.error
            logger.warning(
                "%s on attempt %s/%s for %s (backoff %.0f ms)",
                outcome.error, i + 1, retries, url, outcome.delay_ms,
            )
            await self._sleep(outcome.delay_ms / 1000)
        # unreachable: the last iteration either returns or raises
        raise outcome.error

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]],
        i: int,
        backoff: float,
    ) -> _Attempt:
        try:
            resp = await client.get(url, params=params)
        except httpx.TransportError as e:
            return _Attempt(error=NetworkError(e), retryable=True, delay_ms=backoff_ms(backoff, i))

        status = resp.status_code
        if "x-ratelimit-remaining" in resp.headers:
            logger.debug(
                "CG rate: remaining=%s reset=%s status=%s key=%s",
                resp.headers.get("x-ratelimit-remaining"),
                resp.headers.get("x-ratelimit-reset"),
                status,
                config.masked_api_key() or "(none)",
            )

        if status == 429:
            retry_after = parse_retry_after(resp.headers.get("Retry-After"))
            delay = backoff_ms(backoff, i) if retry_after is None else retry_after
            err = RateLimitError(resp.reason_phrase or "Too Many Requests", retry_after_ms=delay)
            return _Attempt(error=err, retryable=True, delay_ms=delay)
        if not resp.is_success:
            return _Attempt(error=HttpError(status, resp.reason_phrase))

        try:
            return _Attempt(value=resp.json())
        except ValueError as e:
            return _Attempt(error=ValidationError(f"Response from {url} is not valid JSON: {e}"))


async def fetch_json(
    url: str,
    max_retries: int = config.MAX_RETRIES,
    initial_backoff_ms: float = config.INITIAL_BACKOFF_MS,
    *,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """One-shot helper around ``ResilientFetcher.fetch``."""
    return await ResilientFetcher().fetch(url, max_retries, initial_backoff_ms, params=params)
