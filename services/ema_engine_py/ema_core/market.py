# ema_core/market.py
"""CoinGecko endpoints, timeframes and price-series validation.

The fetcher only ever sees finished URLs; everything CoinGecko-specific
(paths, query parameters, response shapes) lives here.  All timestamps
are UTC milliseconds.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
import numpy as np
import pandas as pd

from . import config
from .errors import MarketDataError, ValidationError

logger = config.get_logger("ema_market")

# ──────────────────────────────────────────────────────────────────────────────
# Timeframes
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Timeframe:
    label: str
    value: str
    days: Union[int, str]
    interval: str


TIMEFRAMES: Dict[str, Timeframe] = {
    tf.value: tf
    for tf in (
        Timeframe("1 hour", "1h", 3, "minutely"),
        Timeframe("4 hours", "4h", 7, "hourly"),
        Timeframe("12 hours", "12h", 14, "hourly"),
        Timeframe("1 day", "1d", 30, "hourly"),
        Timeframe("7 days", "7d", 90, "daily"),
        Timeframe("30 days", "30d", 180, "daily"),
        Timeframe("Max", "max", "max", "daily"),
    )
}

DEFAULT_TIMEFRAME = "4h"


def get_timeframe(value: str) -> Timeframe:
    tf = TIMEFRAMES.get((value or "").lower())
    if tf is None:
        raise ValidationError(f"Invalid timeframe selected: {value!r}")
    return tf


# ──────────────────────────────────────────────────────────────────────────────
# URLs
# ──────────────────────────────────────────────────────────────────────────────


def _api_url(path: str, params: Dict[str, Any]) -> str:
    return str(httpx.URL(f"{config.COINGECKO_BASE_URL}/api/v3{path}", params=params))


def market_chart_url(coin_id: str, timeframe: str, vs_currency: str = config.VS_CURRENCY) -> str:
    coin_id = (coin_id or "").strip().lower()
    if not coin_id:
        raise ValidationError("Please select a cryptocurrency")
    tf = get_timeframe(timeframe)
    params = {"vs_currency": vs_currency.lower(), "days": tf.days, "interval": tf.interval}
    return _api_url(f"/coins/{coin_id}/market_chart", params)


def coins_markets_url(vs_currency: str = config.VS_CURRENCY, per_page: int = 250, page: int = 1) -> str:
    params = {
        "vs_currency": vs_currency.lower(),
        "order": "market_cap_desc",
        "per_page": per_page,
        "page": page,
    }
    return _api_url("/coins/markets", params)


# ──────────────────────────────────────────────────────────────────────────────
# Price series
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PriceSeries:
    """Ascending ``(timestamp_ms, price)`` pairs.  Immutable."""

    timestamps: Tuple[int, ...]
    prices: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.timestamps) != len(self.prices):
            raise ValueError("timestamps and prices must have the same length")

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def latest_price(self) -> float:
        if not self.prices:
            raise ValidationError("No price data returned")
        return self.prices[-1]

    @property
    def latest_timestamp(self) -> int:
        if not self.timestamps:
            raise ValidationError("No price data returned")
        return self.timestamps[-1]

    def to_series(self) -> pd.Series:
        index = pd.to_datetime(list(self.timestamps), unit="ms", utc=True)
        return pd.Series(self.prices, index=index, name="price", dtype=float)


def parse_market_chart(data: Any) -> PriceSeries:
    """
    Validate a ``market_chart`` body (``{"prices": [[ts_ms, price], ...]}``)
    into a PriceSeries.  Raises ValidationError when the array is missing,
    empty or holds rows that are not ``[number, positive number]``.
    """
    rows = data.get("prices") if isinstance(data, dict) else None
    if not rows or not isinstance(rows, list):
        raise ValidationError("No price data returned")
    try:
        frame = pd.DataFrame(rows, columns=["ts", "price"])
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Malformed price rows: {e}") from e

    ts = pd.to_numeric(frame["ts"], errors="coerce")
    price = pd.to_numeric(frame["price"], errors="coerce")
    if ts.isna().any() or price.isna().any():
        raise ValidationError("Malformed price rows: non-numeric timestamp or price")
    if not np.isfinite(ts.to_numpy(dtype=float)).all():
        raise ValidationError("Malformed price rows: timestamps must be finite numbers")
    if not np.isfinite(price.to_numpy(dtype=float)).all() or (price <= 0).any():
        raise ValidationError("Malformed price rows: prices must be positive finite numbers")

    return PriceSeries(
        timestamps=tuple(int(t) for t in ts),
        prices=tuple(float(p) for p in price),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Coin list
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coin:
    id: str
    symbol: str
    name: str
    image: Optional[str] = None


POPULAR_COINS: Tuple[Coin, ...] = (
    Coin("bitcoin", "BTC", "Bitcoin"),
    Coin("ethereum", "ETH", "Ethereum"),
    Coin("dogecoin", "DOGE", "Dogecoin"),
    Coin("shiba-inu", "SHIB", "Shiba Inu"),
    Coin("pepe", "PEPE", "Pepe"),
    Coin("floki", "FLOKI", "Floki"),
    Coin("dogwifhat", "WIF", "Dogwifhat"),
    Coin("bonk", "BONK", "Bonk"),
    Coin("memecoin", "MEME", "Meme"),
    Coin("solana", "SOL", "Solana"),
    Coin("ripple", "XRP", "Ripple"),
    Coin("cardano", "ADA", "Cardano"),
)


def parse_coin_list(data: Any) -> List[Coin]:
    if not isinstance(data, list):
        raise ValidationError("Invalid coin data")
    coins: List[Coin] = []
    for item in data:
        try:
            coins.append(Coin(
                id=str(item["id"]),
                symbol=str(item["symbol"]).upper(),
                name=str(item["name"]),
                image=item.get("image"),
            ))
        except (KeyError, TypeError, AttributeError) as e:
            raise ValidationError(f"Invalid coin data: {e}") from e
    return coins


async def fetch_coin_list(fetcher, vs_currency: str = config.VS_CURRENCY) -> List[Coin]:
    """Top coins by market cap, straight from CoinGecko."""
    data = await fetcher.fetch(coins_markets_url(vs_currency))
    return parse_coin_list(data)


async def load_coin_list(fetcher, vs_currency: str = config.VS_CURRENCY) -> Tuple[List[Coin], bool]:
    """
    Like ``fetch_coin_list`` but falls back to ``POPULAR_COINS`` when the
    request fails.  Returns ``(coins, used_fallback)``.
    """
    try:
        return await fetch_coin_list(fetcher, vs_currency), False
    except MarketDataError as e:
        logger.warning("Coin list unavailable (%s); using popular coins instead", e)
        return list(POPULAR_COINS), True
