"""Fetch-then-compute pipeline: one call, no state kept between calls."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from . import config
from .ema import DEFAULT_EMA_PERIODS, EMAResult, compute_all
from .fetcher import ResilientFetcher
from .market import PriceSeries, market_chart_url, parse_market_chart
from .signals import PricePosition, SignalTally, classify_all, tally


@dataclass(frozen=True)
class EMAReport:
    coin_id: str
    timeframe: str
    current_price: float
    emas: EMAResult
    tally: SignalTally
    positions: Dict[int, PricePosition]
    points: int
    symbol: Optional[str] = None
    name: Optional[str] = None
    last_updated: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coin_id": self.coin_id,
            "symbol": self.symbol,
            "name": self.name,
            "timeframe": self.timeframe,
            "current_price": self.current_price,
            "points": self.points,
            "emas": {str(p): v for p, v in self.emas.items()},
            "positions": {str(p): pos.value for p, pos in self.positions.items()},
            "bullish": self.tally.bullish,
            "bearish": self.tally.bearish,
            "bullish_percentage": self.tally.bullish_percentage,
            "signal": self.tally.label.value,
            "last_updated": self.last_updated.isoformat(),
        }


def build_report(
    series: PriceSeries,
    coin_id: str,
    timeframe: str,
    periods: Iterable[int] = DEFAULT_EMA_PERIODS,
    symbol: Optional[str] = None,
    name: Optional[str] = None,
) -> EMAReport:
    current = series.latest_price
    emas = compute_all(series.prices, periods)
    return EMAReport(
        coin_id=coin_id,
        timeframe=timeframe,
        current_price=current,
        emas=emas,
        tally=tally(current, emas),
        positions=classify_all(current, emas),
        points=len(series),
        symbol=symbol,
        name=name,
    )


async def analyze(
    coin_id: str,
    timeframe: str,
    fetcher: Optional[ResilientFetcher] = None,
    periods: Iterable[int] = DEFAULT_EMA_PERIODS,
    vs_currency: str = config.VS_CURRENCY,
    symbol: Optional[str] = None,
    name: Optional[str] = None,
) -> EMAReport:
    """Fetch the price series for ``coin_id`` over ``timeframe`` and report on it."""
    url = market_chart_url(coin_id, timeframe, vs_currency)
    fetcher = fetcher or ResilientFetcher()
    series = parse_market_chart(await fetcher.fetch(url))
    return build_report(series, coin_id, timeframe, periods, symbol=symbol, name=name)
