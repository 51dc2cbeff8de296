"""Core utilities for the EMA signal engine.

This package fetches historical price series from CoinGecko with
rate-limit aware retries, computes Exponential Moving Averages for a set
of periods and tallies how the current price sits against them.  The
computation functions are side-effect free and deterministic when given
the same inputs.
"""

from .errors import (
    MarketDataError,
    HttpError,
    RateLimitError,
    NetworkError,
    ValidationError,
    describe_error,
)
from .fetcher import ResilientFetcher, fetch_json
from .ema import DEFAULT_EMA_PERIODS, ema_of, compute_all, ema_series
from .signals import PricePosition, SignalLabel, SignalTally, classify_position, tally
from .market import (
    TIMEFRAMES,
    Coin,
    PriceSeries,
    market_chart_url,
    parse_market_chart,
    load_coin_list,
)
from .pipeline import EMAReport, analyze, build_report
from .scheduler import RefreshScheduler

__all__ = [
    "MarketDataError",
    "HttpError",
    "RateLimitError",
    "NetworkError",
    "ValidationError",
    "describe_error",
    "ResilientFetcher",
    "fetch_json",
    "DEFAULT_EMA_PERIODS",
    "ema_of",
    "compute_all",
    "ema_series",
    "PricePosition",
    "SignalLabel",
    "SignalTally",
    "classify_position",
    "tally",
    "TIMEFRAMES",
    "Coin",
    "PriceSeries",
    "market_chart_url",
    "parse_market_chart",
    "load_coin_list",
    "EMAReport",
    "analyze",
    "build_report",
    "RefreshScheduler",
]
