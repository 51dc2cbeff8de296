"""Exponential moving averages seeded with a simple average.

``ema_of`` returns only the latest EMA value in a single left-to-right
pass.  ``ema_series`` returns the whole EMA line as a pandas Series; its
last value agrees with ``ema_of`` on the same prices.  Neither raises for
a series that is too short: the EMA is simply absent (None / NaN).
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd

DEFAULT_EMA_PERIODS = (7, 9, 20, 25, 50, 100, 200)

EMAResult = Dict[int, Optional[float]]


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"EMA period must be a positive integer, got {period}")


def smoothing_factor(period: int) -> float:
    return 2 / (period + 1)


def ema_of(prices: Sequence[float], period: int) -> Optional[float]:
    """
    Compute the EMA of ``prices`` (oldest first) for ``period``.
    The seed is the mean of the first ``period`` prices; every later
    price p updates ``ema = p * k + ema * (1 - k)`` with k = 2/(period+1).
    Returns None when there are fewer than ``period`` prices.
    """
    _check_period(period)
    if len(prices) < period:
        return None
    k = smoothing_factor(period)
    ema = sum(prices[:period]) / period
    for p in prices[period:]:
        ema = p * k + ema * (1 - k)
    return ema


def compute_all(prices: Sequence[float], periods: Iterable[int] = DEFAULT_EMA_PERIODS) -> EMAResult:
    """Compute ``ema_of`` independently for each period."""
    return {int(period): ema_of(prices, int(period)) for period in periods}


def ema_series(close: pd.Series, period: int) -> pd.Series:
    """
    Compute the full EMA line.  Values before index ``period - 1`` stay
    NaN; the value at ``period - 1`` is the seed average and the rest
    follow the same recurrence as ``ema_of`` (pandas ``ewm`` with
    ``adjust=False`` started from the seed).
    """
    _check_period(period)
    out = pd.Series(np.nan, index=close.index, dtype=float)
    if len(close) < period:
        return out
    tail = close.iloc[period - 1:].astype(float).copy()
    tail.iloc[0] = float(close.iloc[:period].mean())
    out.iloc[period - 1:] = tail.ewm(span=period, adjust=False).mean().to_numpy()
    return out
