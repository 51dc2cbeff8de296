"""
Classify the current price against EMAs and tally the result.

A price above an EMA counts as bullish, below as bearish.  ``equal``
and ``unknown`` positions are left out of the percentage so they never
dilute the signal.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

BULLISH_THRESHOLD = 60.0
BEARISH_THRESHOLD = 40.0


class PricePosition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    EQUAL = "equal"
    UNKNOWN = "unknown"


class SignalLabel(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


@dataclass(frozen=True)
class SignalTally:
    bullish: int
    bearish: int
    bullish_percentage: float
    label: SignalLabel

    @property
    def counted(self) -> int:
        return self.bullish + self.bearish


def classify_position(current_price: float, ema_value: Optional[float]) -> PricePosition:
    if ema_value is None:
        return PricePosition.UNKNOWN
    if current_price > ema_value:
        return PricePosition.ABOVE
    if current_price < ema_value:
        return PricePosition.BELOW
    return PricePosition.EQUAL


def classify_all(current_price: float, emas: Mapping[int, Optional[float]]) -> Dict[int, PricePosition]:
    return {period: classify_position(current_price, value) for period, value in emas.items()}


def label_for(bullish_percentage: float) -> SignalLabel:
    """Strict comparisons: exactly 60 or 40 is Neutral."""
    if bullish_percentage > BULLISH_THRESHOLD:
        return SignalLabel.BULLISH
    if bullish_percentage < BEARISH_THRESHOLD:
        return SignalLabel.BEARISH
    return SignalLabel.NEUTRAL


def tally(current_price: float, emas: Mapping[int, Optional[float]]) -> SignalTally:
    """
    Count bullish (above) and bearish (below) positions across ``emas``.
    When nothing was counted the percentage is 0 and the label Neutral.
    """
    bullish = bearish = 0
    for value in emas.values():
        if value is None:
            continue
        position = classify_position(current_price, value)
        if position is PricePosition.ABOVE:
            bullish += 1
        elif position is PricePosition.BELOW:
            bearish += 1
    total = bullish + bearish
    if not total:
        return SignalTally(bullish=0, bearish=0, bullish_percentage=0.0, label=SignalLabel.NEUTRAL)
    pct = bullish / total * 100
    return SignalTally(bullish=bullish, bearish=bearish, bullish_percentage=pct, label=label_for(pct))
