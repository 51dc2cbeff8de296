"""
FastAPI application exposing the coin list, the supported timeframes and
EMA signal reports.  The API is stateless: every request runs one
fetch-then-compute pass and nothing is cached between requests.
"""
from __future__ import annotations
import datetime as dt
from typing import Dict, List, NoReturn, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from ema_core import (
    DEFAULT_EMA_PERIODS,
    TIMEFRAMES,
    HttpError,
    MarketDataError,
    ResilientFetcher,
    ValidationError,
    analyze,
    describe_error,
    ema_series,
    load_coin_list,
    market_chart_url,
    parse_market_chart,
)
from ema_core.config import get_logger
from ema_core.market import DEFAULT_TIMEFRAME

logger = get_logger("ema_api")
app = FastAPI(title="Crypto EMA Signal API")


# ----------------------------------------------------------------------
# Models
# ----------------------------------------------------------------------
class TimeframeResponse(BaseModel):
    value: str
    label: str
    days: str
    interval: str


class CoinResponse(BaseModel):
    id: str
    symbol: str
    name: str
    image: Optional[str] = None


class CoinListResponse(BaseModel):
    coins: List[CoinResponse]
    fallback: bool = Field(False, description="True when the static popular-coin list was served")
    message: Optional[str] = None


class EMAResponse(BaseModel):
    coin_id: str
    symbol: Optional[str] = None
    name: Optional[str] = None
    timeframe: str
    current_price: float
    points: int
    emas: Dict[int, Optional[float]]
    positions: Dict[int, str]
    bullish: int
    bearish: int
    bullish_percentage: float
    signal: str = Field(..., description="Bullish, Bearish or Neutral")
    last_updated: dt.datetime


class EMAPoint(BaseModel):
    date: dt.datetime
    ema: float


def get_fetcher() -> ResilientFetcher:
    return ResilientFetcher()


def _check_periods(periods: Optional[List[int]]) -> List[int]:
    if not periods:
        return list(DEFAULT_EMA_PERIODS)
    if any(p < 1 for p in periods):
        raise HTTPException(422, detail="EMA periods must be positive integers")
    return periods


def _raise_for(err: MarketDataError, coin_id: str) -> NoReturn:
    detail = describe_error(err, coin_id)
    if isinstance(err, HttpError) and err.status in (404, 429):
        raise HTTPException(err.status, detail=detail) from err
    if isinstance(err, ValidationError):
        raise HTTPException(422, detail=detail) from err
    raise HTTPException(502, detail=detail) from err


# ----------------------------------------------------------------------
# Endpoints
# ----------------------------------------------------------------------
@app.get("/timeframes", response_model=List[TimeframeResponse])
async def get_timeframes() -> List[TimeframeResponse]:
    return [
        TimeframeResponse(value=tf.value, label=tf.label, days=str(tf.days), interval=tf.interval)
        for tf in TIMEFRAMES.values()
    ]


@app.get("/coins", response_model=CoinListResponse)
async def get_coins(fetcher: ResilientFetcher = Depends(get_fetcher)) -> CoinListResponse:
    """Top coins by market cap, or a static popular list if CoinGecko is unavailable."""
    coins, fallback = await load_coin_list(fetcher)
    return CoinListResponse(
        coins=[CoinResponse(id=c.id, symbol=c.symbol, name=c.name, image=c.image) for c in coins],
        fallback=fallback,
        message="Failed to load cryptocurrency list. Using popular coins instead." if fallback else None,
    )


@app.get("/ema/{coin_id}", response_model=EMAResponse)
async def get_ema(
    coin_id: str,
    timeframe: str = Query(DEFAULT_TIMEFRAME, description="1h, 4h, 12h, 1d, 7d, 30d or max"),
    periods: Optional[List[int]] = Query(None, description="EMA periods, default 7,9,20,25,50,100,200"),
    symbol: Optional[str] = Query(None),
    name: Optional[str] = Query(None),
    fetcher: ResilientFetcher = Depends(get_fetcher),
) -> EMAResponse:
    """Current price, EMA values and the bullish/bearish tally for a coin."""
    wanted = _check_periods(periods)
    try:
        report = await analyze(coin_id, timeframe, fetcher=fetcher, periods=wanted, symbol=symbol, name=name)
    except MarketDataError as e:
        _raise_for(e, coin_id)
    except Exception:
        logger.exception("Unhandled error in /ema/%s", coin_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    return EMAResponse(
        coin_id=report.coin_id,
        symbol=report.symbol,
        name=report.name,
        timeframe=report.timeframe,
        current_price=report.current_price,
        points=report.points,
        emas=report.emas,
        positions={p: pos.value for p, pos in report.positions.items()},
        bullish=report.tally.bullish,
        bearish=report.tally.bearish,
        bullish_percentage=report.tally.bullish_percentage,
        signal=report.tally.label.value,
        last_updated=report.last_updated,
    )


@app.get("/ema/{coin_id}/series", response_model=List[EMAPoint])
async def get_ema_series(
    coin_id: str,
    period: int = Query(..., ge=1),
    timeframe: str = Query(DEFAULT_TIMEFRAME),
    fetcher: ResilientFetcher = Depends(get_fetcher),
) -> List[EMAPoint]:
    """The full EMA line for one period (points before the seed are omitted)."""
    try:
        series = parse_market_chart(await fetcher.fetch(market_chart_url(coin_id, timeframe)))
        line = ema_series(series.to_series(), period).dropna()
    except MarketDataError as e:
        _raise_for(e, coin_id)
    except Exception:
        logger.exception("Unhandled error in /ema/%s/series", coin_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    return [EMAPoint(date=idx.to_pydatetime(), ema=float(val)) for idx, val in line.items()]
