import json

import httpx
import pytest

from ema_core.errors import HttpError, ValidationError
from ema_core.market import (
    POPULAR_COINS,
    PriceSeries,
    coins_markets_url,
    get_timeframe,
    load_coin_list,
    market_chart_url,
    parse_coin_list,
    parse_market_chart,
)


class StubFetcher:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.urls = []

    async def fetch(self, url, **kwargs):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.result


def test_market_chart_url():
    url = httpx.URL(market_chart_url("Dogecoin", "4h"))
    assert url.path == "/api/v3/coins/dogecoin/market_chart"
    assert url.params["vs_currency"] == "usd"
    assert url.params["days"] == "7"
    assert url.params["interval"] == "hourly"


def test_market_chart_url_max_timeframe():
    url = httpx.URL(market_chart_url("bitcoin", "max", vs_currency="EUR"))
    assert url.params["days"] == "max"
    assert url.params["vs_currency"] == "eur"


def test_market_chart_url_validation():
    with pytest.raises(ValidationError):
        market_chart_url("", "4h")
    with pytest.raises(ValidationError):
        market_chart_url("bitcoin", "2h")


def test_get_timeframe_table():
    assert get_timeframe("1h").interval == "minutely"
    assert get_timeframe("30d").days == 180


def test_coins_markets_url():
    url = httpx.URL(coins_markets_url())
    assert url.path == "/api/v3/coins/markets"
    assert url.params["order"] == "market_cap_desc"
    assert url.params["per_page"] == "250"


def test_parse_market_chart():
    series = parse_market_chart({"prices": [[1000, 0.1], [2000, 0.2], [3000, "0.15"]], "total_volumes": []})
    assert series.timestamps == (1000, 2000, 3000)
    assert series.prices == (0.1, 0.2, 0.15)
    assert series.latest_price == 0.15
    assert len(series) == 3


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"prices": []},
        None,
        [],
        {"prices": [[1000, 1.0, 5]]},
        {"prices": [[1000, "abc"]]},
        {"prices": [[1000, 0.0]]},
        {"prices": [[1000, -3.0]]},
        {"prices": [[float("inf"), 1.0]]},
        {"prices": [[1000, float("inf")]]},
    ],
)
def test_parse_market_chart_rejects(body):
    with pytest.raises(ValidationError):
        parse_market_chart(body)


def test_price_series_to_series():
    s = PriceSeries(timestamps=(0, 60_000), prices=(1.0, 2.0)).to_series()
    assert list(s) == [1.0, 2.0]
    assert str(s.index.tz) == "UTC"
    assert s.index[1].minute == 1


def test_price_series_is_immutable():
    series = PriceSeries(timestamps=(1,), prices=(1.0,))
    with pytest.raises(Exception):
        series.prices = (2.0,)


def test_parse_coin_list_uppercases_symbols():
    coins = parse_coin_list([{"id": "bitcoin", "symbol": "btc", "name": "Bitcoin", "image": "x.png"}])
    assert coins[0].symbol == "BTC"
    assert coins[0].image == "x.png"


def test_parse_coin_list_rejects_non_list():
    with pytest.raises(ValidationError):
        parse_coin_list({"error": "nope"})


@pytest.mark.asyncio
async def test_load_coin_list_falls_back():
    fetcher = StubFetcher(error=HttpError(500, "Internal Server Error"))
    coins, fallback = await load_coin_list(fetcher)
    assert fallback is True
    assert coins == list(POPULAR_COINS)


@pytest.mark.asyncio
async def test_load_coin_list_falls_back_on_bad_shape():
    coins, fallback = await load_coin_list(StubFetcher(result={"status": "down"}))
    assert fallback is True
    assert coins[0].id == "bitcoin"


@pytest.mark.asyncio
async def test_load_coin_list_live():
    fetcher = StubFetcher(result=[{"id": "pepe", "symbol": "pepe", "name": "Pepe"}])
    coins, fallback = await load_coin_list(fetcher)
    assert fallback is False
    assert [c.symbol for c in coins] == ["PEPE"]
    assert "/coins/markets" in fetcher.urls[0]


def test_parse_market_chart_rejects_json_infinity_timestamp():
    body = json.loads('{"prices": [[Infinity, 1.0]]}')
    with pytest.raises(ValidationError):
        parse_market_chart(body)
