"""
Integration test for the EMA watcher and its MQTT publishing.

A recording stand-in replaces the paho client and CoinGecko is served by
an ``httpx.MockTransport``, so the whole refresh -> analyse -> publish path
runs without a broker or network access.
"""
import json

import httpx
import pytest

from ema_core.fetcher import ResilientFetcher
from ema_watcher.watcher import make_scheduler, topic_for


class RecordingClient:
    def __init__(self):
        self.messages = []

    def publish(self, topic, payload):
        self.messages.append((topic, json.loads(payload)))


def fetcher_for(handler):
    async def no_sleep(seconds):
        return None

    return ResilientFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), sleep=no_sleep)


@pytest.mark.asyncio
async def test_watcher_publishes_report():
    prices = [[1_700_000_000_000 + i * 3_600_000, 0.1 + i * 0.001] for i in range(40)]
    mqtt_client = RecordingClient()
    scheduler = make_scheduler(
        mqtt_client, "dogecoin", "4h",
        fetcher_for(lambda r: httpx.Response(200, json={"prices": prices})),
        interval=120,
    )
    assert await scheduler.run_once() is True

    topic, payload = mqtt_client.messages[0]
    assert topic == topic_for("dogecoin") == "crypto/dogecoin/ema"
    assert payload["coin_id"] == "dogecoin"
    assert payload["signal"] == "Bullish"
    assert payload["emas"]["50"] is None


@pytest.mark.asyncio
async def test_watcher_publishes_errors():
    mqtt_client = RecordingClient()
    scheduler = make_scheduler(
        mqtt_client, "nope", "4h",
        fetcher_for(lambda r: httpx.Response(404)),
        interval=120,
    )
    await scheduler.run_once()

    topic, payload = mqtt_client.messages[0]
    assert topic == "crypto/nope/ema/error"
    assert "not found" in payload["error"]
