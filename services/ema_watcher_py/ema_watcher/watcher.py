"""
EMA signal watcher.

This service periodically analyses the configured coins on CoinGecko
and publishes each EMA report to the MQTT broker.  Reports go to topics
of the form ``crypto/<coin_id>/ema``; failures are published to
``crypto/<coin_id>/ema/error`` with a user-facing message.

Environment variables:

* MQTT_BROKER: hostname or IP of the MQTT broker (default: localhost)
* SYMBOLS: comma-separated list of CoinGecko ids (default: dogecoin)
* TIMEFRAME: one of 1h, 4h, 12h, 1d, 7d, 30d, max (default: 4h)
* FETCH_INTERVAL: seconds between refreshes (default: 120)

A refresh that finishes after a newer one has already been published is
dropped.
"""
import asyncio
import json
import os
import time
from typing import List

import paho.mqtt.client as mqtt

from ema_core import EMAReport, MarketDataError, RefreshScheduler, ResilientFetcher, analyze, describe_error


MQTT_BROKER = os.environ.get("MQTT_BROKER", "localhost")
SYMBOLS = [s.strip() for s in os.environ.get("SYMBOLS", "dogecoin").split(",") if s.strip()]
TIMEFRAME = os.environ.get("TIMEFRAME", "4h")
FETCH_INTERVAL = int(os.environ.get("FETCH_INTERVAL", "120"))


def topic_for(coin_id: str) -> str:
    return f"crypto/{coin_id}/ema"


def publish_report(client, report: EMAReport) -> str:
    topic = topic_for(report.coin_id)
    payload = report.to_dict()
    client.publish(topic, json.dumps(payload))
    print(f"[watcher] Published {payload['signal']} "
          f"({payload['bullish_percentage']:.0f}% bullish) to {topic}")
    return topic


def publish_error(client, coin_id: str, err: MarketDataError) -> str:
    topic = f"{topic_for(coin_id)}/error"
    payload = {"coin_id": coin_id, "error": describe_error(err, coin_id)}
    client.publish(topic, json.dumps(payload))
    print(f"[watcher] {coin_id}: {err}")
    return topic


def make_scheduler(client, coin_id: str, timeframe: str, fetcher: ResilientFetcher,
                   interval: float) -> RefreshScheduler:
    async def job() -> EMAReport:
        return await analyze(coin_id, timeframe, fetcher=fetcher)

    return RefreshScheduler(
        job,
        interval=interval,
        on_result=lambda report: publish_report(client, report),
        on_error=lambda err: publish_error(client, coin_id, err),
    )


async def run(client, coins: List[str], timeframe: str, interval: float) -> None:
    fetcher = ResilientFetcher()
    schedulers = [make_scheduler(client, c, timeframe, fetcher, interval) for c in coins]
    await asyncio.gather(*(s.run_forever() for s in schedulers))


def main():
    client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2,
                         client_id=f"ema-watcher-{int(time.time())}")
    client.connect(MQTT_BROKER, 1883)
    client.loop_start()
    print(f"[watcher] Connected to MQTT broker at {MQTT_BROKER}:1883, "
          f"watching {', '.join(SYMBOLS)} on {TIMEFRAME} every {FETCH_INTERVAL}s")
    try:
        asyncio.run(run(client, SYMBOLS, TIMEFRAME, FETCH_INTERVAL))
    finally:
        client.loop_stop()
        client.disconnect()


if __name__ == "__main__":
    main()
