# ema_core/config.py
"""Runtime configuration and logging setup, read from the environment.

Values are resolved once at import time.  ``_env`` strips quotes and
whitespace so a ``.env`` line like ``KEY="value" `` does not break things.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Optional

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
        v = v[1:-1].strip()
    return v or default


def get_logger(name: str) -> logging.Logger:
    """Return a named logger with a single stream handler attached."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(h)
    logger.setLevel((_env("EMA_LOG_LEVEL", "INFO") or "INFO").upper())
    return logger


# ──────────────────────────────────────────────────────────────────────────────
# CoinGecko
# ──────────────────────────────────────────────────────────────────────────────

COINGECKO_BASE_URL = (_env("COINGECKO_BASE_URL", "https://api.coingecko.com") or "").rstrip("/")
COINGECKO_API_KEY = _env("COINGECKO_API_KEY")
_COINGECKO_API_KEY_HEADER = _env("COINGECKO_API_KEY_HEADER")  # x-cg-demo-api-key or x-cg-pro-api-key

MAX_RETRIES = int(_env("COINGECKO_MAX_RETRIES", "3") or "3")
INITIAL_BACKOFF_MS = float(_env("COINGECKO_BACKOFF_MS", "1000") or "1000")
REQUEST_TIMEOUT_SECS = float(_env("COINGECKO_TIMEOUT_SECS", "30") or "30")
VS_CURRENCY = (_env("EMA_VS_CURRENCY", "usd") or "usd").lower()


def api_key_header_name() -> str:
    if _COINGECKO_API_KEY_HEADER:
        return _COINGECKO_API_KEY_HEADER
    return "x-cg-pro-api-key" if "pro-api" in COINGECKO_BASE_URL else "x-cg-demo-api-key"


def default_headers() -> Dict[str, str]:
    """Headers sent with every CoinGecko request (API key when configured)."""
    headers = {"accept": "application/json"}
    if COINGECKO_API_KEY:
        headers[api_key_header_name()] = COINGECKO_API_KEY
    return headers


def masked_api_key() -> Optional[str]:
    if COINGECKO_API_KEY and len(COINGECKO_API_KEY) >= 4:
        return f"...{COINGECKO_API_KEY[-4:]}"
    return None
