import math

import pandas as pd
import pytest

from ema_core.ema import DEFAULT_EMA_PERIODS, compute_all, ema_of, ema_series, smoothing_factor


def test_ema_short_series_is_absent():
    assert ema_of([1, 2, 3], 4) is None
    assert ema_of([], 1) is None


def test_ema_seed_only():
    # exactly `period` points: seed mean, no smoothing
    assert ema_of([1, 2, 3, 4, 5, 6, 7], 7) == 4


def test_ema_one_update():
    # seed 4, k = 0.25, 8 * 0.25 + 4 * 0.75 = 5
    assert ema_of([1, 2, 3, 4, 5, 6, 7, 8], 7) == pytest.approx(5.0)


def test_ema_period_one_tracks_last_price():
    assert ema_of([3.0, 9.0, 2.5], 1) == pytest.approx(2.5)


def test_ema_rejects_non_positive_period():
    with pytest.raises(ValueError):
        ema_of([1, 2, 3], 0)


def test_ema_is_pure():
    prices = (10.0, 11.5, 9.75, 12.0, 13.25, 12.5)
    assert ema_of(prices, 3) == ema_of(prices, 3)
    assert prices == (10.0, 11.5, 9.75, 12.0, 13.25, 12.5)


def test_ema_appending_matches_incremental_update():
    prices = [100.0, 101.0, 99.0, 102.0, 104.0, 103.0, 105.0, 107.0]
    period = 5
    previous = ema_of(prices, period)
    k = smoothing_factor(period)
    assert ema_of(prices + [110.0], period) == pytest.approx(110.0 * k + previous * (1 - k))


def test_compute_all_marks_unsatisfied_periods():
    prices = [float(p) for p in range(1, 31)]
    result = compute_all(prices)
    assert list(result) == list(DEFAULT_EMA_PERIODS)
    for period, value in result.items():
        if period <= 30:
            assert value == pytest.approx(ema_of(prices, period))
        else:
            assert value is None


def test_ema_series_agrees_with_ema_of():
    prices = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 9, 8]
    line = ema_series(pd.Series(prices, dtype=float), 7)
    assert line.iloc[:6].isna().all()
    assert line.iloc[6] == pytest.approx(4.0)
    assert line.iloc[7] == pytest.approx(5.0)
    assert line.iloc[-1] == pytest.approx(ema_of(prices, 7))


def test_ema_series_too_short():
    line = ema_series(pd.Series([1.0, 2.0]), 3)
    assert len(line) == 2
    assert all(math.isnan(v) for v in line)
