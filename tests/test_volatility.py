"""
Tests for volreg.volatility
---------------------------
Coverage:
- Indicator-backed model (default feed and custom callback).
- Std-dev-of-returns model.
- History requirements and warm-up through the history provider.
"""

import math
from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from volreg.data import TradeBar
from volreg.data_io import DataStore
from volreg.enums import DataNormalizationMode, Resolution
from volreg.history import HistoryProvider
from volreg.indicators import SimpleMovingAverage, StandardDeviation
from volreg.securities import Equity
from volreg.symbol import Symbol
from volreg.volatility import (
    IndicatorVolatilityModel,
    NullVolatilityModel,
    StandardDeviationOfReturnsVolatilityModel,
)

TZ = "America/New_York"
AAPL = Symbol.create("AAPL")


def _bar(i, price):
    t = pd.Timestamp("2014-01-02 09:30", tz=TZ) + pd.Timedelta(days=i)
    return TradeBar(AAPL, t, t + pd.Timedelta(hours=6, minutes=30), price, price, price, price, 1.0)


def _equity(mode=DataNormalizationMode.RAW):
    return Equity(AAPL, Resolution.DAILY, mode)


def test_null_model_is_default():
    eq = _equity()
    assert isinstance(eq.volatility_model, NullVolatilityModel)
    eq.update(_bar(0, 10.0))
    assert eq.volatility_model.volatility == 0.0


def test_indicator_model_feeds_price_by_default():
    sma = SimpleMovingAverage(2)
    eq = _equity()
    eq.set_volatility_model(IndicatorVolatilityModel(sma))

    eq.update(_bar(0, 10.0))
    eq.update(_bar(1, 20.0))
    assert eq.volatility_model.volatility == pytest.approx(15.0)


def test_indicator_model_uses_callback():
    seen = []
    sma = SimpleMovingAverage(2)

    def _update(security, data, indicator):
        seen.append(data.price)
        if data.price > 0:
            indicator.update(data.time, data.price * 2)

    model = IndicatorVolatilityModel(sma, _update)
    eq = _equity()
    eq.set_volatility_model(model)
    eq.update(_bar(0, 5.0))
    eq.update(_bar(1, -1.0))

    assert seen == [5.0, -1.0]
    assert model.volatility == pytest.approx(10.0)


def test_std_of_returns_model():
    model = StandardDeviationOfReturnsVolatilityModel(periods=3)
    eq = _equity()
    prices = [100.0, 101.0, 100.0, 102.0]
    for i, p in enumerate(prices):
        model.update(eq, _bar(i, p))

    rets = np.diff(prices) / np.array(prices[:-1])
    assert model.volatility == pytest.approx(np.std(rets, ddof=1) * math.sqrt(252))

    model.update(eq, _bar(2, 500.0))  # stale data is ignored
    assert model.volatility == pytest.approx(np.std(rets, ddof=1) * math.sqrt(252))

    model.reset()
    assert model.volatility == 0.0


def test_std_of_returns_requires_two_periods():
    with pytest.raises(ValueError, match="periods"):
        StandardDeviationOfReturnsVolatilityModel(periods=1)


def test_history_requirements_map_raw_to_scaled_raw():
    model = IndicatorVolatilityModel(SimpleMovingAverage(7))
    end = pd.Timestamp("2014-06-09 16:00", tz=TZ)

    (req,) = model.get_history_requirements(_equity(), end, Resolution.DAILY, 7, DataNormalizationMode.RAW)
    assert req.normalization_mode is DataNormalizationMode.SCALED_RAW
    assert req.bar_count == 7
    assert req.end_time == end

    (req,) = model.get_history_requirements(_equity(DataNormalizationMode.ADJUSTED), end, bar_count=3)
    assert req.normalization_mode is DataNormalizationMode.ADJUSTED

    assert model.get_history_requirements(_equity(), end, bar_count=0) == []


def test_std_of_returns_requests_one_extra_bar():
    model = StandardDeviationOfReturnsVolatilityModel(periods=5)
    (req,) = model.get_history_requirements(_equity(), pd.Timestamp("2014-03-03 16:00", tz=TZ))
    assert req.bar_count == 6


def test_warm_up_across_split_is_continuous(aapl_data_root, aapl_closes):
    provider = HistoryProvider(DataStore(aapl_data_root))
    split_close = pd.Timestamp("2014-06-09 16:00", tz=TZ)
    algorithm = SimpleNamespace(history_provider=provider, time=split_close)

    std = StandardDeviation(7)
    mean = SimpleMovingAverage(7)
    ratio = std.over(mean)

    def _update(security, data, indicator):
        if data.price > 0:
            std.update(data.time, data.price)
            mean.update(data.time, data.price)

    model = IndicatorVolatilityModel(ratio, _update)
    used = model.warm_up(algorithm, _equity(), Resolution.DAILY, 7, DataNormalizationMode.RAW)

    assert used == 7
    assert provider.data_points == 7
    assert ratio.is_ready
    assert 0 < model.volatility <= 0.05
    # last bar of the window is the raw split-day price
    assert mean.window[-1] == pytest.approx(aapl_closes[pd.Timestamp("2014-06-09")])


def test_null_model_warm_up_is_noop():
    assert NullVolatilityModel().warm_up(None, _equity(), Resolution.DAILY, 7) == 0
