"""
Tests for volreg.history / Algorithm.history
--------------------------------------------
Coverage:
- Trailing windows as of a point in time.
- Per-request normalization and data-point accounting.
"""

import pandas as pd
import pytest

from volreg.algorithm import Algorithm
from volreg.data_io import DataStore
from volreg.enums import DataNormalizationMode, Resolution
from volreg.history import HistoryProvider, HistoryRequest
from volreg.symbol import Symbol

TZ = "America/New_York"
AAPL = Symbol.create("AAPL")
SPLIT_CLOSE = pd.Timestamp("2014-06-09 16:00", tz=TZ)


def _req(mode, end=SPLIT_CLOSE, n=7):
    return HistoryRequest(AAPL, end, Resolution.DAILY, n, mode)


@pytest.fixture
def provider(aapl_data_root):
    return HistoryProvider(DataStore(aapl_data_root))


def test_window_ends_at_request_time(provider):
    df = provider.get_frame(_req(DataNormalizationMode.RAW))
    assert len(df) == 7
    assert df["end_time"].iloc[-1] == SPLIT_CLOSE
    assert (df["end_time"] <= SPLIT_CLOSE).all()
    assert provider.data_points == 7


def test_raw_window_straddles_split(provider):
    df = provider.get_frame(_req(DataNormalizationMode.RAW))
    assert df["close"].iloc[0] / df["close"].iloc[-1] > 5


def test_scaled_raw_window_is_continuous(provider):
    df = provider.get_frame(_req(DataNormalizationMode.SCALED_RAW))
    ratio = df["close"].iloc[0] / df["close"].iloc[-1]
    assert ratio == pytest.approx(1.0, abs=0.1)


def test_adjusted_matches_whole_dataset(provider):
    early = pd.Timestamp("2014-03-03 16:00", tz=TZ)
    df = provider.get_frame(_req(DataNormalizationMode.ADJUSTED, end=early, n=3))
    # adjusted to the end of the dataset: the later 7:1 split is already applied
    assert df["close"].iloc[-1] < 100


def test_short_history_returns_what_exists(provider):
    first = pd.Timestamp("2014-01-03 16:00", tz=TZ)
    df = provider.get_frame(_req(DataNormalizationMode.RAW, end=first, n=7))
    assert len(df) == 2


def test_bar_count_must_be_positive(provider):
    with pytest.raises(ValueError, match="bar_count"):
        provider.get_frame(_req(DataNormalizationMode.RAW, n=0))


def test_get_history_sorted_bars(provider):
    bars = provider.get_history([_req(DataNormalizationMode.SCALED_RAW, n=3)])
    assert [b.end_time for b in bars] == sorted(b.end_time for b in bars)
    assert all(b.symbol == AAPL for b in bars)
    assert provider.data_points == 3


def test_algorithm_history_requires_running_engine():
    class A(Algorithm):
        def initialize(self):
            pass

    a = A()
    a.add_equity("AAPL")
    with pytest.raises(RuntimeError, match="running"):
        a.history("AAPL", 5)


def test_algorithm_history_defaults_to_security_mode(provider):
    class A(Algorithm):
        def initialize(self):
            pass

    a = A()
    a.add_equity("aapl", data_normalization_mode=DataNormalizationMode.RAW)
    a.history_provider = provider
    a.time = SPLIT_CLOSE

    df = a.history("AAPL", 7)
    assert df["close"].iloc[0] / df["close"].iloc[-1] > 5

    df = a.history("AAPL", 7, data_normalization_mode=DataNormalizationMode.SCALED_RAW)
    assert df["close"].iloc[0] / df["close"].iloc[-1] == pytest.approx(1.0, abs=0.1)
