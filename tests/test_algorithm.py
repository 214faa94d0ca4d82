"""
Tests for volreg.algorithm / volreg.algorithms
----------------------------------------------
Coverage:
- Setup API (dates, cash, subscriptions, benchmark).
- Logging helpers.
- Registry lookups and regression metadata of the flagship algorithm.
"""

import logging
from datetime import date

import pytest

from volreg.algorithm import Algorithm
from volreg.algorithms import ALGORITHMS, IndicatorVolatilityModelAlgorithm, get_algorithm
from volreg.enums import AlgorithmStatus, DataNormalizationMode, Language, Resolution
from volreg.volatility import IndicatorVolatilityModel


class Minimal(Algorithm):
    def initialize(self):
        self.set_start_date(2014, 1, 1)
        self.set_end_date(date(2014, 3, 1))
        self.set_cash(5_000)


def test_setup_calls():
    a = Minimal()
    a.initialize()
    assert a.start_date == date(2014, 1, 1)
    assert a.end_date == date(2014, 3, 1)
    assert a.portfolio.cash == 5_000
    assert a.portfolio.starting_cash == 5_000


def test_negative_cash_rejected():
    with pytest.raises(ValueError, match="cash"):
        Minimal().set_cash(-1)


def test_add_equity_is_idempotent():
    a = Minimal()
    first = a.add_equity("aapl", Resolution.DAILY, DataNormalizationMode.RAW)
    second = a.add_equity("AAPL")
    assert first is second
    assert len(a.securities) == 1
    assert first.symbol.value == "AAPL"


def test_set_benchmark():
    a = Minimal()
    a.set_benchmark("spy")
    assert a.benchmark.value == "SPY"


def test_base_initialize_is_abstract():
    with pytest.raises(NotImplementedError):
        Algorithm().initialize()


def test_log_helpers_record_and_emit(caplog):
    a = Minimal()
    with caplog.at_level(logging.DEBUG):
        a.debug("d")
        a.log("i")
        a.error("e")
    assert a.log_messages == ["d", "i", "e"]
    assert "e" in caplog.text


def test_market_order_needs_price():
    a = Minimal()
    a.add_equity("AAPL")
    with pytest.raises(ValueError, match="no price data"):
        a.market_order("AAPL", 1)


def test_registry_lookup():
    assert get_algorithm("IndicatorVolatilityModelAlgorithm") is IndicatorVolatilityModelAlgorithm
    assert "IndicatorVolatilityModelAlgorithm" in ALGORITHMS
    with pytest.raises(KeyError, match="known algorithms"):
        get_algorithm("Nope")


def test_flagship_setup():
    algo = IndicatorVolatilityModelAlgorithm()
    algo.initialize()

    sec = algo.securities["AAPL"]
    assert sec.resolution is Resolution.DAILY
    assert sec.data_normalization_mode is DataNormalizationMode.RAW
    assert isinstance(sec.volatility_model, IndicatorVolatilityModel)
    assert algo.portfolio.cash == 100_000
    assert algo.start_date == date(2014, 1, 1)
    assert algo.end_date == date(2014, 12, 31)


def test_flagship_regression_metadata():
    algo = IndicatorVolatilityModelAlgorithm
    assert algo.can_run_locally
    assert algo.languages == (Language.PYTHON,)
    assert algo.data_points == 2021
    assert algo.algorithm_history_data_points == 42
    assert algo.algorithm_status is AlgorithmStatus.COMPLETED
    assert len(algo.expected_statistics) == 28
    assert algo.expected_statistics["OrderListHash"] == "d41d8cd98f00b204e9800998ecf8427e"
