"""
Indicator Volatility Model Regression
-------------------------------------
Uses StandardDeviation(7) over SimpleMovingAverage(7) as the volatility
estimate of a raw-priced daily equity. Every split or dividend resets the
indicator and re-primes it from history, so the estimate never jumps across
the price discontinuity.

Checks:
- end of day: once the indicator is ready, 0 < volatility <= 0.05
- end of run: at least one corporate action and one volatility check were seen
"""

from __future__ import annotations

from typing import Any

from ..algorithm import Algorithm
from ..data import Slice
from ..enums import AlgorithmStatus, DataNormalizationMode, Language, Resolution
from ..indicators import Indicator, SimpleMovingAverage, StandardDeviation
from ..regression import RegressionAlgorithmDefinition, RegressionTestException
from ..securities import Security
from ..symbol import Symbol
from ..volatility import IndicatorVolatilityModel

PERIOD = 7
MODE = DataNormalizationMode.RAW


class IndicatorVolatilityModelAlgorithm(Algorithm, RegressionAlgorithmDefinition):
    def initialize(self) -> None:
        self.set_start_date(2014, 1, 1)
        self.set_end_date(2014, 12, 31)
        self.set_cash(100000)

        equity = self.add_equity("AAPL", Resolution.DAILY, data_normalization_mode=MODE)
        self._aapl = equity.symbol
        self._splits_and_dividends_count = 0
        self._volatility_checked = False

        std = StandardDeviation(PERIOD)
        mean = SimpleMovingAverage(PERIOD)
        self._indicator = std.over(mean)

        def _update(security: Security, data: Any, indicator: Indicator) -> None:
            if data.price > 0:
                std.update(data.time, data.price)
                mean.update(data.time, data.price)

        equity.set_volatility_model(IndicatorVolatilityModel(self._indicator, _update))

    def on_data(self, slice: Slice) -> None:
        if self._aapl in slice.splits or self._aapl in slice.dividends:
            self._splits_and_dividends_count += 1

            self._indicator.reset()
            equity = self.securities[self._aapl]
            used = equity.volatility_model.warm_up(self, equity, equity.resolution, PERIOD, MODE)
            self.debug(f"{self.time} corporate action on {self._aapl}: re-primed from {used} bars")

    def on_end_of_day(self, symbol: Symbol) -> None:
        if symbol != self._aapl or not self._indicator.is_ready:
            return

        self._volatility_checked = True

        volatility = self.securities[self._aapl].volatility_model.volatility
        if volatility <= 0 or volatility > 0.05:
            raise RegressionTestException(
                "Expected volatility < 0.05 (no large jumps from corporate actions), "
                f"but got {volatility}"
            )

    def on_end_of_algorithm(self) -> None:
        if self._splits_and_dividends_count == 0:
            raise RegressionTestException("Expected to get at least one split or dividend event")
        if not self._volatility_checked:
            raise RegressionTestException("Expected to check volatility at least once")

    can_run_locally = True
    languages = (Language.PYTHON,)
    data_points = 2021
    algorithm_history_data_points = 42
    algorithm_status = AlgorithmStatus.COMPLETED

    # recorded against the vendor AAPL 2014 daily dataset
    expected_statistics = {
        "Total Orders": "0",
        "Average Win": "0%",
        "Average Loss": "0%",
        "Compounding Annual Return": "0%",
        "Drawdown": "0%",
        "Expectancy": "0",
        "Start Equity": "100000",
        "End Equity": "100000",
        "Net Profit": "0%",
        "Sharpe Ratio": "0",
        "Sortino Ratio": "0",
        "Probabilistic Sharpe Ratio": "0%",
        "Loss Rate": "0%",
        "Win Rate": "0%",
        "Profit-Loss Ratio": "0",
        "Alpha": "0",
        "Beta": "0",
        "Annual Standard Deviation": "0",
        "Annual Variance": "0",
        "Information Ratio": "-1.025",
        "Tracking Error": "0.094",
        "Treynor Ratio": "0",
        "Total Fees": "$0.00",
        "Estimated Strategy Capacity": "$0",
        "Lowest Capacity Asset": "",
        "Portfolio Turnover": "0%",
        "Drawdown Recovery": "0",
        "OrderListHash": "d41d8cd98f00b204e9800998ecf8427e",
    }
