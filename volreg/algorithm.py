"""
Algorithm Base
--------------
The contract between user algorithms and the backtest engine: setup calls made
from `initialize`, data access during the run, and lifecycle callbacks the
engine invokes (`on_data`, `on_end_of_day`, `on_end_of_algorithm`).
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import pandas as pd

from .data import Slice
from .enums import DataNormalizationMode, Resolution
from .history import HistoryProvider, HistoryRequest
from .portfolio import Order, Portfolio
from .securities import Equity, Security, SecurityManager
from .symbol import Symbol

logger = logging.getLogger(__name__)


def _to_date(*args: Any) -> date:
    if len(args) == 3:
        return date(int(args[0]), int(args[1]), int(args[2]))
    if len(args) == 1:
        value = args[0]
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return pd.Timestamp(value).date()
    raise TypeError("expected (year, month, day) or a single date-like value")


class Algorithm:
    """Subclass and implement `initialize`; override callbacks as needed."""

    def __init__(self) -> None:
        self.securities = SecurityManager()
        self.portfolio = Portfolio(self.securities)
        self.start_date: date | None = None
        self.end_date: date | None = None
        self.benchmark: Symbol | None = None
        self.time: pd.Timestamp | None = None
        self.history_provider: HistoryProvider | None = None
        self.log_messages: list[str] = []
        self._logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    @property
    def name(self) -> str:
        return type(self).__name__

    # -----------------------------
    # Setup
    # -----------------------------
    def initialize(self) -> None:
        raise NotImplementedError

    def set_start_date(self, *args: Any) -> None:
        self.start_date = _to_date(*args)

    def set_end_date(self, *args: Any) -> None:
        self.end_date = _to_date(*args)

    def set_cash(self, cash: float) -> None:
        if cash < 0:
            raise ValueError(f"Starting cash must be >= 0, got {cash}")
        self.portfolio.set_cash(cash)

    def set_benchmark(self, ticker: str | Symbol) -> None:
        self.benchmark = ticker if isinstance(ticker, Symbol) else Symbol.create(ticker)

    def add_equity(
        self,
        ticker: str,
        resolution: Resolution = Resolution.DAILY,
        data_normalization_mode: DataNormalizationMode = DataNormalizationMode.ADJUSTED,
    ) -> Equity:
        symbol = Symbol.create(ticker)
        if symbol in self.securities:
            return self.securities[symbol]  # type: ignore[return-value]
        equity = Equity(symbol, resolution, data_normalization_mode)
        self.securities.add(equity)
        logger.info("Added %r", equity)
        return equity

    # -----------------------------
    # Run-time API
    # -----------------------------
    def history(
        self,
        symbol: Symbol | str,
        bar_count: int,
        resolution: Resolution | None = None,
        data_normalization_mode: DataNormalizationMode | None = None,
    ) -> pd.DataFrame:
        """Last `bar_count` bars up to the current time as a DataFrame."""
        if self.history_provider is None or self.time is None:
            raise RuntimeError("history is only available while the algorithm is running")
        security = self.securities[symbol]
        request = HistoryRequest(
            symbol=security.symbol,
            end_time=self.time,
            resolution=resolution or security.resolution,
            bar_count=bar_count,
            normalization_mode=data_normalization_mode or security.data_normalization_mode,
        )
        return self.history_provider.get_frame(request)

    def market_order(self, symbol: Symbol | str, quantity: float, tag: str = "") -> Order:
        security: Security = self.securities[symbol]
        if not security.has_data:
            raise ValueError(f"Cannot place order for {security.symbol}: no price data yet")
        return self.portfolio.fill(security.symbol, quantity, security.price, self.time, tag)

    def debug(self, message: str) -> None:
        self.log_messages.append(str(message))
        self._logger.debug(message)

    def log(self, message: str) -> None:
        self.log_messages.append(str(message))
        self._logger.info(message)

    def error(self, message: str) -> None:
        self.log_messages.append(str(message))
        self._logger.error(message)

    # -----------------------------
    # Callbacks
    # -----------------------------
    def on_data(self, slice: Slice) -> None:
        pass

    def on_end_of_day(self, symbol: Symbol) -> None:
        pass

    def on_end_of_algorithm(self) -> None:
        pass
