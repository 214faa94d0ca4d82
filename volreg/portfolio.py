"""
Portfolio Accounting
--------------------
Cash and holdings bookkeeping for a backtest.

Invariants:
- Holdings only change on fills and (raw-mode) splits.
- Realized trade outcomes are recorded when a fill reduces or flips a position.
- Dividends credit cash only for raw-priced holdings; adjusted prices already
  carry them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any

from .data import Dividend, Split
from .enums import DataNormalizationMode
from .symbol import Symbol

if TYPE_CHECKING:
    from .securities import SecurityManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Order:
    id: int
    symbol: Symbol
    time: Any
    quantity: float
    price: float
    fee: float
    tag: str = ""


@dataclass
class Holding:
    symbol: Symbol
    quantity: float = 0.0
    average_price: float = 0.0

    @property
    def invested(self) -> bool:
        return self.quantity != 0


@dataclass(frozen=True)
class ClosedTrade:
    symbol: Symbol
    time: Any
    quantity: float
    pnl: float
    return_pct: float


class Portfolio:
    def __init__(self, securities: "SecurityManager", cash: float = 100_000.0, fee_per_order: float = 0.0):
        self.securities = securities
        self.cash = float(cash)
        self.starting_cash = float(cash)
        self.fee_per_order = float(fee_per_order)
        self.holdings: dict[Symbol, Holding] = {}
        self.orders: list[Order] = []
        self.closed_trades: list[ClosedTrade] = []
        self.total_fees = 0.0
        self.traded_value_by_day: dict[date, float] = defaultdict(float)

    def __getitem__(self, symbol: Symbol) -> Holding:
        if symbol not in self.holdings:
            # share the security's holding when subscribed
            self.holdings[symbol] = (
                self.securities[symbol].holdings if symbol in self.securities else Holding(symbol)
            )
        return self.holdings[symbol]

    def set_cash(self, amount: float) -> None:
        self.cash = float(amount)
        self.starting_cash = float(amount)

    @property
    def invested(self) -> bool:
        return any(h.invested for h in self.holdings.values())

    @property
    def total_holdings_value(self) -> float:
        total = 0.0
        for symbol, h in self.holdings.items():
            if not h.invested:
                continue
            # unsubscribed holdings are marked at cost
            price = self.securities[symbol].price if symbol in self.securities else h.average_price
            total += h.quantity * price
        return total

    @property
    def total_portfolio_value(self) -> float:
        return self.cash + self.total_holdings_value

    def fill(self, symbol: Symbol, quantity: float, price: float, time: Any, tag: str = "") -> Order:
        """Books an immediate fill of `quantity` (signed) at `price`."""
        if quantity == 0:
            raise ValueError("Order quantity must be non-zero")
        if price <= 0:
            raise ValueError(f"Cannot fill {symbol} at non-positive price {price}")

        h = self[symbol]
        pos = h.quantity
        if pos != 0 and (pos > 0) != (quantity > 0):
            closed = min(abs(quantity), abs(pos))
            side = 1.0 if pos > 0 else -1.0
            pnl = closed * (price - h.average_price) * side
            ret = (price / h.average_price - 1.0) * side if h.average_price else 0.0
            self.closed_trades.append(ClosedTrade(symbol, time, closed, pnl, ret))
            remaining = pos + quantity
            if remaining == 0:
                h.average_price = 0.0
            elif (remaining > 0) != (pos > 0):
                h.average_price = price
            h.quantity = remaining
        else:
            new_qty = pos + quantity
            h.average_price = (h.average_price * abs(pos) + price * abs(quantity)) / abs(new_qty)
            h.quantity = new_qty

        fee = self.fee_per_order
        self.cash -= quantity * price + fee
        self.total_fees += fee
        self.traded_value_by_day[_as_date(time)] += abs(quantity * price)

        order = Order(len(self.orders) + 1, symbol, time, float(quantity), float(price), fee, tag)
        self.orders.append(order)
        logger.info("Filled order %d: %+g %s @ %.4f (fee %.2f)", order.id, quantity, symbol, price, fee)
        return order

    def apply_split(self, split: Split, mode: DataNormalizationMode) -> None:
        h = self.holdings.get(split.symbol)
        if h is None or not h.invested or mode is not DataNormalizationMode.RAW:
            return
        h.quantity = h.quantity / split.split_factor
        h.average_price = h.average_price * split.split_factor
        logger.info("Split %s x%g: holdings now %g", split.symbol, split.split_factor, h.quantity)

    def apply_dividend(self, dividend: Dividend, mode: DataNormalizationMode) -> None:
        h = self.holdings.get(dividend.symbol)
        if h is None or not h.invested or mode is not DataNormalizationMode.RAW:
            return
        amount = h.quantity * dividend.distribution
        self.cash += amount
        logger.info("Dividend %s %.4f/share credited %.2f", dividend.symbol, dividend.distribution, amount)


def _as_date(time: Any) -> date:
    if hasattr(time, "date"):
        return time.date()
    return time
