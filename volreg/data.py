"""
Market Data Types
-----------------
Bars, corporate actions and the per-timestep Slice handed to algorithms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import pandas as pd

from .symbol import Symbol


@dataclass(frozen=True)
class TradeBar:
    symbol: Symbol
    time: pd.Timestamp
    end_time: pd.Timestamp
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def price(self) -> float:
        return self.close

    @property
    def value(self) -> float:
        return self.close


@dataclass(frozen=True)
class Split:
    """A split effective at `time`; new_price = old_price * split_factor."""

    symbol: Symbol
    time: pd.Timestamp
    reference_price: float
    split_factor: float


@dataclass(frozen=True)
class Dividend:
    """A cash distribution going ex at `time`."""

    symbol: Symbol
    time: pd.Timestamp
    distribution: float
    reference_price: float


@dataclass
class Slice:
    """
    Everything that happened at one engine timestep.
    Indexing by Symbol returns the bar; corporate actions are kept apart.
    """

    time: pd.Timestamp
    bars: dict[Symbol, TradeBar] = field(default_factory=dict)
    splits: dict[Symbol, Split] = field(default_factory=dict)
    dividends: dict[Symbol, Dividend] = field(default_factory=dict)

    def __getitem__(self, symbol: Symbol) -> TradeBar:
        return self.bars[symbol]

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.bars

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self.bars)

    def get(self, symbol: Symbol, default: TradeBar | None = None) -> TradeBar | None:
        return self.bars.get(symbol, default)

    def contains_key(self, symbol: Symbol) -> bool:
        return symbol in self.bars

    @property
    def has_data(self) -> bool:
        return bool(self.bars or self.splits or self.dividends)

    @property
    def data_point_count(self) -> int:
        return len(self.bars) + len(self.splits) + len(self.dividends)
