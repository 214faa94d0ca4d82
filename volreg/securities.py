"""
Securities
----------
Subscribed instruments with their price cache and volatility model, plus the
manager that looks them up by Symbol or ticker.
"""

from __future__ import annotations

from typing import Iterator, Mapping

from .data import TradeBar
from .enums import DataNormalizationMode, Resolution
from .portfolio import Holding
from .symbol import Symbol
from .volatility import NullVolatilityModel, VolatilityModel


class Security:
    def __init__(
        self,
        symbol: Symbol,
        resolution: Resolution = Resolution.DAILY,
        data_normalization_mode: DataNormalizationMode = DataNormalizationMode.ADJUSTED,
    ):
        if data_normalization_mode is DataNormalizationMode.SCALED_RAW:
            raise ValueError("SCALED_RAW is only valid for history requests")
        self.symbol = symbol
        self.resolution = resolution
        self.data_normalization_mode = data_normalization_mode
        self.volatility_model: VolatilityModel = NullVolatilityModel()
        self.holdings = Holding(symbol)
        self.last_bar: TradeBar | None = None

    @property
    def price(self) -> float:
        return self.last_bar.close if self.last_bar is not None else 0.0

    @property
    def close(self) -> float:
        return self.price

    @property
    def has_data(self) -> bool:
        return self.last_bar is not None

    def set_volatility_model(self, model: VolatilityModel) -> None:
        self.volatility_model = model

    def set_data_normalization_mode(self, mode: DataNormalizationMode) -> None:
        if mode is DataNormalizationMode.SCALED_RAW:
            raise ValueError("SCALED_RAW is only valid for history requests")
        self.data_normalization_mode = mode

    def update(self, bar: TradeBar) -> None:
        """Caches the bar, then lets the volatility model see it."""
        self.last_bar = bar
        self.volatility_model.update(self, bar)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.symbol}, {self.resolution.value}, "
            f"{self.data_normalization_mode.value})"
        )


class Equity(Security):
    pass


class SecurityManager(Mapping[Symbol, Security]):
    def __init__(self) -> None:
        self._securities: dict[Symbol, Security] = {}

    def add(self, security: Security) -> Security:
        self._securities[security.symbol] = security
        return security

    def _key(self, key: Symbol | str) -> Symbol:
        if isinstance(key, Symbol):
            return key
        ticker = str(key).upper()
        for symbol in self._securities:
            if symbol.value == ticker:
                return symbol
        raise KeyError(f"No security subscribed for {key!r}")

    def __getitem__(self, key: Symbol | str) -> Security:
        return self._securities[self._key(key)]

    def __contains__(self, key: object) -> bool:
        try:
            return self._key(key) in self._securities  # type: ignore[arg-type]
        except KeyError:
            return False

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._securities)

    def __len__(self) -> int:
        return len(self._securities)
