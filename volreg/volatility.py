"""
Volatility Models
-----------------
Pluggable estimators turning a security's data stream into a scalar volatility.

Every model can re-prime itself from history (`warm_up`): it requests the last
`bar_count` bars through the algorithm's history provider and replays them
through `update`.
"""

from __future__ import annotations

import math
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Deque

import numpy as np

from .enums import DataNormalizationMode, Resolution
from .history import HistoryRequest
from .indicators import Indicator

if TYPE_CHECKING:
    from .algorithm import Algorithm
    from .securities import Security


class VolatilityModel:
    """Base model: subclasses override `volatility` and `update`."""

    @property
    def volatility(self) -> float:
        return 0.0

    def update(self, security: "Security", data: Any) -> None:
        pass

    def get_history_requirements(
        self,
        security: "Security",
        end_time: Any,
        resolution: Resolution | None = None,
        bar_count: int | None = None,
        data_normalization_mode: DataNormalizationMode | None = None,
    ) -> list[HistoryRequest]:
        if not bar_count or bar_count <= 0:
            return []
        mode = data_normalization_mode or security.data_normalization_mode
        if mode is DataNormalizationMode.RAW:
            # raw history would straddle the corporate action that usually triggers a warm-up
            mode = DataNormalizationMode.SCALED_RAW
        return [
            HistoryRequest(
                symbol=security.symbol,
                end_time=end_time,
                resolution=resolution or security.resolution,
                bar_count=int(bar_count),
                normalization_mode=mode,
            )
        ]

    def warm_up(
        self,
        algorithm: "Algorithm",
        security: "Security",
        resolution: Resolution | None = None,
        bar_count: int | None = None,
        data_normalization_mode: DataNormalizationMode | None = None,
    ) -> int:
        """Replays history through `update`; returns the number of bars used."""
        requests = self.get_history_requirements(
            security, algorithm.time, resolution, bar_count, data_normalization_mode
        )
        if not requests:
            return 0
        bars = algorithm.history_provider.get_history(requests)
        for bar in bars:
            self.update(security, bar)
        return len(bars)


class NullVolatilityModel(VolatilityModel):
    """Always reports zero; the default for new securities."""

    def warm_up(self, *args: Any, **kwargs: Any) -> int:
        return 0


class StandardDeviationOfReturnsVolatilityModel(VolatilityModel):
    """Annualized sample standard deviation of close-to-close returns."""

    def __init__(self, periods: int, trading_days_per_year: int = 252):
        if periods < 2:
            raise ValueError("'periods' must be greater than or equal to 2.")
        self.periods = periods
        self.trading_days_per_year = trading_days_per_year
        self._returns: Deque[float] = deque(maxlen=periods)
        self._last_price: float | None = None
        self._last_time: Any = None

    @property
    def volatility(self) -> float:
        if len(self._returns) < 2:
            return 0.0
        std = float(np.std(np.fromiter(self._returns, dtype=float), ddof=1))
        return std * math.sqrt(self.trading_days_per_year)

    def update(self, security: "Security", data: Any) -> None:
        price = float(data.price)
        if price <= 0:
            return
        if self._last_time is not None and data.time <= self._last_time:
            return
        if self._last_price is not None:
            self._returns.append(price / self._last_price - 1.0)
        self._last_price = price
        self._last_time = data.time

    def get_history_requirements(
        self,
        security: "Security",
        end_time: Any,
        resolution: Resolution | None = None,
        bar_count: int | None = None,
        data_normalization_mode: DataNormalizationMode | None = None,
    ) -> list[HistoryRequest]:
        # one extra bar so the window holds `periods` returns
        return super().get_history_requirements(
            security,
            end_time,
            resolution,
            bar_count if bar_count is not None else self.periods + 1,
            data_normalization_mode,
        )

    def reset(self) -> None:
        self._returns.clear()
        self._last_price = None
        self._last_time = None


IndicatorUpdate = Callable[["Security", Any, Indicator], None]


class IndicatorVolatilityModel(VolatilityModel):
    """
    Uses any indicator as the volatility estimate. The update callback decides
    how data reaches the indicator; without one, each data point's price is fed
    directly.
    """

    def __init__(self, indicator: Indicator, update: IndicatorUpdate | None = None):
        self.indicator = indicator
        self._update = update

    @property
    def volatility(self) -> float:
        return self.indicator.current.value

    def update(self, security: "Security", data: Any) -> None:
        if self._update is not None:
            self._update(security, data, self.indicator)
        else:
            self.indicator.update(data.time, data.price)
