"""
Streaming Indicators
--------------------
Incrementally updated estimators with a readiness flag and a reset, composable
through `over` (ratio of two indicators).

Indicators are forward-only: feeding a timestamp older than the previous input
is an error. Equal timestamps are accepted.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque

import numpy as np


@dataclass(frozen=True)
class IndicatorDataPoint:
    time: Any
    value: float


class Indicator:
    """Base class: subclasses implement `_compute_next(time, value)`."""

    def __init__(self, name: str):
        self.name = name
        self.samples = 0
        self.current = IndicatorDataPoint(None, 0.0)
        self._previous_time: Any = None
        self._updated: list[Callable[["Indicator", IndicatorDataPoint], None]] = []

    @property
    def is_ready(self) -> bool:
        raise NotImplementedError

    @property
    def warm_up_period(self) -> int:
        return 0

    def on_updated(self, handler: Callable[["Indicator", IndicatorDataPoint], None]) -> None:
        self._updated.append(handler)

    def update(self, time: Any, value: float) -> bool:
        if self._previous_time is not None and time < self._previous_time:
            raise ValueError(
                f"This is a forward only indicator: {self.name} "
                f"Input: {time} Previous: {self._previous_time}"
            )
        self._previous_time = time
        self.samples += 1

        nxt = self._compute_next(time, float(value))
        if nxt is not None:
            self._set_current(time, nxt)
        return self.is_ready

    def _set_current(self, time: Any, value: float) -> None:
        self.current = IndicatorDataPoint(time, float(value))
        for handler in self._updated:
            handler(self, self.current)

    def _compute_next(self, time: Any, value: float) -> float | None:
        raise NotImplementedError

    def reset(self) -> None:
        self.samples = 0
        self.current = IndicatorDataPoint(None, 0.0)
        self._previous_time = None

    def over(self, denominator: "Indicator", name: str | None = None) -> "CompositeIndicator":
        """Composite whose value is self / denominator."""

        def _divide(left: float, right: float) -> float | None:
            if right == 0.0:
                return None
            return left / right

        return CompositeIndicator(
            self, denominator, _divide, name or f"{self.name}_Over_{denominator.name}"
        )

    def __float__(self) -> float:
        return self.current.value

    def __repr__(self) -> str:
        return f"{self.name}: {self.current.value:.6f}"


class WindowIndicator(Indicator):
    """Keeps the last `period` inputs."""

    def __init__(self, name: str, period: int):
        if period < 1:
            raise ValueError(f"{name}: period must be >= 1, got {period}")
        super().__init__(name)
        self.period = period
        self.window: Deque[float] = deque(maxlen=period)

    @property
    def is_ready(self) -> bool:
        return self.samples >= self.period

    @property
    def warm_up_period(self) -> int:
        return self.period

    def _compute_next(self, time: Any, value: float) -> float | None:
        self.window.append(value)
        return self._compute_window(np.fromiter(self.window, dtype=float))

    def _compute_window(self, values: np.ndarray) -> float:
        raise NotImplementedError

    def reset(self) -> None:
        super().reset()
        self.window.clear()


class SimpleMovingAverage(WindowIndicator):
    def __init__(self, period: int, name: str | None = None):
        super().__init__(name or f"SMA({period})", period)

    def _compute_window(self, values: np.ndarray) -> float:
        return float(values.mean())


class StandardDeviation(WindowIndicator):
    """Population standard deviation of the window."""

    def __init__(self, period: int, name: str | None = None):
        super().__init__(name or f"STD({period})", period)

    def _compute_window(self, values: np.ndarray) -> float:
        if values.size < 2:
            return 0.0
        return float(np.std(values, ddof=0))


class CompositeIndicator(Indicator):
    """
    Combines two indicators. A new value is produced whenever both sides carry
    a value stamped with the same time, i.e. after both have seen an input.
    """

    def __init__(
        self,
        left: Indicator,
        right: Indicator,
        compose: Callable[[float, float], float | None],
        name: str | None = None,
    ):
        super().__init__(name or f"COMPOSE({left.name},{right.name})")
        self.left = left
        self.right = right
        self._compose = compose
        left.on_updated(self._on_component_updated)
        right.on_updated(self._on_component_updated)

    @property
    def is_ready(self) -> bool:
        return self.left.is_ready and self.right.is_ready

    @property
    def warm_up_period(self) -> int:
        return max(self.left.warm_up_period, self.right.warm_up_period)

    def _on_component_updated(self, _: Indicator, point: IndicatorDataPoint) -> None:
        if self.left.current.time != self.right.current.time:
            return
        self.samples += 1
        value = self._compose(self.left.current.value, self.right.current.value)
        if value is not None:
            self._set_current(point.time, value)

    def update(self, time: Any, value: float) -> bool:
        self.left.update(time, value)
        self.right.update(time, value)
        return self.is_ready

    def _compute_next(self, time: Any, value: float) -> float | None:
        return None

    def reset(self) -> None:
        self.left.reset()
        self.right.reset()
        super().reset()
