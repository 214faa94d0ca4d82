"""
Tests for volreg.indicators
---------------------------
Coverage:
- SMA / population standard deviation over a window.
- Readiness, reset, forward-only updates.
- Composite `over` semantics.
"""

import numpy as np
import pandas as pd
import pytest

from volreg.indicators import SimpleMovingAverage, StandardDeviation

T0 = pd.Timestamp("2014-01-02 09:30", tz="America/New_York")


def _t(i):
    return T0 + pd.Timedelta(days=i)


def test_sma_partial_and_ready():
    sma = SimpleMovingAverage(3)
    sma.update(_t(0), 1.0)
    sma.update(_t(1), 2.0)
    assert not sma.is_ready
    assert sma.current.value == pytest.approx(1.5)

    sma.update(_t(2), 3.0)
    sma.update(_t(3), 4.0)
    assert sma.is_ready
    assert sma.current.value == pytest.approx(3.0)
    assert sma.current.time == _t(3)


def test_std_is_population():
    values = [1.0, 2.0, 3.0, 4.0]
    std = StandardDeviation(4)
    for i, v in enumerate(values):
        std.update(_t(i), v)
    assert std.current.value == pytest.approx(np.std(values, ddof=0))


def test_forward_only():
    sma = SimpleMovingAverage(2)
    sma.update(_t(1), 1.0)
    sma.update(_t(1), 1.0)  # equal time is accepted
    with pytest.raises(ValueError, match="forward only"):
        sma.update(_t(0), 1.0)


def test_reset_clears_state():
    sma = SimpleMovingAverage(2)
    sma.update(_t(5), 1.0)
    sma.update(_t(6), 1.0)
    sma.reset()
    assert not sma.is_ready
    assert sma.samples == 0
    assert sma.current.value == 0.0
    sma.update(_t(0), 2.0)  # earlier time is fine after a reset
    assert sma.current.value == 2.0


def test_over_waits_for_both_sides():
    std = StandardDeviation(3)
    mean = SimpleMovingAverage(3)
    ratio = std.over(mean)

    std.update(_t(0), 10.0)
    assert ratio.current.time is None

    mean.update(_t(0), 10.0)
    assert ratio.current.time == _t(0)

    for i, v in enumerate([12.0, 14.0], start=1):
        std.update(_t(i), v)
        mean.update(_t(i), v)

    assert ratio.is_ready
    assert float(ratio) == pytest.approx(np.std([10, 12, 14]) / 12.0)


def test_over_zero_denominator_keeps_value():
    std = StandardDeviation(2)
    mean = SimpleMovingAverage(2)
    ratio = std.over(mean)

    std.update(_t(0), 1.0)
    mean.update(_t(0), 1.0)
    std.update(_t(1), 3.0)
    mean.update(_t(1), 3.0)
    before = ratio.current.value

    std.update(_t(2), -3.0)
    mean.update(_t(2), -3.0)  # mean of [3, -3] is 0
    assert ratio.current.value == before


def test_composite_update_and_reset():
    ratio = StandardDeviation(2).over(SimpleMovingAverage(2))
    ratio.update(_t(0), 4.0)
    ratio.update(_t(1), 6.0)
    assert ratio.is_ready
    assert ratio.current.value == pytest.approx(1.0 / 5.0)

    ratio.reset()
    assert not ratio.is_ready
    assert not ratio.left.is_ready and not ratio.right.is_ready
    assert ratio.current.value == 0.0


def test_invalid_period():
    with pytest.raises(ValueError, match="period"):
        SimpleMovingAverage(0)
