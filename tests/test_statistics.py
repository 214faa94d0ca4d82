"""
Tests for volreg.statistics
---------------------------
Coverage:
- Formatting rules of the statistics table.
- Drawdown / CAGR helpers.
- Flat (no trading) runs and benchmark-relative ratios.
"""

import numpy as np
import pandas as pd
import pytest

from volreg.portfolio import Portfolio
from volreg.securities import SecurityManager
from volreg.symbol import Symbol
from volreg.statistics import (
    cagr_from_equity,
    compute_statistics,
    drawdown_recovery_days,
    fmt_money,
    fmt_number,
    fmt_pct,
    max_drawdown_pct,
    statistics_frame,
)

EMPTY_MD5 = "d41d8cd98f00b204e9800998ecf8427e"


def _dates(n):
    return pd.bdate_range("2014-01-02", periods=n, tz="America/New_York")


def test_formatting():
    assert fmt_number(0.0) == "0"
    assert fmt_number(-0.0001) == "0"
    assert fmt_number(-1.0254) == "-1.025"
    assert fmt_number(0.0941) == "0.094"
    assert fmt_number(100000.0, 2) == "100000"
    assert fmt_pct(0.0) == "0%"
    assert fmt_pct(0.12345) == "12.345%"
    assert fmt_money(0) == "$0.00"
    assert fmt_money(1234.5) == "$1,234.50"
    assert fmt_number(float("nan")) == "0"


def test_max_drawdown():
    assert max_drawdown_pct(np.array([100.0, 120.0, 90.0, 130.0])) == pytest.approx(0.25)
    assert max_drawdown_pct(np.array([100.0])) == 0.0


def test_drawdown_recovery_days():
    eq = pd.Series([100.0, 90.0, 95.0, 101.0], index=pd.date_range("2014-01-01", periods=4))
    assert drawdown_recovery_days(eq) == 3
    assert drawdown_recovery_days(pd.Series([100.0, 100.0])) == 0


def test_cagr():
    assert cagr_from_equity(100.0, 121.0, years=2.0) == pytest.approx(0.10)
    assert cagr_from_equity(100.0, 0.0, years=1.0) == -1.0
    with pytest.raises(ValueError):
        cagr_from_equity(100.0, 110.0, years=0.0)


def test_flat_run_statistics():
    n = 60
    idx = _dates(n)
    equity = pd.Series(100_000.0, index=idx)
    bench = pd.Series(100.0 * np.cumprod(1 + 0.01 * np.sin(np.arange(n))), index=idx)
    pf = Portfolio(SecurityManager(), cash=100_000.0)

    s = compute_statistics(equity, bench, pf)

    assert s["Total Orders"] == "0"
    assert s["Start Equity"] == "100000"
    assert s["End Equity"] == "100000"
    assert s["Net Profit"] == "0%"
    assert s["Compounding Annual Return"] == "0%"
    assert s["Drawdown"] == "0%"
    assert s["Sharpe Ratio"] == "0"
    assert s["Probabilistic Sharpe Ratio"] == "0%"
    assert s["Beta"] == "0"
    assert s["Annual Variance"] == "0"
    assert s["Total Fees"] == "$0.00"
    assert s["Portfolio Turnover"] == "0%"
    assert s["Drawdown Recovery"] == "0"
    assert s["OrderListHash"] == EMPTY_MD5
    # flat strategy against a moving benchmark
    assert float(s["Tracking Error"]) > 0
    assert float(s["Information Ratio"]) != 0
    assert "Estimated Strategy Capacity" not in s


def test_statistics_with_trades():
    n = 5
    idx = _dates(n)
    equity = pd.Series([100_000.0, 101_000.0, 99_000.0, 102_000.0, 102_000.0], index=idx)
    pf = Portfolio(SecurityManager(), cash=100_000.0, fee_per_order=1.0)
    sym = Symbol.create("SPY")
    pf.fill(sym, 10, 100.0, idx[0])
    pf.fill(sym, -10, 110.0, idx[1])
    pf.fill(sym, 10, 100.0, idx[2])
    pf.fill(sym, -10, 95.0, idx[3])

    s = compute_statistics(equity, None, pf)
    assert s["Total Orders"] == "4"
    assert s["Win Rate"] == "50%"
    assert s["Loss Rate"] == "50%"
    assert s["Average Win"] == "10%"
    assert s["Average Loss"] == "-5%"
    assert s["Profit-Loss Ratio"] == "2"
    assert s["Expectancy"] == "0.5"
    assert s["Total Fees"] == "$4.00"
    assert s["OrderListHash"] != EMPTY_MD5


def test_statistics_frame():
    df = statistics_frame({"Total Orders": "0", "Net Profit": "0%"})
    assert list(df.columns) == ["statistic", "value"]
    assert df["statistic"].tolist() == ["Total Orders", "Net Profit"]
