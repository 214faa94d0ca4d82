"""
Performance Statistics
----------------------
Summarizes a finished run into the string table used by regression checks:
equity growth (CAGR, drawdown), risk ratios against a benchmark, and
trade-level outcomes.

Formatting follows the regression table conventions: percentages rounded to
3 decimals with a '%' suffix, plain numbers rounded to 3 decimals, fees as
'$x.xx'. Ratios that are undefined (zero variance, no trades) print as 0.
"""

from __future__ import annotations

import hashlib
import json
import math
from typing import TYPE_CHECKING, Any, Iterable

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from .portfolio import Order, Portfolio


def max_drawdown_pct(equity: np.ndarray) -> float:
    """Calculates the maximum percentage drawdown from peak equity."""
    equity = np.asarray(equity, dtype=float)
    if equity.size <= 1:
        return 0.0

    peak = np.maximum.accumulate(equity)
    with np.errstate(divide="ignore", invalid="ignore"):
        dd = np.where(peak > 0.0, (peak - equity) / peak, 0.0)

    mdd = float(np.nanmax(dd)) if dd.size else 0.0
    if not np.isfinite(mdd):
        return 0.0
    return max(0.0, min(1.0, mdd))


def drawdown_recovery_days(equity: pd.Series) -> int:
    """Longest number of calendar days spent below a previous peak before regaining it."""
    if equity is None or len(equity) < 2:
        return 0
    longest = 0
    peak_value = float(equity.iloc[0])
    peak_time = equity.index[0]
    under = False
    for t, v in equity.items():
        v = float(v)
        if v >= peak_value:
            if under:
                longest = max(longest, (pd.Timestamp(t) - pd.Timestamp(peak_time)).days)
                under = False
            peak_value, peak_time = v, t
        else:
            under = True
    return int(longest)


def cagr_from_equity(start_equity: float, end_equity: float, *, years: float) -> float:
    """Calculates Compound Annual Growth Rate."""
    if years <= 0.0:
        raise ValueError("years must be > 0")
    if end_equity <= 0.0:
        return -1.0
    if start_equity <= 0.0:
        raise ValueError("start_equity must be > 0")

    return float((end_equity / start_equity) ** (1.0 / years) - 1.0)


def annual_performance(returns: pd.Series, trading_days_per_year: int) -> float:
    if len(returns) == 0:
        return 0.0
    return float((1.0 + returns.mean()) ** trading_days_per_year - 1.0)


def probabilistic_sharpe_ratio(returns: pd.Series, benchmark_sharpe: float = 0.0) -> float:
    """Probability that the true (per-period) Sharpe exceeds `benchmark_sharpe`."""
    n = len(returns)
    if n < 3:
        return 0.0
    std = float(returns.std(ddof=1))
    if std == 0.0 or not np.isfinite(std):
        return 0.0
    sr = float(returns.mean()) / std
    skew = float(returns.skew())
    kurt = float(returns.kurt()) + 3.0
    denom = 1.0 - skew * sr + (kurt - 1.0) / 4.0 * sr**2
    if not np.isfinite(denom) or denom <= 0.0:
        return 0.0
    z = (sr - benchmark_sharpe) * math.sqrt(n - 1) / math.sqrt(denom)
    return 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))


def order_list_hash(orders: Iterable["Order"]) -> str:
    lines = [
        json.dumps(
            {
                "id": o.id,
                "symbol": str(o.symbol),
                "time": str(o.time),
                "quantity": o.quantity,
                "price": round(o.price, 6),
                "tag": o.tag,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        for o in orders
    ]
    return hashlib.md5("\n".join(lines).encode("utf-8")).hexdigest()


def fmt_number(value: float, decimals: int = 3) -> str:
    if value is None or not np.isfinite(value):
        return "0"
    s = f"{round(float(value), decimals):.{decimals}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s in ("-0", ""):
        return "0"
    return s


def fmt_pct(value: float) -> str:
    return fmt_number(float(value) * 100.0) + "%"


def fmt_money(value: float) -> str:
    return f"${value:,.2f}"


def _daily_returns(equity: pd.Series, benchmark: pd.Series | None) -> tuple[pd.Series, pd.Series]:
    r = equity.astype(float).pct_change().iloc[1:].fillna(0.0)
    if benchmark is None or len(benchmark) == 0:
        return r, pd.Series(0.0, index=r.index)
    b = benchmark.astype(float).reindex(equity.index).ffill()
    b = b.pct_change().iloc[1:].replace([np.inf, -np.inf], np.nan).fillna(0.0)
    return r, b


def _trade_stats(portfolio: "Portfolio") -> dict[str, float]:
    trades = portfolio.closed_trades
    n = len(trades)
    if n == 0:
        return {"win_rate": 0.0, "loss_rate": 0.0, "avg_win": 0.0, "avg_loss": 0.0, "plr": 0.0, "expectancy": 0.0}

    wins = [t.return_pct for t in trades if t.pnl > 0]
    losses = [t.return_pct for t in trades if t.pnl < 0]
    win_rate = len(wins) / n
    loss_rate = len(losses) / n
    avg_win = float(np.mean(wins)) if wins else 0.0
    avg_loss = float(np.mean(losses)) if losses else 0.0
    plr = avg_win / abs(avg_loss) if avg_loss else 0.0
    expectancy = win_rate * plr - loss_rate if avg_loss else 0.0
    return {
        "win_rate": win_rate,
        "loss_rate": loss_rate,
        "avg_win": avg_win,
        "avg_loss": avg_loss,
        "plr": plr,
        "expectancy": expectancy,
    }


def compute_statistics(
    equity: pd.Series,
    benchmark: pd.Series | None,
    portfolio: "Portfolio",
    *,
    risk_free_rate: float = 0.0,
    trading_days_per_year: int = 252,
) -> dict[str, str]:
    """
    Builds the regression statistics table.

    Args:
        equity: End-of-day total portfolio value indexed by session date.
        benchmark: End-of-day benchmark prices (any index overlapping `equity`).
        portfolio: The run's portfolio, for orders, fees and closed trades.
    """
    td = trading_days_per_year
    rf = risk_free_rate
    start_equity = portfolio.starting_cash
    end_equity = float(equity.iloc[-1]) if len(equity) else start_equity

    r, b = _daily_returns(equity, benchmark) if len(equity) > 1 else (pd.Series(dtype=float), pd.Series(dtype=float))

    annual_perf = annual_performance(r, td)
    annual_var = float(r.var(ddof=1) * td) if len(r) > 1 else 0.0
    annual_std = math.sqrt(annual_var) if annual_var > 0 else 0.0
    bench_perf = annual_performance(b, td)

    sharpe = sortino = alpha = beta = treynor = 0.0
    if annual_std > 0:
        sharpe = (annual_perf - rf) / annual_std
        downside = float(np.sqrt((np.minimum(r.to_numpy(), 0.0) ** 2).mean() * td))
        sortino = (annual_perf - rf) / downside if downside > 0 else 0.0
        var_b = float(b.var(ddof=1)) if len(b) > 1 else 0.0
        beta = float(r.cov(b) / var_b) if var_b > 0 else 0.0
        alpha = annual_perf - (rf + beta * (bench_perf - rf))
        treynor = (annual_perf - rf) / beta if beta != 0 else 0.0

    te_var = float((r - b).var(ddof=1) * td) if len(r) > 1 else 0.0
    tracking_error = math.sqrt(te_var) if te_var > 0 else 0.0
    information_ratio = (annual_perf - bench_perf) / tracking_error if tracking_error > 0 else 0.0

    net_profit = end_equity / start_equity - 1.0 if start_equity > 0 else 0.0
    cagr = 0.0
    if len(equity) > 1 and start_equity > 0:
        years = (pd.Timestamp(equity.index[-1]) - pd.Timestamp(equity.index[0])).days / 365.25
        if years > 0:
            cagr = cagr_from_equity(start_equity, end_equity, years=years)

    turnover = 0.0
    if len(equity) and portfolio.traded_value_by_day:
        dates = [pd.Timestamp(t).date() for t in equity.index]
        traded = np.array([portfolio.traded_value_by_day.get(d, 0.0) for d in dates])
        values = equity.to_numpy(dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            turnover = float(np.nanmean(np.where(values > 0, traded / values, 0.0)))

    ts = _trade_stats(portfolio)

    return {
        "Total Orders": str(len(portfolio.orders)),
        "Average Win": fmt_pct(ts["avg_win"]),
        "Average Loss": fmt_pct(ts["avg_loss"]),
        "Compounding Annual Return": fmt_pct(cagr),
        "Drawdown": fmt_pct(max_drawdown_pct(equity.to_numpy(dtype=float))),
        "Expectancy": fmt_number(ts["expectancy"]),
        "Start Equity": fmt_number(start_equity, 2),
        "End Equity": fmt_number(end_equity, 2),
        "Net Profit": fmt_pct(net_profit),
        "Sharpe Ratio": fmt_number(sharpe),
        "Sortino Ratio": fmt_number(sortino),
        "Probabilistic Sharpe Ratio": fmt_pct(probabilistic_sharpe_ratio(r)),
        "Loss Rate": fmt_pct(ts["loss_rate"]),
        "Win Rate": fmt_pct(ts["win_rate"]),
        "Profit-Loss Ratio": fmt_number(ts["plr"]),
        "Alpha": fmt_number(alpha),
        "Beta": fmt_number(beta),
        "Annual Standard Deviation": fmt_number(annual_std),
        "Annual Variance": fmt_number(annual_var),
        "Information Ratio": fmt_number(information_ratio),
        "Tracking Error": fmt_number(tracking_error),
        "Treynor Ratio": fmt_number(treynor),
        "Total Fees": fmt_money(portfolio.total_fees),
        "Portfolio Turnover": fmt_pct(turnover),
        "Drawdown Recovery": str(drawdown_recovery_days(equity)),
        "OrderListHash": order_list_hash(portfolio.orders),
    }


def statistics_frame(stats: dict[str, Any]) -> pd.DataFrame:
    """Two-column view of a statistics table, convenient for CSV output."""
    return pd.DataFrame({"statistic": list(stats.keys()), "value": list(stats.values())})
