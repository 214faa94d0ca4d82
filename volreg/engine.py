"""
Backtest Engine
---------------
Drives an Algorithm through historical data:

    initialize -> (per timestep: corporate actions -> security/volatility
    updates -> on_data) -> per session: on_end_of_day + equity snapshot ->
    on_end_of_algorithm -> statistics

Exceptions raised by algorithm code end the run with status RUNTIME_ERROR; the
exception is kept on the result rather than propagated.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from .algorithm import Algorithm
from .config import Config
from .data import Dividend, Slice, Split, TradeBar
from .data_io import DataStore, slice_dates
from .enums import AlgorithmStatus, DataNormalizationMode, Resolution
from .history import HistoryProvider, frame_to_bars
from .normalization import normalize_bars
from .portfolio import Order
from .statistics import compute_statistics
from .symbol import Symbol

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    algorithm: str
    status: AlgorithmStatus
    statistics: dict[str, str]
    equity: pd.DataFrame
    orders: list[Order] = field(default_factory=list)
    data_points: int = 0
    history_data_points: int = 0
    error: BaseException | None = None
    logs: list[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.status is AlgorithmStatus.COMPLETED

    def summary(self) -> dict[str, Any]:
        """JSON-friendly view of the run."""
        return {
            "algorithm": self.algorithm,
            "status": self.status.value,
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
            "data_points": self.data_points,
            "history_data_points": self.history_data_points,
            "statistics": dict(self.statistics),
        }


@dataclass
class _Feed:
    """Pre-computed per-timestep events of one subscription."""

    bars: dict[pd.Timestamp, TradeBar]
    splits: dict[pd.Timestamp, Split]
    dividends: dict[pd.Timestamp, Dividend]


def _build_feed(
    symbol: Symbol,
    store: DataStore,
    resolution: Resolution,
    mode: DataNormalizationMode,
    start: pd.Timestamp,
    end: pd.Timestamp,
) -> _Feed:
    data = store.get(symbol.value, resolution)
    norm = slice_dates(normalize_bars(data.bars, data.actions, mode), start, end)
    actions = slice_dates(data.actions, start, end)

    bars = {b.end_time: b for b in frame_to_bars(symbol, norm)}
    splits: dict[pd.Timestamp, Split] = {}
    dividends: dict[pd.Timestamp, Dividend] = {}
    if norm.empty or actions.empty:
        return _Feed(bars, splits, dividends)

    days = norm.index.normalize()
    raw_close = data.bars["close"]
    for ex_date, row in actions.iterrows():
        # delivered with the first bar of the ex-date session (or the next session)
        pos = int(days.searchsorted(ex_date, side="left"))
        if pos >= len(norm):
            logger.warning("%s %s on %s has no bar to ride on; dropped", symbol, row["action"], ex_date.date())
            continue
        when = norm["end_time"].iloc[pos]
        prior = raw_close[data.bars.index.normalize() < ex_date]
        reference = float(prior.iloc[-1]) if len(prior) else 0.0
        if row["action"] == "split":
            splits[when] = Split(symbol, ex_date, reference, float(row["value"]))
        else:
            dividends[when] = Dividend(symbol, ex_date, float(row["value"]), reference)

    return _Feed(bars, splits, dividends)


def _benchmark_series(
    symbol: Symbol | None, store: DataStore, start: pd.Timestamp, end: pd.Timestamp
) -> pd.Series | None:
    """Adjusted daily closes of the benchmark, indexed by session date."""
    if symbol is None:
        return None
    try:
        data = store.get(symbol.value, Resolution.DAILY)
    except FileNotFoundError:
        logger.warning("Benchmark %s has no daily data; benchmark-relative statistics will be 0", symbol)
        return None
    adj = slice_dates(normalize_bars(data.bars, data.actions, DataNormalizationMode.ADJUSTED), start, end)
    s = adj["close"].copy()
    s.index = adj.index.normalize()
    return s


def run_backtest(
    algorithm: Algorithm,
    cfg: Config | None = None,
    data_root: str | Path | None = None,
) -> BacktestResult:
    cfg = cfg or Config()
    tz = cfg.data.tz
    store = DataStore(data_root if data_root is not None else cfg.data.root, tz=tz)
    history = HistoryProvider(store)
    algorithm.history_provider = history
    algorithm.portfolio.fee_per_order = cfg.fees.per_order

    status = AlgorithmStatus.RUNNING
    error: BaseException | None = None
    data_points = 0
    snapshots: list[tuple[pd.Timestamp, float]] = []
    bench: pd.Series | None = None

    try:
        algorithm.initialize()

        if algorithm.start_date is None or algorithm.end_date is None:
            raise ValueError("Algorithm must set both a start and an end date")
        if algorithm.start_date > algorithm.end_date:
            raise ValueError(
                f"Start date {algorithm.start_date} is after end date {algorithm.end_date}"
            )
        if len(algorithm.securities) == 0:
            raise ValueError("Algorithm did not subscribe to any security")

        start = pd.Timestamp(algorithm.start_date, tz=tz)
        end = pd.Timestamp(algorithm.end_date, tz=tz)

        feeds = {
            sym: _build_feed(sym, store, sec.resolution, sec.data_normalization_mode, start, end)
            for sym, sec in algorithm.securities.items()
        }

        bench_symbol = (
            algorithm.benchmark
            or (Symbol.create(cfg.statistics.benchmark) if cfg.statistics.benchmark else None)
            or next(iter(algorithm.securities))
        )
        bench = _benchmark_series(bench_symbol, store, start, end)

        by_time: dict[pd.Timestamp, list[Symbol]] = defaultdict(list)
        for sym, feed in feeds.items():
            for t in feed.bars:
                by_time[t].append(sym)
        timeline = sorted(by_time)
        logger.info(
            "Running %s over %d timesteps (%s -> %s)",
            algorithm.name,
            len(timeline),
            algorithm.start_date,
            algorithm.end_date,
        )

        for i, t in enumerate(timeline):
            slc = Slice(time=t)
            for sym in by_time[t]:
                feed = feeds[sym]
                slc.bars[sym] = feed.bars[t]
                if t in feed.splits:
                    slc.splits[sym] = feed.splits[t]
                if t in feed.dividends:
                    slc.dividends[sym] = feed.dividends[t]

            algorithm.time = t
            for sym, split in slc.splits.items():
                algorithm.portfolio.apply_split(split, algorithm.securities[sym].data_normalization_mode)
            for sym, dividend in slc.dividends.items():
                algorithm.portfolio.apply_dividend(dividend, algorithm.securities[sym].data_normalization_mode)
            for sym, bar in slc.bars.items():
                algorithm.securities[sym].update(bar)

            data_points += slc.data_point_count
            algorithm.on_data(slc)

            last_of_day = i + 1 == len(timeline) or timeline[i + 1].date() != t.date()
            if last_of_day:
                for sym in algorithm.securities:
                    algorithm.on_end_of_day(sym)
                snapshots.append((t.normalize(), algorithm.portfolio.total_portfolio_value))

        algorithm.on_end_of_algorithm()
        status = AlgorithmStatus.COMPLETED
    except Exception as exc:
        logger.exception("Algorithm %s failed at %s", algorithm.name, algorithm.time)
        status = AlgorithmStatus.RUNTIME_ERROR
        error = exc

    equity = pd.DataFrame(
        {"equity": [v for _, v in snapshots]},
        index=pd.DatetimeIndex([t for t, _ in snapshots], name="date"),
    )
    if bench is not None and not equity.empty:
        equity["benchmark"] = bench.reindex(equity.index).ffill()
    else:
        equity["benchmark"] = float("nan")

    stats = compute_statistics(
        equity["equity"],
        equity["benchmark"] if bench is not None else None,
        algorithm.portfolio,
        risk_free_rate=cfg.statistics.risk_free_rate,
        trading_days_per_year=cfg.statistics.trading_days_per_year,
    )

    logger.info(
        "%s finished: %s, %d data points, %d history data points",
        algorithm.name,
        status.value,
        data_points,
        history.data_points,
    )
    return BacktestResult(
        algorithm=algorithm.name,
        status=status,
        statistics=stats,
        equity=equity,
        orders=list(algorithm.portfolio.orders),
        data_points=data_points,
        history_data_points=history.data_points,
        error=error,
        logs=list(algorithm.log_messages),
    )
