"""
History Provider
----------------
Serves trailing windows of bars (as of a point in time) out of the DataStore,
normalized per request. Used by indicator warm-ups and `Algorithm.history`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from .data import TradeBar
from .data_io import DataStore
from .enums import DataNormalizationMode, Resolution
from .normalization import normalize_bars
from .symbol import Symbol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryRequest:
    symbol: Symbol
    end_time: pd.Timestamp
    resolution: Resolution
    bar_count: int
    normalization_mode: DataNormalizationMode


def frame_to_bars(symbol: Symbol, df: pd.DataFrame) -> list[TradeBar]:
    return [
        TradeBar(
            symbol=symbol,
            time=t,
            end_time=row.end_time,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for t, row in zip(df.index, df.itertuples(index=False))
    ]


class HistoryProvider:
    def __init__(self, store: DataStore):
        self.store = store
        self.data_points = 0

    def get_frame(self, request: HistoryRequest) -> pd.DataFrame:
        if request.bar_count <= 0:
            raise ValueError(f"bar_count must be > 0, got {request.bar_count}")

        data = self.store.get(request.symbol.value, request.resolution)
        bars = data.bars[data.bars["end_time"] <= request.end_time]
        if bars.empty:
            return bars

        if request.normalization_mode is DataNormalizationMode.SCALED_RAW:
            # scale relative to the request end so the window joins the live raw series
            window = normalize_bars(
                bars, data.actions, request.normalization_mode, reference=request.end_time
            )
        else:
            # other modes adjust relative to the whole dataset, like the live feed
            full = normalize_bars(data.bars, data.actions, request.normalization_mode)
            window = full.loc[bars.index]

        window = window.tail(request.bar_count)
        self.data_points += len(window)
        return window

    def get_history(self, requests: Iterable[HistoryRequest]) -> list[TradeBar]:
        """Bars for all requests, ordered by end time."""
        out: list[TradeBar] = []
        for req in requests:
            frame = self.get_frame(req)
            logger.debug(
                "History %s %s x%d (%s) -> %d bars",
                req.symbol,
                req.resolution.value,
                req.bar_count,
                req.normalization_mode.value,
                len(frame),
            )
            out.extend(frame_to_bars(req.symbol, frame))
        out.sort(key=lambda b: b.end_time)
        return out
