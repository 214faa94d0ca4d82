"""
Price Normalization
-------------------
Backward adjustment of raw bars for splits and dividends.

Factors are computed per bar from the corporate actions whose ex-date falls
after the bar's session and not after the reference date:
- split factor:    product of split factors (7-for-1 -> 1/7)
- price factor:    product of (prev_close - dividend) / prev_close
- dividend sum:    split-adjusted dividends already paid (total return only)
"""

from __future__ import annotations

import logging
from typing import cast

import numpy as np
import pandas as pd

from .enums import DataNormalizationMode

logger = logging.getLogger(__name__)

PRICE_COLS = ["open", "high", "low", "close"]


def adjustment_factors(
    bars: pd.DataFrame,
    actions: pd.DataFrame,
    reference: pd.Timestamp | None = None,
) -> pd.DataFrame:
    """
    Returns split_factor, price_factor and dividend_sum aligned to `bars`.
    Events after `reference` (default: the last bar) are ignored.
    """
    n = len(bars)
    split = np.ones(n, dtype=float)
    price = np.ones(n, dtype=float)
    div_sum = np.zeros(n, dtype=float)

    if n == 0 or actions is None or actions.empty:
        return pd.DataFrame(
            {"split_factor": split, "price_factor": price, "dividend_sum": div_sum},
            index=bars.index,
        )

    days = cast(pd.DatetimeIndex, bars.index).normalize()
    ref = reference if reference is not None else bars.index.max()
    ref_day = pd.Timestamp(ref).normalize()

    events = actions[cast(pd.DatetimeIndex, actions.index) <= ref_day]
    splits = events[events["action"] == "split"]
    dividends = events[events["action"] == "dividend"]

    for ex_date, factor in splits["value"].items():
        split[days < ex_date] *= float(factor)

    close = bars["close"].to_numpy(dtype=float)
    for ex_date, dist in dividends["value"].items():
        before = np.flatnonzero(days < ex_date)
        if before.size == 0:
            continue
        prev_close = close[before[-1]]
        if prev_close <= 0 or dist >= prev_close:
            logger.warning(
                "Skipping dividend %.4f on %s: previous close %.4f cannot absorb it",
                dist,
                pd.Timestamp(ex_date).date(),
                prev_close,
            )
            continue
        price[before] *= (prev_close - float(dist)) / prev_close

        # dividends are quoted on the share count of their ex-date
        later_splits = splits[cast(pd.DatetimeIndex, splits.index) > ex_date]["value"]
        scale = float(np.prod(later_splits.to_numpy(dtype=float))) if len(later_splits) else 1.0
        div_sum[days >= ex_date] += float(dist) * scale

    return pd.DataFrame(
        {"split_factor": split, "price_factor": price, "dividend_sum": div_sum},
        index=bars.index,
    )


def normalize_bars(
    bars: pd.DataFrame,
    actions: pd.DataFrame,
    mode: DataNormalizationMode,
    reference: pd.Timestamp | None = None,
) -> pd.DataFrame:
    """Applies a normalization mode to raw bars; the input frame is not modified."""
    out = bars.copy()
    if mode is DataNormalizationMode.RAW or out.empty:
        return out

    f = adjustment_factors(bars, actions, reference)
    split = f["split_factor"]

    if mode is DataNormalizationMode.SPLIT_ADJUSTED:
        for c in PRICE_COLS:
            out[c] = bars[c] * split
    elif mode in (DataNormalizationMode.ADJUSTED, DataNormalizationMode.SCALED_RAW):
        scale = split * f["price_factor"]
        for c in PRICE_COLS:
            out[c] = bars[c] * scale
    elif mode is DataNormalizationMode.TOTAL_RETURN:
        for c in PRICE_COLS:
            out[c] = bars[c] * split + f["dividend_sum"]
    else:
        raise ValueError(f"Unsupported normalization mode: {mode!r}")

    out["volume"] = bars["volume"] / split
    return out
