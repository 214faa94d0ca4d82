"""
Data IO Layer
-------------
Loading, validation and normalization of equity bars and corporate actions.
Supports CSV/Parquet bar files, timezone localization, and calendar slicing.

Layout under the data root:
    equity/<resolution>/<ticker>.csv|.parquet       raw OHLCV bars
    equity/corporate_actions/<ticker>.csv           date,action,value
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import cast

import numpy as np
import pandas as pd
from pandas.api.types import DatetimeTZDtype

from .enums import Resolution

logger = logging.getLogger(__name__)

REQ_COLS = ("open", "high", "low", "close", "volume")
ACTION_COLS = ("action", "value")
ACTIONS = ("split", "dividend")

# daily equity bars span the regular session
DAILY_OPEN = pd.Timedelta(hours=9, minutes=30)
DAILY_CLOSE = pd.Timedelta(hours=16)


def _find_dt_col(df: pd.DataFrame, path: str | Path) -> str:
    for c in ("datetime", "timestamp", "time", "date"):
        if c in df.columns:
            return c
    raise ValueError(
        f"could not find datetime column in {str(path)!r}; "
        f"got columns={list(df.columns)}"
    )


def _parse_index(
    s: pd.Series, tz: str, path: str | Path, *, calendar: bool = False
) -> pd.DatetimeIndex:
    """
    Parses a datetime column into a tz-aware index. With `calendar`, values are
    dates: the date as written is kept (2014-01-02T00:00Z stays 2014-01-02).
    """
    if isinstance(s.dtype, DatetimeTZDtype):
        idx = pd.DatetimeIndex(s)
    else:
        s_str = s.astype(str)
        looks_tz = (
            s_str.str.endswith("Z").any()
            or s_str.str.contains(r"[+-]\d{2}:\d{2}$", regex=True).any()
        )
        if looks_tz:
            idx = pd.DatetimeIndex(pd.to_datetime(s, errors="coerce", utc=True))
        else:
            idx = pd.DatetimeIndex(pd.to_datetime(s, errors="coerce"))

    if bool(pd.isna(idx).any()):
        raise ValueError(f"datetime parse failed for {s.name!r} in {str(path)!r}")

    return _localize(idx, tz, calendar=calendar)


def _localize(idx: pd.DatetimeIndex, tz: str, *, calendar: bool = False) -> pd.DatetimeIndex:
    if idx.tz is None:
        return idx.tz_localize(tz)
    if calendar:
        return idx.tz_localize(None).normalize().tz_localize(tz)
    return idx.tz_convert(tz)


def _read_table(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    return df


def bar_path(root: str | Path, ticker: str, resolution: Resolution) -> Path:
    """Resolves the bar file for a ticker, preferring parquet over csv."""
    base = Path(root) / "equity" / resolution.value
    for name in (ticker.lower(), ticker.upper()):
        for ext in (".parquet", ".csv"):
            p = base / f"{name}{ext}"
            if p.exists():
                return p
    raise FileNotFoundError(
        f"No {resolution.value} bar file for {ticker!r} under {str(base)!r}"
    )


def actions_path(root: str | Path, ticker: str) -> Path | None:
    base = Path(root) / "equity" / "corporate_actions"
    for name in (ticker.lower(), ticker.upper()):
        p = base / f"{name}.csv"
        if p.exists():
            return p
    return None


def load_bars(
    path: str | Path,
    resolution: Resolution = Resolution.DAILY,
    tz: str = "America/New_York",
) -> pd.DataFrame:
    """
    Loads an OHLCV file into a frame indexed by bar start time, with an
    'end_time' column. Daily rows are stamped 09:30 -> 16:00 local time.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    df = _read_table(path)

    if isinstance(df.index, pd.DatetimeIndex):
        idx = _localize(df.index, tz, calendar=resolution is Resolution.DAILY)
    else:
        dt_col = _find_dt_col(df, path)
        idx = _parse_index(df[dt_col], tz, path, calendar=resolution is Resolution.DAILY)
        df = df.drop(columns=[dt_col])

    missing = set(REQ_COLS) - set(df.columns)
    if missing:
        raise ValueError(
            f"load_bars: missing required OHLCV columns {sorted(missing)} in {str(path)!r}; "
            f"got columns={list(df.columns)}"
        )

    df = df[list(REQ_COLS)].astype("float64")

    if resolution is Resolution.DAILY:
        days = idx.normalize()
        df.index = days + DAILY_OPEN
        df["end_time"] = days + DAILY_CLOSE
    else:
        df.index = idx
        df["end_time"] = idx + pd.Timedelta(resolution.timedelta)

    bad = df["close"] <= 0
    if bool(bad.any()):
        logger.warning(
            "Data Integrity Warning: %d non-positive close(s) in %s (first at %s)",
            int(bad.sum()),
            path,
            df.index[bad.to_numpy()][0],
        )

    df = df[~df.index.duplicated(keep="last")].sort_index()
    df.index.name = "time"
    return df


def load_corporate_actions(
    path: str | Path | None, tz: str = "America/New_York"
) -> pd.DataFrame:
    """
    Loads split/dividend events indexed by ex-date (local midnight).
    A missing path yields an empty frame.
    """
    empty = pd.DataFrame(
        {"action": pd.Series(dtype="object"), "value": pd.Series(dtype="float64")},
        index=pd.DatetimeIndex([], tz=tz, name="date"),
    )
    if path is None:
        return empty

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Corporate actions file not found: {path}")

    df = _read_table(path)
    if df.empty:
        return empty

    missing = set(ACTION_COLS) - set(df.columns)
    if missing:
        raise ValueError(
            f"load_corporate_actions: missing columns {sorted(missing)} in {str(path)!r}"
        )

    dt_col = _find_dt_col(df, path)
    idx = _parse_index(df[dt_col], tz, path, calendar=True).normalize()

    out = pd.DataFrame(
        {
            "action": df["action"].astype(str).str.strip().str.lower().to_numpy(),
            "value": pd.to_numeric(df["value"], errors="coerce").to_numpy(),
        },
        index=idx,
    )
    out.index.name = "date"

    unknown = set(out["action"]) - set(ACTIONS)
    if unknown:
        raise ValueError(
            f"load_corporate_actions: unknown actions {sorted(unknown)} in {str(path)!r}; "
            f"expected one of {list(ACTIONS)}"
        )
    if bool((out["value"].isna() | (out["value"] <= 0)).any()):
        raise ValueError(
            f"load_corporate_actions: split factors and dividends must be > 0 in {str(path)!r}"
        )

    return out.sort_index(kind="stable")


def slice_dates(
    df: pd.DataFrame,
    start: pd.Timestamp | None,
    end: pd.Timestamp | None,
) -> pd.DataFrame:
    """Slice by calendar date range [start, end] inclusive."""
    if df is None or df.empty:
        return df
    if start is None and end is None:
        return df

    idx = cast(pd.DatetimeIndex, df.index)
    days = idx.normalize()

    def _bound(value: pd.Timestamp) -> pd.Timestamp:
        ts = pd.Timestamp(value)
        if idx.tz is not None:
            ts = ts.tz_localize(idx.tz) if ts.tzinfo is None else ts.tz_convert(idx.tz)
        return ts.normalize()

    mask = np.ones(len(df), dtype=bool)
    if start is not None:
        mask &= days >= _bound(start)
    if end is not None:
        mask &= days <= _bound(end)
    return df.loc[mask]


@dataclass
class EquityData:
    """Raw bars plus the corporate actions of one ticker at one resolution."""

    ticker: str
    resolution: Resolution
    bars: pd.DataFrame
    actions: pd.DataFrame


class DataStore:
    """Loads equity data from the on-disk layout and caches it per (ticker, resolution)."""

    def __init__(self, root: str | Path, tz: str = "America/New_York"):
        self.root = Path(root)
        self.tz = tz
        self._cache: dict[tuple[str, Resolution], EquityData] = {}

    def get(self, ticker: str, resolution: Resolution) -> EquityData:
        key = (ticker.upper(), resolution)
        if key not in self._cache:
            bars = load_bars(bar_path(self.root, ticker, resolution), resolution, self.tz)
            actions = load_corporate_actions(actions_path(self.root, ticker), self.tz)
            logger.info(
                "Loaded %s %s: %d bars, %d corporate actions",
                ticker.upper(),
                resolution.value,
                len(bars),
                len(actions),
            )
            self._cache[key] = EquityData(ticker.upper(), resolution, bars, actions)
        return self._cache[key]
