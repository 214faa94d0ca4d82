from pathlib import Path

import numpy as np
import pandas as pd

SPLIT_DATE = "2014-06-09"
DIVIDENDS = {
    "2014-02-06": 3.05,
    "2014-05-08": 3.29,
    "2014-08-07": 0.47,
    "2014-11-06": 0.47,
}


def make_daily_closes(start="2014-01-02", end="2014-12-31", seed=7, split_date=SPLIT_DATE):
    """Raw closes oscillating around 550, divided by 7 from the split date on."""
    days = pd.bdate_range(start, end)
    rng = np.random.default_rng(seed)
    i = np.arange(len(days), dtype=float)
    close = 550.0 + 20.0 * np.sin(i / 15.0) + rng.normal(0.0, 0.5, len(days))
    if split_date is not None:
        close = np.where(days >= pd.Timestamp(split_date), close / 7.0, close)
    return pd.Series(close, index=days)


def write_bars(root: Path, ticker: str, closes: pd.Series, resolution="daily") -> Path:
    open_ = np.r_[closes.iloc[0], closes.to_numpy()[:-1]]
    df = pd.DataFrame(
        {
            "date": closes.index.strftime("%Y-%m-%d"),
            "open": open_,
            "high": np.maximum(open_, closes.to_numpy()) + 0.1,
            "low": np.minimum(open_, closes.to_numpy()) - 0.1,
            "close": closes.to_numpy(),
            "volume": 1_000_000,
        }
    )
    p = root / "equity" / resolution / f"{ticker.lower()}.csv"
    p.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(p, index=False)
    return p


def write_actions(root: Path, ticker: str, rows) -> Path:
    """rows: iterable of (date, action, value)."""
    p = root / "equity" / "corporate_actions" / f"{ticker.lower()}.csv"
    p.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(list(rows), columns=["date", "action", "value"]).to_csv(p, index=False)
    return p


def aapl_2014_actions():
    rows = [(SPLIT_DATE, "split", 1.0 / 7.0)]
    rows += [(d, "dividend", v) for d, v in DIVIDENDS.items()]
    return sorted(rows)


def write_config(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path
