"""
Script: Synthetic Equity Generator
Purpose: Creates a deterministic daily equity dataset with corporate actions.

Description:
    Generates raw (unadjusted) daily OHLCV bars for one ticker over 2014: a
    slow oscillation around 550 with a little noise, a 7-for-1 split on
    2014-06-09 and four quarterly dividends. Writes the layout the data store
    reads:

        <root>/equity/daily/<ticker>.csv
        <root>/equity/corporate_actions/<ticker>.csv

Usage:
    python scripts/make_synth_equity.py --root data --ticker AAPL
"""

from __future__ import annotations
import argparse
from pathlib import Path
import numpy as np
import pandas as pd

SPLIT_DATE = "2014-06-09"
SPLIT_FACTOR = 1.0 / 7.0
DIVIDENDS = {
    "2014-02-06": 3.05,
    "2014-05-08": 3.29,
    "2014-08-07": 0.47,
    "2014-11-06": 0.47,
}


def make_synth_daily(start: str, end: str, seed: int) -> pd.DataFrame:
    days = pd.bdate_range(start, end)
    rng = np.random.default_rng(seed)

    i = np.arange(len(days), dtype=float)
    close = 550.0 + 20.0 * np.sin(i / 15.0) + rng.normal(0.0, 0.5, size=len(days))
    close = np.where(days >= pd.Timestamp(SPLIT_DATE), close * SPLIT_FACTOR, close)

    open_ = np.r_[close[0], close[:-1]]
    high = np.maximum(open_, close) * 1.002
    low = np.minimum(open_, close) * 0.998
    vol = rng.integers(5_000_000, 15_000_000, size=len(days))

    return pd.DataFrame(
        {
            "date": days.strftime("%Y-%m-%d"),
            "open": open_.round(4),
            "high": high.round(4),
            "low": low.round(4),
            "close": close.round(4),
            "volume": vol,
        }
    )


def make_actions() -> pd.DataFrame:
    rows = [{"date": SPLIT_DATE, "action": "split", "value": SPLIT_FACTOR}]
    rows += [{"date": d, "action": "dividend", "value": v} for d, v in DIVIDENDS.items()]
    return pd.DataFrame(rows).sort_values("date", kind="stable")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--root", default="data", help="Data root directory")
    ap.add_argument("--ticker", default="AAPL")
    ap.add_argument("--start-date", default="2014-01-02")
    ap.add_argument("--end-date", default="2014-12-31")
    ap.add_argument("--seed", type=int, default=123)
    args = ap.parse_args()

    root = Path(args.root).expanduser().resolve()
    bars_out = root / "equity" / "daily" / f"{args.ticker.lower()}.csv"
    actions_out = root / "equity" / "corporate_actions" / f"{args.ticker.lower()}.csv"
    bars_out.parent.mkdir(parents=True, exist_ok=True)
    actions_out.parent.mkdir(parents=True, exist_ok=True)

    make_synth_daily(args.start_date, args.end_date, args.seed).to_csv(bars_out, index=False)
    make_actions().to_csv(actions_out, index=False)
    print(str(bars_out))
    print(str(actions_out))


if __name__ == "__main__":
    main()
