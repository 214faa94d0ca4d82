"""
Script: Equity Chart
Purpose: Plots the equity curve and drawdown of a finished run.

Usage:
    python scripts/plot_equity.py --run-dir outputs/backtest/<run_id> --out equity.png
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib.dates as mdates
import matplotlib.pyplot as plt
import pandas as pd


def plot_equity(run_dir: Path, out_path: Path) -> None:
    equity_path = run_dir / "equity.parquet"
    if not equity_path.exists():
        raise FileNotFoundError(f"Could not find {equity_path}. Did you run the backtest?")

    df = pd.read_parquet(equity_path)
    if df.empty:
        raise ValueError(f"{equity_path} holds no equity snapshots")

    equity = df["equity"]
    drawdown = equity / equity.cummax() - 1.0

    # Dual axis: equity top, drawdown bottom
    fig, (ax1, ax2) = plt.subplots(
        2, 1, figsize=(12, 8), sharex=True, gridspec_kw={"height_ratios": [3, 1]}
    )

    ax1.plot(df.index, equity, color="#2980b9", linewidth=2, label="Equity")
    if "benchmark" in df.columns and df["benchmark"].notna().any():
        bench = df["benchmark"] / df["benchmark"].dropna().iloc[0] * equity.iloc[0]
        ax1.plot(df.index, bench, color="#7f8c8d", linewidth=1, alpha=0.8, label="Benchmark")

    ax1.set_title(f"{run_dir.name} | Equity", fontsize=14, fontweight="bold", pad=15)
    ax1.set_ylabel("Portfolio Value", fontsize=12)
    ax1.grid(True, which="both", linestyle="--", alpha=0.3)
    ax1.legend(loc="upper left")

    ax2.fill_between(df.index, drawdown * 100.0, 0, color="#c0392b", alpha=0.3)
    ax2.plot(df.index, drawdown * 100.0, color="#c0392b", linewidth=1, label="Drawdown")
    ax2.set_ylabel("Drawdown (%)", fontsize=12)
    ax2.set_xlabel("Date", fontsize=12)
    ax2.grid(True, which="both", linestyle="--", alpha=0.3)
    ax2.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m"))

    plt.tight_layout()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150)
    plt.close(fig)
    print(f"Chart saved to {out_path}")


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--run-dir", required=True, help="Directory holding equity.parquet")
    ap.add_argument("--out", default=None, help="Output PNG (default: <run-dir>/equity.png)")
    args = ap.parse_args()

    run_dir = Path(args.run_dir)
    out = Path(args.out) if args.out else run_dir / "equity.png"
    plot_equity(run_dir, out)


if __name__ == "__main__":
    main()
