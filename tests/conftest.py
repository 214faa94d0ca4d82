"""
Pytest Fixtures
---------------
Shared resources for testing.
- aapl_data_root: synthetic 2014 daily AAPL dataset (7:1 split, 4 dividends).
- flat_data_root: same ticker without any corporate actions.
- config_path: minimal YAML config pointing at nothing in particular.
"""

from __future__ import annotations
from pathlib import Path
import pandas as pd
import pytest

from tests.utils import (
    aapl_2014_actions,
    make_daily_closes,
    write_actions,
    write_bars,
    write_config,
)


@pytest.fixture
def aapl_closes() -> pd.Series:
    return make_daily_closes()


@pytest.fixture
def aapl_data_root(tmp_path: Path, aapl_closes: pd.Series) -> Path:
    root = tmp_path / "data"
    write_bars(root, "AAPL", aapl_closes)
    write_actions(root, "AAPL", aapl_2014_actions())
    return root


@pytest.fixture
def flat_data_root(tmp_path: Path) -> Path:
    root = tmp_path / "flat"
    write_bars(root, "AAPL", make_daily_closes(split_date=None))
    return root


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return write_config(
        tmp_path / "base.yaml",
        "statistics:\n  trading_days_per_year: 252\nlog_level: WARNING\n",
    )
