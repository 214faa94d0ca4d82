"""
Configuration Schemas
---------------------
Defines the dataclasses used to validate and structure the YAML configuration.
Acts as the single source of truth for engine-level parameters (data location,
statistics conventions, fees). Algorithm parameters live in the algorithm.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
from pathlib import Path
import yaml

from .validator import validate_keys

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DataCfg:
    """Where market data lives and how timestamps are interpreted."""

    root: str = "data"
    tz: str = "America/New_York"


@dataclass
class StatisticsCfg:
    """Conventions used when summarizing a run."""

    risk_free_rate: float = 0.0
    trading_days_per_year: int = 252
    benchmark: str | None = None

    def __post_init__(self) -> None:
        if self.trading_days_per_year <= 0:
            raise ValueError(
                f"Configuration Error: trading_days_per_year must be > 0, "
                f"got {self.trading_days_per_year}"
            )


@dataclass
class FeesCfg:
    """Constant fee charged per filled order (account currency)."""

    per_order: float = 0.0

    def __post_init__(self) -> None:
        if self.per_order < 0:
            raise ValueError(
                f"Configuration Error: fees.per_order must be >= 0, got {self.per_order}"
            )


@dataclass
class Config:
    """Root configuration object."""

    data: DataCfg = field(default_factory=DataCfg)
    statistics: StatisticsCfg = field(default_factory=StatisticsCfg)
    fees: FeesCfg = field(default_factory=FeesCfg)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if str(self.log_level).upper() not in _LOG_LEVELS:
            raise ValueError(
                f"Configuration Error: unknown log_level {self.log_level!r}; "
                f"expected one of {list(_LOG_LEVELS)}"
            )
        self.log_level = str(self.log_level).upper()


def _merge_dc(obj: Any, patch: dict[str, Any]) -> Any:
    """Recursively merges a dictionary into a dataclass, re-running validation."""
    if not isinstance(patch, dict):
        return obj
    for k, v in patch.items():
        if not hasattr(obj, k):
            continue
        cur = getattr(obj, k)

        if hasattr(cur, "__dataclass_fields__") and isinstance(v, dict):
            _merge_dc(cur, v)
        else:
            setattr(obj, k, v)

    post_init = getattr(obj, "__post_init__", None)
    if post_init is not None:
        post_init()
    return obj


def load_config(path: str | Path) -> Config:
    """
    Loads configuration from a YAML file.
    Unknown keys are rejected before merging onto the defaults, so a typo
    never silently falls back to a default value.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(p, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config Error: expected a mapping at root of {path!r}")

    validate_keys(data, Config)

    cfg = Config()
    _merge_dc(cfg, data)

    return cfg
