"""
Engine Enumerations
-------------------
Shared vocabulary for data resolution, price normalization and run status.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum


class Resolution(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAILY = "daily"

    @property
    def timedelta(self) -> timedelta:
        if self is Resolution.MINUTE:
            return timedelta(minutes=1)
        if self is Resolution.HOUR:
            return timedelta(hours=1)
        return timedelta(days=1)


class DataNormalizationMode(str, Enum):
    """How raw vendor prices are adjusted for splits and dividends."""

    RAW = "raw"
    ADJUSTED = "adjusted"
    SPLIT_ADJUSTED = "split_adjusted"
    TOTAL_RETURN = "total_return"
    # history requests only: adjusted relative to the request end time
    SCALED_RAW = "scaled_raw"


class AlgorithmStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    RUNTIME_ERROR = "runtime_error"


class Language(str, Enum):
    PYTHON = "python"
