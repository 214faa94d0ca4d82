"""
Regression Harness
------------------
Algorithms that double as regression tests declare what a correct run looks
like (final status, data-point counts, the statistics table). The harness runs
them and reports every deviation.

Expected statistics the engine does not produce (e.g. capacity estimates) are
reported as `unchecked` rather than as failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .config import Config
from .engine import BacktestResult, run_backtest
from .enums import AlgorithmStatus, Language

logger = logging.getLogger(__name__)


class RegressionTestException(Exception):
    """Raised by regression algorithms when an in-run assertion fails."""


class RegressionAlgorithmDefinition:
    can_run_locally: bool = True
    languages: tuple[Language, ...] = (Language.PYTHON,)
    data_points: int = 0
    algorithm_history_data_points: int = 0
    algorithm_status: AlgorithmStatus = AlgorithmStatus.COMPLETED
    expected_statistics: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True)
class StatMismatch:
    name: str
    expected: Any
    actual: Any


@dataclass
class RegressionReport:
    algorithm: str
    mismatches: list[StatMismatch] = field(default_factory=list)
    unchecked: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.mismatches

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "passed": self.passed,
            "mismatches": [
                {"name": m.name, "expected": m.expected, "actual": m.actual}
                for m in self.mismatches
            ],
            "unchecked": list(self.unchecked),
        }


def compare_results(
    definition: RegressionAlgorithmDefinition,
    result: BacktestResult,
    check_data_points: bool = True,
) -> RegressionReport:
    report = RegressionReport(algorithm=result.algorithm)

    if result.status is not definition.algorithm_status:
        report.mismatches.append(
            StatMismatch("AlgorithmStatus", definition.algorithm_status.value, result.status.value)
        )

    if check_data_points:
        if result.data_points != definition.data_points:
            report.mismatches.append(
                StatMismatch("DataPoints", definition.data_points, result.data_points)
            )
        if result.history_data_points != definition.algorithm_history_data_points:
            report.mismatches.append(
                StatMismatch(
                    "AlgorithmHistoryDataPoints",
                    definition.algorithm_history_data_points,
                    result.history_data_points,
                )
            )

    for name, expected in definition.expected_statistics.items():
        if name not in result.statistics:
            report.unchecked.append(name)
            continue
        actual = result.statistics[name]
        if actual != expected:
            report.mismatches.append(StatMismatch(name, expected, actual))

    for m in report.mismatches:
        logger.warning("%s: %s expected %r, got %r", report.algorithm, m.name, m.expected, m.actual)
    if report.unchecked:
        logger.info("%s: not computed, left unchecked: %s", report.algorithm, report.unchecked)
    return report


def run_regression(
    algorithm_cls: type,
    cfg: Config | None = None,
    data_root: str | Path | None = None,
    check_data_points: bool = True,
) -> tuple[BacktestResult, RegressionReport]:
    """Runs a regression algorithm and compares the outcome with its declaration."""
    if not issubclass(algorithm_cls, RegressionAlgorithmDefinition):
        raise TypeError(f"{algorithm_cls.__name__} does not declare regression expectations")
    algorithm = algorithm_cls()
    result = run_backtest(algorithm, cfg, data_root=data_root)
    report = compare_results(algorithm, result, check_data_points=check_data_points)
    return result, report
