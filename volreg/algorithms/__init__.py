"""
Algorithm Registry
------------------
Maps the names accepted by the CLI to algorithm classes.
"""

from __future__ import annotations

from ..algorithm import Algorithm
from .indicator_volatility_model import IndicatorVolatilityModelAlgorithm

ALGORITHMS: dict[str, type[Algorithm]] = {
    "IndicatorVolatilityModelAlgorithm": IndicatorVolatilityModelAlgorithm,
}


def get_algorithm(name: str) -> type[Algorithm]:
    try:
        return ALGORITHMS[name]
    except KeyError:
        raise KeyError(
            f"Unknown algorithm {name!r}; known algorithms: {sorted(ALGORITHMS)}"
        ) from None


__all__ = ["ALGORITHMS", "IndicatorVolatilityModelAlgorithm", "get_algorithm"]
