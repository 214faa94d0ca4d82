from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Symbol:
    """Opaque, hashable identifier of a tradable instrument."""

    value: str
    security_type: str = "equity"
    market: str = "usa"

    @classmethod
    def create(cls, ticker: str, security_type: str = "equity", market: str = "usa") -> "Symbol":
        ticker = str(ticker).strip().upper()
        if not ticker:
            raise ValueError("Symbol ticker must be a non-empty string")
        return cls(ticker, security_type, market)

    def __str__(self) -> str:
        return self.value
