"""Pydantic data models: instrument identity and request ranges."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, field_validator

# --- Type Aliases ---

Symbol = str

# --- Enumerations ---


class SecurityClass(StrEnum):
    """Coarse asset category. Determines numeric display precision."""

    EQUITY = "equity"
    FOREX = "forex"
    CRYPTO = "crypto"

    @classmethod
    def parse(cls, value: str) -> SecurityClass:
        """Parse a case-insensitive security class name."""
        normalized = value.strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(
                f"invalid security class {value!r}; use one of: {valid}"
            ) from None


# Equities are quoted in cents, crypto in satoshis.
_DECIMAL_PLACES: dict[SecurityClass, int] = {
    SecurityClass.EQUITY: 2,
    SecurityClass.FOREX: 4,
    SecurityClass.CRYPTO: 8,
}


def decimal_places(security: SecurityClass) -> int:
    """Number of decimal places prices of `security` are quoted with."""
    return _DECIMAL_PLACES[security]


class DataRange(StrEnum):
    """History length requested from a market data API."""

    MAX = "max"
    FIVE_YEARS = "5y"
    TWO_YEARS = "2y"
    ONE_YEAR = "1y"
    YEAR_TO_DATE = "ytd"
    SIX_MONTHS = "6m"
    THREE_MONTHS = "3m"
    ONE_MONTH = "1m"
    ONE_DAY = "1d"


# How far back "max" reaches; some APIs serve up to 15 years.
_MAX_YEARS = 15


def range_start(data_range: DataRange, today: date) -> date:
    """First calendar day covered by `data_range` when requested on `today`."""
    if data_range == DataRange.MAX:
        return date(today.year, 1, 1) - relativedelta(years=_MAX_YEARS)
    if data_range == DataRange.YEAR_TO_DATE:
        return date(today.year, 1, 1)

    count = int(data_range.value[:-1])
    unit = data_range.value[-1]
    if unit == "y":
        return today - relativedelta(years=count)
    if unit == "m":
        return today - relativedelta(months=count)
    return today - relativedelta(days=count)


# --- Instrument Models ---


class InstrumentSpec(BaseModel):
    """Identity of a tradable asset."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    security_class: SecurityClass
    description: str = ""
    exchange: str | None = None

    @field_validator("symbol")
    @classmethod
    def symbol_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("symbol must not be empty")
        return v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return v.strip()

    @property
    def key(self) -> tuple[str, SecurityClass]:
        """Composite business key used for de-duplication."""
        return (self.symbol, self.security_class)
