"""Bar models for daily market data."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# Sanity bound against corrupt timestamps, not a business rule.
_MAX_AGE_YEARS = 300


class Bar(BaseModel):
    """One trading session's OHLCV record.

    All source adapters must produce data in this format.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    @field_validator("date")
    @classmethod
    def date_plausible(cls, v: date) -> date:
        if v < date.today() - relativedelta(years=_MAX_AGE_YEARS):
            raise ValueError(f"date {v.isoformat()} is too far away")
        return v

    @field_validator("open", "high", "low", "close", "volume")
    @classmethod
    def non_negative(cls, v: Decimal, info) -> Decimal:
        if v < 0:
            raise ValueError(f"{info.field_name} must be >= 0, got {v}")
        return v

    @model_validator(mode="after")
    def high_gte_low(self) -> Bar:
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) must be >= low ({self.low})")
        return self


class BarSeries:
    """Date-keyed, gap-tolerant collection of bars for one instrument.

    Duplicate dates collapse to the bar inserted last. Iteration is always
    in ascending date order.
    """

    def __init__(self, bars: Iterable[Bar] = ()) -> None:
        self._data: dict[date, Bar] = {}
        for bar in bars:
            self._data[bar.date] = bar

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self.bars())

    def __contains__(self, day: object) -> bool:
        return day in self._data

    def bars(self) -> list[Bar]:
        """Bars sorted by date ascending."""
        return [self._data[d] for d in self.dates()]

    def dates(self) -> list[date]:
        return sorted(self._data)

    def at(self, day: date) -> Bar:
        """Return the bar for ``day``. Raises KeyError if absent."""
        try:
            return self._data[day]
        except KeyError:
            raise KeyError(f"data for date {day.isoformat()} not found") from None

    def merge(self, other: Iterable[Bar]) -> BarSeries:
        """New series with ``other`` overlaid; its bars win on date collision."""
        return BarSeries([*self._data.values(), *other])

    @property
    def max_gap(self) -> timedelta:
        """Largest distance between consecutive dates."""
        dates = self.dates()
        return max(
            (b - a for a, b in zip(dates, dates[1:])),
            default=timedelta(0),
        )
