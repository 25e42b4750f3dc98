"""Tests for trada.core.models and trada.marketdata.models."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from trada.core.models import (
    DataRange,
    InstrumentSpec,
    SecurityClass,
    decimal_places,
    range_start,
)
from trada.marketdata.models import Bar, BarSeries


def _bar(day: date, close: str = "10") -> Bar:
    c = Decimal(close)
    return Bar(date=day, open=c, high=c, low=c, close=c, volume=Decimal("1"))


# --- SecurityClass ---


class TestSecurityClass:
    def test_parse_case_insensitive(self):
        assert SecurityClass.parse("Crypto") == SecurityClass.CRYPTO
        assert SecurityClass.parse(" EQUITY ") == SecurityClass.EQUITY

    def test_parse_unknown_lists_valid_values(self):
        with pytest.raises(ValueError, match="equity, forex, crypto"):
            SecurityClass.parse("bond")

    def test_decimal_places(self):
        assert decimal_places(SecurityClass.EQUITY) == 2
        assert decimal_places(SecurityClass.FOREX) == 4
        assert decimal_places(SecurityClass.CRYPTO) == 8


# --- DataRange ---


class TestRangeStart:
    TODAY = date(2024, 3, 31)

    def test_max_is_start_of_year_minus_fifteen(self):
        assert range_start(DataRange.MAX, self.TODAY) == date(2009, 1, 1)

    def test_ytd(self):
        assert range_start(DataRange.YEAR_TO_DATE, self.TODAY) == date(2024, 1, 1)

    def test_years(self):
        assert range_start(DataRange.FIVE_YEARS, self.TODAY) == date(2019, 3, 31)
        assert range_start(DataRange.ONE_YEAR, self.TODAY) == date(2023, 3, 31)

    def test_months_clamp_to_month_end(self):
        assert range_start(DataRange.ONE_MONTH, self.TODAY) == date(2024, 2, 29)
        assert range_start(DataRange.SIX_MONTHS, self.TODAY) == date(2023, 9, 30)

    def test_one_day(self):
        assert range_start(DataRange.ONE_DAY, self.TODAY) == date(2024, 3, 30)

    def test_from_string(self):
        assert DataRange("3m") == DataRange.THREE_MONTHS


# --- InstrumentSpec ---


class TestInstrumentSpec:
    def test_strips_symbol_and_description(self):
        spec = InstrumentSpec(
            symbol="  SPY ", description=" S&P 500 ETF ", security_class=SecurityClass.EQUITY
        )
        assert spec.symbol == "SPY"
        assert spec.description == "S&P 500 ETF"
        assert spec.exchange is None

    def test_empty_symbol_rejected(self):
        with pytest.raises(ValidationError, match="symbol must not be empty"):
            InstrumentSpec(symbol="  ", security_class=SecurityClass.EQUITY)

    def test_key_includes_security_class(self):
        eq = InstrumentSpec(symbol="XYZ", security_class=SecurityClass.EQUITY)
        cr = InstrumentSpec(symbol="XYZ", security_class=SecurityClass.CRYPTO)
        assert eq.key != cr.key
        assert eq.key == ("XYZ", SecurityClass.EQUITY)

    def test_frozen(self):
        spec = InstrumentSpec(symbol="SPY", security_class=SecurityClass.EQUITY)
        with pytest.raises(ValidationError):
            spec.symbol = "QQQ"


# --- Bar ---


class TestBar:
    def test_create_valid(self, sample_bar):
        assert sample_bar.date == date(2024, 1, 2)
        assert sample_bar.low == Decimal("183.885")

    def test_high_must_be_gte_low(self):
        with pytest.raises(ValidationError, match=r"high.*must be >= low"):
            Bar(
                date=date(2024, 1, 2),
                open=Decimal("10"),
                high=Decimal("9"),
                low=Decimal("10"),
                close=Decimal("10"),
                volume=Decimal("1"),
            )

    def test_negative_volume_rejected(self):
        with pytest.raises(ValidationError, match="volume must be >= 0"):
            Bar(
                date=date(2024, 1, 2),
                open=Decimal("10"),
                high=Decimal("10"),
                low=Decimal("10"),
                close=Decimal("10"),
                volume=Decimal("-1"),
            )

    def test_implausible_date_rejected(self):
        with pytest.raises(ValidationError, match="too far away"):
            _bar(date(1700, 1, 1))


# --- BarSeries ---


class TestBarSeries:
    def test_iterates_in_date_order(self):
        series = BarSeries([_bar(date(2024, 1, 3)), _bar(date(2024, 1, 1))])
        assert [b.date for b in series] == [date(2024, 1, 1), date(2024, 1, 3)]

    def test_duplicate_date_last_wins(self):
        series = BarSeries([_bar(date(2024, 1, 1), "1"), _bar(date(2024, 1, 1), "2")])
        assert len(series) == 1
        assert series.at(date(2024, 1, 1)).close == Decimal("2")

    def test_at_missing_raises_key_error(self):
        series = BarSeries([_bar(date(2024, 1, 1))])
        with pytest.raises(KeyError, match="2024-01-02"):
            series.at(date(2024, 1, 2))

    def test_contains(self):
        series = BarSeries([_bar(date(2024, 1, 1))])
        assert date(2024, 1, 1) in series
        assert date(2024, 1, 2) not in series

    def test_merge_other_wins(self):
        base = BarSeries([_bar(date(2024, 1, 1), "1"), _bar(date(2024, 1, 2), "1")])
        merged = base.merge([_bar(date(2024, 1, 2), "5"), _bar(date(2024, 1, 3), "5")])
        assert merged.dates() == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert merged.at(date(2024, 1, 2)).close == Decimal("5")
        assert len(base) == 2

    def test_max_gap_tolerates_weekends(self):
        series = BarSeries(
            [_bar(date(2024, 1, 5)), _bar(date(2024, 1, 8)), _bar(date(2024, 1, 9))]
        )
        assert series.max_gap == timedelta(days=3)

    def test_empty(self):
        series = BarSeries()
        assert len(series) == 0
        assert series.max_gap == timedelta(0)
