"""Tabular codec: bars to/from semicolon-delimited rows.

Prices are written as fixed-decimal strings at the precision of the
instrument's security class. Volume is written as an integer except for
crypto, whose volume keeps the class precision.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Context, Decimal

from trada.core.exceptions import ParseError
from trada.core.models import SecurityClass, decimal_places
from trada.marketdata.models import Bar
from trada.marketdata.provider import build_bar, to_decimal

BAR_HEADER = ("Date", "Open", "High", "Low", "Close", "Volume")

Row = list[str]


def format_fixed(value: Decimal, places: int) -> str:
    """Fixed-point string of ``value`` rounded half away from zero."""
    quantum = Decimal(1).scaleb(-places)
    # quantize needs every integer digit plus the fraction within precision
    context = Context(prec=max(28, value.adjusted() + places + 2))
    return f"{value.quantize(quantum, rounding=ROUND_HALF_UP, context=context):f}"


def encode_bars(bars: Iterable[Bar], security: SecurityClass) -> list[Row]:
    """Header row followed by one row per bar, in input order."""
    places = decimal_places(security)
    volume_places = places if security == SecurityClass.CRYPTO else 0

    rows: list[Row] = [list(BAR_HEADER)]
    for bar in bars:
        rows.append(
            [
                bar.date.isoformat(),
                format_fixed(bar.open, places),
                format_fixed(bar.high, places),
                format_fixed(bar.low, places),
                format_fixed(bar.close, places),
                format_fixed(bar.volume, volume_places),
            ]
        )
    return rows


def decode_bars(rows: Iterable[Row]) -> list[Bar]:
    """Parse rows produced by ``encode_bars`` back into bars.

    The first row is the header and is skipped.

    Raises:
        ParseError: Wrong column count or unparseable value.
    """
    bars: list[Bar] = []
    for line, row in enumerate(rows, start=1):
        if line == 1:
            continue
        if len(row) != len(BAR_HEADER):
            raise ParseError(
                f"row {line}: expected {len(BAR_HEADER)} columns, got {len(row)}",
                context={"field": "row", "value": ";".join(row)},
            )
        try:
            day = date.fromisoformat(row[0])
        except ValueError:
            raise ParseError(
                f"row {line}: invalid date {row[0]!r}",
                context={"field": "date", "value": row[0]},
            ) from None
        values = {
            name.lower(): to_decimal(name.lower(), cell)
            for name, cell in zip(BAR_HEADER[1:], row[1:])
        }
        bars.append(build_bar(date=day, **values))
    return bars
