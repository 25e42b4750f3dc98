"""Daily market data: adapters, tabular codec and merge-and-persist store.

Architecture
------------

    vendor API → BarSource.fetch → bytes → BarAdapter → list[Bar]
        → BarSeries → encode_bars → rows → TableStore.save → {symbol}.csv

Built-in vendors:

- ``CryptowatchSource`` / ``CryptowatchAdapter``: crypto exchange OHLC.
- ``IEXSource`` / ``IEXAdapter``: equities chart and previous-day bars.
"""

from trada.marketdata.codec import BAR_HEADER, decode_bars, encode_bars
from trada.marketdata.cryptowatch import CryptowatchAdapter, CryptowatchSource
from trada.marketdata.iex import IEXAdapter, IEXSource
from trada.marketdata.models import Bar, BarSeries
from trada.marketdata.pipeline import BarPipeline, fetch_instruments
from trada.marketdata.provider import BarAdapter, BarSource
from trada.marketdata.store import PathLocks, TableStore, merge_tables, write_table_atomic
from trada.marketdata.watchlist import (
    load_watchlists,
    parse_symbols,
    resolve_workset,
    specs_from_rows,
    specs_to_rows,
)

__all__ = [
    # Models
    "Bar",
    "BarSeries",
    # Protocols
    "BarAdapter",
    "BarSource",
    # Vendors
    "CryptowatchAdapter",
    "CryptowatchSource",
    "IEXAdapter",
    "IEXSource",
    # Codec
    "BAR_HEADER",
    "encode_bars",
    "decode_bars",
    # Store
    "TableStore",
    "PathLocks",
    "merge_tables",
    "write_table_atomic",
    # Instruments
    "parse_symbols",
    "load_watchlists",
    "resolve_workset",
    "specs_from_rows",
    "specs_to_rows",
    # Pipeline
    "BarPipeline",
    "fetch_instruments",
]
