"""Index-membership parsers for rendered wiki tables.

Each parser turns the HTML of one page section into a list of equity
``InstrumentSpec``. Parsers are looked up by name through an explicit
``ParserRegistry`` built from a fixed tuple at startup.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from bs4 import BeautifulSoup, Tag

from trada.core.exceptions import ParseError
from trada.core.models import InstrumentSpec, SecurityClass

logger = logging.getLogger(__name__)


@runtime_checkable
class IndexParser(Protocol):
    """Extracts index members from rendered HTML."""

    name: str

    def parse(self, html: str) -> list[InstrumentSpec]: ...


class TableIndexParser:
    """Reads the first table whose header row has the expected columns.

    Columns are located by header text (case-insensitive), so column order
    changes on the page do not break the parser. A symbol cell of the form
    ``NYSE: MMM`` yields symbol ``MMM`` with exchange ``NYSE``.

    Parameters
    ----------
    name : str
        Registry name, e.g. ``"SPX"``.
    symbol_headers : tuple[str, ...]
        Accepted header texts of the symbol column.
    name_headers : tuple[str, ...]
        Accepted header texts of the company name column.
    exchange_headers : tuple[str, ...]
        Accepted header texts of an optional exchange column.
    """

    def __init__(
        self,
        name: str,
        symbol_headers: tuple[str, ...],
        name_headers: tuple[str, ...],
        exchange_headers: tuple[str, ...] = (),
    ) -> None:
        self.name = name
        self._symbol_headers = {h.lower() for h in symbol_headers}
        self._name_headers = {h.lower() for h in name_headers}
        self._exchange_headers = {h.lower() for h in exchange_headers}

    def parse(self, html: str) -> list[InstrumentSpec]:
        """Parse index members.

        Raises:
            ParseError: No table with the expected columns.
        """
        soup = BeautifulSoup(html, "lxml")
        for sup in soup.find_all("sup"):
            sup.decompose()

        for table in soup.find_all("table"):
            columns = self._locate_columns(table)
            if columns is None:
                continue
            specs = list(self._read_rows(table, *columns))
            logger.debug("%s: %d members", self.name, len(specs))
            return specs

        raise ParseError(
            f"{self.name}: no table with columns "
            f"{sorted(self._symbol_headers)} and {sorted(self._name_headers)}",
            context={"field": "table", "value": self.name},
        )

    def _locate_columns(self, table: Tag) -> tuple[int, int, int | None] | None:
        """(symbol, name, exchange) column indexes, or None if not this table."""
        header_row = table.find("tr")
        if header_row is None:
            return None
        headers = [_text(c).lower() for c in header_row.find_all(["th", "td"], recursive=False)]

        symbol_idx = _first_index(headers, self._symbol_headers)
        name_idx = _first_index(headers, self._name_headers)
        if symbol_idx is None or name_idx is None:
            return None
        return symbol_idx, name_idx, _first_index(headers, self._exchange_headers)

    def _read_rows(
        self,
        table: Tag,
        symbol_idx: int,
        name_idx: int,
        exchange_idx: int | None,
    ) -> Iterable[InstrumentSpec]:
        needed = max(symbol_idx, name_idx, exchange_idx or 0)
        for row in table.find_all("tr")[1:]:
            cells = row.find_all(["td", "th"], recursive=False)
            if len(cells) <= needed:
                continue

            symbol = _text(cells[symbol_idx])
            exchange = _text(cells[exchange_idx]) if exchange_idx is not None else ""
            if ":" in symbol:
                prefix, _, symbol = symbol.rpartition(":")
                exchange = exchange or prefix.strip()
                symbol = symbol.strip()
            if not symbol:
                continue

            yield InstrumentSpec(
                symbol=symbol,
                description=_text(cells[name_idx]),
                security_class=SecurityClass.EQUITY,
                exchange=exchange or None,
            )


def _text(cell: Tag) -> str:
    return " ".join(cell.get_text(" ", strip=True).split())


def _first_index(headers: list[str], accepted: set[str]) -> int | None:
    for i, header in enumerate(headers):
        if header in accepted:
            return i
    return None


class ParserRegistry:
    """Name → parser mapping, fixed at construction."""

    def __init__(self, parsers: Iterable[IndexParser]) -> None:
        self._parsers: dict[str, IndexParser] = {}
        for parser in parsers:
            if parser.name in self._parsers:
                raise ValueError(f"duplicate index parser name: {parser.name!r}")
            self._parsers[parser.name] = parser

    def __contains__(self, name: object) -> bool:
        return name in self._parsers

    def names(self) -> list[str]:
        return sorted(self._parsers)

    def get(self, name: str) -> IndexParser:
        try:
            return self._parsers[name]
        except KeyError:
            raise KeyError(
                f"unknown index parser {name!r}; use one of: {', '.join(self.names())}"
            ) from None


def default_registry() -> ParserRegistry:
    """Registry of the built-in index parsers."""
    return ParserRegistry(
        (
            TableIndexParser(
                "SPX",
                symbol_headers=("Symbol", "Ticker", "Ticker symbol"),
                name_headers=("Security", "Company"),
            ),
            TableIndexParser(
                "OEX",
                symbol_headers=("Symbol", "Ticker"),
                name_headers=("Name", "Company"),
            ),
            TableIndexParser(
                "NDX",
                symbol_headers=("Ticker", "Symbol"),
                name_headers=("Company", "Security"),
            ),
            TableIndexParser(
                "DJIA",
                symbol_headers=("Symbol", "Ticker"),
                name_headers=("Company",),
                exchange_headers=("Exchange",),
            ),
        )
    )
