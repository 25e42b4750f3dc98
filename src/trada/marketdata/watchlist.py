"""Instrument lists: symbol strings, watchlist files, membership rows."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from pydantic import ValidationError

from trada.core.exceptions import ConfigError, WorksetError
from trada.core.models import InstrumentSpec, SecurityClass
from trada.marketdata.store import DELIMITER

logger = logging.getLogger(__name__)

SPEC_HEADER = ("sym", "name", "security")


def parse_symbols(text: str, default: SecurityClass) -> list[InstrumentSpec]:
    """Parse a command-line symbol list.

    Items are comma-separated and may carry a security class suffix,
    e.g. ``SPY,QQQ,BTCUSD:crypto``. Items without a suffix get ``default``.

    Raises:
        ConfigError: Naming the first invalid item.
    """
    specs: list[InstrumentSpec] = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue

        symbol, _, security = item.partition(":")
        try:
            security_class = SecurityClass.parse(security) if security else default
            specs.append(InstrumentSpec(symbol=symbol, security_class=security_class))
        except (ValueError, ValidationError) as e:
            raise ConfigError(
                f"invalid symbol {item!r}: {e}",
                context={"field": "symbols", "value": item},
            ) from e
    return specs


def specs_to_rows(specs: Iterable[InstrumentSpec]) -> list[list[str]]:
    """Membership table: header, then symbol, description, security."""
    rows = [list(SPEC_HEADER)]
    for spec in specs:
        rows.append([spec.symbol, spec.description, spec.security_class.value])
    return rows


def specs_from_rows(
    rows: Sequence[Sequence[str]],
    default: SecurityClass = SecurityClass.EQUITY,
    source: str = "<rows>",
) -> list[InstrumentSpec]:
    """Parse every data row of a membership table. The header is skipped.

    The security column may be missing or blank; ``default`` applies then.

    Raises:
        WorksetError: Naming the source and line of the first bad row.
    """
    specs: list[InstrumentSpec] = []
    for line, row in enumerate(rows[1:], start=2):
        if not row or not any(cell.strip() for cell in row):
            continue
        symbol = row[0]
        description = row[1] if len(row) > 1 else ""
        security = row[2].strip() if len(row) > 2 else ""
        try:
            specs.append(
                InstrumentSpec(
                    symbol=symbol,
                    description=description,
                    security_class=SecurityClass.parse(security) if security else default,
                )
            )
        except (ValueError, ValidationError) as e:
            raise WorksetError(
                f"{source}:{line}: invalid instrument row {list(row)!r}: {e}",
                context={"path": source, "line": line},
            ) from e
    return specs


def dedupe_specs(specs: Iterable[InstrumentSpec]) -> list[InstrumentSpec]:
    """Collapse duplicates by (symbol, security class); the last one wins.

    The result is sorted by that key.
    """
    by_key: dict[tuple[str, SecurityClass], InstrumentSpec] = {}
    for spec in specs:
        by_key[spec.key] = spec
    return [by_key[key] for key in sorted(by_key)]


def load_watchlists(
    paths: Iterable[str | Path],
    default: SecurityClass,
) -> list[InstrumentSpec]:
    """Load, merge and de-duplicate instruments from watchlist files.

    Raises:
        WorksetError: A file cannot be read or holds an invalid row.
    """
    collected: list[InstrumentSpec] = []
    for path in paths:
        path = Path(path)
        try:
            with open(path, newline="", encoding="utf-8") as f:
                rows = list(csv.reader(f, delimiter=DELIMITER))
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise WorksetError(
                f"reading watchlist {path} failed: {e}",
                context={"path": str(path)},
            ) from e

        specs = specs_from_rows(rows, default=default, source=str(path))
        collected.extend(specs)
        logger.info("loaded %d instruments from %s", len(specs), path)

    return dedupe_specs(collected)


def resolve_workset(
    explicit: Sequence[InstrumentSpec] | None,
    watchlists: Sequence[str],
    default: SecurityClass,
) -> list[InstrumentSpec]:
    """Explicit instruments verbatim, otherwise the merged watchlists.

    Raises:
        WorksetError: Nothing to process.
    """
    if explicit:
        return list(explicit)
    if not watchlists:
        raise WorksetError("no symbols given and no watchlists configured")

    specs = load_watchlists(watchlists, default)
    if not specs:
        raise WorksetError(
            f"watchlists contain no instruments: {', '.join(watchlists)}",
            context={"path": ", ".join(watchlists)},
        )
    return specs
