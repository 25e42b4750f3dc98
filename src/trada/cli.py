"""Click-based CLI for trada.

Each command loads config, resolves its work set and hands it to a
pipeline; per-item outcomes are rendered as a Rich table on stderr.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from trada.core.models import DataRange

console = Console(stderr=True)

_LOG_LEVELS = ["disabled", "error", "warning", "info", "debug"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _fatal(exc: Exception) -> None:
    """Report a setup failure and exit non-zero."""
    console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
    raise SystemExit(1)


def _load_config(ctx: click.Context, section: str, overrides: dict):
    """Load config with CLI overrides and set up logging.

    Returns the requested tool section.
    """
    from trada.core import TradaError, load_config
    from trada.core.log import setup_logging

    try:
        config = load_config(
            config_path=ctx.obj.get("config_path"),
            overrides={
                "logging": {"level": ctx.obj.get("log_level")},
                section: overrides,
            },
        )
        setup_logging(
            level=config.logging.level,
            log_file=config.logging.file,
            verbose=ctx.obj["verbose"],
        )
        return config.require(section)
    except (TradaError, OSError) as exc:
        _fatal(exc)


def _prepare_output_dir(output_dir: str) -> Path:
    """Create the output directory and check it is writable."""
    from trada.core import ConfigError
    from trada.marketdata.store import DIR_MODE

    path = Path(output_dir)
    try:
        path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(
            f"Prepare output dir {path} failed: {exc}",
            context={"field": "output_dir", "value": str(path)},
        ) from exc
    if not os.access(path, os.W_OK):
        raise ConfigError(
            f"Output dir {path} is not writable",
            context={"field": "output_dir", "value": str(path)},
        )
    return path


def _output_report(report, title: str) -> None:
    """Render per-item outcomes as a Rich table and print a summary."""
    table = Table(title=title)
    table.add_column("Item", style="bold")
    table.add_column("Status")
    table.add_column("Destination / Reason")

    styles = {"ok": "green", "failed": "red", "cancelled": "yellow"}
    for r in report.results:
        detail = str(r.path) if r.ok else (r.error or "")
        table.add_row(escape(r.key), f"[{styles[r.status]}]{r.status}[/]", escape(detail))
    console.print(table)

    summary = (
        f"{len(report.succeeded)} saved, {len(report.failed)} failed"
        + (f", {len(report.skipped)} cancelled" if report.skipped else "")
    )
    mark = "[green]✓[/green]" if not report.failed else "[yellow]![/yellow]"
    console.print(f"{mark} {summary}")


def _fetch_bars(ctx: click.Context, section: str, source_cls, overrides: dict, symbols):
    """Shared body of the market data commands."""
    from trada.core import TradaError
    from trada.ingestion import HttpClient
    from trada.marketdata import fetch_instruments, parse_symbols, resolve_workset

    setup = _load_config(ctx, section, overrides)
    default = source_cls.default_security

    try:
        explicit = parse_symbols(symbols, default) if symbols else None
        specs = resolve_workset(explicit, setup.watchlists, default)
        output_dir = _prepare_output_dir(setup.output_dir)
    except TradaError as exc:
        _fatal(exc)

    async def _run():
        async with HttpClient(timeout=setup.timeout, rate_limit=setup.rate_limit) as client:
            source = source_cls(setup, client)
            return await fetch_instruments(
                specs, source, output_dir, max_procs=setup.max_procs
            )

    report = _run_async(_run())
    _output_report(report, f"{source_cls.name} → {output_dir}")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="TRADA_CONFIG",
    default=None,
    help="Path to trada.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Also log to stderr when a log file is configured.",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.version_option(package_name="trada")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool, log_level: str | None) -> None:
    """trada: daily market data and index-membership fetcher."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["log_level"] = log_level.lower() if log_level else None


_output_option = click.option(
    "--output-dir", "-o", type=str, default=None, help="Output data directory."
)
_timeout_option = click.option(
    "--timeout", "-t", type=click.IntRange(min=1), default=None,
    help="Request timeout in seconds.",
)
_symbols_option = click.option(
    "--symbols",
    "-s",
    type=str,
    default=None,
    help="Comma-separated symbols with optional security class (SPY,QQQ,BTCUSD:crypto).",
)


# ---------------------------------------------------------------------------
# crypto
# ---------------------------------------------------------------------------


@cli.command()
@_output_option
@click.option(
    "--range",
    "-r",
    "data_range",
    type=click.Choice([r.value for r in DataRange], case_sensitive=False),
    default=None,
    help="Data range.",
)
@_symbols_option
@_timeout_option
@click.pass_context
def crypto(
    ctx: click.Context,
    output_dir: str | None,
    data_range: str | None,
    symbols: str | None,
    timeout: int | None,
) -> None:
    """Fetch daily crypto bars from the exchange API."""
    from trada.marketdata import CryptowatchSource

    overrides = {
        "output_dir": output_dir,
        "range": data_range.lower() if data_range else None,
        "timeout": timeout,
    }
    _fetch_bars(ctx, "cryptowatch", CryptowatchSource, overrides, symbols)


# ---------------------------------------------------------------------------
# equities
# ---------------------------------------------------------------------------


@cli.command()
@_output_option
@click.option(
    "--range",
    "-r",
    "data_range",
    type=click.Choice(
        [r.value for r in DataRange if r != DataRange.MAX], case_sensitive=False
    ),
    default=None,
    help="Data range (1d fetches the previous trading day only).",
)
@_symbols_option
@_timeout_option
@click.pass_context
def equities(
    ctx: click.Context,
    output_dir: str | None,
    data_range: str | None,
    symbols: str | None,
    timeout: int | None,
) -> None:
    """Fetch daily equity bars from the stock market API."""
    from trada.marketdata import IEXSource

    overrides = {
        "output_dir": output_dir,
        "range": data_range.lower() if data_range else None,
        "timeout": timeout,
    }
    _fetch_bars(ctx, "iex", IEXSource, overrides, symbols)


# ---------------------------------------------------------------------------
# index
# ---------------------------------------------------------------------------


@cli.command()
@_output_option
@_timeout_option
@click.pass_context
def index(ctx: click.Context, output_dir: str | None, timeout: int | None) -> None:
    """Scrape index-membership lists from the wiki API."""
    from trada.core import TradaError
    from trada.ingestion import HttpClient
    from trada.wiki import WikiClient, fetch_index_lists

    setup = _load_config(ctx, "wiki", {"output_dir": output_dir, "timeout": timeout})
    try:
        out = _prepare_output_dir(setup.output_dir)
    except TradaError as exc:
        _fatal(exc)

    async def _run():
        async with HttpClient(timeout=setup.timeout, rate_limit=setup.rate_limit) as client:
            wiki = WikiClient(setup.api_url, client)
            return await fetch_index_lists(
                list(setup.resources), wiki, out, max_procs=setup.max_procs
            )

    report = _run_async(_run())
    _output_report(report, f"index lists → {out}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
