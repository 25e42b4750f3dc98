"""Shared pytest fixtures for trada."""

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from trada.core.config import CryptowatchConfig, IEXConfig, IndexResource
from trada.core.models import InstrumentSpec, SecurityClass
from trada.marketdata.models import Bar


@pytest.fixture
def sample_bar() -> Bar:
    return Bar(
        date=date(2024, 1, 2),
        open=Decimal("187.15"),
        high=Decimal("188.44"),
        low=Decimal("183.885"),
        close=Decimal("185.64"),
        volume=Decimal("82488674"),
    )


@pytest.fixture
def sample_bars(sample_bar) -> list[Bar]:
    return [
        sample_bar,
        Bar(
            date=date(2024, 1, 3),
            open=Decimal("184.22"),
            high=Decimal("185.88"),
            low=Decimal("183.43"),
            close=Decimal("184.25"),
            volume=Decimal("58414460"),
        ),
    ]


@pytest.fixture
def aapl() -> InstrumentSpec:
    return InstrumentSpec(symbol="AAPL", security_class=SecurityClass.EQUITY)


@pytest.fixture
def btcusd() -> InstrumentSpec:
    return InstrumentSpec(symbol="btcusd", security_class=SecurityClass.CRYPTO)


@pytest.fixture
def cryptowatch_config(tmp_path: Path) -> CryptowatchConfig:
    return CryptowatchConfig(
        base_url="https://api.cryptowat.test",
        exchange="kraken",
        output_dir=str(tmp_path / "crypto"),
    )


@pytest.fixture
def iex_config(tmp_path: Path) -> IEXConfig:
    return IEXConfig(
        base_url="https://iex.test/stable",
        token="sk_secret",
        output_dir=str(tmp_path / "equities"),
    )


# --- Raw vendor payloads ---


@pytest.fixture
def ohlc_payload() -> bytes:
    """Cryptowatch daily OHLC response with two bars."""
    return json.dumps(
        {
            "result": {
                "86400": [
                    [1572393600, 100.0, 105.0, 99.0, 104.0, 1000, 999],
                    [1572480000, 104.0, 110.5, 103.25, 109.0, 1500.5, 160000],
                ]
            },
            "allowance": {"cost": 0.015, "remaining": 9.9},
        }
    ).encode()


@pytest.fixture
def chart_payload() -> bytes:
    """IEX chart response with two bars."""
    return json.dumps(
        [
            {
                "date": "2024-01-02",
                "open": 187.15,
                "high": 188.44,
                "low": 183.885,
                "close": 185.64,
                "volume": 82488674,
                "symbol": "AAPL",
            },
            {
                "date": "2024-01-03",
                "open": 184.22,
                "high": 185.88,
                "low": 183.43,
                "close": 184.25,
                "volume": 58414460,
                "symbol": "AAPL",
            },
        ]
    ).encode()


@pytest.fixture
def previous_payload() -> bytes:
    """IEX previous-day response (single object)."""
    return json.dumps(
        {
            "symbol": "AAPL",
            "date": "2024-01-05",
            "open": 181.99,
            "high": 182.76,
            "low": 180.17,
            "close": 181.18,
            "volume": 62303315,
        }
    ).encode()


# --- Wiki ---


SPX_HTML = """
<div class="mw-parser-output">
<h2>S&amp;P 500 component stocks</h2>
<table class="wikitable sortable" id="constituents">
<tbody>
<tr><th>Symbol</th><th>Security</th><th>GICS Sector</th><th>Headquarters Location</th></tr>
<tr><td><a href="/x">MMM</a></td><td><a href="/3M">3M</a><sup class="reference">[1]</sup></td><td>Industrials</td><td>Saint Paul, Minnesota</td></tr>
<tr><td><a href="/x">AOS</a></td><td><a href="/aos">A. O. Smith</a></td><td>Industrials</td><td>Milwaukee, Wisconsin</td></tr>
<tr><td><a href="/x">ABT</a></td><td><a href="/abt">Abbott Laboratories</a></td><td>Health Care</td><td>North Chicago, Illinois</td></tr>
</tbody>
</table>
</div>
"""

DJIA_HTML = """
<div class="mw-parser-output">
<table class="wikitable"><tr><th>Rank</th><th>Index</th></tr><tr><td>1</td><td>DJIA</td></tr></table>
<table class="wikitable sortable" id="constituents">
<tbody>
<tr><th>Company</th><th>Exchange</th><th>Symbol</th><th>Industry</th></tr>
<tr><th><a href="/3M">3M</a></th><td>NYSE</td><td><a href="/nyse">NYSE</a>: <a href="/mmm">MMM</a></td><td>Conglomerate</td></tr>
<tr><th><a href="/axp">American Express</a></th><td>NYSE</td><td>NYSE: AXP</td><td>Financial services</td></tr>
<tr><th><a href="/aapl">Apple</a></th><td>NASDAQ</td><td>NASDAQ: AAPL</td><td>Information technology</td></tr>
</tbody>
</table>
</div>
"""


def wiki_envelope(html: str, title: str = "List of S&P 500 companies") -> bytes:
    return json.dumps({"parse": {"title": title, "pageid": 2676045, "text": {"*": html}}}).encode()


@pytest.fixture
def spx_html() -> str:
    return SPX_HTML


@pytest.fixture
def djia_html() -> str:
    return DJIA_HTML


@pytest.fixture
def spx_payload() -> bytes:
    return wiki_envelope(SPX_HTML)


@pytest.fixture
def wiki_error_payload() -> bytes:
    return json.dumps(
        {
            "error": {
                "code": "missingtitle",
                "info": "The page you specified doesn't exist.",
            },
            "servedby": "mw1342",
        }
    ).encode()


@pytest.fixture
def spx_resource() -> IndexResource:
    return IndexResource(
        name="SPX",
        page_name="List of S&P 500 companies",
        section=1,
        output_file="spx.csv",
    )


@pytest.fixture
def make_envelope():
    """Factory wrapping HTML in a wiki parse-API data envelope."""
    return wiki_envelope
