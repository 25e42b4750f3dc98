"""Tests for trada.marketdata.cryptowatch."""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import httpx
import pytest
import respx

from trada.core.exceptions import FetchError, ParseError
from trada.core.models import DataRange, InstrumentSpec, SecurityClass
from trada.ingestion.client import HttpClient
from trada.marketdata.cryptowatch import CryptowatchAdapter, CryptowatchSource
from trada.marketdata.provider import BarAdapter, BarSource


def _payload(result) -> bytes:
    return json.dumps({"result": result}).encode()


@pytest.fixture
def adapter() -> CryptowatchAdapter:
    return CryptowatchAdapter()


class TestCryptowatchAdapter:
    def test_conforms_to_protocol(self, adapter):
        assert isinstance(adapter, BarAdapter)

    def test_close_timestamp_shifted_back_one_day(self, adapter):
        raw = _payload({"86400": [[1572393600, 100.0, 105.0, 99.0, 104.0, 1000, 999]]})
        [bar] = adapter.adapt(raw)
        assert bar.date == date(2019, 10, 29)
        assert bar.open == Decimal("100.0")
        assert bar.high == Decimal("105.0")
        assert bar.low == Decimal("99.0")
        assert bar.close == Decimal("104.0")

    def test_keeps_base_volume(self, adapter):
        raw = _payload({"86400": [[1572393600, 100.0, 105.0, 99.0, 104.0, 1000, 999]]})
        [bar] = adapter.adapt(raw)
        assert bar.volume == Decimal("1000")

    def test_payload_order_kept(self, adapter, ohlc_payload):
        bars = adapter.adapt(ohlc_payload)
        assert [b.date for b in bars] == [date(2019, 10, 29), date(2019, 10, 30)]
        assert bars[1].volume == Decimal("1500.5")

    def test_empty_period(self, adapter):
        assert adapter.adapt(_payload({"86400": []})) == []

    def test_two_keys_rejected(self, adapter):
        raw = _payload({"86400": [], "3600": []})
        with pytest.raises(ParseError, match="expected map with 1 key equal to 86400, got 2"):
            adapter.adapt(raw)

    def test_wrong_key_rejected(self, adapter):
        raw = _payload({"3600": []})
        with pytest.raises(ParseError, match="the key not found"):
            adapter.adapt(raw)

    def test_missing_result(self, adapter):
        with pytest.raises(ParseError, match="'result' map"):
            adapter.adapt(b'{"error": "Instrument not found"}')

    def test_malformed_json(self, adapter):
        with pytest.raises(ParseError, match="malformed JSON"):
            adapter.adapt(b"<html>502</html>")

    def test_short_row(self, adapter):
        raw = _payload({"86400": [[1572393600, 100.0, 105.0]]})
        with pytest.raises(ParseError, match="wanted 7 elements"):
            adapter.adapt(raw)

    def test_bad_number_names_field(self, adapter):
        raw = _payload({"86400": [[1572393600, 100.0, "abc", 99.0, 104.0, 1000, 999]]})
        with pytest.raises(ParseError, match="invalid high 'abc'") as exc_info:
            adapter.adapt(raw)
        assert exc_info.value.context["field"] == "high"

    def test_numbers_as_strings_accepted(self, adapter):
        raw = _payload({"86400": [["1572393600", "100.5", "105", "99", "104", "7", "1"]]})
        [bar] = adapter.adapt(raw)
        assert bar.open == Decimal("100.5")

    def test_fractional_timestamp_rejected(self, adapter):
        raw = _payload({"86400": [[1572393600.5, 100.0, 105.0, 99.0, 104.0, 1000, 999]]})
        with pytest.raises(ParseError, match="invalid timestamp"):
            adapter.adapt(raw)

    def test_high_below_low_rejected(self, adapter):
        raw = _payload({"86400": [[1572393600, 100.0, 98.0, 99.0, 104.0, 1000, 999]]})
        with pytest.raises(ParseError, match="invalid bar for 2019-10-29"):
            adapter.adapt(raw)


class TestCryptowatchSource:
    TODAY = date(2024, 3, 31)

    @pytest.fixture
    async def client(self):
        async with HttpClient(timeout=5, rate_limit=100) as c:
            yield c

    async def test_conforms_to_protocol(self, cryptowatch_config, client):
        source = CryptowatchSource(cryptowatch_config, client)
        assert isinstance(source, BarSource)
        assert source.default_security == SecurityClass.CRYPTO

    async def test_request(self, cryptowatch_config, client, btcusd):
        source = CryptowatchSource(cryptowatch_config, client, today=self.TODAY)
        url, params = source.request(btcusd)
        assert url == "https://api.cryptowat.test/markets/kraken/btcusd/ohlc"
        assert params == {
            "after": "1680220800",  # 2023-03-31T00:00:00Z
            "before": "1711843200",  # 2024-03-31T00:00:00Z
            "periods": "86400",
        }

    async def test_request_spec_exchange_overrides(self, cryptowatch_config, client):
        spec = InstrumentSpec(
            symbol="ethusd", security_class=SecurityClass.CRYPTO, exchange="coinbase-pro"
        )
        source = CryptowatchSource(cryptowatch_config, client, today=self.TODAY)
        url, _ = source.request(spec)
        assert url == "https://api.cryptowat.test/markets/coinbase-pro/ethusd/ohlc"

    async def test_request_max_range(self, client, btcusd, cryptowatch_config):
        config = cryptowatch_config.model_copy(update={"range": DataRange.MAX})
        source = CryptowatchSource(config, client, today=self.TODAY)
        _, params = source.request(btcusd)
        assert params["after"] == "1230768000"  # 2009-01-01T00:00:00Z

    @respx.mock
    async def test_fetch(self, cryptowatch_config, client, btcusd, ohlc_payload):
        route = respx.get("https://api.cryptowat.test/markets/kraken/btcusd/ohlc").mock(
            return_value=httpx.Response(200, content=ohlc_payload)
        )
        source = CryptowatchSource(cryptowatch_config, client, today=self.TODAY)

        raw = await source.fetch(btcusd)
        assert raw == ohlc_payload
        assert route.calls.last.request.url.params["periods"] == "86400"
        assert len(source.adapt(raw)) == 2

    @respx.mock
    async def test_fetch_not_found(self, cryptowatch_config, client, btcusd):
        respx.get("https://api.cryptowat.test/markets/kraken/btcusd/ohlc").mock(
            return_value=httpx.Response(404, json={"error": "Instrument not found"})
        )
        source = CryptowatchSource(cryptowatch_config, client)
        with pytest.raises(FetchError, match="HTTP 404"):
            await source.fetch(btcusd)
