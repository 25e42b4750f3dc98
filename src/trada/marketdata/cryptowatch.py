"""Crypto exchange market data: OHLC endpoint of a Cryptowatch-style API.

Request::

    GET {base}/markets/{exchange}/{symbol}/ohlc?after=..&before=..&periods=86400

Response::

    {"result": {"86400": [[ts, open, high, low, close, volBase, volQuote], ...]},
     "allowance": {...}}
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from trada.core.config import CryptowatchConfig
from trada.core.exceptions import ParseError
from trada.core.models import InstrumentSpec, SecurityClass, range_start
from trada.ingestion.client import HttpClient
from trada.marketdata.models import Bar
from trada.marketdata.provider import build_bar, load_json, to_decimal

DAILY_PERIOD = "86400"

# Tuple layout of one OHLC row
_FIELDS = ("timestamp", "open", "high", "low", "close", "volume", "volume_quote")


class CryptowatchAdapter:
    """Transforms a raw OHLC response body into Bar records.

    The API stamps each bar with the time its period *closes*. A daily bar
    for 2019-10-29 therefore carries 2019-10-30T00:00:00Z, so every date is
    shifted back by one day. Only the base-asset volume (index 5) is kept.
    """

    def adapt(self, raw: bytes) -> list[Bar]:
        """Parse the response body into bars, in payload order."""
        payload = load_json(raw)
        if not isinstance(payload, dict) or not isinstance(payload.get("result"), dict):
            raise ParseError(
                f"expected object with 'result' map ({len(raw)} bytes)",
                context={"size": len(raw)},
            )

        result: dict[str, Any] = payload["result"]
        if len(result) != 1:
            raise ParseError(
                f"expected map with 1 key equal to {DAILY_PERIOD}, got {len(result)} key(s)",
                context={"size": len(raw), "keys": sorted(result)},
            )
        rows = result.get(DAILY_PERIOD)
        if rows is None:
            raise ParseError(
                f"expected map with 1 key equal to {DAILY_PERIOD}, the key not found",
                context={"size": len(raw), "keys": sorted(result)},
            )
        if not isinstance(rows, list):
            raise ParseError(
                f"expected list of bars under {DAILY_PERIOD}, got {type(rows).__name__}",
                context={"size": len(raw)},
            )

        return [self._bar_from_row(row) for row in rows]

    def _bar_from_row(self, row: Any) -> Bar:
        if not isinstance(row, list) or len(row) < len(_FIELDS):
            raise ParseError(
                f"unexpected bar: wanted {len(_FIELDS)} elements; data: {row!r}",
                context={"field": "bar", "value": repr(row)},
            )

        values = {name: to_decimal(name, row[i]) for i, name in enumerate(_FIELDS[:6])}
        ts = values.pop("timestamp")
        if ts != ts.to_integral_value():
            raise ParseError(
                f"invalid timestamp {row[0]!r}",
                context={"field": "timestamp", "value": repr(row[0])},
            )
        try:
            closed_at = datetime.fromtimestamp(int(ts), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ParseError(
                f"invalid timestamp {row[0]!r}",
                context={"field": "timestamp", "value": repr(row[0])},
            ) from None

        return build_bar(date=closed_at.date() - timedelta(days=1), **values)


class CryptowatchSource:
    """Fetches daily OHLC bars for one exchange."""

    name = "cryptowatch"
    default_security = SecurityClass.CRYPTO

    def __init__(
        self,
        config: CryptowatchConfig,
        client: HttpClient,
        adapter: CryptowatchAdapter | None = None,
        today: date | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._adapter = adapter or CryptowatchAdapter()
        self._today = today

    def request(self, spec: InstrumentSpec) -> tuple[str, dict[str, str]]:
        """URL and query parameters for ``spec``."""
        today = self._today or datetime.now(timezone.utc).date()
        after = range_start(self._config.range, today)
        exchange = spec.exchange or self._config.exchange
        url = f"{self._config.base_url}/markets/{exchange}/{spec.symbol}/ohlc"
        params = {
            "after": str(_unix(after)),
            "before": str(_unix(today)),
            "periods": DAILY_PERIOD,
        }
        return url, params

    async def fetch(self, spec: InstrumentSpec) -> bytes:
        url, params = self.request(spec)
        return await self._client.get_bytes(url, params=params)

    def adapt(self, raw: bytes) -> list[Bar]:
        return self._adapter.adapt(raw)


def _unix(day: date) -> int:
    """Unix seconds of ``day`` at 00:00 UTC."""
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())
