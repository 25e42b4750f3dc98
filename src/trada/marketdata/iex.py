"""Equities market data: chart and previous-day endpoints of an IEX-style API.

The two endpoints differ in both URL and response shape:

- ``GET {base}/stock/{symbol}/chart/{range}`` returns a JSON array of bars.
- ``GET {base}/stock/{symbol}/previous`` returns one bar object. It is used
  for the ``1d`` range.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from trada.core.config import IEXConfig
from trada.core.exceptions import ParseError
from trada.core.models import DataRange, InstrumentSpec, SecurityClass
from trada.ingestion.client import HttpClient
from trada.marketdata.models import Bar
from trada.marketdata.provider import build_bar, load_json, to_decimal

_PRICE_FIELDS = ("open", "high", "low", "close", "volume")


class IEXAdapter:
    """Transforms IEX chart/previous JSON into Bar records.

    Parameters
    ----------
    single : bool
        True when the response is the single-object ``previous`` shape.
    """

    def __init__(self, single: bool = False) -> None:
        self._single = single

    def adapt(self, raw: bytes) -> list[Bar]:
        payload = load_json(raw)

        if self._single:
            if not isinstance(payload, dict):
                raise ParseError(
                    f"expected a bar object, got {type(payload).__name__} ({len(raw)} bytes)",
                    context={"size": len(raw)},
                )
            return [self._bar_from_obj(payload)]

        if not isinstance(payload, list):
            raise ParseError(
                f"expected an array of bars, got {type(payload).__name__} ({len(raw)} bytes)",
                context={"size": len(raw)},
            )
        return [self._bar_from_obj(obj) for obj in payload]

    def _bar_from_obj(self, obj: Any) -> Bar:
        if not isinstance(obj, dict):
            raise ParseError(
                f"unexpected bar: {obj!r}",
                context={"field": "bar", "value": repr(obj)},
            )

        raw_date = obj.get("date")
        try:
            day = date.fromisoformat(str(raw_date).strip())
        except ValueError:
            raise ParseError(
                f"invalid date {raw_date!r}",
                context={"field": "date", "value": repr(raw_date)},
            ) from None

        values = {name: to_decimal(name, obj.get(name)) for name in _PRICE_FIELDS}
        return build_bar(date=day, **values)


class IEXSource:
    """Fetches daily equity bars for the configured range."""

    name = "iex"
    default_security = SecurityClass.EQUITY

    def __init__(self, config: IEXConfig, client: HttpClient) -> None:
        self._config = config
        self._client = client
        self._adapter = IEXAdapter(single=self.single)

    @property
    def single(self) -> bool:
        """Whether the single-bar ``previous`` endpoint is used."""
        return self._config.range == DataRange.ONE_DAY

    def request(self, spec: InstrumentSpec) -> tuple[str, dict[str, str]]:
        """URL and query parameters for ``spec``."""
        base = f"{self._config.base_url}/stock/{spec.symbol}"
        if self.single:
            url = f"{base}/previous"
        else:
            url = f"{base}/chart/{self._config.range.value}"
        return url, {"token": self._config.token, "format": "json"}

    async def fetch(self, spec: InstrumentSpec) -> bytes:
        url, params = self.request(spec)
        return await self._client.get_bytes(url, params=params)

    def adapt(self, raw: bytes) -> list[Bar]:
        return self._adapter.adapt(raw)
