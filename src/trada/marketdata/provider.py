"""Bar source protocols: the vendor-agnostic interface layer.

Architecture
------------
Each vendor is split in two halves:

    HTTP body (bytes) → BarAdapter → list[Bar] → codec → store

- **BarAdapter** is a pure transform of a raw response body into ``Bar``
  records. All vendor quirks (timestamp semantics, field layout, units)
  are absorbed here and nowhere else.

- **BarSource** knows the vendor's URL layout, fetches the raw body
  through the shared ``HttpClient`` and owns the matching adapter.

Adding a new vendor = writing one adapter and one source class.
"""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from trada.core.exceptions import ParseError
from trada.core.models import InstrumentSpec, SecurityClass
from trada.marketdata.models import Bar


@runtime_checkable
class BarAdapter(Protocol):
    """Transforms a raw vendor response body into Bar records.

    Returns bars in payload order (not necessarily sorted).

    Raises:
        ParseError: Malformed JSON, unexpected envelope, or bad field value.
    """

    def adapt(self, raw: bytes) -> list[Bar]: ...


@runtime_checkable
class BarSource(Protocol):
    """Fetches and adapts daily bars for one vendor."""

    name: str
    default_security: SecurityClass

    async def fetch(self, spec: InstrumentSpec) -> bytes:
        """Fetch the raw response body for ``spec``.

        Raises:
            FetchError: Transport failure or non-2xx status.
        """
        ...

    def adapt(self, raw: bytes) -> list[Bar]: ...


# --- Helpers shared by adapters ---


def load_json(raw: bytes) -> Any:
    """Decode a JSON body with floats kept as Decimal."""
    try:
        return json.loads(raw, parse_float=Decimal)
    except (ValueError, UnicodeDecodeError) as e:
        raise ParseError(
            f"malformed JSON payload ({len(raw)} bytes): {e}",
            context={"size": len(raw)},
        ) from e


def to_decimal(field: str, value: Any) -> Decimal:
    """Convert a JSON number or number-as-string to Decimal.

    Raises:
        ParseError: Naming the field and raw value on failure.
    """
    if isinstance(value, bool) or value is None:
        raise ParseError(
            f"invalid {field} {value!r}",
            context={"field": field, "value": repr(value)},
        )
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ParseError(
            f"invalid {field} {value!r}",
            context={"field": field, "value": repr(value)},
        ) from None
    if not result.is_finite():
        raise ParseError(
            f"invalid {field} {value!r}",
            context={"field": field, "value": repr(value)},
        )
    return result


def build_bar(**fields: Any) -> Bar:
    """Construct a Bar, converting validation failures to ParseError."""
    try:
        return Bar(**fields)
    except ValidationError as e:
        day = fields.get("date")
        raise ParseError(
            f"invalid bar for {day}: {e.errors()[0]['msg']}",
            context={"field": "bar", "value": str(day)},
        ) from e
