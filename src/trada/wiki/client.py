"""Wiki parse-API access.

The API answers HTTP 200 for both outcomes, so a body is first decoded as
the error envelope ``{"error": {"code", "info"}}``; only when no error code
is present is it decoded as the data envelope
``{"parse": {"title", "pageid", "text": {"*": html}}}``.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trada.core.config import IndexResource
from trada.core.exceptions import ParseError, WikiAPIError
from trada.ingestion.client import HttpClient


class WikiPage(BaseModel):
    """Rendered section of a wiki page."""

    model_config = ConfigDict(frozen=True)

    title: str
    page_id: int = Field(alias="pageid")
    html: str


class _APIError(BaseModel):
    code: str = ""
    info: str = ""


class _ErrorEnvelope(BaseModel):
    error: _APIError = _APIError()
    servedby: str | None = None


class _Text(BaseModel):
    content: str = Field(alias="*")


class _Parsed(BaseModel):
    title: str
    pageid: int
    text: _Text


class _DataEnvelope(BaseModel):
    parse: _Parsed


def parse_envelope(raw: bytes) -> WikiPage:
    """Decode a parse-API response body.

    Raises:
        WikiAPIError: The body is an error envelope with a non-empty code.
        ParseError: The body is neither shape.
    """
    try:
        payload: Any = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise ParseError(
            f"malformed JSON payload ({len(raw)} bytes): {e}",
            context={"size": len(raw)},
        ) from e

    try:
        err = _ErrorEnvelope.model_validate(payload)
    except ValidationError:
        err = None
    if err is not None and err.error.code:
        raise WikiAPIError(
            f"data error: {err.error.code}, {err.error.info}",
            context={"code": err.error.code, "info": err.error.info},
        )

    try:
        data = _DataEnvelope.model_validate(payload)
    except ValidationError as e:
        raise ParseError(
            f"unexpected wiki envelope ({len(raw)} bytes): {e.errors()[0]['msg']}",
            context={"size": len(raw)},
        ) from e

    return WikiPage(
        title=data.parse.title,
        pageid=data.parse.pageid,
        html=data.parse.text.content,
    )


class WikiClient:
    """Fetches rendered page sections through the shared HttpClient."""

    def __init__(self, api_url: str, client: HttpClient) -> None:
        self._api_url = api_url
        self._client = client

    def params(self, resource: IndexResource) -> dict[str, str]:
        return {
            "action": "parse",
            "format": "json",
            "prop": "text",
            "page": resource.page_name,
            "section": str(resource.section),
        }

    async def fetch(self, resource: IndexResource) -> bytes:
        """Raw response body for ``resource``'s page section."""
        return await self._client.get_bytes(self._api_url, params=self.params(resource))
