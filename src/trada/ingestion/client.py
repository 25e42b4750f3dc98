"""Rate-limited async HTTP client shared by all market data fetches."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping

import httpx
from aiolimiter import AsyncLimiter

from trada.core.exceptions import FetchError

logger = logging.getLogger(__name__)

_USER_AGENT = "trada/0.1 (+https://github.com/profioss/trada)"


class HttpClient:
    """Thin wrapper over ``httpx.AsyncClient`` with a token-bucket rate limit.

    One instance is shared read-only by every item of a run. Requests are
    never retried here; a failed fetch fails its item only.

    Use via ``async with HttpClient(timeout=...) as client:``.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        rate_limit: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._limiter = AsyncLimiter(max_rate=rate_limit, time_period=1.0)
        self._client = httpx.AsyncClient(
            headers={"User-Agent": _USER_AGENT},
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    async def get_bytes(
        self,
        url: str,
        params: Mapping[str, str] | None = None,
    ) -> bytes:
        """GET ``url`` and return the raw response body.

        Raises:
            FetchError: On timeout, transport failure, or non-2xx status.
                ``timeout`` bounds the whole request, body included.
        """
        await self._limiter.acquire()
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=params), timeout=self._timeout
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise FetchError(
                f"Request timed out: {url}",
                context={"url": url, "error": str(e)},
            ) from e
        except httpx.RequestError as e:
            raise FetchError(
                f"Request failed: {url}: {e}",
                context={"url": url, "error": str(e)},
            ) from e

        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code} from {_redact(response.url)}",
                context={"url": _redact(response.url), "status_code": response.status_code},
            )

        logger.debug("GET %s - %d bytes", _redact(response.url), len(response.content))
        return response.content


def _redact(url: httpx.URL) -> str:
    """Render a URL without its ``token`` query parameter."""
    if "token" in url.params:
        url = url.copy_set_param("token", "***")
    return str(url)
