from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from cortex.config import settings
from cortex.services.env_safety import sanitize_ssl_keylogfile
from cortex.tools.html_text import extract_text, truncate

# InvalidURL is not an HTTPError subclass.
FETCH_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


@dataclass(slots=True)
class FetchedPage:
    url: str
    status_code: int
    body: bytes


def decode_body(body: bytes) -> str | None:
    """Decode as UTF-8, falling back to Latin-1."""
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        pass
    try:
        return body.decode("latin-1")
    except UnicodeDecodeError:  # pragma: no cover - latin-1 maps every byte
        return None


class PageFetcher:
    """HTTP GET wrapper used for direct links, result pages and the search page.

    ``transport`` lets callers (and tests) swap the network layer, e.g. with
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        *,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent or settings.fetch_user_agent
        self.timeout = timeout if timeout is not None else settings.page_fetch_timeout
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        sanitize_ssl_keylogfile()
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> FetchedPage:
        """Raw GET; transport errors propagate to the caller."""
        async with self._client(timeout if timeout is not None else self.timeout) as client:
            response = await client.get(
                url,
                headers={"User-Agent": user_agent or self.user_agent},
            )
            return FetchedPage(
                url=str(response.url),
                status_code=int(response.status_code),
                body=response.content,
            )

    async def probe(self, url: str, *, timeout: float | None = None) -> bool:
        """True when ``url`` answers at all, whatever the status code."""
        try:
            await self.get(url, timeout=timeout)
        except FETCH_ERRORS as exc:
            logger.warning(f"Connectivity probe to {url} failed: {exc!r}")
            return False
        return True

    async def fetch_text(
        self,
        url: str,
        *,
        max_chars: int = 3000,
        timeout: float | None = None,
    ) -> str | None:
        """Fetch ``url`` and return its extracted text, or None on any failure."""
        try:
            page = await self.get(url, timeout=timeout)
        except FETCH_ERRORS as exc:
            logger.debug(f"Fetch failed for {url}: {exc!r}")
            return None

        if not 200 <= page.status_code < 300:
            logger.debug(f"Fetch rejected for {url}: status {page.status_code}")
            return None

        html = decode_body(page.body)
        if html is None:
            logger.debug(f"Undecodable body from {url}")
            return None

        return truncate(extract_text(html), max_chars)
