from __future__ import annotations

import asyncio
from typing import Callable
from urllib.parse import quote

import httpx
import pytest

from cortex.tools.page_fetcher import PageFetcher

PROBE_HOST = "www.google.com"
SEARCH_HOST = "duckduckgo.com"


class FakeSession:
    """In-memory stand-in for the generator session."""

    def __init__(
        self,
        replies: list[str] | None = None,
        *,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ):
        self.replies = list(replies or [])
        self.error = error
        self.gate = gate
        self.prompts: list[str] = []
        self.temperatures: list[float] = []
        self._busy = False

    def is_busy(self) -> bool:
        return self._busy

    async def respond(self, prompt: str, temperature: float) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        self._busy = True
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            return self.replies.pop(0) if self.replies else "generated reply"
        finally:
            self._busy = False


class FakeAnalyzer:
    def __init__(self, result: str = "", error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[bytes] = []

    async def analyze(self, image: bytes) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.result


class FakeImageGenerator:
    def __init__(self, image: bytes = b"\x89PNG fake", *, available: bool = True, error: Exception | None = None):
        self.image = image
        self._available = available
        self.error = error
        self.concepts: list[str] = []

    @property
    def available(self) -> bool:
        return self._available

    async def generate(self, concept: str) -> bytes:
        self.concepts.append(concept)
        if self.error is not None:
            raise self.error
        return self.image


def results_page(*links: tuple[str, str]) -> str:
    """Minimal search engine results page with one anchor per (href, title)."""
    rows = "\n".join(
        f'<div class="result"><h2><a rel="nofollow" class="result__a" href="{href}">{title}</a></h2></div>'
        for href, title in links
    )
    return f"<html><body>{rows}</body></html>"


def redirect_href(url: str) -> str:
    return f"//duckduckgo.com/l/?uddg={quote(url, safe='')}&amp;rut=abc123"


def router(search_html: str | None = None, pages: dict[str, str] | None = None, *, search_status: int = 200):
    """Mock handler answering the probe, the search page and per-URL pages."""
    pages = {url.rstrip("/"): body for url, body in (pages or {}).items()}
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.host == PROBE_HOST:
            return httpx.Response(200, text="ok")
        if request.url.host == SEARCH_HOST:
            return httpx.Response(search_status, html=search_html or "")
        body = pages.get(str(request.url).rstrip("/"))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, html=body)

    return handler, requested


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def make_fetcher() -> Callable[[Callable[[httpx.Request], httpx.Response]], PageFetcher]:
    """Build a PageFetcher whose requests are answered by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> PageFetcher:
        return PageFetcher(transport=httpx.MockTransport(handler))

    return _make
