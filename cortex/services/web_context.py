"""Turn a user query into a bounded block of web material for the generator.

The builder probes connectivity, asks the search engine for a results page,
fetches the top sources within the budget chosen by the source policy and
formats them into one labeled block. Every failure mode short of an
unreadable results page is reported as an advisory string the UI can show
verbatim; the turn then continues on the generator's base knowledge.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from loguru import logger

from cortex.config import settings
from cortex.services import logger as log_service
from cortex.services.prompt_store import render_prompt
from cortex.services.source_policy import ContextBudget, budget_for
from cortex.tools.page_fetcher import FETCH_ERRORS, PageFetcher, decode_body
from cortex.tools.result_links import SearchResult, parse_results, results_to_dicts


class ContextKind(str, Enum):
    CONTEXT = "context"
    ADVISORY = "advisory"


@dataclass(frozen=True, slots=True)
class WebContext:
    kind: ContextKind
    text: str
    source_count: int = 0

    @property
    def is_advisory(self) -> bool:
        return self.kind == ContextKind.ADVISORY

    @classmethod
    def advisory(cls, text: str) -> WebContext:
        return cls(kind=ContextKind.ADVISORY, text=text)


def search_url(query: str, endpoint: str | None = None) -> str:
    template = endpoint or settings.search_endpoint
    return template.format(query=quote(query, safe=""))


def format_source_block(index: int, result: SearchResult, text: str) -> str:
    header = render_prompt("web.source_block", index=index, title=result.title)
    return f"{header}\n\n{text}"


def format_context(query: str, blocks: list[str]) -> str:
    if len(blocks) == 1:
        instruction = render_prompt("web.instruction_one")
    else:
        instruction = render_prompt("web.instruction_many", count=len(blocks))
    lines = [
        render_prompt("web.header", query=query),
        "",
        instruction,
        "",
        "\n\n".join(blocks),
    ]
    return "\n".join(lines)


class WebContextBuilder:
    """Search, fetch and distill web sources for one query."""

    def __init__(
        self,
        fetcher: PageFetcher | None = None,
        *,
        search_endpoint: str | None = None,
        probe_url: str | None = None,
    ):
        self.fetcher = fetcher or PageFetcher()
        self.search_endpoint = search_endpoint or settings.search_endpoint
        self.probe_url = probe_url or settings.connectivity_probe_url

    async def build(self, query: str) -> WebContext | None:
        started = time.monotonic()

        if not await self.fetcher.probe(self.probe_url, timeout=settings.probe_timeout):
            log_service.log_turn_step("web_search", "offline", {"query": query})
            return WebContext.advisory(render_prompt("web.no_network"))

        budget = budget_for(query)
        logger.info(
            f"Web search for {query!r}: intent={budget.intent.value} "
            f"sources={budget.source_count} per_source={budget.per_source_char_cap}"
        )

        url = search_url(query, self.search_endpoint)
        try:
            page = await self.fetcher.get(
                url,
                timeout=settings.search_timeout,
                user_agent=settings.search_user_agent,
            )
        except FETCH_ERRORS as exc:
            logger.warning(f"Search request failed: {exc!r}")
            return WebContext.advisory(render_prompt("web.search_error", reason=str(exc) or type(exc).__name__))

        if not 200 <= page.status_code < 300:
            logger.warning(f"Search engine answered {page.status_code} for {query!r}")
            return WebContext.advisory(render_prompt("web.engine_rejected", status=page.status_code))

        html = decode_body(page.body)
        if html is None:
            logger.error("Search results page could not be decoded")
            return None

        results = parse_results(html)
        log_service.log_turn_step(
            "web_search",
            "results",
            {"query": query, "count": len(results), "results": results_to_dicts(results[:5])},
        )
        if not results:
            return WebContext.advisory(render_prompt("web.no_results"))

        blocks = await self._collect_sources(results, budget)
        if not blocks:
            return WebContext.advisory(render_prompt("web.no_content", count=len(results)))

        elapsed_ms = int((time.monotonic() - started) * 1000)
        log_service.log_turn_step(
            "web_search",
            "completed",
            {"query": query, "sources": len(blocks), "duration_ms": elapsed_ms},
        )
        return WebContext(
            kind=ContextKind.CONTEXT,
            text=format_context(query, blocks),
            source_count=len(blocks),
        )

    async def _collect_sources(self, results: list[SearchResult], budget: ContextBudget) -> list[str]:
        # Block labels follow result rank, including skipped fetches.
        blocks: list[str] = []
        total_chars = 0
        for index, result in enumerate(results[: budget.source_count], start=1):
            text = await self.fetcher.fetch_text(result.url, max_chars=budget.per_source_char_cap)
            if not text:
                logger.debug(f"No content from {result.url}")
                continue

            block = format_source_block(index, result, text)
            if total_chars + len(block) > budget.total_char_cap:
                logger.info(f"Character budget reached, skipping {result.url}")
                break
            blocks.append(block)
            total_chars += len(block)
        return blocks
