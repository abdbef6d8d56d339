from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import unquote

from loguru import logger

from cortex.tools.html_text import extract_text
from cortex.tools.web_utils import extract_domain, is_valid_url

RESULT_LINK_CLASS = "result__a"
REDIRECT_PARAM = "uddg="

_ANCHOR_RE = re.compile(r"<a\b([^>]*)>(.*?)</a\s*>", re.IGNORECASE | re.DOTALL)
_CLASS_ATTR_RE = re.compile(r"""\bclass\s*=\s*["']([^"']*)["']""", re.IGNORECASE)
_HREF_ATTR_RE = re.compile(r"""\bhref\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One organic result from a search engine results page."""
    title: str
    url: str


def _has_result_class(attrs: str) -> bool:
    match = _CLASS_ATTR_RE.search(attrs)
    if not match:
        return False
    return RESULT_LINK_CLASS in match.group(1).split()


def normalize_href(href: str) -> str | None:
    """Turn a result anchor href into the destination URL.

    Redirect-wrapped links carry the real target percent-encoded in the
    ``uddg`` parameter; that target wins over the redirect shell.
    """
    href = href.strip().replace("&amp;", "&")
    if href.startswith("//"):
        href = "https:" + href

    marker = href.find(REDIRECT_PARAM)
    if marker != -1:
        start = marker + len(REDIRECT_PARAM)
        end = href.find("&", start)
        wrapped = href[start:] if end == -1 else href[start:end]
        candidate = unquote(wrapped).strip()
    else:
        candidate = href

    if is_valid_url(candidate):
        return candidate
    return None


def parse_results(html: str) -> list[SearchResult]:
    """Parse a results page into ordered, de-duplicated (title, url) pairs."""
    results: list[SearchResult] = []
    seen: set[str] = set()

    for attrs, inner_html in _ANCHOR_RE.findall(html):
        if not _has_result_class(attrs):
            continue
        href_match = _HREF_ATTR_RE.search(attrs)
        if not href_match:
            continue

        url = normalize_href(href_match.group(1))
        if url is None:
            logger.debug(f"Dropping result with unusable href: {href_match.group(1)[:120]}")
            continue
        if url in seen:
            continue
        seen.add(url)
        results.append(SearchResult(title=extract_text(inner_html), url=url))

    return results


def results_to_dicts(results: list[SearchResult]) -> list[dict]:
    """Convert SearchResult list to list of dicts for logging and display."""
    return [{"title": r.title, "url": r.url, "domain": extract_domain(r.url)} for r in results]
