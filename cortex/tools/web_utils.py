from __future__ import annotations

import re
from urllib.parse import urlparse

_URL_RE = re.compile(r"(?:https?://|www\.)[^\s<>\"']+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?)]}\"'"


def is_valid_url(url: str) -> bool:
    """Basic URL validation: http(s) scheme and a host."""
    try:
        result = urlparse(url)
        return all([result.scheme.lower() in ("http", "https"), result.netloc])
    except Exception:
        return False


def first_url(text: str) -> str | None:
    """Return the first web link embedded in free text, if any."""
    for match in _URL_RE.finditer(text):
        candidate = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if candidate.lower().startswith("www."):
            candidate = "https://" + candidate
        if is_valid_url(candidate):
            return candidate
    return None


def extract_domain(url: str) -> str:
    """Extract domain from URL for display."""
    try:
        return urlparse(url).netloc
    except Exception:
        return url
