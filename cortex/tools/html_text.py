"""Best-effort HTML to plain text conversion.

Pages come from arbitrary third-party sites, so this is a regex transform
over text rather than a DOM walk: malformed markup degrades into noisy text
and never raises.
"""
from __future__ import annotations

import re

_SCRIPT_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
_BR_RE = re.compile(r"<br\s*/?\s*>", re.IGNORECASE)
_PARAGRAPH_END_RE = re.compile(r"</p\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")

# &amp; goes last so "&amp;lt;" decodes to the literal text "&lt;".
_ENTITIES = (
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
)

# Extracted text must never look like markup to downstream consumers.
_ANGLE_BRACKETS = str.maketrans({"<": "‹", ">": "›"})


def _decode_entities(text: str) -> str:
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text.replace("\xa0", " ")


def normalize_whitespace(text: str) -> str:
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"[ \t]*\n[ \t]*", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_text(html: str) -> str:
    """Strip markup from ``html`` and return newline-normalized plain text."""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _BR_RE.sub("\n", text)
    text = _PARAGRAPH_END_RE.sub("\n\n", text)
    text = _TAG_RE.sub(" ", text)
    text = _decode_entities(text).translate(_ANGLE_BRACKETS)
    return normalize_whitespace(text)


def truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]
