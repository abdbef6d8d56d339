"""Decide how much web material a query deserves.

Keyword rules, evaluated in order, map a query to an intent; each intent
carries a fixed number of sources and a per-source character cap. The
aggregate cap is the same for every intent so the prompt handed to the
generator stays bounded.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class QueryIntent(str, Enum):
    TUTORIAL = "tutorial"
    NEWS = "news"
    GENERIC = "generic"


@dataclass(frozen=True, slots=True)
class ContextBudget:
    intent: QueryIntent
    source_count: int
    per_source_char_cap: int
    total_char_cap: int


TOTAL_CHAR_CAP = 10_000

# (intent, keywords) in priority order; the first rule with a hit wins.
INTENT_RULES: tuple[tuple[QueryIntent, tuple[str, ...]], ...] = (
    (
        QueryIntent.TUTORIAL,
        (
            "recipe",
            "ricetta",
            "how to",
            "how-to",
            "tutorial",
            "come fare",
            "come si fa",
            "come si prepara",
            "step by step",
            "passo passo",
        ),
    ),
    (
        QueryIntent.NEWS,
        (
            "news",
            "notizie",
            "today",
            "oggi",
            "latest",
            "ultime",
            "attualità",
            "breaking",
        ),
    ),
)

# intent -> (source_count, per_source_char_cap)
SOURCE_LIMITS: dict[QueryIntent, tuple[int, int]] = {
    QueryIntent.TUTORIAL: (1, 8000),
    QueryIntent.NEWS: (3, 2000),
    QueryIntent.GENERIC: (2, 3000),
}


def classify_query(query: str) -> QueryIntent:
    lowered = query.lower()
    for intent, keywords in INTENT_RULES:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return QueryIntent.GENERIC


def budget_for(query: str) -> ContextBudget:
    intent = classify_query(query)
    source_count, per_source_cap = SOURCE_LIMITS[intent]
    return ContextBudget(
        intent=intent,
        source_count=source_count,
        per_source_char_cap=per_source_cap,
        total_char_cap=TOTAL_CHAR_CAP,
    )
