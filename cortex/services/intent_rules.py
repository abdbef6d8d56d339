"""Keyword rule tables for routing a user message.

Two questions are answered here, each by a pure matcher over an ordered
table so new locales can be added by extending the tuples:

* is this a request to create an image, and what is its subject?
* should a plain text message trigger a web search (``auto`` search mode)?

Phrases match on word boundaries, case-insensitively.
"""
from __future__ import annotations

import re
from functools import lru_cache

from cortex.services.source_policy import QueryIntent, classify_query

IMAGE_REQUEST_KEYWORDS: tuple[str, ...] = (
    # Italian
    "crea un'immagine", "crea una foto", "crea immagine", "crea foto", "crea una immagine",
    "creami un'immagine", "creami una foto", "creami immagine", "creami foto",
    "genera un'immagine", "genera una foto", "genera immagine", "genera foto", "genera una immagine",
    "generami un'immagine", "generami una foto", "generami immagine", "generami foto",
    "fai un'immagine", "fai una foto", "fai immagine", "fai foto", "fai una immagine",
    "fammi un'immagine", "fammi una foto", "fammi immagine", "fammi foto",
    "fare un'immagine", "fare una foto",
    "disegna", "disegnami", "fai un disegno", "fammi un disegno",
    "voglio un'immagine", "voglio una foto", "mostrami un'immagine", "mostrami una foto",
    # English
    "create an image", "create a picture", "create image", "generate an image",
    "generate a picture", "draw", "make a picture", "make an image",
    "make me an image", "make me a picture", "draw me",
)

# Lead-ins stripped to get the image subject; the first one present wins.
IMAGE_SUBJECT_LEAD_INS: tuple[str, ...] = (
    "crea un'immagine di", "crea una foto di", "crea immagine di", "crea foto di",
    "genera un'immagine di", "genera una foto di", "genera immagine di", "genera foto di",
    "disegna", "fai un disegno di", "fai una foto di", "fai un'immagine di",
    "create an image of", "create a picture of", "generate an image of", "generate a picture of",
    "draw me", "draw", "make a picture of", "make an image of",
    "voglio un'immagine di", "voglio una foto di", "mostrami un'immagine di",
)

# Small talk and creative writing never need the web.
SEARCH_EXCLUSIONS: tuple[str, ...] = (
    "come stai", "ciao", "buongiorno", "buonasera", "grazie", "prego",
    "chi sei", "cosa puoi fare", "racconta", "scrivi", "inventa",
    "how are you", "hello", "thanks", "thank you", "who are you",
    "what can you do", "write a", "tell me a story",
)

SEARCH_TEMPORAL_INDICATORS: tuple[str, ...] = (
    "oggi", "ieri", "domani", "questa settimana", "questo mese", "quest'anno",
    "recente", "recenti", "attuale", "attuali", "adesso", "ultime", "ultimo", "ultima",
    "today", "yesterday", "tomorrow", "this week", "this month", "this year",
    "recent", "current", "currently", "right now", "latest",
)

SEARCH_INFORMATION_REQUESTS: tuple[str, ...] = (
    "notizie", "notizia", "news", "novità",
    "prezzo", "costo", "quanto costa",
    "uscito", "uscita", "pubblicato", "annunciato",
    "evento", "eventi", "accaduto", "successo",
    "meteo", "temperatura",
    "price", "cost", "how much", "released", "announced", "event", "weather",
)


@lru_cache(maxsize=None)
def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)", re.IGNORECASE)


def contains_phrase(text: str, phrases: tuple[str, ...]) -> bool:
    return any(_phrase_pattern(phrase).search(text) for phrase in phrases)


def is_image_request(text: str) -> bool:
    return contains_phrase(text, IMAGE_REQUEST_KEYWORDS)


def extract_image_subject(text: str) -> str:
    """Return what should be drawn, falling back to the whole message."""
    for lead_in in IMAGE_SUBJECT_LEAD_INS:
        match = _phrase_pattern(lead_in).search(text)
        if match:
            subject = text[match.end():].strip()
            if subject:
                return subject
    return text.strip()


def should_search_web(text: str) -> bool:
    if "http://" in text.lower() or "https://" in text.lower():
        return False
    # Tutorial queries go to a single exhaustive source and are never excluded.
    if classify_query(text) == QueryIntent.TUTORIAL:
        return True
    if contains_phrase(text, SEARCH_EXCLUSIONS):
        return False
    return (
        contains_phrase(text, SEARCH_TEMPORAL_INDICATORS)
        or contains_phrase(text, SEARCH_INFORMATION_REQUESTS)
    )
