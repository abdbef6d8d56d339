from __future__ import annotations

import pytest

from cortex.services.intent_rules import extract_image_subject, is_image_request, should_search_web


@pytest.mark.parametrize(
    "text",
    [
        "Draw a cat wearing a hat",
        "please create an image of a sunset",
        "Crea un'immagine di un gatto",
        "disegnami una casa",
        "make me a picture of mountains",
    ],
)
def test_is_image_request_detects_requests(text):
    assert is_image_request(text)


@pytest.mark.parametrize(
    "text",
    [
        "how do I withdraw money from the bank",
        "my drawer is stuck",
        "what's the weather today",
        "",
    ],
)
def test_is_image_request_ignores_other_text(text):
    assert not is_image_request(text)


@pytest.mark.parametrize(
    "text,subject",
    [
        ("Create an image of a red Fox in the snow", "a red Fox in the snow"),
        ("Genera una foto di un tramonto", "un tramonto"),
        ("draw me a dragon", "a dragon"),
        ("Draw a lighthouse", "a lighthouse"),
        ("make an image", "make an image"),
    ],
)
def test_extract_image_subject(text, subject):
    assert extract_image_subject(text) == subject


@pytest.mark.parametrize(
    "text,expected",
    [
        ("news about the elections", True),
        ("what happened today in Rome", True),
        ("quanto costa un iPhone", True),
        ("how to make apple pie", True),
        ("ricetta della pizza", True),
        ("ciao, come stai?", False),
        ("tell me a story about dragons", False),
        ("explain recursion", False),
        ("summarize https://example.com/latest-news", False),
    ],
)
def test_should_search_web(text, expected):
    assert should_search_web(text) is expected
