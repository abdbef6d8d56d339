from __future__ import annotations

from conftest import redirect_href, results_page

from cortex.tools.result_links import normalize_href, parse_results, results_to_dicts


def test_parse_results_unwraps_redirect_links():
    html = (
        '<a rel="nofollow" class="result__a" '
        'href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fpie%3Fa%3D1%26b%3D2&amp;rut=abc">'
        "Best <b>Apple</b> Pie</a>"
    )
    results = parse_results(html)

    assert len(results) == 1
    assert results[0].url == "https://example.com/pie?a=1&b=2"
    assert results[0].title == "Best Apple Pie"


def test_parse_results_redirect_without_trailing_parameters():
    html = results_page(("/l/?uddg=https%3A%2F%2Fnews.example.org%2Fstory", "Story"))
    assert [r.url for r in parse_results(html)] == ["https://news.example.org/story"]


def test_parse_results_keeps_rank_order_and_drops_duplicates():
    html = results_page(
        (redirect_href("https://a.example/1"), "First"),
        ("https://b.example/2", "Second"),
        (redirect_href("https://a.example/1"), "First again"),
        ("//c.example/3", "Third"),
    )
    results = parse_results(html)
    assert [(r.title, r.url) for r in results] == [
        ("First", "https://a.example/1"),
        ("Second", "https://b.example/2"),
        ("Third", "https://c.example/3"),
    ]


def test_parse_results_ignores_anchors_without_marker_class():
    html = (
        '<a class="result__url" href="https://skip.example">skip</a>'
        '<a href="https://nav.example">nav</a>'
        '<a href="https://keep.example" class="result__a js-result">keep</a>'
    )
    assert [r.url for r in parse_results(html)] == ["https://keep.example"]


def test_parse_results_drops_malformed_entries():
    html = results_page(
        ("javascript:void(0)", "Script"),
        ("/relative/path", "Relative"),
        ("/l/?uddg=not%20a%20url", "Bad redirect"),
        ("https://ok.example/page", "Ok"),
    )
    assert [r.url for r in parse_results(html)] == ["https://ok.example/page"]


def test_parse_results_empty_page():
    assert parse_results("<html><body>No results.</body></html>") == []


def test_normalize_href_accepts_plain_http():
    assert normalize_href("http://plain.example/x?y=1&amp;z=2") == "http://plain.example/x?y=1&z=2"
    assert normalize_href("ftp://files.example/x") is None


def test_results_to_dicts_includes_domain():
    results = parse_results(results_page(("https://docs.example.org/guide", "Guide")))

    assert results_to_dicts(results) == [
        {"title": "Guide", "url": "https://docs.example.org/guide", "domain": "docs.example.org"}
    ]
