"""tests for link and image rendering."""

import pytest

from chatmarkdown.core.models import RenderContext
from chatmarkdown.formatting.text import build_search_pattern
from chatmarkdown.renderer.link import (
    decode_href,
    is_unsafe_href,
    render_image,
    render_link,
)


@pytest.mark.parametrize(
    "href",
    [
        "javascript:alert(1)",
        "JaVaScRiPt:alert(1)",
        "vbscript:msgbox(1)",
        "data:text/html,hi",
        "java%09script:alert(1)",
        "%6A%61%76%61%73%63%72%69%70%74:alert(1)",
        "javascript&#58;alert(1)",
        "%26%23x6A;avascript:alert(1)",
    ],
)
def test_unsafe_hrefs(href: str) -> None:
    """script and data URLs are unsafe, however they are encoded."""
    assert is_unsafe_href(href)


@pytest.mark.parametrize(
    "href",
    ["http://example.com", "example.com", "mailto:a@b.com", "/path?q=javascript:"],
)
def test_safe_hrefs(href: str) -> None:
    """ordinary URLs are safe."""
    assert not is_unsafe_href(href)


def test_decode_href_rejects_malformed_escape() -> None:
    """malformed percent escapes raise."""
    with pytest.raises(ValueError):
        decode_href("%E0%A4%A")


def test_decode_href_rejects_invalid_utf8() -> None:
    """escapes that are not UTF-8 raise."""
    with pytest.raises(ValueError):
        decode_href("%C3%28")


def test_malformed_href_is_unsafe() -> None:
    """undecodable URLs are treated as unsafe."""
    assert is_unsafe_href("http://x.com/%zz")


def test_render_link_unsafe_returns_text() -> None:
    """unsafe links render their text only."""
    assert render_link("javascript:alert(1)", None, "click", RenderContext()) == "click"


def test_render_link_external() -> None:
    """external links open in a new tab."""
    html = render_link("https://example.com", "Title", "text", RenderContext())
    assert html == (
        '<a class="theme markdown__link" href="https://example.com" '
        'rel="noreferrer" target="_blank" title="Title">text</a>'
    )


def test_render_link_adds_scheme() -> None:
    """scheme-less URLs get http://."""
    html = render_link("example.com", None, "x", RenderContext())
    assert 'href="http://example.com"' in html


def test_render_link_internal_permalink() -> None:
    """permalinks into the site are internal."""
    ctx = RenderContext(site_url="https://chat.example")
    html = render_link("https://chat.example/team/pl/abc123", None, "x", ctx)

    assert 'data-link="/team/pl/abc123"' in html
    assert "target" not in html


def test_render_link_other_site_path_is_external() -> None:
    """site links outside permalinks and channels stay external."""
    ctx = RenderContext(site_url="https://chat.example")
    html = render_link("https://chat.example/team/settings/x", None, "x", ctx)

    assert 'target="_blank"' in html
    assert "data-link" not in html


def test_render_link_search_highlight() -> None:
    """links matching a search pattern get the highlight class."""
    ctx = RenderContext(search_patterns=(build_search_pattern("example"),))
    html = render_link("https://example.com", None, "x", ctx)
    assert "markdown__link search-highlight" in html


def test_render_link_strips_nested_anchors() -> None:
    """anchors inside the link text are removed."""
    text = 'see <a class="mention-link" href="#">@bob</a> <abbr>x</abbr>'
    html = render_link("https://example.com", None, text, RenderContext())
    assert html.endswith(">see @bob <abbr>x</abbr></a>")


def test_render_link_escapes_attributes() -> None:
    """quotes in href and title cannot break out of attributes."""
    html = render_link('https://x.com/"a', 'say "hi"', "x", RenderContext())

    assert 'href="https://x.com/&quot;a"' in html
    assert 'title="say &quot;hi&quot;"' in html


def test_render_image() -> None:
    """images carry their own load handlers."""
    html = render_image("http://x.com/a.png", None, "alt")
    assert html == (
        '<img src="http://x.com/a.png" alt="alt" '
        "onload=\"this.style.height='auto'\" "
        "onerror=\"this.style.height='auto'\" "
        'class="markdown-inline-img">'
    )


def test_render_image_xhtml_and_title() -> None:
    """xhtml mode self-closes the tag and titles are kept."""
    html = render_image("a.png", "T", "alt", xhtml=True)

    assert ' title="T"' in html
    assert html.endswith("/>")


def test_render_image_unsafe_source() -> None:
    """unsafe image sources render the alt text."""
    assert render_image("javascript:alert(1)", None, "<alt>") == "&lt;alt&gt;"
