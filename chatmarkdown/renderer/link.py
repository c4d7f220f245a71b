"""link and image rendering with URL scheme sanitization."""

import html
import logging
import re
from collections.abc import MutableMapping, Sequence
from typing import Any, Optional
from urllib.parse import unquote

from markdown_it.rules_core import StateCore
from markdown_it.token import Token

from chatmarkdown.core.models import RenderContext
from chatmarkdown.formatting.text import escape_regex, sanitize_html
from chatmarkdown.renderer import get_context, rule

logger = logging.getLogger(__name__)

UNSAFE_SCHEMES = ("javascript:", "vbscript:", "data:")
MALFORMED_ESCAPE_PATTERN = re.compile(r"%(?![0-9a-fA-F]{2})")
NON_SCHEME_CHARS_PATTERN = re.compile(r"[^\w:]", re.ASCII)
SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.\-]*:", re.IGNORECASE)
ANCHOR_TAG_PATTERN = re.compile(r"</?a(?:\s[^>]*)?>", re.IGNORECASE)

IMAGE_LOADED_HANDLER = "this.style.height='auto'"


def decode_href(href: str) -> str:
    """
    percent-decodes then entity-unescapes a URL.

    Args:
        href: URL as it appears in the markdown

    Returns:
        decoded URL

    Raises:
        ValueError: on a malformed percent escape or invalid UTF-8
    """
    if MALFORMED_ESCAPE_PATTERN.search(href):
        raise ValueError(f"malformed percent escape in {href!r}")
    return html.unescape(unquote(href, errors="strict"))


def is_unsafe_href(href: str) -> bool:
    """returns True for script/data URLs, including obfuscated ones."""
    try:
        decoded = decode_href(href)
    except ValueError:
        return True

    cleaned = NON_SCHEME_CHARS_PATTERN.sub("", decoded).lower()
    return cleaned.startswith(UNSAFE_SCHEMES)


def _is_internal_link(href: str, site_url: Optional[str]) -> bool:
    if not site_url:
        return False
    pattern = "^" + escape_regex(site_url) + r"/[^/]+/(pl|channels)/"
    return re.match(pattern, href) is not None


def render_link(
    href: str, title: Optional[str], text: str, ctx: RenderContext
) -> str:
    """
    renders a link, or just its text when the URL is unsafe.

    Links into the site itself (permalinks and channel links) carry a
    data-link attribute and stay in the same tab; everything else opens in a
    new one.

    Args:
        href: link destination
        title: optional link title
        text: rendered link text
        ctx: render context

    Returns:
        HTML for the link
    """
    if is_unsafe_href(href):
        logger.debug("dropping link with unsafe destination: %r", href)
        return text

    out_href = href if SCHEME_PATTERN.match(href) else f"http://{href}"

    class_name = "theme markdown__link"
    if any(pattern.search(href) for pattern in ctx.search_patterns):
        class_name += " search-highlight"

    output = f'<a class="{class_name}" href="{sanitize_html(out_href)}" rel="noreferrer"'

    if _is_internal_link(out_href, ctx.site_url):
        path = out_href[len(ctx.site_url or "") :]
        output += f' data-link="{sanitize_html(path)}"'
    else:
        output += ' target="_blank"'

    if title:
        output += f' title="{sanitize_html(title)}"'

    # mention and hashtag formatting may already have wrapped parts of the text
    # in anchors, which cannot nest inside this one
    return output + ">" + ANCHOR_TAG_PATTERN.sub("", text) + "</a>"


def render_image(
    href: str, title: Optional[str], text: str, xhtml: bool = False
) -> str:
    """
    renders an inline image.

    The element resets its own height once it loads or fails, so the reserved
    space does not outlive the request.

    Args:
        href: image source
        title: optional title
        text: alt text
        xhtml: if True, close the tag XHTML style

    Returns:
        HTML for the image, or the escaped alt text for an unsafe source
    """
    if is_unsafe_href(href):
        logger.debug("dropping image with unsafe source: %r", href)
        return sanitize_html(text)

    output = f'<img src="{sanitize_html(href)}" alt="{sanitize_html(text)}"'
    if title:
        output += f' title="{sanitize_html(title)}"'
    output += (
        f' onload="{IMAGE_LOADED_HANDLER}" onerror="{IMAGE_LOADED_HANDLER}"'
        ' class="markdown-inline-img"'
    )
    return output + ("/>" if xhtml else ">")


def _collapse(children: list[Token]) -> list[Token]:
    """folds link_open ... link_close runs into single link tokens."""
    output: list[Token] = []
    stack: list[tuple[Token, list[Token]]] = []

    for token in children:
        target = stack[-1][1] if stack else output
        if token.type == "link_open":
            stack.append((token, []))
        elif token.type == "link_close" and stack:
            opener, inner = stack.pop()
            link = Token(
                type="link",
                tag="a",
                nesting=0,
                attrs=dict(opener.attrs),
                children=inner,
                markup=opener.markup,
                info=opener.info,
                level=opener.level,
            )
            (stack[-1][1] if stack else output).append(link)
        else:
            target.append(token)

    # unbalanced openers keep their contents as plain inline tokens
    for _opener, inner in stack:
        output.extend(inner)

    return output


def collapse_links(state: StateCore) -> None:
    """core rule: lets links render from href, title and rendered text at once."""
    for token in state.tokens:
        if token.type == "inline" and token.children:
            token.children = _collapse(token.children)


@rule("link")
def link_rule(
    self: Any,
    tokens: Sequence[Token],
    idx: int,
    options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """markdown-it rule for links folded by collapse_links."""
    token = tokens[idx]
    text = self.renderInline(token.children or [], options, env)
    title = token.attrGet("title")
    return render_link(
        str(token.attrGet("href") or ""),
        str(title) if title else None,
        text,
        get_context(env),
    )


@rule("image")
def image_rule(
    self: Any,
    tokens: Sequence[Token],
    idx: int,
    options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """markdown-it rule for images."""
    token = tokens[idx]
    alt = self.renderInlineAsText(token.children or [], options, env)
    title = token.attrGet("title")
    return render_image(
        str(token.attrGet("src") or ""),
        str(title) if title else None,
        alt,
        xhtml=bool(options.get("xhtmlOut")),
    )
