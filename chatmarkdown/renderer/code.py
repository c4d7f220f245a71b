"""code block and inline code rendering."""

import logging
from collections.abc import MutableMapping, Sequence
from typing import Any

from markdown_it.common.utils import unescapeAll
from markdown_it.token import Token

from chatmarkdown.core.models import RenderContext
from chatmarkdown.formatting.math import MathRenderError, render_math
from chatmarkdown.formatting.syntax import can_highlight, get_language_name, highlight
from chatmarkdown.formatting.text import (
    TokenMap,
    highlight_search_terms,
    replace_tokens,
    sanitize_html,
)
from chatmarkdown.renderer import get_context, rule

logger = logging.getLogger(__name__)

TEX_LANGUAGES = ("tex", "latex")


def _search_highlight(text: str, ctx: RenderContext) -> tuple[str, bool]:
    """highlights search terms in sanitized text; reports whether any matched."""
    tokens: TokenMap = {}
    output = highlight_search_terms(text, tokens, ctx.search_patterns)
    if not tokens:
        return output, False
    return replace_tokens(output, tokens), True


def render_code(code: str, language: str, ctx: RenderContext) -> str:
    """
    renders a code block.

    TeX blocks are typeset as a display equation when they parse. Other blocks
    are syntax highlighted; with search patterns set, a second copy holding
    only the search highlights is stacked under the highlighted one.

    Args:
        code: raw code
        language: language tag from the fence, may be empty
        ctx: render context

    Returns:
        HTML for the block
    """
    used_language = (language or "").lower()

    if used_language in TEX_LANGUAGES:
        try:
            equation = render_math(code, display_mode=True)
            return f'<div class="post-body--code tex">{equation}</div>\n'
        except MathRenderError as e:
            logger.debug("tex block rendered as code: %s", e)

    # highlighting html as xml keeps it from being passed through unescaped
    if used_language == "html":
        used_language = "xml"

    class_name = "post-code"
    if not used_language:
        class_name += " post-code--wrap"

    header = ""
    if can_highlight(used_language):
        header = (
            '<span class="post-code__language">'
            f"{sanitize_html(get_language_name(language))}</span>"
        )

    content = highlight(used_language, code)

    searched_content = ""
    if ctx.search_patterns:
        searched, matched = _search_highlight(sanitize_html(code), ctx)
        if matched:
            searched_content = (
                f'<div class="post-code__search-highlighting">{searched}</div>'
            )

    return (
        f'<div class="{class_name}">{header}'
        f'<code class="hljs">{searched_content}{content}</code></div>\n'
    )


def render_codespan(text: str, ctx: RenderContext) -> str:
    """renders inline code, highlighting search terms if configured."""
    output = sanitize_html(text)
    if ctx.search_patterns:
        output, _ = _search_highlight(output, ctx)
    return f'<span class="codespan__pre-wrap"><code>{output}</code></span>'


@rule("fence", "code_block")
def code_block_rule(
    _self: Any,
    tokens: Sequence[Token],
    idx: int,
    _options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """markdown-it rule for fenced and indented code blocks."""
    token = tokens[idx]
    info = unescapeAll(token.info).strip() if token.info else ""
    language = info.split(maxsplit=1)[0] if info else ""
    return render_code(token.content.rstrip("\n"), language, get_context(env))


@rule("code_inline")
def code_inline_rule(
    _self: Any,
    tokens: Sequence[Token],
    idx: int,
    _options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """markdown-it rule for inline code spans."""
    return render_codespan(tokens[idx].content, get_context(env))
