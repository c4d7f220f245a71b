"""markdown with math to HTML conversion."""

import logging
from typing import Optional

from markdown_it import MarkdownIt

# rule modules register their callbacks on import
import chatmarkdown.renderer.blocks  # noqa: F401
import chatmarkdown.renderer.code  # noqa: F401
import chatmarkdown.renderer.link  # noqa: F401
from chatmarkdown.core.latex import normalize_text, postprocess_latex, preprocess_latex
from chatmarkdown.core.models import RenderContext, RenderOptions
from chatmarkdown.formatting.text import sanitize_html
from chatmarkdown.renderer import RuleRegistry, registry
from chatmarkdown.renderer.blocks import mark_task_lists
from chatmarkdown.renderer.link import collapse_links

logger = logging.getLogger(__name__)


def build_markdown(rules: RuleRegistry = registry) -> MarkdownIt:
    """
    creates a markdown-it instance with the custom rendering rules.

    Args:
        rules: rule registry to install (defaults to global)

    Returns:
        configured MarkdownIt
    """
    md = MarkdownIt("commonmark")
    md.enable(["table", "strikethrough"])
    # disables raw HTML to prevent injection attacks
    md.disable(["html_inline", "html_block"])
    # link rules decide which destinations are safe
    md.validateLink = lambda _url: True

    md.core.ruler.push("task_lists", mark_task_lists)
    md.core.ruler.push("collapse_links", collapse_links)
    rules.install(md)
    return md


def format_markdown(text: str, options: Optional[RenderOptions] = None) -> str:
    """
    converts a message mixing markdown, math and code into HTML.

    Math outside code is swapped for placeholders before markdown runs and
    rendered afterwards, so neither renderer sees the other's syntax.

    Args:
        text: raw message text
        options: formatting options

    Returns:
        HTML string
    """
    try:
        ctx = RenderContext.from_options(options)
        normalized = normalize_text(text)
        tokenized, latex = preprocess_latex(normalized)

        html = build_markdown().render(tokenized, {"ctx": ctx, "latex": latex})
        return postprocess_latex(html, latex) if latex else html
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("failed to format message")
        return f"<p>{sanitize_html(text)}</p>"
