"""collaborators used by the renderer: math, syntax highlighting, text formatting."""

from chatmarkdown.formatting.math import MathRenderError, render_math
from chatmarkdown.formatting.syntax import can_highlight, get_language_name, highlight
from chatmarkdown.formatting.text import (
    do_format_text,
    escape_regex,
    highlight_search_terms,
    replace_tokens,
    sanitize_html,
)

__all__ = [
    "MathRenderError",
    "render_math",
    "can_highlight",
    "get_language_name",
    "highlight",
    "do_format_text",
    "escape_regex",
    "highlight_search_terms",
    "replace_tokens",
    "sanitize_html",
]
