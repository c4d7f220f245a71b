"""syntax highlighting via pygments."""

from typing import Optional

from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from chatmarkdown.formatting.text import sanitize_html

# display names that read better than the lexer's own
LANGUAGE_NAMES = {
    "cpp": "C++",
    "cs": "C#",
    "csharp": "C#",
    "js": "JavaScript",
    "ts": "TypeScript",
    "sh": "Bash",
    "xml": "XML",
    "html": "HTML",
}


def _get_lexer(language: str) -> Optional[Lexer]:
    if not language:
        return None
    try:
        return get_lexer_by_name(language)
    except ClassNotFound:
        return None


def can_highlight(language: str) -> bool:
    """returns True if the language has a lexer."""
    return _get_lexer(language) is not None


def get_language_name(language: str) -> str:
    """returns a human-readable name for the language."""
    key = language.lower()
    if key in LANGUAGE_NAMES:
        return LANGUAGE_NAMES[key]
    lexer = _get_lexer(key)
    return lexer.name if lexer is not None else language


def highlight(language: str, code: str) -> str:
    """
    highlights code for the given language.

    Args:
        language: language name, may be empty
        code: raw code

    Returns:
        HTML with token spans, or escaped code when the language is unknown
    """
    lexer = _get_lexer(language)
    if lexer is None:
        return sanitize_html(code)

    formatter = HtmlFormatter(nowrap=True, classprefix="hljs-")
    return str(pygments_highlight(code, lexer, formatter))
