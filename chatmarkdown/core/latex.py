"""math extraction before markdown rendering and reinsertion afterwards."""

import logging
import re
import secrets
import string
from bisect import bisect_left
from collections.abc import Iterable

from chatmarkdown.core.models import CodeRange, LatexToken, MathSpan
from chatmarkdown.formatting.math import MathRenderError, render_math
from chatmarkdown.formatting.text import sanitize_html

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(
    r"(?:^|\n) *(`{3,}|~{3,})[ .]*(?:\S+)? *\n[\s\S]*?\s*\1 *(?:\n+|\Z)"
)
INDENTED_CODE_PATTERN = re.compile(r"(?: *\n){2}(?: {4}[^\n]+\n*)+")
CODE_SPAN_PATTERN = re.compile(r"(`+)\s*([\s\S]*?[^`])\s*\1(?!`)")
PARAGRAPH_BREAK_PATTERN = re.compile(r"\n *\n")

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 32

# opening delimiter -> closing delimiter
MATH_DELIMITERS = {"(": ")", "[": "]"}


def normalize_text(text: str) -> str:
    """canonicalizes line endings, tabs and special whitespace."""
    return (
        re.sub(r"\r\n|\r", "\n", text)
        .replace("\t", "    ")
        .replace("\u00a0", " ")
        .replace("\u2424", "\n")
    )


def _find_delimiters(text: str) -> tuple[list[int], dict[str, list[int]]]:
    """
    collects unescaped delimiter positions in one pass.

    A backslash pairs with the character after it, so a delimiter counts only
    when an even run of backslashes precedes it.

    Returns:
        tuple of (opener positions, closer positions keyed by closing char)
    """
    openers: list[int] = []
    closers: dict[str, list[int]] = {")": [], "]": []}
    run = 0
    for i, char in enumerate(text):
        if char != "\\":
            run = 0
            continue
        if run % 2 == 0 and i + 1 < len(text):
            following = text[i + 1]
            if following in MATH_DELIMITERS:
                openers.append(i)
            elif following in closers:
                closers[following].append(i)
        run += 1
    return openers, closers


def find_latex(text: str) -> list[MathSpan]:
    """
    locates inline \\(...\\) and display \\[...\\] spans.

    Each opener is closed by the first unescaped closer of its own family;
    openers inside a span belong to its body and openers that are never
    closed are skipped.

    Args:
        text: normalized text

    Returns:
        spans in left-to-right order, never overlapping each other
    """
    openers, closers = _find_delimiters(text)

    spans = []
    position = 0
    for start in openers:
        if start < position:
            continue

        family = closers[MATH_DELIMITERS[text[start + 1]]]
        index = bisect_left(family, start + 2)
        if index == len(family):
            continue

        stop = family[index] + 2
        spans.append(MathSpan(start=start, stop=stop, display=text[start + 1] == "["))
        position = stop
    return spans


def find_code(text: str) -> list[CodeRange]:
    """
    locates fenced blocks, indented blocks and inline code spans.

    Args:
        text: normalized text

    Returns:
        ranges covered by code, possibly overlapping each other
    """
    ranges = [CodeRange(m.start(), m.end()) for m in FENCE_PATTERN.finditer(text)]
    ranges.extend(
        CodeRange(m.start(), m.end()) for m in INDENTED_CODE_PATTERN.finditer(text)
    )
    # backticks spanning a paragraph break are not treated as a code span
    ranges.extend(
        CodeRange(m.start(), m.end())
        for m in CODE_SPAN_PATTERN.finditer(text)
        if not PARAGRAPH_BREAK_PATTERN.search(m.group(0))
    )
    return ranges


def has_overlap(start: int, stop: int, ranges: Iterable[CodeRange]) -> bool:
    """returns True if [start, stop) intersects any range."""
    return any(not (start >= r.stop or stop <= r.start) for r in ranges)


def make_token_id(text: str, issued: set[str]) -> str:
    """
    generates a placeholder id unique within the call and absent from text.

    Args:
        text: text the id will be spliced into
        issued: ids already handed out, updated in place

    Returns:
        32-character alphanumeric id
    """
    while True:
        token_id = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))
        if token_id not in issued and token_id not in text:
            issued.add(token_id)
            return token_id


def preprocess_latex(text: str) -> tuple[str, list[LatexToken]]:
    """
    replaces math spans outside code with placeholder ids.

    Args:
        text: normalized text

    Returns:
        tuple of (tokenized text, tokens in discovery order)
    """
    spans = find_latex(text)
    if not spans:
        return text, []

    code_ranges = find_code(text)
    logger.debug(
        "found %d math span(s) and %d code range(s)", len(spans), len(code_ranges)
    )

    issued: set[str] = set()
    tokens: list[LatexToken] = []
    parts = [text[: spans[0].start]]

    for i, span in enumerate(spans):
        end = spans[i + 1].start if i < len(spans) - 1 else len(text)

        if has_overlap(span.start, span.stop, code_ranges):
            logger.debug("math at %d-%d is inside code", span.start, span.stop)
            parts.append(text[span.start : end])
            continue

        token_id = make_token_id(text, issued)
        tokens.append(
            LatexToken(
                id=token_id, tex=text[span.start : span.stop], display=span.display
            )
        )
        parts.append(token_id)
        parts.append(text[span.stop : end])

    return "".join(parts), tokens


def _render_token(token: LatexToken) -> str:
    try:
        return render_math(token.tex[2:-2], display_mode=token.display)
    except MathRenderError as e:
        logger.warning("failed to render math %r: %s", token.tex, e)
        return f'<code class="latex-error">{sanitize_html(str(e))}</code>'


def postprocess_latex(html: str, tokens: list[LatexToken]) -> str:
    """
    swaps placeholder ids in rendered HTML for rendered math.

    Ids that ended up inside an <a> or <img> tag (markdown treated them as part
    of a URL, title or alt text) get the escaped original source instead.

    Args:
        html: rendered HTML
        tokens: tokens from preprocess_latex

    Returns:
        HTML with every id replaced
    """
    for token in tokens:
        literal = sanitize_html(token.tex)
        tag_pattern = re.compile(
            r"<(?:a|img)\b[^>]*?" + re.escape(token.id) + r"[^>]*?>"
        )
        html = tag_pattern.sub(
            lambda m, t=token, lit=literal: m.group(0).replace(t.id, lit), html
        )

        if token.id not in html:
            continue

        rendered = _render_token(token)

        if token.display:
            # block spacing comes from the math styling, so one trailing
            # whitespace run and line break after the equation is dropped
            display_pattern = re.compile(
                re.escape(token.id) + r"[ \t]*(?:<br\s*/?>)?\n?"
            )
            html = display_pattern.sub(lambda _m, r=rendered: r, html)
        else:
            html = html.replace(token.id, rendered)

    return html

