"""headings, paragraphs, tables, list items, line breaks and text."""

import re
from collections.abc import MutableMapping, Sequence
from typing import Any, Optional

from markdown_it.rules_core import StateCore
from markdown_it.token import Token

from chatmarkdown.formatting.text import do_format_text, sanitize_html
from chatmarkdown.renderer import get_context, get_latex_tokens, rule

TASK_LIST_PATTERN = re.compile(r"^\[([ xX])\] ")
ORDINAL_PATTERN = re.compile(r"^\d+$")
SLUG_PATTERN = re.compile(r"[^\w]+", re.ASCII)


def heading_id(raw: str, prefix: str = "") -> str:
    """slugifies raw heading text into an element id."""
    return prefix + SLUG_PATTERN.sub("-", raw.lower())


def _latex_id_pattern(env: MutableMapping[str, Any]) -> Optional[re.Pattern[str]]:
    tokens = get_latex_tokens(env)
    if not tokens:
        return None
    return re.compile("(" + "|".join(re.escape(t.id) for t in tokens) + ")")


def mark_task_lists(state: StateCore) -> None:
    """
    core rule: flags list items that start with a task marker.

    The marker is stripped from the item text and the checked state is stored
    in the list item's meta for list_item_open_rule.

    Args:
        state: markdown-it core state
    """
    tokens = state.tokens
    for i, token in enumerate(tokens):
        if token.type != "list_item_open":
            continue

        # list_item_open, paragraph_open, inline
        if i + 2 >= len(tokens) or tokens[i + 2].type != "inline":
            continue
        inline = tokens[i + 2]
        children = inline.children or []
        if not children or children[0].type != "text":
            continue

        match = TASK_LIST_PATTERN.match(children[0].content)
        if not match:
            continue

        token.meta["task_checked"] = match.group(1) != " "
        children[0].content = children[0].content[match.end() :]
        inline.content = inline.content[match.end() :]


@rule("heading_open")
def heading_open_rule(
    _self: Any,
    tokens: Sequence[Token],
    idx: int,
    _options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """opens a heading with a slug id and the heading class."""
    token = tokens[idx]
    raw = tokens[idx + 1].content if idx + 1 < len(tokens) else ""
    # placeholders are slugged as their math source
    for latex in get_latex_tokens(env):
        raw = raw.replace(latex.id, latex.tex)
    element_id = heading_id(raw, get_context(env).header_prefix)
    return f'<{token.tag} id="{sanitize_html(element_id)}" class="markdown__heading">'


@rule("paragraph_open")
def paragraph_open_rule(
    self: Any,
    tokens: Sequence[Token],
    idx: int,
    options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """uses the inline paragraph class in single-line mode."""
    token = tokens[idx]
    if not token.hidden and get_context(env).singleline:
        return '<p class="markdown__paragraph-inline">'
    return str(self.renderToken(tokens, idx, options, env))


@rule("table_open")
def table_open_rule(
    _self: Any,
    _tokens: Sequence[Token],
    _idx: int,
    _options: Any,
    _env: MutableMapping[str, Any],
) -> str:
    """wraps tables in a horizontally scrollable container."""
    return '<div class="table-responsive"><table class="markdown__table">\n'


@rule("table_close")
def table_close_rule(
    _self: Any,
    _tokens: Sequence[Token],
    _idx: int,
    _options: Any,
    _env: MutableMapping[str, Any],
) -> str:
    """closes the table container."""
    return "</table></div>\n"


@rule("list_item_open")
def list_item_open_rule(
    _self: Any,
    tokens: Sequence[Token],
    idx: int,
    _options: Any,
    _env: MutableMapping[str, Any],
) -> str:
    """renders task list checkboxes and keeps explicit list numbering."""
    token = tokens[idx]

    if "task_checked" in token.meta:
        checked = 'checked="checked" ' if token.meta["task_checked"] else ""
        return (
            '<li class="list-item--task-list">'
            f'<input type="checkbox" disabled="disabled" {checked}/> '
        )

    # ordered items carry the number as written in info
    if token.info and ORDINAL_PATTERN.match(token.info):
        return f'<li value="{int(token.info)}">'

    return "<li>"


@rule("hardbreak")
def hardbreak_rule(
    _self: Any,
    _tokens: Sequence[Token],
    _idx: int,
    options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """collapses hard breaks to a space in single-line mode."""
    if get_context(env).singleline:
        return " "
    return "<br />\n" if options.get("xhtmlOut") else "<br>\n"


@rule("text")
def text_rule(
    _self: Any,
    tokens: Sequence[Token],
    idx: int,
    _options: Any,
    env: MutableMapping[str, Any],
) -> str:
    """
    formats text leaves (mentions, hashtags, emoji, search terms).

    Math placeholders are passed through untouched so postprocessing can still
    find them; only the text around them is formatted.
    """
    content = tokens[idx].content
    ctx = get_context(env)

    pattern = _latex_id_pattern(env)
    if pattern is None:
        return do_format_text(content, ctx)

    # split keeps ids at odd indices
    parts = pattern.split(content)
    return "".join(
        part if i % 2 else do_format_text(part, ctx) for i, part in enumerate(parts)
    )
