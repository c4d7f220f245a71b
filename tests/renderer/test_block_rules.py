"""tests for block level rendering rules."""

import re

from markdown_it import MarkdownIt

from chatmarkdown.core.markdown import build_markdown
from chatmarkdown.core.models import LatexToken, RenderContext
from chatmarkdown.renderer.blocks import heading_id, mark_task_lists


def test_heading_id() -> None:
    """heading text is lowercased and runs of non-word chars become dashes."""
    assert heading_id("Hello World") == "hello-world"
    assert heading_id("What's new?") == "what-s-new-"
    assert heading_id("Intro", "doc-") == "doc-intro"


def test_mark_task_lists_sets_meta() -> None:
    """task markers are stripped and recorded on the list item."""
    md = MarkdownIt("commonmark")
    md.core.ruler.push("task_lists", mark_task_lists)

    tokens = md.parse("- [x] done\n- [ ] todo\n- plain\n")
    items = [t for t in tokens if t.type == "list_item_open"]
    inlines = [t for t in tokens if t.type == "inline"]

    assert items[0].meta["task_checked"] is True
    assert items[1].meta["task_checked"] is False
    assert "task_checked" not in items[2].meta
    assert [t.content for t in inlines] == ["done", "todo", "plain"]


def test_mark_task_lists_ignores_paragraphs() -> None:
    """brackets outside list items are left alone."""
    md = MarkdownIt("commonmark")
    md.core.ruler.push("task_lists", mark_task_lists)

    assert md.render("[x] not a task") == "<p>[x] not a task</p>\n"


def test_checked_task_item() -> None:
    """checked items render a checked, disabled checkbox."""
    html = build_markdown().render("- [x] done\n", {"ctx": RenderContext()})

    assert (
        '<li class="list-item--task-list">'
        '<input type="checkbox" disabled="disabled" checked="checked" /> done</li>'
    ) in html


def test_hard_break_without_xhtml() -> None:
    """hard breaks follow the renderer's xhtml setting."""
    md = build_markdown()
    md.options["xhtmlOut"] = False

    assert md.render("a  \nb", {"ctx": RenderContext()}) == "<p>a<br>\nb</p>\n"


def test_singleline_paragraph() -> None:
    """single-line mode uses the inline paragraph class."""
    html = build_markdown().render("a  \nb", {"ctx": RenderContext(singleline=True)})

    assert html == '<p class="markdown__paragraph-inline">a b</p>\n'


def test_ordered_list_start() -> None:
    """ordered items keep the numbers markdown assigns them."""
    html = build_markdown().render("3. a\n4. b\n", {"ctx": RenderContext()})

    assert '<ol start="3">' in html
    assert '<li value="3">a</li>' in html
    assert '<li value="4">b</li>' in html


def test_text_rule_passes_math_placeholders_through() -> None:
    """placeholders in text leaves are never formatted."""
    token_id = "Ab1" * 10 + "Zz"
    ctx = RenderContext(search_patterns=(re.compile("[A-Za-z]"),))
    env = {
        "ctx": ctx,
        "latex": [LatexToken(id=token_id, tex="\\(x\\)", display=False)],
    }

    html = build_markdown().render(f"1 {token_id} 2", env)

    assert html == f"<p>1 {token_id} 2</p>\n"


def test_heading_id_uses_math_source() -> None:
    """headings slug placeholders as the math they stand for."""
    token_id = "Q" * 32
    env = {
        "ctx": RenderContext(),
        "latex": [LatexToken(id=token_id, tex="\\(a+b\\)", display=False)],
    }

    html = build_markdown().render(f"## Sum {token_id}", env)

    assert html.startswith('<h2 id="sum-a-b-" class="markdown__heading">')
    assert token_id.lower() not in html
