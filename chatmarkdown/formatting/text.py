"""text formatting: escaping, mentions, hashtags, emoji and search highlighting."""

import html
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

if TYPE_CHECKING:
    from chatmarkdown.core.models import RenderContext

EMAIL_PATTERN = re.compile(r"(?<![\w.+-])([\w.+-]+@[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)+)")
MENTION_PATTERN = re.compile(r"\B@([a-z0-9.\-_]+)", re.IGNORECASE)
HASHTAG_PATTERN = re.compile(r"(^|\W)(#[^\W\d_][\w.\-]*[\w])\b")
EMOTICON_PATTERN = re.compile(r"(^|\s):([a-z0-9_+\-]+):(?=$|\s|[.,!?])")
ALIAS_PATTERN = re.compile(r"\$MM_[A-Z]+\d+\$")

EMOTICONS = {
    "smile": "\U0001f604",
    "smiley": "\U0001f603",
    "grin": "\U0001f601",
    "wink": "\U0001f609",
    "heart": "❤️",
    "thumbsup": "\U0001f44d",
    "+1": "\U0001f44d",
    "thumbsdown": "\U0001f44e",
    "-1": "\U0001f44e",
    "tada": "\U0001f389",
    "rocket": "\U0001f680",
    "fire": "\U0001f525",
    "cry": "\U0001f622",
    "laughing": "\U0001f606",
    "thinking": "\U0001f914",
    "white_check_mark": "✅",
    "x": "❌",
    "warning": "⚠️",
}


@dataclass
class TextToken:
    """replacement for an alias inserted into text during formatting."""

    value: str
    original_text: str


TokenMap = dict[str, TextToken]


def sanitize_html(text: str) -> str:
    """escapes characters with special meaning in HTML."""
    # numeric apostrophe entity keeps '#x27' from reading as a hashtag
    return html.escape(text, quote=False).replace('"', "&quot;").replace("'", "&#39;")


def escape_regex(text: str) -> str:
    """escapes text for literal use inside a regular expression."""
    return re.escape(text)


def build_search_pattern(term: str) -> re.Pattern[str]:
    """
    builds a case-insensitive matcher for a search term.

    A trailing '*' turns the term into a prefix match. The pattern exposes a
    prefix group and a term group so the character before the term survives
    substitution.

    Args:
        term: search term as typed by the user

    Returns:
        compiled pattern
    """
    if term.endswith("*"):
        body = escape_regex(term[:-1]) + r"\w*"
    else:
        body = escape_regex(term) + r"\b"
    return re.compile(r"(\W|^)(" + body + r")", re.IGNORECASE)


def _alias(kind: str, tokens: TokenMap) -> str:
    return f"$MM_{kind}{len(tokens)}$"


def _sub_outside_aliases(
    pattern: re.Pattern[str],
    replace: Callable[[re.Match[str]], str],
    text: str,
) -> str:
    """substitutes pattern matches, leaving matches that touch an alias alone."""
    protected = [m.span() for m in ALIAS_PATTERN.finditer(text)]
    if not protected:
        return pattern.sub(replace, text)

    def guarded(match: re.Match[str]) -> str:
        start, stop = match.span()
        if any(start < p_stop and stop > p_start for p_start, p_stop in protected):
            return match.group(0)
        return replace(match)

    return pattern.sub(guarded, text)


def highlight_search_terms(
    text: str, tokens: TokenMap, patterns: Iterable[re.Pattern[str]]
) -> str:
    """
    replaces search term matches with aliases for highlighted spans.

    Existing tokens whose original text matches a pattern are wrapped too, so
    a mention or hashtag that matches the search is still highlighted.

    Args:
        text: sanitized text, possibly containing aliases
        tokens: token map, updated in place
        patterns: search patterns

    Returns:
        text with search matches swapped for aliases
    """
    output = text

    for pattern in patterns:
        new_tokens: TokenMap = {}
        for alias, token in tokens.items():
            if pattern.search(token.original_text):
                new_alias = f"$MM_SEARCHTERM{len(tokens) + len(new_tokens)}$"
                new_tokens[new_alias] = TextToken(
                    value=f'<span class="search-highlight">{alias}</span>',
                    original_text=token.original_text,
                )
                output = output.replace(alias, new_alias, 1)
        tokens.update(new_tokens)

        def replace_term(match: re.Match[str], pattern: re.Pattern[str] = pattern) -> str:
            if pattern.groups >= 2:
                prefix, term = match.group(1) or "", match.group(2)
            else:
                prefix, term = "", match.group(0)
            if not term:
                return match.group(0)
            alias = _alias("SEARCHTERM", tokens)
            tokens[alias] = TextToken(
                value=f'<span class="search-highlight">{term}</span>',
                original_text=term,
            )
            return prefix + alias

        output = _sub_outside_aliases(pattern, replace_term, output)

    return output


def replace_tokens(text: str, tokens: TokenMap) -> str:
    """replaces aliases with their values, newest first."""
    output = text
    for alias in reversed(list(tokens)):
        output = output.replace(alias, tokens[alias].value)
    return output


def _autolink_emails(text: str, tokens: TokenMap) -> str:
    def replace(match: re.Match[str]) -> str:
        email = match.group(1)
        alias = _alias("EMAIL", tokens)
        tokens[alias] = TextToken(
            value=f'<a class="theme" href="mailto:{email}">{email}</a>',
            original_text=email,
        )
        return alias

    return EMAIL_PATTERN.sub(replace, text)


def _autolink_mentions(text: str, tokens: TokenMap) -> str:
    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        # usernames never end in punctuation, which belongs to the sentence
        stripped = name.rstrip(".-_")
        suffix = name[len(stripped) :]
        if not stripped:
            return match.group(0)
        alias = _alias("ATMENTION", tokens)
        tokens[alias] = TextToken(
            value=(
                f'<a class="mention-link" href="#" data-mention="{stripped.lower()}">'
                f"@{stripped}</a>"
            ),
            original_text=f"@{stripped}",
        )
        return alias + suffix

    return MENTION_PATTERN.sub(replace, text)


def _autolink_hashtags(text: str, tokens: TokenMap) -> str:
    def replace(match: re.Match[str]) -> str:
        prefix, hashtag = match.group(1), match.group(2)
        if len(hashtag) < 4:
            return match.group(0)
        alias = _alias("HASHTAG", tokens)
        tokens[alias] = TextToken(
            value=(
                f'<a class="mention-link" href="#" data-hashtag="{hashtag}">'
                f"{hashtag}</a>"
            ),
            original_text=hashtag,
        )
        return prefix + alias

    return HASHTAG_PATTERN.sub(replace, text)


def _handle_emoticons(text: str, tokens: TokenMap) -> str:
    def replace(match: re.Match[str]) -> str:
        prefix, name = match.group(1), match.group(2)
        emoji = EMOTICONS.get(name)
        if emoji is None:
            return match.group(0)
        alias = _alias("EMOTICON", tokens)
        tokens[alias] = TextToken(
            value=f'<span class="emoticon" title=":{name}:">{emoji}</span>',
            original_text=f":{name}:",
        )
        return prefix + alias

    return EMOTICON_PATTERN.sub(replace, text)


def _highlight_current_mentions(
    text: str, tokens: TokenMap, mention_keys: Iterable[str]
) -> str:
    keys = [k for k in mention_keys if k]
    if not keys:
        return text

    output = text
    lowered = {k.lower() for k in keys}

    # mentions that were already turned into links
    new_tokens: TokenMap = {}
    for alias, token in tokens.items():
        if token.original_text.lower() in lowered:
            new_alias = f"$MM_SELFMENTION{len(tokens) + len(new_tokens)}$"
            new_tokens[new_alias] = TextToken(
                value=f'<span class="mention--highlight">{alias}</span>',
                original_text=token.original_text,
            )
            output = output.replace(alias, new_alias, 1)
    tokens.update(new_tokens)

    for key in keys:
        pattern = re.compile(
            r"(^|\W)(" + escape_regex(sanitize_html(key)) + r")\b", re.IGNORECASE
        )

        def replace(match: re.Match[str]) -> str:
            alias = _alias("SELFMENTION", tokens)
            tokens[alias] = TextToken(
                value=f'<span class="mention--highlight">{match.group(2)}</span>',
                original_text=match.group(2),
            )
            return match.group(1) + alias

        output = _sub_outside_aliases(pattern, replace, output)

    return output


def do_format_text(text: str, ctx: "RenderContext") -> str:
    """
    formats a plain text leaf for display.

    Args:
        text: raw, unescaped text
        ctx: render context

    Returns:
        HTML fragment
    """
    tokens: TokenMap = {}

    output = sanitize_html(text)
    output = _autolink_emails(output, tokens)
    output = _autolink_mentions(output, tokens)
    output = _autolink_hashtags(output, tokens)

    if ctx.emoticons:
        output = _handle_emoticons(output, tokens)

    if ctx.search_patterns:
        output = highlight_search_terms(output, tokens, ctx.search_patterns)

    if ctx.mention_highlight:
        output = _highlight_current_mentions(output, tokens, ctx.mention_keys)

    return replace_tokens(output, tokens)
