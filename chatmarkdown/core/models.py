"""Data models for the math-aware markdown pipeline."""

import re
from dataclasses import dataclass, field
from typing import Optional, Union

from chatmarkdown.formatting.text import build_search_pattern

SearchPattern = Union[str, re.Pattern[str]]


@dataclass(frozen=True)
class MathSpan:
    """Half-open range of a math span in the normalized text."""

    start: int
    stop: int
    display: bool  # True for \[...\], False for \(...\)


@dataclass(frozen=True)
class CodeRange:
    """Half-open range covered by a fenced block, indented block or code span."""

    start: int
    stop: int


@dataclass(frozen=True)
class LatexToken:
    """Placeholder standing in for an extracted math span."""

    id: str
    tex: str  # original source including delimiters
    display: bool


@dataclass(frozen=True)
class RenderOptions:
    """Caller-facing formatting options."""

    search_patterns: Optional[tuple[SearchPattern, ...]] = None
    site_url: Optional[str] = None
    singleline: bool = False
    header_prefix: str = ""
    mention_keys: tuple[str, ...] = ()
    mention_highlight: bool = True
    emoticons: bool = True


@dataclass(frozen=True)
class RenderContext:
    """Per-call context handed to every rendering rule."""

    search_patterns: tuple[re.Pattern[str], ...] = field(default_factory=tuple)
    site_url: Optional[str] = None
    singleline: bool = False
    header_prefix: str = ""
    mention_keys: tuple[str, ...] = ()
    mention_highlight: bool = True
    emoticons: bool = True

    @classmethod
    def from_options(cls, options: Optional[RenderOptions]) -> "RenderContext":
        """
        builds an immutable context from caller options.

        Args:
            options: caller options, or None for defaults

        Returns:
            RenderContext with search terms compiled
        """
        if options is None:
            return cls()

        patterns = tuple(
            build_search_pattern(p) if isinstance(p, str) else p
            for p in options.search_patterns or ()
        )
        site_url = options.site_url.rstrip("/") if options.site_url else None

        return cls(
            search_patterns=patterns,
            site_url=site_url,
            singleline=options.singleline,
            header_prefix=options.header_prefix,
            mention_keys=tuple(options.mention_keys),
            mention_highlight=options.mention_highlight,
            emoticons=options.emoticons,
        )
