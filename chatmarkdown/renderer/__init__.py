"""rule registry for markdown-it rendering callbacks."""

from collections.abc import MutableMapping, Sequence
from typing import Any, Callable, TypeVar

from markdown_it import MarkdownIt
from markdown_it.token import Token

from chatmarkdown.core.models import LatexToken, RenderContext

# (renderer, tokens, idx, options, env) -> html
RenderRule = Callable[[Any, Sequence[Token], int, Any, MutableMapping[str, Any]], str]

R = TypeVar("R", bound=RenderRule)


class RuleRegistry:
    """registry mapping markdown-it token types to rendering callbacks."""

    def __init__(self) -> None:
        self._rules: dict[str, RenderRule] = {}

    def register(self, names: Sequence[str], function: RenderRule) -> None:
        """registers a callback for one or more token types."""
        for name in names:
            self._rules[name] = function

    def get(self, name: str) -> RenderRule:
        """returns the callback registered for a token type."""
        return self._rules[name]

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def install(self, md: MarkdownIt) -> None:
        """
        installs every registered callback on a markdown-it instance.

        Callbacks are bound to the instance's renderer, which is passed as the
        first argument so they can fall back on renderToken or renderInline.

        Args:
            md: markdown-it instance to configure
        """
        for name, function in self._rules.items():
            md.add_render_rule(name, function)


# global registry
registry = RuleRegistry()


def rule(
    *names: str, target_registry: RuleRegistry = registry
) -> Callable[[R], R]:
    """
    decorator to register a rendering callback.

    Args:
        names: markdown-it token types handled by the callback
        target_registry: registry to register with (defaults to global)

    Returns:
        decorator function
    """

    def decorator(function: R) -> R:
        target_registry.register(names, function)
        return function

    return decorator


def get_context(env: MutableMapping[str, Any]) -> RenderContext:
    """returns the render context carried in the markdown-it env."""
    ctx = env.get("ctx")
    return ctx if isinstance(ctx, RenderContext) else RenderContext()


def get_latex_tokens(env: MutableMapping[str, Any]) -> Sequence[LatexToken]:
    """returns the math placeholders the rendered text may contain."""
    return env.get("latex") or ()
