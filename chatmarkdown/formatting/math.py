"""math typesetting via latex2mathml."""

from latex2mathml.converter import convert


class MathRenderError(ValueError):
    """raised when a TeX expression cannot be converted."""


def render_math(tex: str, display_mode: bool = False) -> str:
    """
    renders a TeX expression (without delimiters) to HTML.

    Args:
        tex: TeX source
        display_mode: if True, render as a block-level equation

    Returns:
        MathML wrapped in a span carrying the mode class

    Raises:
        MathRenderError: if the expression cannot be converted
    """
    try:
        mathml = convert(tex, display="block" if display_mode else "inline")
    except Exception as e:  # latex2mathml has no common error base class
        raise MathRenderError(str(e) or e.__class__.__name__) from e

    mode = "display" if display_mode else "inline"
    return f'<span class="latex latex--{mode}">{mathml}</span>'
