"""
Decorative token coloring with Pygments

Tokenizes a sample independently of the analysis provider and reports
each token's position, length and Pygments short CSS class. The colors
are purely cosmetic: they say nothing about whether the sample is valid.

Token classes are emitted with a ``tok-`` prefix so they never collide
with the classification classes (``cls-``). style_defs() produces the
matching CSS for the page.
"""

from typing import Any, List

from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, TextLexer
from pygments.token import STANDARD_TYPES
from pygments.util import ClassNotFound

from ..models.spans import ClassifiedSpan


CLASS_PREFIX = 'tok-'


class DecorativeHighlighter:
    """
    Pygments-backed token colorer for one language

    The lexer is looked up once per instance; the sample compiler keeps one
    highlighter per fence tag so the lookup stays off the per-sample path.
    """

    def __init__(self, language: str) -> None:
        """
        Args:
            language: Fence tag or Pygments alias (e.g., "py", "python")
        """
        self.language = language
        lexer: Lexer
        try:
            lexer = get_lexer_by_name(language, stripnl=False, ensurenl=False)
        except ClassNotFound:
            lexer = TextLexer(stripnl=False, ensurenl=False)
        self.lexer = lexer

    def tokens_get(self, source: str) -> List[ClassifiedSpan]:
        """
        Color every non-whitespace token of the source

        Returns:
            Spans in ascending position order; category is the Pygments
            short class name (e.g., "k" for Keyword, "s2" for String.Double)
        """
        spans: List[ClassifiedSpan] = []
        for index, token_type, value in self.lexer.get_tokens_unprocessed(source):
            if not value or value.isspace():
                continue
            css_class = self.cssClass_get(token_type)
            if not css_class:
                continue
            # Lexers may report tokens past the text when they pad it
            length = min(len(value), len(source) - index)
            if length > 0:
                spans.append(ClassifiedSpan(index, length, css_class))
        return spans

    def cssClass_get(self, token_type: Any) -> str:
        """Short class of a token type, inherited from the nearest styled parent"""
        while token_type not in STANDARD_TYPES and token_type.parent is not None:
            token_type = token_type.parent
        css_class = STANDARD_TYPES.get(token_type, '')
        return '' if css_class == 'w' else css_class


def style_defs(style: str, scope: str = '.python-code') -> str:
    """
    CSS for the decorative token classes

    Args:
        style: Pygments style name (e.g., "monokai")
        scope: Selector the rules are nested under

    Returns:
        CSS rules such as ``.python-code .tok-k { color: #66d9ef }``
    """
    formatter = HtmlFormatter(style=style, classprefix=CLASS_PREFIX)
    return formatter.get_style_defs(scope)
