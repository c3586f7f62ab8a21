"""
Sample-level data models

Type-safe structures passed between the stripping, compositing and
placeholder stages of one sample.
"""

from dataclasses import dataclass, field
from typing import List

from .directives import CompilerConfig, Directive, HandbookOptions
from .spans import HighlightSpan, QueryMarker


@dataclass(frozen=True)
class SampleText:
    """
    Raw text of one fenced sample

    Attributes:
        language: Fence tag (e.g., "py")
        body: Text between the fences, directives and markers included
    """
    language: str
    body: str


@dataclass
class StrippedSample:
    """
    Result of stripping directives and marker lines from a sample

    Attributes:
        clean_source: Retained lines joined with newlines. Every span offset
                      refers to this text.
        config: CompilerConfig after applying the sample's directives
        options: HandbookOptions after applying the sample's directives
        highlights: Highlight spans in marker order
        queries: Query markers in marker order
        directives: Directives that were recognized and applied
        cut_offset: Offset where displayed text begins (0 without a cut marker)

    Example:
        Input body: "x = 1\\n^ one\\n# @noErrors"
        Result: StrippedSample(
            clean_source="x = 1",
            highlights=[HighlightSpan(position=0, length=1, description="one")],
            options=HandbookOptions(suppress_errors=True),
            ...
        )
    """
    clean_source: str
    config: CompilerConfig
    options: HandbookOptions
    highlights: List[HighlightSpan] = field(default_factory=list)
    queries: List[QueryMarker] = field(default_factory=list)
    directives: List[Directive] = field(default_factory=list)
    cut_offset: int = 0

    @property
    def displayed_source(self) -> str:
        """The part of clean_source shown to readers"""
        return self.clean_source[self.cut_offset:]


@dataclass(frozen=True)
class RenderedSample:
    """
    Final markup for one sample and the token standing in for it

    Attributes:
        markup: Complete rendered HTML for the sample
        token: Reservation token returned to the markdown converter
    """
    markup: str
    token: str
