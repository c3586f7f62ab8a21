"""
Span models

Position-based annotation records. Every position is an offset into the
sample's clean source (directive and marker lines removed).

Producers hand back their own shapes (ClassifiedSpan, Diagnostic,
HighlightSpan); the extraction adapters normalize all of them into
Tagging records, which is the only shape the compositor consumes.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


class SpanOrigin(Enum):
    """Which producer a Tagging came from"""
    SYNTACTIC = "syntactic"
    SEMANTIC = "semantic"
    DIAGNOSTIC = "diagnostic"
    DECORATIVE = "decorative"
    HIGHLIGHT = "highlight"


@dataclass(frozen=True)
class ClassifiedSpan:
    """
    A classification provider's verdict on one token range

    Attributes:
        position: Offset of the first character
        length: Number of characters covered
        category: Classification name (e.g., "keyword", "function.name")
    """
    position: int
    length: int
    category: str


@dataclass(frozen=True)
class DiagnosticMessage:
    """
    One link of a diagnostic message chain

    A diagnostic may carry follow-on messages (hints, suggestions); each
    further link is one level deeper when listed.
    """
    text: str
    next: Optional["DiagnosticMessage"] = None

    def chain_walk(self) -> Iterator[Tuple[int, str]]:
        """Yield (depth, text) for this message and every follow-on"""
        depth = 0
        link: Optional[DiagnosticMessage] = self
        while link is not None:
            yield depth, link.text
            link = link.next
            depth += 1


@dataclass(frozen=True)
class Diagnostic:
    """
    A problem reported by the diagnostics provider

    Attributes:
        position: Offset of the first offending character
        length: Number of characters covered (may be 0 for a point)
        message: Head of the message chain
        code: Short diagnostic code (e.g., "undefined-name")
    """
    position: int
    length: int
    message: DiagnosticMessage
    code: str

    @property
    def text(self) -> str:
        """First message of the chain"""
        return self.message.text


@dataclass(frozen=True)
class HighlightSpan:
    """
    Author-supplied highlight from a ``^^^ description`` marker line

    Attributes:
        position: Offset of the first highlighted character
        length: Caret count
        description: Free text after the carets ("" if absent)
    """
    position: int
    length: int
    description: str = ""


@dataclass(frozen=True)
class QueryMarker:
    """
    Author-supplied hover request from a ``^?`` marker line

    Attributes:
        position: Offset of the character the caret points at
        column: Caret column on its own line, reused as echo indentation
    """
    position: int
    column: int


@dataclass(frozen=True)
class Tagging:
    """
    Normalized span consumed by the compositor

    Attributes:
        position: Offset of the first covered character
        length: Number of covered characters (always >= 1)
        open_markup: Markup emitted before the first character
        close_markup: Markup emitted after the last character
        origin: Producer the span came from
        label: Category or message, kept for debugging and tests
        order: Discovery order, breaks ties between equal-width spans
    """
    position: int
    length: int
    open_markup: str
    close_markup: str
    origin: SpanOrigin
    label: str = ""
    order: int = 0

    @property
    def last(self) -> int:
        """Offset of the last covered character"""
        return self.position + self.length - 1


@dataclass
class PendingEcho:
    """
    A query marker waiting for the end of its line

    Attributes:
        marker: The query marker being echoed
        text: Hover text resolved at the marker's offset (None if nothing)
    """
    marker: QueryMarker
    text: Optional[str]


@dataclass
class MergeResult:
    """
    Outcome of validating two classification lists against each other

    Attributes:
        ok: True when every shared start position agrees on length
        conflicts: (syntactic, semantic) pairs that disagree
    """
    ok: bool = True
    conflicts: List[Tuple[ClassifiedSpan, ClassifiedSpan]] = field(default_factory=list)
