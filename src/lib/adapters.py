"""
Span extraction adapters

Thin normalizers turning each producer's native records into Taggings,
the single span shape the compositor consumes. Adapters assign markup;
they never move a span except to clip it to the source.

Producers and their markup:
    classification  <span class="cls-{category}">
    diagnostic      <span class="error"><span class="error-message" data-tippy="..."></span>
    decorative      <span class="tok-{pygments class}">
    highlight       <span class="highlight" data-description="...">
"""

import html
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.spans import (
    ClassifiedSpan,
    Diagnostic,
    HighlightSpan,
    MergeResult,
    SpanOrigin,
    Tagging,
)
from .highlighter import CLASS_PREFIX


CLOSE_SPAN = '</span>'


def attribute_escape(text: str) -> str:
    """Escape text for a double-quoted HTML attribute"""
    return html.escape(text, quote=True)


def cssName_make(category: str) -> str:
    """Turn a category like "function.name" into a CSS-safe "function-name" """
    return ''.join(ch if ch.isalnum() or ch in '-_' else '-' for ch in category)


def spans_validateMerge(
    syntactic: Iterable[ClassifiedSpan], semantic: Iterable[ClassifiedSpan]
) -> MergeResult:
    """
    Check that two classification lists agree on shared token boundaries

    Both lists classify the same text, so a span starting at the same
    position in both must have the same length. Anything else means the
    two passes disagree about where a token ends.

    Returns:
        MergeResult with ok=False and the disagreeing pairs on conflict

    Example:
        syntactic [(10, 5, "identifier")], semantic [(10, 7, "function")]
        -> MergeResult(ok=False, conflicts=[(..., ...)])
    """
    by_position: Dict[int, ClassifiedSpan] = {span.position: span for span in syntactic}
    result = MergeResult()
    for span in semantic:
        other = by_position.get(span.position)
        if other is not None and other.length != span.length:
            result.conflicts.append((other, span))
    result.ok = not result.conflicts
    return result


def classifications_merge(
    syntactic: Iterable[ClassifiedSpan],
    semantic: Iterable[ClassifiedSpan],
    result: Optional[MergeResult] = None,
) -> List[Tuple[ClassifiedSpan, SpanOrigin]]:
    """
    Combine validated classification lists

    Where both lists classify the same token the semantic verdict wins.
    Semantic spans named in result.conflicts are left out, so lenient
    callers can keep rendering after a failed validation.

    Returns:
        (span, origin) pairs in ascending position order
    """
    rejected = {id(pair[1]) for pair in result.conflicts} if result else set()
    merged: Dict[int, Tuple[ClassifiedSpan, SpanOrigin]] = {
        span.position: (span, SpanOrigin.SYNTACTIC) for span in syntactic
    }
    for span in semantic:
        if id(span) in rejected:
            continue
        merged[span.position] = (span, SpanOrigin.SEMANTIC)
    return [merged[position] for position in sorted(merged)]


class TaggingCollector:
    """
    Accumulates Taggings from every producer for one sample

    Discovery order is recorded on each Tagging so the compositor can break
    ties between spans of equal width deterministically. A collector is
    created per sample and discarded afterwards.
    """

    def __init__(self, source_length: int) -> None:
        """
        Args:
            source_length: Length of the clean source spans are clipped to
        """
        self.source_length = source_length
        self.taggings: List[Tagging] = []

    def tagging_add(
        self,
        position: int,
        length: int,
        open_markup: str,
        origin: SpanOrigin,
        label: str = '',
        close_markup: str = CLOSE_SPAN,
    ) -> Optional[Tagging]:
        """
        Normalize one span and record it

        Spans are clipped to the source; zero-length results are dropped.

        Returns:
            The recorded Tagging, or None if the span was dropped
        """
        start = max(position, 0)
        end = min(position + length, self.source_length)
        if end <= start:
            return None
        tagging = Tagging(
            position=start,
            length=end - start,
            open_markup=open_markup,
            close_markup=close_markup,
            origin=origin,
            label=label,
            order=len(self.taggings),
        )
        self.taggings.append(tagging)
        return tagging

    def classifications_add(self, spans: Iterable[Tuple[ClassifiedSpan, SpanOrigin]]) -> None:
        for span, origin in spans:
            self.tagging_add(
                span.position,
                span.length,
                f'<span class="cls-{cssName_make(span.category)}">',
                origin,
                label=span.category,
            )

    def diagnostics_add(self, diagnostics: Iterable[Diagnostic]) -> None:
        """
        Add diagnostics as error spans

        A point diagnostic (length 0) is widened to the character it sits
        on, or the last character when it sits at the very end.
        """
        for diagnostic in diagnostics:
            position, length = diagnostic.position, diagnostic.length
            if length <= 0:
                if self.source_length == 0:
                    continue
                position = min(position, self.source_length - 1)
                length = 1
            message = attribute_escape(diagnostic.text)
            self.tagging_add(
                position,
                length,
                f'<span class="error"><span class="error-message" data-tippy="{message}"></span>',
                SpanOrigin.DIAGNOSTIC,
                label=diagnostic.text,
            )

    def decorations_add(self, spans: Iterable[ClassifiedSpan]) -> None:
        for span in spans:
            self.tagging_add(
                span.position,
                span.length,
                f'<span class="{CLASS_PREFIX}{cssName_make(span.category)}">',
                SpanOrigin.DECORATIVE,
                label=span.category,
            )

    def highlights_add(self, highlights: Iterable[HighlightSpan]) -> None:
        for highlight in highlights:
            description = attribute_escape(highlight.description)
            self.tagging_add(
                highlight.position,
                highlight.length,
                f'<span class="highlight" data-description="{description}">',
                SpanOrigin.HIGHLIGHT,
                label=highlight.description,
            )
