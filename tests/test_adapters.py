"""
Span adapter tests

Tests merge validation of classification lists and normalization of each
producer's spans into Taggings.
"""

from sampledown.lib.adapters import (
    TaggingCollector,
    classifications_merge,
    cssName_make,
    spans_validateMerge,
)
from sampledown.models import (
    ClassifiedSpan,
    Diagnostic,
    DiagnosticMessage,
    HighlightSpan,
    SpanOrigin,
)


class TestMergeValidation:
    """Test agreement between syntactic and semantic classifications"""

    def test_disagreeing_lengths_conflict(self):
        """Spans at offset 10 with lengths 5 and 7 are a conflict"""
        syntactic = [ClassifiedSpan(10, 5, "identifier")]
        semantic = [ClassifiedSpan(10, 7, "function")]
        result = spans_validateMerge(syntactic, semantic)
        assert result.ok is False
        assert result.conflicts == [(syntactic[0], semantic[0])]

    def test_agreeing_lists(self):
        syntactic = [ClassifiedSpan(0, 3, "identifier"), ClassifiedSpan(4, 1, "operator")]
        semantic = [ClassifiedSpan(0, 3, "variable")]
        result = spans_validateMerge(syntactic, semantic)
        assert result.ok is True
        assert result.conflicts == []

    def test_different_positions_do_not_conflict(self):
        result = spans_validateMerge([ClassifiedSpan(0, 2, "a")], [ClassifiedSpan(1, 5, "b")])
        assert result.ok is True


class TestClassificationMerge:
    """Test combining the two classification lists"""

    def test_semantic_wins(self):
        """Where both classify a token the semantic category is kept"""
        syntactic = [ClassifiedSpan(0, 1, "identifier"), ClassifiedSpan(2, 1, "operator")]
        semantic = [ClassifiedSpan(0, 1, "variable")]
        merged = classifications_merge(syntactic, semantic)
        assert merged == [
            (ClassifiedSpan(0, 1, "variable"), SpanOrigin.SEMANTIC),
            (ClassifiedSpan(2, 1, "operator"), SpanOrigin.SYNTACTIC),
        ]

    def test_conflicting_semantic_spans_dropped(self):
        """Lenient merge keeps the syntactic verdict for conflicts"""
        syntactic = [ClassifiedSpan(10, 5, "identifier")]
        semantic = [ClassifiedSpan(10, 7, "function")]
        result = spans_validateMerge(syntactic, semantic)
        merged = classifications_merge(syntactic, semantic, result)
        assert merged == [(ClassifiedSpan(10, 5, "identifier"), SpanOrigin.SYNTACTIC)]

    def test_ascending_order(self):
        semantic = [ClassifiedSpan(8, 1, "b"), ClassifiedSpan(2, 1, "a")]
        merged = classifications_merge([], semantic)
        assert [span.position for span, _ in merged] == [2, 8]


class TestTaggingCollector:
    """Test normalization into Taggings"""

    def test_span_clipped_to_source(self):
        collector = TaggingCollector(5)
        tagging = collector.tagging_add(3, 10, "<b>", SpanOrigin.HIGHLIGHT)
        assert (tagging.position, tagging.length) == (3, 2)

    def test_negative_position_clipped(self):
        collector = TaggingCollector(5)
        tagging = collector.tagging_add(-2, 4, "<b>", SpanOrigin.HIGHLIGHT)
        assert (tagging.position, tagging.length) == (0, 2)

    def test_zero_length_dropped(self):
        collector = TaggingCollector(5)
        assert collector.tagging_add(2, 0, "<b>", SpanOrigin.HIGHLIGHT) is None
        assert collector.tagging_add(7, 3, "<b>", SpanOrigin.HIGHLIGHT) is None
        assert collector.taggings == []

    def test_discovery_order(self):
        """Each recorded Tagging carries its discovery index"""
        collector = TaggingCollector(10)
        collector.tagging_add(0, 1, "<a>", SpanOrigin.HIGHLIGHT)
        collector.tagging_add(9, 0, "<x>", SpanOrigin.HIGHLIGHT)
        collector.tagging_add(0, 1, "<b>", SpanOrigin.HIGHLIGHT)
        assert [t.order for t in collector.taggings] == [0, 1]

    def test_classification_markup(self):
        collector = TaggingCollector(10)
        collector.classifications_add([(ClassifiedSpan(0, 3, "function.name"), SpanOrigin.SEMANTIC)])
        tagging = collector.taggings[0]
        assert tagging.open_markup == '<span class="cls-function-name">'
        assert tagging.close_markup == "</span>"
        assert tagging.origin == SpanOrigin.SEMANTIC

    def test_diagnostic_markup_escapes_message(self):
        collector = TaggingCollector(10)
        message = DiagnosticMessage('Name "x" <is> not defined')
        collector.diagnostics_add([Diagnostic(0, 1, message, "undefined-name")])
        markup = collector.taggings[0].open_markup
        assert markup.startswith('<span class="error"><span class="error-message" data-tippy="')
        assert "&quot;x&quot; &lt;is&gt;" in markup

    def test_point_diagnostic_widened(self):
        """Zero-length diagnostic covers the character it sits on"""
        collector = TaggingCollector(5)
        collector.diagnostics_add([Diagnostic(2, 0, DiagnosticMessage("here"), "syntax-error")])
        assert (collector.taggings[0].position, collector.taggings[0].length) == (2, 1)

    def test_point_diagnostic_at_end(self):
        """Diagnostic at end of input is moved onto the last character"""
        collector = TaggingCollector(5)
        collector.diagnostics_add([Diagnostic(5, 0, DiagnosticMessage("eof"), "syntax-error")])
        assert (collector.taggings[0].position, collector.taggings[0].length) == (4, 1)

    def test_point_diagnostic_empty_source(self):
        collector = TaggingCollector(0)
        collector.diagnostics_add([Diagnostic(0, 0, DiagnosticMessage("eof"), "syntax-error")])
        assert collector.taggings == []

    def test_decoration_markup(self):
        collector = TaggingCollector(10)
        collector.decorations_add([ClassifiedSpan(0, 3, "kd")])
        assert collector.taggings[0].open_markup == '<span class="tok-kd">'
        assert collector.taggings[0].origin == SpanOrigin.DECORATIVE

    def test_highlight_markup(self):
        collector = TaggingCollector(10)
        collector.highlights_add([HighlightSpan(1, 2, 'a "note"')])
        assert collector.taggings[0].open_markup == (
            '<span class="highlight" data-description="a &quot;note&quot;">'
        )


def test_cssName_make():
    assert cssName_make("function.name") == "function-name"
    assert cssName_make("s2") == "s2"
