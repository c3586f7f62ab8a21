"""
Echo renderer tests

Tests lookup offsets, placeholders and echo markup.
"""

from sampledown.lib.echo import EchoRenderer
from sampledown.models import PendingEcho, QueryMarker


class TestResolve:
    """Test quick-info lookup"""

    def test_lookup_at_marker_offset(self):
        seen = []
        echo = EchoRenderer(lambda position: seen.append(position) or "text")
        pending = echo.resolve(QueryMarker(position=7, column=3))
        assert seen == [7]
        assert pending == PendingEcho(marker=QueryMarker(7, 3), text="text")

    def test_base_offset_added(self):
        """Markers rebased onto a cut window look up the full-source offset"""
        seen = []
        echo = EchoRenderer(lambda position: seen.append(position), base_offset=20)
        echo.resolve(QueryMarker(position=2, column=2))
        assert seen == [22]


class TestFlush:
    """Test echo markup"""

    def test_mid_source(self):
        echo = EchoRenderer(lambda position: None)
        pending = PendingEcho(QueryMarker(0, 2), "(module) os")
        assert echo.flush(pending, at_end=False, source_has_trailing_break=False) == (
            '<span class="query">  (module) os</span>\n'
        )

    def test_at_end_without_break(self):
        echo = EchoRenderer(lambda position: None)
        pending = PendingEcho(QueryMarker(0, 0), "x")
        assert echo.flush(pending, True, False) == '\n<span class="query">x</span>'

    def test_at_end_with_break(self):
        echo = EchoRenderer(lambda position: None)
        pending = PendingEcho(QueryMarker(0, 0), "x")
        assert echo.flush(pending, True, True) == '<span class="query">x</span>'

    def test_placeholder(self):
        echo = EchoRenderer(lambda position: None, placeholder="?")
        assert echo.flush(PendingEcho(QueryMarker(0, 0), None), False, False) == (
            '<span class="query">?</span>\n'
        )
        assert echo.flush(PendingEcho(QueryMarker(0, 0), ""), False, False) == (
            '<span class="query">?</span>\n'
        )

    def test_text_escaped_and_reindented(self):
        """Multi-line text keeps the caret indentation on every line"""
        echo = EchoRenderer(lambda position: None)
        pending = PendingEcho(QueryMarker(0, 4), "List[int]\n<generic>")
        assert echo.flush(pending, False, False) == (
            '<span class="query">    List[int]\n    &lt;generic&gt;</span>\n'
        )
