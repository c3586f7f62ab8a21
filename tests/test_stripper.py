"""
Stripper tests

Tests directive handling, marker anchoring, the cut marker and
idempotence of stripping.
"""

import pytest

from sampledown.lib.stripper import Stripper
from sampledown.models import CompilerConfig, HighlightSpan, QueryMarker, SampleText


def strip(body: str, **kwargs):
    return Stripper(SampleText("py", body), **kwargs).strip()


class TestDirectives:
    """Test flag and valued directives"""

    def test_flag_directive_hash(self):
        """# @noErrors is removed and switches off error rendering"""
        stripped = strip("x = 1\n# @noErrors")
        assert stripped.clean_source == "x = 1"
        assert stripped.options.suppress_errors is True

    def test_flag_directive_slashes(self):
        """// comments are accepted as directive lines too"""
        stripped = strip("// @showEmit\nx = 1")
        assert stripped.clean_source == "x = 1"
        assert stripped.options.show_emitted_output is True

    def test_valued_directive(self):
        """Valued directive is parsed per the option's type"""
        stripped = strip("# @maxLineLength: 40\nx = 1")
        assert stripped.config.max_line_length == 40

    def test_target_directive(self):
        """Target accepts an enumerated version"""
        stripped = strip("# @target: 3.10\nx = 1")
        assert stripped.config.target == "3.10"

    def test_list_directive(self):
        """List options are comma-separated"""
        stripped = strip("# @builtins: spam, eggs\nspam(eggs)")
        assert stripped.config.builtins == ["spam", "eggs"]

    def test_name_matching_ignores_case_and_separators(self):
        """noErrors, no_errors and NOERRORS are the same switch"""
        for spelling in ("noErrors", "no_errors", "NOERRORS", "suppress-errors"):
            assert strip(f"# @{spelling}").options.suppress_errors is True

    def test_unknown_directive_is_dropped(self):
        """Unknown directive is removed and leaves the config untouched"""
        stripped = strip("// @doesNotExist: 3\nx = 1")
        assert stripped.clean_source == "x = 1"
        assert stripped.config == CompilerConfig()
        assert stripped.directives == []

    def test_invalid_value_is_dropped(self):
        """A value of the wrong type is ignored, not fatal"""
        stripped = strip("# @maxLineLength: lots\nx = 1")
        assert stripped.clean_source == "x = 1"
        assert stripped.config.max_line_length == 0

    @pytest.mark.parametrize("name", ["maxLineLength", "optimize", "target", "builtins"])
    def test_flag_on_valued_option_is_dropped(self, name):
        """A valueless directive only switches bool options on"""
        stripped = strip(f"# @{name}\nx = 1")
        assert stripped.clean_source == "x = 1"
        assert stripped.config == CompilerConfig()
        assert stripped.directives == []

    def test_invalid_target_is_dropped(self):
        """Target outside the enumeration is ignored"""
        default_target = CompilerConfig().target
        stripped = strip("# @target: 2.7\nx = 1")
        assert stripped.config.target == default_target

    def test_defaults_are_not_mutated(self):
        """Directives act on a copy of the defaults"""
        defaults = CompilerConfig()
        stripped = strip("# @noUnusedImports\nimport os", defaults=defaults)
        assert stripped.config.no_unused_imports is True
        assert defaults.no_unused_imports is False

    def test_trailing_comment_is_not_a_directive(self):
        """Directives own the whole line"""
        stripped = strip("x = 1  # @noErrors")
        assert stripped.clean_source == "x = 1  # @noErrors"
        assert stripped.options.suppress_errors is False

    def test_crlf_input(self):
        """Windows line endings are normalized"""
        stripped = strip("x = 1\r\n# @noErrors\r\ny = 2")
        assert stripped.clean_source == "x = 1\ny = 2"


class TestMarkers:
    """Test query and highlight markers"""

    def test_query_marker(self):
        """^? under column 0 points at offset 0"""
        stripped = strip("x = 5\n^?")
        assert stripped.clean_source == "x = 5"
        assert stripped.queries == [QueryMarker(position=0, column=0)]

    def test_query_marker_column(self):
        """Caret column is added to the anchor line's offset"""
        stripped = strip("a = 1\ntotal = a + 1\n        ^?")
        assert stripped.queries == [QueryMarker(position=6 + 8, column=8)]
        assert stripped.clean_source[14] == "a"

    def test_highlight_marker(self):
        """Highlight length is the caret count, description the trailing text"""
        stripped = strip("x = 1\ny = 22\n    ^^ two")
        assert stripped.highlights == [HighlightSpan(position=10, length=2, description="two")]

    def test_highlight_without_description(self):
        stripped = strip("x = 1\n^")
        assert stripped.highlights == [HighlightSpan(position=0, length=1, description="")]

    def test_highlight_clipped_to_line(self):
        """Carets running past the anchor line are clipped"""
        stripped = strip("ab\n^^^^^ long")
        assert stripped.highlights[0].length == 2

    def test_highlight_past_line_end_dropped(self):
        stripped = strip("ab\n     ^^ nothing here")
        assert stripped.highlights == []

    def test_marker_before_content_anchors_to_zero(self):
        """A marker with no preceding kept line anchors to offset 0"""
        stripped = strip("^?\n^^ start\nx = 1")
        assert stripped.queries == [QueryMarker(position=0, column=0)]
        assert stripped.highlights[0].position == 0

    def test_directive_lines_do_not_move_anchor(self):
        """Markers under a directive still point at the last kept line"""
        stripped = strip("x = 1\n# @noErrors\n^?")
        assert stripped.queries[0].position == 0

    def test_marker_lines_do_not_shift_offsets(self):
        """Offsets are measured over kept text only"""
        stripped = strip("x = 1\n^ one\ny = 2\n^ two")
        assert [h.position for h in stripped.highlights] == [0, 6]
        assert stripped.clean_source == "x = 1\ny = 2"


class TestCut:
    """Test the display cut marker"""

    def test_cut_offset(self):
        """Text after the cut line is displayed; the line itself is analyzed"""
        stripped = strip("import os\n# ---cut---\nprint(os.sep)")
        assert stripped.clean_source == "import os\n# ---cut---\nprint(os.sep)"
        assert stripped.displayed_source == "print(os.sep)"

    def test_no_cut(self):
        stripped = strip("print(1)")
        assert stripped.cut_offset == 0
        assert stripped.displayed_source == "print(1)"

    def test_custom_cut_marker(self):
        stripped = strip("x = 1\n# 8<\ny = 2", cut_marker="8<")
        assert stripped.displayed_source == "y = 2"


class TestIdempotence:
    """Stripping already-stripped text changes nothing"""

    @pytest.mark.parametrize(
        "body",
        [
            "",
            "x = 5\n^?",
            "# @noErrors\nprint(undefined)\n^^^^^ call",
            "import os\n# ---cut---\nprint(os.sep)\n      ^?",
            "// @target: 3.9\n\n\ndef f(a):\n    return a\n    ^^^^^^\n",
        ],
    )
    def test_strip_twice(self, body):
        """Second strip returns the same clean source with no markers"""
        once = strip(body)
        twice = strip(once.clean_source)
        assert twice.clean_source == once.clean_source
        assert twice.highlights == []
        assert twice.queries == []
        assert twice.directives == []
