"""
Result store tests

Tests the reserve/resolve contract of the placeholder store.
"""

import pytest

from sampledown.config import AppSettings
from sampledown.lib.errors import StoreError
from sampledown.lib.store import ResultAccumulator


class TestReserve:
    """Test token issue"""

    def test_tokens_unique_within_pass(self):
        results = ResultAccumulator()
        first = results.reserve("<pre>1</pre>")
        second = results.reserve("<pre>2</pre>")
        assert first != second
        assert results.pass_id in first and results.pass_id in second
        assert len(results) == 2

    def test_tokens_differ_between_passes(self):
        assert ResultAccumulator().reserve("a") != ResultAccumulator().reserve("a")

    def test_token_format(self):
        settings = AppSettings(placeholder_prefix="@@S", placeholder_suffix="@@")
        results = ResultAccumulator(settings)
        assert results.reserve("a") == f"@@S{results.pass_id}-0@@"


class TestResolve:
    """Test token substitution"""

    def test_replaces_wrapping_paragraph(self):
        results = ResultAccumulator()
        token = results.reserve('<pre class="python-code">x</pre>')
        text = f"<h1>T</h1>\n<p>{token}</p>\n<p>after</p>"
        assert results.resolve(text) == '<h1>T</h1>\n<pre class="python-code">x</pre>\n<p>after</p>'

    def test_bare_token(self):
        results = ResultAccumulator()
        token = results.reserve("<b>x</b>")
        assert results.resolve(f"see {token} here") == "see <b>x</b> here"

    def test_case_insensitive(self):
        """Converters that change case do not break substitution"""
        results = ResultAccumulator()
        token = results.reserve("<pre>x</pre>")
        assert results.resolve(f"<p>{token.lower()}</p>") == "<pre>x</pre>"

    def test_each_token_once(self):
        results = ResultAccumulator()
        token = results.reserve("X")
        assert results.resolve(f"{token} {token}") == f"X {token}"

    def test_markup_kept_literally(self):
        """Backslashes and group references in markup are not interpreted"""
        results = ResultAccumulator()
        token = results.reserve(r"<pre>a\nb \1 \g<0></pre>")
        assert results.resolve(token) == r"<pre>a\nb \1 \g<0></pre>"

    def test_tokens_from_other_pass_untouched(self):
        other = ResultAccumulator()
        foreign = other.reserve("other")
        results = ResultAccumulator()
        results.reserve("mine")
        assert results.resolve(foreign) == foreign

    def test_second_resolve_raises(self):
        results = ResultAccumulator()
        results.reserve("x")
        results.resolve("")
        with pytest.raises(StoreError):
            results.resolve("")

    def test_reserve_after_resolve_raises(self):
        results = ResultAccumulator()
        results.resolve("")
        with pytest.raises(StoreError):
            results.reserve("x")

    def test_store_cleared(self):
        results = ResultAccumulator()
        results.reserve("x")
        results.resolve("")
        assert len(results) == 0
