"""
End-to-end pipeline tests

Tests the CLI stages: markdown directory → env_check → sources_read →
pages_render → results_report → HTML pages on disk.
"""

import pytest
from argparse import Namespace
from pathlib import Path

from sampledown.__main__ import env_check, pages_render, results_report, sources_read
from sampledown.models import ProgramState, pipeline


GOOD_PAGE = """# Good page

```py
greeting = "hello"
print(greeting)
      ^?
```
"""

BROKEN_PAGE = """# Broken page

```py
x = 1
^?
^?
```
"""


@pytest.fixture
def docs(tmp_path):
    inputdir = tmp_path / "docs"
    inputdir.mkdir()
    (inputdir / "good.md").write_text(GOOD_PAGE, encoding="utf-8")
    (inputdir / "broken.md").write_text(BROKEN_PAGE, encoding="utf-8")
    (inputdir / "notes.txt").write_text("not markdown", encoding="utf-8")
    return inputdir


def state_make(inputdir: Path, outputdir: Path, **options) -> ProgramState:
    values = {"inputFile": "", "strict": False, "verbosity": 0, "json": False}
    values.update(options)
    return ProgramState.state_createFromNamespace(Namespace(**values), inputdir, outputdir)


class TestStateCreation:
    """Test building the initial state"""

    def test_unknown_options_ignored(self, tmp_path):
        state = state_make(tmp_path, tmp_path / "out")
        assert state.inputdir == tmp_path
        assert not hasattr(state, "json")

    def test_cli_options_carried(self, tmp_path):
        state = state_make(tmp_path, tmp_path / "out", inputFile="good.md", strict=True)
        assert state.inputFile == "good.md"
        assert state.strict is True

    def test_copy_is_independent(self, tmp_path):
        state = state_make(tmp_path, tmp_path / "out")
        copy = state.copy()
        copy.envOK = True
        assert state.envOK is False


class TestPipeline:
    """Test the full rendering run"""

    def test_directory_rendered(self, docs, tmp_path):
        outputdir = tmp_path / "site"
        final = pipeline(
            state_make(docs, outputdir), env_check, sources_read, pages_render, results_report
        )

        assert [path.name for path in final.sourceFiles] == ["broken.md", "good.md"]
        assert final.renderResult.status is True
        assert sorted(path.name for path in final.renderResult.pages) == ["broken.html", "good.html"]

        good = (outputdir / "good.html").read_text(encoding="utf-8")
        assert "<title>Good page</title>" in good
        assert '<span class="query">      (variable) greeting: str</span>' in good

        broken = (outputdir / "broken.html").read_text(encoding="utf-8")
        assert 'data-error="QueryMarkerError"' in broken

    def test_failures_counted_per_page(self, docs, tmp_path):
        outputdir = tmp_path / "site"
        final = pipeline(state_make(docs, outputdir), env_check, sources_read, pages_render)
        result = final.renderResult
        assert result.failures[outputdir / "broken.html"] == 1
        assert result.failures[outputdir / "good.html"] == 0
        assert result.failure_count == 1

    def test_single_input_file(self, docs, tmp_path):
        outputdir = tmp_path / "site"
        final = pipeline(
            state_make(docs, outputdir, inputFile="good.md"), env_check, sources_read, pages_render
        )
        assert [path.name for path in final.renderResult.pages] == ["good.html"]
        assert not (outputdir / "broken.html").exists()

    def test_strict_exits(self, docs, tmp_path):
        state = state_make(docs, tmp_path / "site", inputFile="broken.md", strict=True)
        with pytest.raises(SystemExit):
            pipeline(state, env_check, sources_read, pages_render)


class TestEnvironment:
    """Test source selection failures"""

    def test_missing_input_file(self, docs, tmp_path):
        with pytest.raises(SystemExit):
            env_check(state_make(docs, tmp_path / "site", inputFile="nope.md"))

    def test_no_markdown(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(SystemExit):
            env_check(state_make(empty, tmp_path / "site"))

    def test_report_without_result(self, tmp_path):
        with pytest.raises(SystemExit):
            results_report(state_make(tmp_path, tmp_path / "site"))
