#!/usr/bin/env python3
"""
sampledown - Annotated code samples for Markdown documentation

Renders Markdown pages to standalone HTML. Fenced Python samples
(```py, ```python, ```py3) are analyzed and come out with:

    - Syntactic and semantic classification of every token
    - Diagnostics underlined in place and listed below the sample
    - Decorative Pygments coloring
    - Author highlights (``^^^ note``) and quick-info echoes (``^?``)

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Usage:
    sampledown inputdir/ outputdir/

    Every *.md file in inputdir is rendered to outputdir/<name>.html.

Examples:
    # Render a whole directory
    sampledown docs/ site/

    # A single page, failing on any broken sample
    sampledown docs/ site/ --inputFile guide.md --strict

    # Verbose output
    sampledown docs/ site/ -vv
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .lib import SampleCompiler, SampleError, markdown_render, page_make, title_find
from .lib import __version__, LOG, state_connectToLogger
from .models import ProgramState, RenderResult, pipeline


parser = ArgumentParser(
    description="sampledown - Markdown pages with analyzed, annotated Python samples",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile",
    default="",
    type=str,
    help="Render only this markdown file (relative to inputdir)",
)

parser.add_argument(
    "--strict",
    action="store_true",
    default=False,
    help="Fail a page when any of its samples fails to render",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate the environment and select the markdown sources.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - sourceFiles: Markdown files to render
            - envOK: True if environment is valid

    Exits:
        1 if the input file is missing or no markdown is found
    """
    state = inputstate.copy()

    LOG("Checking environment...", level=2)

    if state.inputFile:
        input_file = state.inputdir / state.inputFile
        if not input_file.exists():
            print(f"Error: Input file not found: {input_file}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)
        state.sourceFiles = [input_file]
    else:
        state.sourceFiles = sorted(state.inputdir.glob("*.md"))

    if not state.sourceFiles:
        print(f"Error: No markdown files found in {state.inputdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    LOG(f"Sources: {', '.join(path.name for path in state.sourceFiles)}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.outputdir}", level=2)

    state.envOK = True
    return state


def sources_read(inputstate: ProgramState) -> ProgramState:
    """
    Read every selected markdown source.

    Returns:
        ProgramState with added field:
            - sourceTexts: path -> markdown text

    Exits:
        1 if a file cannot be read
    """
    state = inputstate.copy()

    LOG("Reading sources...", level=1)

    texts = {}
    for path in state.sourceFiles:
        try:
            texts[path] = path.read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            sys.exit(1)
        LOG(f"Read {len(texts[path])} characters from {path.name}", level=2)
    state.sourceTexts = texts
    return state


def pages_render(inputstate: ProgramState) -> ProgramState:
    """
    Render each markdown source to a standalone HTML page.

    One SampleCompiler serves every page; each page gets its own
    conversion (and so its own result store).

    Returns:
        ProgramState with added field:
            - renderResult: RenderResult with the written pages and the
              number of samples on each that became error blocks

    Exits:
        1 in strict mode when a sample fails
    """
    state = inputstate.copy()

    LOG("Rendering pages...", level=1)

    compiler = SampleCompiler(strict=state.strict or None)
    result = RenderResult()
    for path, text in state.sourceTexts.items():
        failed_before = len(compiler.failures)
        try:
            body = markdown_render(text, compiler)
        except SampleError as e:
            print(f"Error: sample in {path.name} failed: {e}", file=sys.stderr)
            sys.exit(1)
        output_file = state.outputdir / f"{path.stem}.html"
        output_file.write_text(page_make(body, title_find(text, path.stem)), encoding="utf-8")
        result.pages.append(output_file)
        result.failures[output_file] = len(compiler.failures) - failed_before
        LOG(f"Wrote {output_file}", level=2)

    state.renderResult = result
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Summarize the rendering run.

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if renderResult is None
    """
    state: ProgramState = inputstate.copy()
    result = state.renderResult
    if result is None or not result.status:
        print("Error: Rendering failed", file=sys.stderr)
        sys.exit(1)

    LOG("\n✓ Rendering complete!", level=1)
    for page in result.pages:
        failed = result.failures.get(page, 0)
        LOG(f"  Output: {page}" + (f" ({failed} broken samples)" if failed else ""), level=1)
    if result.failure_count:
        LOG(f"  Samples rendered as errors: {result.failure_count}", level=1)
    return state


@chris_plugin(
    parser=parser,
    title="sampledown - Annotated code samples for Markdown documentation",
    category="Documentation",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - render markdown pages with annotated samples.

    Orchestrates the pipeline:
        1. env_check: Select sources and create the output directory
        2. sources_read: Read the markdown sources
        3. pages_render: Convert each page and write it out
        4. results_report: Summarize

    Args:
        options: CLI arguments from argparse
            - inputFile: str - Optional single markdown file
            - strict: bool - Fail on any broken sample
            - verbosity: int - Logging verbosity level (1-3)
        inputdir: Directory containing markdown sources
        outputdir: Directory where pages will be written
    """
    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    state_connectToLogger(state)

    pipeline(state, env_check, sources_read, pages_render, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
