"""
Markdown integration and page rendering

SampleExtension hooks the sample compiler into Python-Markdown:

1. SamplePreprocessor (ahead of whitespace normalization and fenced_code)
   finds fenced samples whose tag is one of settings.sample_languages,
   compiles each one and leaves only its reservation token behind, in a
   paragraph of its own. Sample bodies reach the analyzer with their tabs.
2. Markdown converts the document; tokens pass through untouched.
3. SamplePostprocessor (after every stock postprocessor) swaps the
   tokens for the rendered samples, exactly once per conversion.

Other fences are left for the fenced_code extension.

Usage:
    compiler = SampleCompiler()
    body = markdown_render(text, compiler)
    page = page_make(body, title_find(text, "Untitled"))
"""

import html
import re
from typing import Any, List, Optional

import markdown
from markdown.extensions import Extension
from markdown.postprocessors import Postprocessor
from markdown.preprocessors import Preprocessor

from ..config import appsettings
from ..models.sample import SampleText
from .compiler import SampleCompiler
from .highlighter import style_defs
from .log import LOG
from .store import ResultAccumulator


FENCE_OPEN = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w+-]+)?[^`\n]*$")

TITLE_PATTERN = re.compile(r'^#[ \t]+(?P<title>.+?)[ \t#]*$', re.MULTILINE)


class SamplePreprocessor(Preprocessor):
    """
    Replaces analyzable fenced samples with reservation tokens

    Fences are matched line by line: a fence closes at the first line
    holding the same fence string at the same indent. Fences in other
    languages are skipped whole, so a ```py inside a ```md block stays
    literal.
    """

    def __init__(self, md: markdown.Markdown, extension: "SampleExtension") -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, lines: List[str]) -> List[str]:
        # Line endings are not normalized yet at this priority
        lines = [line[:-1] if line.endswith('\r') else line for line in lines]
        languages = {tag.lower() for tag in self.extension.compiler.settings.sample_languages}
        output: List[str] = []
        i = 0
        while i < len(lines):
            match = FENCE_OPEN.match(lines[i])
            if not match:
                output.append(lines[i])
                i += 1
                continue

            indent, fence = match.group('indent'), match.group('fence')
            close = self.fence_findClosing(lines, i + 1, indent, fence)
            if close is None:
                # Unterminated fence: leave the rest to the converter
                output.extend(lines[i:])
                break

            language = match.group('lang') or ''
            if language.lower() in languages:
                body = '\n'.join(self.indent_remove(line, indent) for line in lines[i + 1:close])
                sample = SampleText(language=language, body=body)
                token = self.extension.compiler.sample_compile(sample, self.extension.results)
                output.extend(['', token, ''])
            else:
                output.extend(lines[i:close + 1])
            i = close + 1

        LOG(f"Reserved {len(self.extension.results)} samples", level=2)
        return output

    def fence_findClosing(self, lines: List[str], start: int, indent: str, fence: str) -> Optional[int]:
        """Index of the line closing a fence, or None if it never closes"""
        closing = re.compile(rf'^{re.escape(indent)}{re.escape(fence)}[ \t]*$')
        for index in range(start, len(lines)):
            if closing.match(lines[index]):
                return index
        return None

    def indent_remove(self, line: str, indent: str) -> str:
        """Strip the fence's own indentation from a body line"""
        if line.startswith(indent):
            return line[len(indent):]
        return line.lstrip(' \t')


class SamplePostprocessor(Postprocessor):
    """Swaps reservation tokens for the rendered samples"""

    def __init__(self, md: markdown.Markdown, extension: "SampleExtension") -> None:
        super().__init__(md)
        self.extension = extension

    def run(self, text: str) -> str:
        return self.extension.results.resolve(text)


class SampleExtension(Extension):
    """
    Python-Markdown extension rendering analyzable code samples

    Each Markdown.convert() call gets a fresh ResultAccumulator through
    reset(), so reservations never leak between documents.
    """

    def __init__(self, compiler: Optional[SampleCompiler] = None, **kwargs: Any) -> None:
        # Not a config option: Extension.setConfig coerces None-defaulted
        # options to bool
        super().__init__(**kwargs)
        self.compiler = compiler or SampleCompiler()
        self.results = ResultAccumulator(self.compiler.settings)

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        md.registerExtension(self)
        # Ahead of normalize_whitespace (30), so samples keep their tabs for
        # the analyzer, and of fenced_code (25)
        md.preprocessors.register(SamplePreprocessor(md, self), 'sample_fences', 35)
        md.postprocessors.register(SamplePostprocessor(md, self), 'sample_results', 5)

    def reset(self) -> None:
        self.results = ResultAccumulator(self.compiler.settings)


def makeExtension(**kwargs: Any) -> SampleExtension:
    return SampleExtension(**kwargs)


def markdown_render(text: str, compiler: Optional[SampleCompiler] = None) -> str:
    """
    Convert one markdown document to HTML with its samples rendered

    Args:
        text: Markdown source
        compiler: Sample compiler to reuse across documents

    Returns:
        HTML fragment (no page wrapper)

    Raises:
        SampleError: If a sample fails and the compiler is strict
    """
    extension = SampleExtension(compiler=compiler)
    md = markdown.Markdown(extensions=[extension, 'fenced_code', 'tables'])
    return md.convert(text)


def title_find(text: str, fallback: str) -> str:
    """First level-one heading of a markdown document, or the fallback"""
    match = TITLE_PATTERN.search(text)
    return match.group('title') if match else fallback


PAGE_CSS = """
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif; max-width: 52em; margin: 2em auto; line-height: 1.5; }
pre.python-code, pre.sample-error { background: #272822; color: #f8f8f2; padding: 1em; overflow-x: auto; position: relative; }
pre.sample-error { border-left: 4px solid #f92672; }
.sample-error-message { color: #f92672; margin-bottom: 0.5em; }
.python-code .error { text-decoration: underline wavy #f92672; }
.python-code .highlight { background: rgba(230, 219, 116, 0.25); }
.python-code .query { color: #75715e; }
.python-code .error-divider, .python-code .emit-divider { border: 0; border-top: 1px solid #75715e; }
.python-code .listed-error { color: #f92672; }
.python-code .error-line { white-space: pre-wrap; }
.python-code .emitted-output { color: #a6e22e; white-space: pre; }
.python-code .playground-link { position: absolute; top: 0.5em; right: 0.5em; color: #66d9ef; }
"""


def page_make(content: str, title: str, style: Optional[str] = None) -> str:
    """
    Wrap converted content in a standalone HTML page

    The page carries the CSS for the decorative token classes and the
    tooltip scripts that show diagnostics on hover (tippy reads the
    data-tippy attributes of the error spans).

    Args:
        content: HTML fragment from markdown_render()
        title: Page title
        style: Pygments style name (settings.pygments_style by default)

    Returns:
        Complete HTML document
    """
    style = style or appsettings.pygments_style
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{html.escape(title)}</title>
    <style>
{PAGE_CSS}
{style_defs(style)}
    </style>
</head>
<body>
{content}
    <script src="https://unpkg.com/popper.js@1/dist/umd/popper.min.js"></script>
    <script src="https://unpkg.com/tippy.js@4"></script>
    <script>
        tippy.setDefaults({{preventOverflow: {{ enabled: false }} }});
    </script>
</body>
</html>"""
