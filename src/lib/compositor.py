"""
Span compositor

Merges every Tagging of a sample over its clean source into one stream of
well-nested markup.

The producers never see each other's spans, so taggings overlap in any
way at all. The scan keeps a stack of open taggings and, at each index:

1. opens the taggings starting here, widest first (ties by discovery order)
2. resolves a query marker sitting here, if no echo is pending
3. emits the character itself (HTML-escaped)
4. closes the taggings ending here, last opened first
5. flushes the pending echo at a line break or at the end, closing the
   open taggings around it and reopening them after

Widest-first opening plus last-in-first-out closing nests taggings that
share a start. Taggings that cross (one starts inside another and ends
outside it) are split: whatever sits above the closing tagging on the
stack is closed with it and reopened straight after, so every close tag
matches the most recent open tag.

Example:
    >>> taggings = [
    ...     Tagging(0, 3, "<a>", "</a>", SpanOrigin.HIGHLIGHT),
    ...     Tagging(0, 1, "<b>", "</b>", SpanOrigin.SYNTACTIC, order=1),
    ... ]
    >>> Compositor("x<y", taggings).composite()
    '<a><b>x</b>&lt;y</a>'
"""

import html
from collections import defaultdict
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote

from ..config import AppSettings, appsettings
from ..models.directives import HandbookOptions
from ..models.spans import Diagnostic, PendingEcho, QueryMarker, Tagging
from .echo import EchoRenderer
from .errors import QueryMarkerError


def char_escape(ch: str) -> str:
    """Escape one source character for HTML text content"""
    if ch == '&':
        return '&amp;'
    if ch == '<':
        return '&lt;'
    if ch == '>':
        return '&gt;'
    return ch


def taggings_rebase(taggings: Iterable[Tagging], offset: int, length: int) -> List[Tagging]:
    """
    Move taggings onto a window of the source

    Used for the cut marker: only source[offset:offset + length] is shown.
    Taggings outside the window are dropped; taggings straddling its edges
    are clipped.
    """
    rebased = []
    for tagging in taggings:
        start = max(tagging.position, offset)
        end = min(tagging.position + tagging.length, offset + length)
        if end <= start:
            continue
        rebased.append(replace(tagging, position=start - offset, length=end - start))
    return rebased


def queries_rebase(queries: Iterable[QueryMarker], offset: int) -> List[QueryMarker]:
    """Move query markers onto a window starting at offset, dropping earlier ones"""
    return [
        replace(marker, position=marker.position - offset)
        for marker in queries
        if marker.position >= offset
    ]


class Compositor:
    """
    Composites taggings and query echoes over one source text

    A compositor is built per sample and used once.
    """

    def __init__(
        self,
        source: str,
        taggings: Iterable[Tagging],
        queries: Iterable[QueryMarker] = (),
        echo: Optional[EchoRenderer] = None,
    ) -> None:
        """
        Args:
            source: Text to composite (clean source, or its displayed window)
            taggings: Normalized spans, positions relative to source
            queries: Query markers, positions relative to source
            echo: Renderer resolving query markers (a renderer that finds
                  nothing is used when omitted)
        """
        self.source = source
        self.taggings = list(taggings)
        self.queries = list(queries)
        self.echo = echo if echo is not None else EchoRenderer(lambda position: None)

    def composite(self) -> str:
        """
        Run the scan and return the marked-up source

        Raises:
            QueryMarkerError: If a query marker is reached while another
                              echo is still pending on the same line
        """
        source = self.source
        starting: Dict[int, List[Tagging]] = defaultdict(list)
        for tagging in self.taggings:
            starting[tagging.position].append(tagging)
        markers: Dict[int, List[QueryMarker]] = defaultdict(list)
        for marker in self.queries:
            markers[marker.position].append(marker)

        parts: List[str] = []
        active: List[Tagging] = []
        pending: Optional[PendingEcho] = None
        trailing_break = source.endswith('\n')

        for i in range(len(source) + 1):
            terminal = i == len(source)

            opening = sorted(starting.pop(i, []), key=lambda t: (-t.length, t.order))
            for tagging in opening:
                parts.append(tagging.open_markup)
                active.append(tagging)

            here = markers.pop(i, [])
            if here:
                if pending is not None or len(here) > 1:
                    line = source.count('\n', 0, i) + 1
                    raise QueryMarkerError(
                        f"more than one query marker on line {line}; "
                        f"query markers must sit under different lines"
                    )
                pending = self.echo.resolve(here[0])

            if not terminal:
                parts.append(char_escape(source[i]))

            self.taggings_close(i, active, parts)

            if pending is not None and (terminal or source[i] == '\n'):
                # Echoes sit outside every tagging, even one spanning the break
                for tagging in reversed(active):
                    parts.append(tagging.close_markup)
                parts.append(self.echo.flush(pending, terminal, trailing_break))
                for tagging in active:
                    parts.append(tagging.open_markup)
                pending = None

        return ''.join(parts)

    def taggings_close(self, i: int, active: List[Tagging], parts: List[str]) -> None:
        """
        Close every active tagging whose last character is at i

        Taggings opened after the lowest closing one but ending later are
        closed with it and reopened in their original order.
        """
        ending = [k for k, tagging in enumerate(active) if tagging.last == i]
        if not ending:
            return

        popped = active[ending[0]:]
        del active[ending[0]:]
        for tagging in reversed(popped):
            parts.append(tagging.close_markup)
        for tagging in popped:
            if tagging.last != i:
                parts.append(tagging.open_markup)
                active.append(tagging)

    def render(
        self,
        diagnostics: Sequence[Diagnostic] = (),
        options: Optional[HandbookOptions] = None,
        emitted: str = '',
        playground_source: Optional[str] = None,
        settings: Optional[AppSettings] = None,
    ) -> str:
        """
        Composite the source and wrap it with everything listed after it

        Args:
            diagnostics: Diagnostics to list below the sample
            options: Rendering switches of the sample
            emitted: Provider output shown when options.show_emitted_output
            playground_source: Full source for the playground link
                               (defaults to the composited source)
            settings: Settings to read playground options from

        Returns:
            A complete ``<pre class="python-code">`` block
        """
        settings = settings or appsettings
        options = options or HandbookOptions()
        parts = ['<pre class="python-code">', self.composite()]

        if diagnostics and not options.suppress_errors:
            parts.append(diagnostics_list(diagnostics))

        if options.show_emitted_output and emitted:
            parts.append('<hr class="emit-divider">')
            parts.append(f'<div class="emitted-output">{html.escape(emitted, quote=False)}</div>')

        displayed = self.source.rstrip('\n')
        line_count = len(displayed.split('\n')) if displayed else 0
        if line_count >= settings.playground_min_lines:
            code = playground_source if playground_source is not None else self.source
            url = settings.playground_url.format(code=quote(code, safe=''))
            parts.append(f'<a class="playground-link" href="{html.escape(url)}">Try</a>')

        parts.append('</pre>')
        return ''.join(parts)


def diagnostics_list(diagnostics: Iterable[Diagnostic]) -> str:
    """
    Render the diagnostics listing appended below a sample

    Each diagnostic becomes one block; each link of its message chain is
    indented one step further than the one before.
    """
    parts = ['<hr class="error-divider">']
    for diagnostic in diagnostics:
        lines = []
        for depth, text in diagnostic.message.chain_walk():
            for line in text.splitlines() or ['']:
                indent = '  ' * depth
                lines.append(
                    f'<div class="error-line depth-{depth}">{indent}{html.escape(line, quote=False)}</div>'
                )
        code = html.escape(diagnostic.code)
        parts.append(f'<div class="listed-error" data-code="{code}">{"".join(lines)}</div>')
    return ''.join(parts)
