"""
Deferred echo renderer

A query marker (``^?``) asks for quick info about the character above the
caret. The text is resolved as soon as the compositor reaches the marked
offset, against the clean source at that offset, and echoed after the end
of the line, indented to the caret's column.

At most one echo is pending at a time. Two query markers under the same
line are not supported; the compositor rejects them with
QueryMarkerError.
"""

import html
from typing import Callable, Optional

from ..config import appsettings
from ..models.spans import PendingEcho, QueryMarker


QuickInfoLookup = Callable[[int], Optional[str]]


class EchoRenderer:
    """
    Resolves and renders quick-info echoes for query markers

    Example:
        >>> echo = EchoRenderer(lambda position: "(variable) x: int")
        >>> pending = echo.resolve(QueryMarker(position=0, column=0))
        >>> echo.flush(pending, at_end=True, source_has_trailing_break=False)
        '\\n<span class="query">(variable) x: int</span>'
    """

    def __init__(
        self,
        lookup: QuickInfoLookup,
        base_offset: int = 0,
        placeholder: Optional[str] = None,
    ) -> None:
        """
        Args:
            lookup: Returns quick info for a clean-source offset (None if none)
            base_offset: Added to marker positions before lookup, for markers
                         re-based onto a cut display region
            placeholder: Text echoed when lookup finds nothing
                         (defaults to appsettings.echo_placeholder)
        """
        self.lookup = lookup
        self.base_offset = base_offset
        self.placeholder = placeholder if placeholder is not None else appsettings.echo_placeholder

    def resolve(self, marker: QueryMarker) -> PendingEcho:
        """Look up quick info at the marker's exact offset and hold it"""
        return PendingEcho(marker=marker, text=self.lookup(marker.position + self.base_offset))

    def flush(self, pending: PendingEcho, at_end: bool, source_has_trailing_break: bool) -> str:
        """
        Render a pending echo

        Args:
            pending: Echo to render
            at_end: True at the terminal index of the source
            source_has_trailing_break: Whether the source already ends in "\\n"

        Returns:
            Echo markup. Mid-source it ends with a newline so the next
            source line starts on its own line; at the end it is preceded
            by a newline unless the source already supplied one.
        """
        text = pending.text if pending.text else self.placeholder
        indent = ' ' * pending.marker.column
        body = html.escape(text, quote=False).replace('\n', '\n' + indent)
        parts = []
        if at_end and not source_has_trailing_break:
            parts.append('\n')
        parts.append(f'<span class="query">{indent}{body}</span>')
        if not at_end:
            parts.append('\n')
        return ''.join(parts)
