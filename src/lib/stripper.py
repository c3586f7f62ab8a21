"""
Directive and marker stripper

Removes directive lines and marker lines from a raw sample, producing the
clean source every span is measured against.

Each line of the sample is classified, in priority order, as:
1. Flag directive       ``// @noErrors``          (``#`` works as well as ``//``)
2. Valued directive     ``// @target: 3.10``
3. Query marker         ``   ^?``
4. Highlight marker     ``   ^^^ description``
5. Anything else        kept verbatim

Markers anchor to the nearest preceding kept line: a caret in column c
under a line starting at clean-source offset o points at offset o + c.
Offsets are measured over the kept text, so removed lines never shift
them.

Example:
    >>> sample = SampleText("py", "x = 5\\n^ five\\n# @noErrors")
    >>> stripped = Stripper(sample).strip()
    >>> stripped.clean_source
    'x = 5'
    >>> stripped.highlights[0].position, stripped.options.suppress_errors
    (0, True)
"""

import re
from typing import List, Optional

from pydantic import ValidationError

from ..config import appsettings
from ..models.directives import CompilerConfig, Directive, DirectiveKind, HandbookOptions
from ..models.sample import SampleText, StrippedSample
from ..models.spans import HighlightSpan, QueryMarker
from .errors import DirectiveError
from .log import LOG


FLAG_DIRECTIVE = re.compile(r'^\s*(?://|#)\s*@([A-Za-z_][\w-]*)\s*$')
VALUED_DIRECTIVE = re.compile(r'^\s*(?://|#)\s*@([A-Za-z_][\w-]*)\s*:\s*(.*?)\s*$')
QUERY_MARKER = re.compile(r'^(\s*)\^\?\s*$')
HIGHLIGHT_MARKER = re.compile(r'^(\s*)(\^+)\s*(.*?)\s*$')


class Stripper:
    """
    Strips directives and markers from one sample

    Handles:
    - Flag and valued directives, case-insensitive against the option tables
    - Highlight (^^^) and query (^?) marker lines
    - The display cut marker (kept in the clean source, recorded as an offset)
    """

    def __init__(
        self,
        sample: SampleText,
        defaults: Optional[CompilerConfig] = None,
        cut_marker: Optional[str] = None,
    ) -> None:
        """
        Initialize stripper with one sample

        Args:
            sample: Raw sample text and language tag
            defaults: Compiler options to start from (copied, never mutated)
            cut_marker: Sentinel after which text is displayed
                        (defaults to appsettings.cut_marker)
        """
        self.sample = sample
        self.defaults = defaults if defaults is not None else CompilerConfig()
        marker = cut_marker if cut_marker is not None else appsettings.cut_marker
        self.cut_pattern = re.compile(rf'^\s*(?://|#)\s*{re.escape(marker)}\s*$')

    def strip(self) -> StrippedSample:
        """
        Scan the sample top to bottom and split it into clean source,
        options and markers

        Returns:
            StrippedSample with clean source, updated options and markers
        """
        config = self.defaults.model_copy(deep=True)
        options = HandbookOptions()
        kept: List[str] = []
        highlights: List[HighlightSpan] = []
        queries: List[QueryMarker] = []
        directives: List[Directive] = []

        offset = 0
        anchor = 0  # offset of the last kept line; 0 before any
        anchor_length: Optional[int] = None  # no kept line yet
        cut_offset = 0

        body = self.sample.body.replace('\r\n', '\n')
        for line_number, line in enumerate(body.split('\n'), start=1):
            directive = self.directive_parse(line, line_number)
            if directive is not None:
                try:
                    self.directive_apply(directive, config, options)
                    directives.append(directive)
                except DirectiveError as e:
                    LOG(f"Ignoring directive: {e}", level=1)
                continue

            match = QUERY_MARKER.match(line)
            if match:
                column = len(match.group(1))
                if anchor_length is not None:
                    column = min(column, anchor_length)
                queries.append(QueryMarker(position=anchor + column, column=len(match.group(1))))
                continue

            match = HIGHLIGHT_MARKER.match(line)
            if match:
                column = len(match.group(1))
                length = len(match.group(2))
                if anchor_length is not None:
                    length = min(length, anchor_length - column)
                if length <= 0:
                    LOG(f"Dropping highlight past the end of its line (line {line_number})", level=2)
                    continue
                highlights.append(HighlightSpan(
                    position=anchor + column,
                    length=length,
                    description=match.group(3),
                ))
                continue

            kept.append(line)
            anchor = offset
            anchor_length = len(line)
            offset += len(line) + 1
            if self.cut_pattern.match(line):
                cut_offset = offset

        clean_source = '\n'.join(kept)
        cut_offset = min(cut_offset, len(clean_source))
        queries = [
            QueryMarker(position=min(q.position, len(clean_source)), column=q.column)
            for q in queries
        ]

        LOG(
            f"Stripped sample: {len(directives)} directives, {len(highlights)} highlights, "
            f"{len(queries)} queries",
            level=3,
        )

        return StrippedSample(
            clean_source=clean_source,
            config=config,
            options=options,
            highlights=highlights,
            queries=queries,
            directives=directives,
            cut_offset=cut_offset,
        )

    def directive_parse(self, line: str, line_number: int) -> Optional[Directive]:
        """
        Recognize a directive line

        Args:
            line: One line of the raw sample
            line_number: 1-based line number (kept for messages)

        Returns:
            Directive if the line is directive-shaped, else None

        Example:
            "// @showEmit"       -> Directive("showEmit", None, FLAG)
            "# @target: 3.10"    -> Directive("target", "3.10", VALUED)
            "x = 1  # @noErrors" -> None (directives own the whole line)
        """
        match = FLAG_DIRECTIVE.match(line)
        if match:
            return Directive(
                name=match.group(1), raw_value=None, kind=DirectiveKind.FLAG, line_number=line_number
            )

        match = VALUED_DIRECTIVE.match(line)
        if match:
            return Directive(
                name=match.group(1),
                raw_value=match.group(2),
                kind=DirectiveKind.VALUED,
                line_number=line_number,
            )

        return None

    def directive_apply(
        self, directive: Directive, config: CompilerConfig, options: HandbookOptions
    ) -> None:
        """
        Apply a directive to the rendering switches or the compiler options

        Rendering switches are matched first, so a name present in both
        tables toggles rendering behavior.

        Raises:
            DirectiveError: If the name is unknown or the value does not fit
                            the option's type
        """
        value = True if directive.kind == DirectiveKind.FLAG else directive.raw_value

        if HandbookOptions.field_lookup(directive.name) is not None:
            target = options
        elif CompilerConfig.field_lookup(directive.name) is not None:
            target = config
        else:
            raise DirectiveError(
                f"unknown option '@{directive.name}' on line {directive.line_number}",
                sample=self.sample.body,
            )

        # pydantic would coerce True to 1 for numeric options
        if directive.kind == DirectiveKind.FLAG and not target.field_isFlag(
            target.field_lookup(directive.name)
        ):
            raise DirectiveError(
                f"'@{directive.name}' on line {directive.line_number} needs a value",
                sample=self.sample.body,
            )

        try:
            field_name = target.option_set(directive.name, value)
        except ValidationError as e:
            raise DirectiveError(
                f"invalid value {value!r} for '@{directive.name}' on line "
                f"{directive.line_number}: {e.errors()[0]['msg']}",
                sample=self.sample.body,
            ) from e

        LOG(f"Directive @{directive.name} -> {field_name}={getattr(target, field_name)!r}", level=3)
