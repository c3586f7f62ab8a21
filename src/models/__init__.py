"""
Models package for sampledown

Contains data structures and type definitions for the rendering pipeline.
"""

from .state import ProgramState, RenderResult, pipeline
from .directives import (
    CompilerConfig,
    Directive,
    DirectiveKind,
    HandbookOptions,
)
from .spans import (
    ClassifiedSpan,
    Diagnostic,
    DiagnosticMessage,
    HighlightSpan,
    MergeResult,
    PendingEcho,
    QueryMarker,
    SpanOrigin,
    Tagging,
)
from .sample import RenderedSample, SampleText, StrippedSample

__all__ = [
    "ProgramState",
    "RenderResult",
    "pipeline",
    "CompilerConfig",
    "Directive",
    "DirectiveKind",
    "HandbookOptions",
    "ClassifiedSpan",
    "Diagnostic",
    "DiagnosticMessage",
    "HighlightSpan",
    "MergeResult",
    "PendingEcho",
    "QueryMarker",
    "SpanOrigin",
    "Tagging",
    "RenderedSample",
    "SampleText",
    "StrippedSample",
]
