"""
sampledown - Annotated code samples for Markdown documentation

Library modules: stripping, span adapters, compositing, echoes, the
placeholder store and the Markdown integration.
"""

__version__ = "1.0.0"

from .compiler import SampleCompiler
from .errors import (
    DirectiveError,
    ProviderError,
    QueryMarkerError,
    SampleError,
    SpanConflictError,
    StoreError,
)
from .log import LOG, state_connectToLogger
from .render import SampleExtension, markdown_render, page_make, title_find
from .store import ResultAccumulator

__all__ = [
    "SampleCompiler",
    "SampleExtension",
    "ResultAccumulator",
    "markdown_render",
    "page_make",
    "title_find",
    "SampleError",
    "DirectiveError",
    "SpanConflictError",
    "QueryMarkerError",
    "ProviderError",
    "StoreError",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
