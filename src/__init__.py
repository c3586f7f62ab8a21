"""
sampledown - Annotated code samples for Markdown documentation

Renders Markdown pages whose fenced Python samples come out classified,
diagnosed, highlighted and annotated with inline quick info.
"""

__version__ = "1.0.0"

from .lib import SampleCompiler, markdown_render, page_make, LOG, state_connectToLogger

__all__ = ["SampleCompiler", "markdown_render", "page_make", "LOG", "state_connectToLogger", "__version__"]
