"""
Sample compiler

Turns one fenced sample into final markup:

    raw sample -> Stripper -> analysis provider -> TaggingCollector
               -> Compositor (+ EchoRenderer) -> ResultAccumulator token

Each sample is handled in isolation. A SampleError raised anywhere on
that path renders an error block in the sample's place and the rest of
the document carries on, unless strict mode is set.
"""

import html
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..config import AppSettings, appsettings
from ..models.directives import CompilerConfig
from ..models.sample import SampleText, StrippedSample
from ..models.spans import Diagnostic
from .adapters import TaggingCollector, classifications_merge, spans_validateMerge
from .analysis import AnalysisContext, AnalysisProvider, PythonAnalysisProvider
from .compositor import Compositor, queries_rebase, taggings_rebase
from .echo import EchoRenderer
from .errors import ProviderError, SampleError, SpanConflictError
from .highlighter import DecorativeHighlighter
from .log import LOG
from .store import ResultAccumulator
from .stripper import Stripper


T = TypeVar("T")


class SampleCompiler:
    """
    Compiles fenced samples to annotated HTML

    Responsibilities:
    - Strip directives and markers from each sample
    - Ask the analysis provider for classifications, diagnostics, quick
      info and emitted output
    - Normalize every span into a Tagging and composite them
    - Isolate per-sample failures

    The decorative lexers and the compiler defaults are set up once per
    instance; nothing else carries over from one sample to the next.
    """

    def __init__(
        self,
        provider: Optional[AnalysisProvider] = None,
        defaults: Optional[CompilerConfig] = None,
        settings: Optional[AppSettings] = None,
        strict: Optional[bool] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            provider: Analysis provider (PythonAnalysisProvider by default)
            defaults: Compiler options every sample starts from (read from
                      settings.compiler_defaults_file when omitted)
            settings: Application settings (appsettings by default)
            strict: Re-raise sample failures (settings.strict_mode by default)
        """
        self.settings = settings or appsettings
        self.provider: AnalysisProvider = provider or PythonAnalysisProvider()
        self.defaults = (
            defaults
            if defaults is not None
            else CompilerConfig.defaults_load(self.settings.compiler_defaults_file)
        )
        self.strict = self.settings.strict_mode if strict is None else strict
        self.highlighters: Dict[str, DecorativeHighlighter] = {}
        self.failures: List[SampleError] = []
        LOG(f"Sample compiler ready (target {self.defaults.target}, strict={self.strict})", level=2)

    def highlighter_get(self, language: str) -> DecorativeHighlighter:
        """Decorative highlighter for a fence tag, built on first use"""
        key = language.lower()
        if key not in self.highlighters:
            self.highlighters[key] = DecorativeHighlighter(key)
        return self.highlighters[key]

    def provider_call(self, what: str, sample: SampleText, call: Callable[..., T], *args: Any) -> T:
        """
        Call the analysis provider, turning its failures into ProviderError

        Raises:
            ProviderError: If the provider raised anything but a SampleError
        """
        try:
            return call(*args)
        except SampleError:
            raise
        except Exception as e:
            raise ProviderError(f"analysis provider failed during {what}: {e}", sample=sample.body) from e

    def sample_compile(self, sample: SampleText, results: ResultAccumulator) -> str:
        """
        Render a sample and reserve its markup

        Args:
            sample: Raw fenced sample
            results: Store for the current document conversion

        Returns:
            Reservation token standing in for the rendered sample

        Raises:
            SampleError: Only in strict mode
        """
        try:
            markup = self.sample_render(sample)
        except SampleError as e:
            if e.sample is None:
                e.sample = sample.body
            self.failures.append(e)
            LOG(f"Sample failed ({type(e).__name__}): {e}", level=1)
            if self.strict:
                raise
            markup = self.errorBlock_make(e)
        return results.reserve(markup)

    def sample_render(self, sample: SampleText) -> str:
        """
        Render one sample to a complete HTML block

        Raises:
            SpanConflictError: Classification passes disagree (not lenient)
            QueryMarkerError: Two query markers under one line
            ProviderError: The analysis provider raised
        """
        stripped = Stripper(sample, defaults=self.defaults, cut_marker=self.settings.cut_marker).strip()
        source = stripped.clean_source
        context: AnalysisContext = self.provider_call(
            "context creation", sample, self.provider.context_create, source, stripped.config
        )
        LOG(f"Sample v{context.version}: {len(source)} characters", level=3)

        collector = TaggingCollector(len(source))

        syntactic = self.provider_call(
            "syntactic classification", sample, self.provider.classifications_syntactic, context
        )
        semantic = self.provider_call(
            "semantic classification", sample, self.provider.classifications_semantic, context
        )
        merge = spans_validateMerge(syntactic, semantic)
        if not merge.ok:
            first_syntactic, first_semantic = merge.conflicts[0]
            message = (
                f"syntactic and semantic classifications disagree at offset "
                f"{first_semantic.position} ({first_syntactic.length} vs {first_semantic.length} characters)"
            )
            if not self.settings.lenient_spans:
                raise SpanConflictError(message, sample=sample.body)
            LOG(f"Dropping {len(merge.conflicts)} semantic spans: {message}", level=2)
        collector.classifications_add(classifications_merge(syntactic, semantic, merge))

        diagnostics: List[Diagnostic] = []
        if not stripped.options.suppress_errors:
            diagnostics = self.provider_call(
                "diagnostics", sample, self.provider.diagnostics_get, context
            )
            collector.diagnostics_add(diagnostics)

        collector.decorations_add(self.highlighter_get(sample.language).tokens_get(source))
        collector.highlights_add(stripped.highlights)
        LOG(f"Collected {len(collector.taggings)} taggings", level=3)

        emitted = ''
        if stripped.options.show_emitted_output:
            emitted = self.provider_call("output emission", sample, self.provider.output_emit, context)

        return self.composite(sample, stripped, context, collector, diagnostics, emitted)

    def composite(
        self,
        sample: SampleText,
        stripped: StrippedSample,
        context: AnalysisContext,
        collector: TaggingCollector,
        diagnostics: List[Diagnostic],
        emitted: str,
    ) -> str:
        """Composite collected taggings over the displayed part of the sample"""
        offset = stripped.cut_offset
        displayed = stripped.displayed_source

        def lookup(position: int) -> Optional[str]:
            return self.provider_call(
                "quick info",
                sample,
                self.provider.quickInfo_get,
                context,
                position,
            )

        echo = EchoRenderer(lookup, base_offset=offset, placeholder=self.settings.echo_placeholder)
        compositor = Compositor(
            displayed,
            taggings_rebase(collector.taggings, offset, len(displayed)),
            queries_rebase(stripped.queries, offset),
            echo,
        )
        return compositor.render(
            diagnostics=diagnostics,
            options=stripped.options,
            emitted=emitted,
            playground_source=stripped.clean_source,
            settings=self.settings,
        )

    def errorBlock_make(self, error: SampleError) -> str:
        """Markup rendered in place of a sample that failed"""
        body = html.escape(error.sample or '', quote=False)
        message = html.escape(str(error), quote=False)
        return (
            f'<pre class="sample-error" data-error="{type(error).__name__}">'
            f'<div class="sample-error-message">{message}</div>{body}</pre>'
        )
