"""
Markdown renderer.

render(text, flags) -> sanitized HTML. The work is done by an ordered
registry of named stages (see build_default_stages); the renderer adds the
wrapper, the sanitizer pass and the failure fallbacks. It never raises.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple
import logging

from markpad.core.config import FeatureFlags, RenderOptions
from markpad.core.sanitizer import Sanitizer, default_sanitizer
from markpad.features import blocks, inline
from markpad.features.blocks import escape_html
from markpad.features.registry import RenderContext, Stage, StageRegistry

logger = logging.getLogger(__name__)

# Sentinel: "use the process-wide sanitizer". None means "no sanitizer".
DEFAULT_SANITIZER = object()


@dataclass(frozen=True)
class RenderResult:
    html: str
    sanitized: bool
    failed_stages: Tuple[str, ...] = ()

    @property
    def needs_sanitization(self) -> bool:
        """True when html must go through a sanitizer before it is trusted."""
        return not self.sanitized

    def with_html(self, html: str, sanitized: bool) -> "RenderResult":
        return replace(self, html=html, sanitized=sanitized)


def build_default_stages() -> StageRegistry:
    """
    The render pipeline, highest priority first. Order matters:
    fences before everything, so code is never reinterpreted; task tokens
    before task lists, so nested task items resolve after their parents;
    images before links, since image syntax contains link syntax; link
    targets after code spans but before emphasis, so neither reaches into a
    URL; paragraphs after every block.
    """
    stages = StageRegistry()
    stages.register(Stage('normalize', blocks.normalize, critical=True,
                          contract="raw text -> LF line endings, no placeholder delimiters"), 200)
    stages.register(Stage('code_fences', blocks.code_fences, ('code',),
                          contract="fenced blocks -> escaped <pre><code> block placeholders"), 190)
    stages.register(Stage('escape', blocks.escape_text, critical=True,
                          contract="user text -> HTML-escaped text"), 180)
    stages.register(Stage('task_tokens', blocks.task_tokens, ('lists', 'task_lists'),
                          contract="task items -> opaque task tokens"), 172)
    stages.register(Stage('lists', blocks.lists, ('lists',),
                          contract="list items -> <ul>/<ol> block lines"), 170)
    stages.register(Stage('task_lists', blocks.task_lists, ('lists', 'task_lists'),
                          contract="task tokens -> checkbox list block lines"), 168)
    stages.register(Stage('images', inline.images, ('images',),
                          contract="![alt](src) -> <img> placeholders"), 160)
    stages.register(Stage('headings', blocks.headings, ('headings',),
                          contract="# lines -> <hN id> block lines"), 150)
    stages.register(Stage('line_breaks', blocks.line_breaks, ('line_breaks',),
                          contract="two trailing spaces -> <br /> placeholders"), 140)
    stages.register(Stage('blockquotes', blocks.blockquotes, ('blockquotes',),
                          contract="> lines -> <blockquote> block lines"), 130)
    stages.register(Stage('tables', blocks.tables, ('tables',),
                          contract="pipe rows -> <table> block lines, one cell per line"), 120)
    stages.register(Stage('inline_code', inline.inline_code, ('inline_code',),
                          contract="`code` -> <code> placeholders"), 110)
    stages.register(Stage('link_targets', inline.link_targets, ('links',),
                          contract="[text](href) -> [text] + link token, <a> tag stashed"), 105)
    stages.register(Stage('bold', inline.bold, ('bold',),
                          contract="**x** / __x__ -> <strong>"), 100)
    stages.register(Stage('italic', inline.italic, ('italic',),
                          contract="_x_ / *x* -> <em>"), 90)
    stages.register(Stage('strikethrough', inline.strikethrough, ('strikethrough',),
                          contract="~~x~~ -> <del>"), 80)
    stages.register(Stage('links', inline.links, ('links',),
                          contract="[text] + link token -> <a>"), 70)
    stages.register(Stage('footnotes', inline.footnotes, ('footnotes',),
                          contract="[^n]: definitions -> blocks, [^n] -> <sup> references"), 60)
    stages.register(Stage('horizontal_rules', inline.horizontal_rules, ('horizontal_rules',),
                          contract="--- / *** lines -> <hr /> block lines"), 50)
    stages.register(Stage('custom_renderers', inline.custom_renderers,
                          contract="user patterns -> stashed HTML fragments"), 40)
    stages.register(Stage('paragraphs', blocks.paragraphs,
                          contract="runs of bare lines -> <p> block lines"), 20)
    stages.register(Stage('restore', blocks.restore, critical=True,
                          contract="placeholders -> stashed markup"), 10)
    return stages


class MarkdownRenderer:
    """
    Renders markdown to sanitized HTML.

    :param sanitizer: Sanitizer to run on the output. Defaults to the
        process-wide sanitizer; pass None to render without one, in which case
        results come back with needs_sanitization set.
    :param options: RenderOptions shared by every render call.
    :param stages: Stage registry; defaults to build_default_stages().
    """

    def __init__(self, sanitizer=DEFAULT_SANITIZER, options: Optional[RenderOptions] = None,
                 stages: Optional[StageRegistry] = None):
        if sanitizer is DEFAULT_SANITIZER:
            sanitizer = default_sanitizer()
        self.sanitizer: Optional[Sanitizer] = sanitizer
        self.options = options or RenderOptions()
        self.stages = stages or build_default_stages()

    def render(self, text: str, flags: Optional[FeatureFlags] = None) -> str:
        return self.render_result(text, flags).html

    def render_result(self, text: str, flags: Optional[FeatureFlags] = None) -> RenderResult:
        flags = flags or FeatureFlags()
        try:
            html_out, failed = self._run_pipeline(text, flags)
        except Exception as e:
            logger.error(f"Renderer: pipeline crashed, falling back to escaped text: {e}", exc_info=True)
            return self._fallback(text)

        if any(self.stages[name].critical for name in failed):
            logger.warning(f"Renderer: critical stage failed ({failed}), falling back to escaped text")
            return self._fallback(text, failed)

        if self.sanitizer is None:
            logger.warning("Renderer: no sanitizer configured, output must be sanitized before use")
            return RenderResult(html_out, sanitized=False, failed_stages=failed)

        try:
            return RenderResult(self.sanitizer.sanitize(html_out), sanitized=True, failed_stages=failed)
        except Exception as e:
            logger.error(f"Renderer: sanitizer failed, falling back to escaped text: {e}", exc_info=True)
            return self._fallback(text, failed)

    def _run_pipeline(self, text: str, flags: FeatureFlags) -> Tuple[str, Tuple[str, ...]]:
        context = RenderContext(flags=flags, options=self.options)
        pipeline = self.stages.build_pipeline(flags)
        logger.debug(f"Render: {len(text)} chars input, stages {pipeline.stage_names}")
        html_out = pipeline.run(text, context)
        if self.options.class_name:
            html_out = f'<div class="{escape_html(self.options.class_name)}">{html_out}</div>'
        return html_out, tuple(context.failed_stages)

    def _fallback(self, text: str, failed: Tuple[str, ...] = ()) -> RenderResult:
        # Escaped plain text carries no markup, so it is safe as is
        return RenderResult(escape_html(text), sanitized=True, failed_stages=failed)


def render(text: str, flags: Optional[FeatureFlags] = None, options: Optional[RenderOptions] = None) -> str:
    """Render markdown with the process-wide sanitizer."""
    return MarkdownRenderer(options=options).render(text, flags)
