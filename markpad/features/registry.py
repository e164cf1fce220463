from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple
import logging

from markdown.util import HtmlStash, Registry, INLINE_PLACEHOLDER

from markpad.core.config import FeatureFlags, RenderOptions

logger = logging.getLogger(__name__)


class InlineStash(HtmlStash):
    """
    Stash for inline markup. Uses the inline placeholder template so block
    placeholders and inline placeholders can be told apart in the text.
    """

    def get_placeholder(self, key: int) -> str:
        return INLINE_PLACEHOLDER % key


@dataclass
class RenderContext:
    """
    Per-render state shared by the stages of one pipeline run.

    blocks holds emitted block-level markup (fences, list/heading/table tags);
    inline holds emitted inline markup. Both are restored by the final stage.
    """
    flags: FeatureFlags
    options: RenderOptions
    blocks: HtmlStash = field(default_factory=HtmlStash)
    inline: InlineStash = field(default_factory=InlineStash)
    failed_stages: List[str] = field(default_factory=list)

    def block(self, html: str) -> str:
        return self.blocks.store(html)

    def span(self, html: str) -> str:
        return self.inline.store(html)


StageHandler = Callable[[str, RenderContext], str]


class Stage:
    """
    One named transformation of the render pipeline.

    :param name: Unique stage name, used for ordering and logging.
    :param handler: Callable (text, context) -> text.
    :param requires: Feature flags that must all be enabled for the stage to run.
    :param contract: Short description of what the stage consumes and emits.
    :param critical: If a critical stage fails, the renderer discards the
        pipeline output and falls back to escaped text.
    """

    def __init__(self, name: str, handler: StageHandler, requires: Tuple[str, ...] = (),
                 contract: str = "", critical: bool = False):
        self.name = name
        self.handler = handler
        self.requires = tuple(requires)
        self.contract = contract
        self.critical = critical

    def is_enabled(self, flags: FeatureFlags) -> bool:
        return flags.enabled(*self.requires)

    def __call__(self, text: str, context: RenderContext) -> str:
        return self.handler(text, context)

    def __repr__(self):
        return f"<Stage {self.name}>"


class Pipeline:
    """
    A sequence of stages executed in order.
    A failing stage is logged and skipped; its input flows on unchanged.
    """

    def __init__(self, name: str):
        self.name = name
        self._steps: List[Stage] = []

    def add_step(self, stage: Stage):
        self._steps.append(stage)

    def run(self, content: str, context: RenderContext) -> str:
        """Execute the pipeline on the content."""
        logger.debug(f"Running pipeline {self.name} with {len(self._steps)} steps")
        for step in self._steps:
            try:
                content = step(content, context)
            except Exception as e:
                logger.error(f"Pipeline {self.name} step {step.name} failed: {e}", exc_info=True)
                context.failed_stages.append(step.name)
        return content

    @property
    def stage_names(self) -> List[str]:
        return [s.name for s in self._steps]

    def __iter__(self):
        return iter(self._steps)

    def __len__(self):
        return len(self._steps)


class StageRegistry:
    """
    Priority-ordered collection of stages. Higher priority runs first.
    """

    def __init__(self, stages: Optional[Iterable[Tuple[Stage, float]]] = None):
        self._stages: Registry = Registry()
        for stage, priority in stages or ():
            self.register(stage, priority)

    def register(self, stage: Stage, priority: float):
        if stage.name in self._stages:
            logger.warning(f"StageRegistry: Overwrote existing stage '{stage.name}'")
        self._stages.register(stage, stage.name, priority)

    def deregister(self, name: str):
        self._stages.deregister(name)

    def names(self) -> List[str]:
        return [s.name for s in self._stages]

    def __contains__(self, name: str) -> bool:
        return name in self._stages

    def __getitem__(self, name: str) -> Stage:
        return self._stages[name]

    def __len__(self):
        return len(self._stages)

    def build_pipeline(self, flags: FeatureFlags, name: str = "RenderPipeline") -> Pipeline:
        """Build a pipeline of the stages enabled under flags, in priority order."""
        pipeline = Pipeline(name)
        for stage in self._stages:
            if stage.is_enabled(flags):
                pipeline.add_step(stage)
            else:
                logger.debug(f"StageRegistry: stage '{stage.name}' disabled by flags {stage.requires}")
        return pipeline
