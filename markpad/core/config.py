"""
Configuration for the Markpad engine.

Module constants hold the tunables shared by the renderer, the history manager
and the CLI. Per-call configuration lives in two immutable records:
FeatureFlags (which markdown syntaxes are enabled) and RenderOptions
(link handling, wrapper class and custom renderers).
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from markpad.core.errors import ConfigError

logger = logging.getLogger(__name__)

# History
DEBOUNCE_SECONDS = 0.5
MAX_HISTORY_ENTRIES = 100

# Document helpers
WORDS_PER_MINUTE = 200

# Lists: leading spaces per nesting level
LIST_INDENT_WIDTH = 2

# Restore: deepest nesting of stashed markup inside stashed markup
MAX_RESTORE_PASSES = 8

# Logging
LOG_FILE_NAME = "markpad.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# camelCase names used by editor front ends
_FLAG_ALIASES = {
    'inlineCode': 'inline_code',
    'taskLists': 'task_lists',
    'lineBreaks': 'line_breaks',
    'horizontalRules': 'horizontal_rules',
}


@dataclass(frozen=True)
class FeatureFlags:
    """
    Named toggles, one per markdown syntax category. All enabled by default.
    """
    headings: bool = True
    anchors: bool = True
    bold: bool = True
    italic: bool = True
    strikethrough: bool = True
    blockquotes: bool = True
    code: bool = True
    inline_code: bool = True
    links: bool = True
    images: bool = True
    lists: bool = True
    task_lists: bool = True
    tables: bool = True
    footnotes: bool = True
    line_breaks: bool = True
    horizontal_rules: bool = True

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def canonical_name(cls, name: str) -> str:
        """Map a camelCase or snake_case flag name to the field name."""
        canonical = _FLAG_ALIASES.get(name, name)
        if canonical not in cls.names():
            raise ConfigError(f"Unknown feature flag: '{name}'")
        return canonical

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeatureFlags":
        """
        Build flags from a mapping. Missing names keep their default (enabled).
        """
        values = {}
        for name, value in data.items():
            if not isinstance(value, bool):
                raise ConfigError(f"Feature flag '{name}' must be a boolean, got {type(value).__name__}")
            values[cls.canonical_name(name)] = value
        return cls(**values)

    def enabled(self, *names: str) -> bool:
        """True when every named flag is on."""
        return all(getattr(self, self.canonical_name(n)) for n in names)

    def only(self, *names: str) -> "FeatureFlags":
        keep = {self.canonical_name(n) for n in names}
        return FeatureFlags(**{n: n in keep for n in self.names()})

    def without(self, *names: str) -> "FeatureFlags":
        return replace(self, **{self.canonical_name(n): False for n in names})

    def to_dict(self) -> Dict[str, bool]:
        return {n: getattr(self, n) for n in self.names()}


CustomRenderer = Callable[[str], str]


@dataclass(frozen=True)
class RenderOptions:
    """
    Rendering options that are not syntax toggles.

    custom_renderers is an ordered tuple of (pattern, callable) pairs. The
    callable receives the first capture group (or the whole match) and returns
    an HTML fragment, which goes through the sanitizer like everything else.
    """
    class_name: Optional[str] = None
    base_url: Optional[str] = None
    open_links_in_new_tab: bool = True
    custom_renderers: Tuple[Tuple[str, CustomRenderer], ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RenderOptions":
        allowed = {'class_name', 'base_url', 'open_links_in_new_tab'}
        aliases = {'className': 'class_name', 'baseUrl': 'base_url',
                   'openLinksInNewTab': 'open_links_in_new_tab'}
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in allowed:
                raise ConfigError(f"Unknown render option: '{key}'")
            values[name] = value
        if not isinstance(values.get('open_links_in_new_tab', True), bool):
            raise ConfigError("Render option 'open_links_in_new_tab' must be a boolean")
        return cls(**values)

    def with_renderers(self, renderers: Iterable[Tuple[str, CustomRenderer]]) -> "RenderOptions":
        return replace(self, custom_renderers=tuple(renderers))


def load_render_config(path: Path) -> Tuple[FeatureFlags, RenderOptions]:
    """
    Load a JSON render configuration of the form
    {"features": {...}, "options": {...}}.
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read render config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Render config {path} must contain a JSON object")

    flags = FeatureFlags.from_dict(data.get('features', {}))
    options = RenderOptions.from_dict(data.get('options', {}))
    logger.debug(f"Loaded render config from {path}: {flags.to_dict()}")
    return flags, options
