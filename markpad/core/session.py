"""
Editor session: the host-side wiring of the engine.

The session owns the current text, the selection and the history for one
document. Formatting goes through the text-edit engine, the result is
recorded in the history, and preview() feeds the text to the renderer. The
session adds no formatting or rendering logic of its own.
"""

import logging
from typing import Optional, Union

from markpad.core.config import FeatureFlags
from markpad.core.history import HistoryManager
from markpad.core.renderer import MarkdownRenderer, RenderResult
from markpad.editing.formatting import (
    EditResult,
    FormatSpec,
    Selection,
    format_text,
    get_format_spec,
    toggle_formatting,
)
from markpad.editing.shortcuts import DEFAULT_SHORTCUTS, match_shortcut
from markpad.editing.text_utils import (
    LineColumn,
    Paragraph,
    TextMetrics,
    get_current_paragraph,
    get_text_metrics,
    position_to_line_column,
)

logger = logging.getLogger(__name__)


class EditorSession:
    def __init__(self, initial_text: str = '', renderer: Optional[MarkdownRenderer] = None,
                 history: Optional[HistoryManager] = None, shortcuts=DEFAULT_SHORTCUTS):
        self._text = initial_text
        self._selection = Selection.caret(len(initial_text))
        self.renderer = renderer or MarkdownRenderer()
        self.history = history if history is not None else HistoryManager(initial_text)
        self.shortcuts = tuple(shortcuts)

    @property
    def text(self) -> str:
        return self._text

    @property
    def selection(self) -> Selection:
        return self._selection

    def select(self, start: int, end: Optional[int] = None) -> Selection:
        self._selection = Selection.from_range(self._text, start, end)
        return self._selection

    def set_text(self, text: str, selection: Optional[Selection] = None) -> None:
        """Replace the text (e.g. typing) and record it in the history."""
        self._text = text
        if selection is None:
            selection = self._selection
        self._selection = Selection.from_range(text, selection.start, selection.end)
        self.history.record(text)

    def apply_format(self, spec: Union[str, FormatSpec], toggle: bool = True) -> EditResult:
        """Apply a named format (or a FormatSpec) to the current selection."""
        if isinstance(spec, str):
            spec = get_format_spec(spec)
        if toggle:
            result = toggle_formatting(self._text, self._selection, spec)
        else:
            result = format_text(self._text, self._selection, spec)
        self._text = result.new_text
        self._selection = result.new_selection
        self.history.record(self._text)
        return result

    def undo(self) -> bool:
        return self._restore(self.history.undo())

    def redo(self) -> bool:
        return self._restore(self.history.redo())

    def _restore(self, text: Optional[str]) -> bool:
        if text is None:
            return False
        self._text = text
        self._selection = Selection.caret(min(self._selection.end, len(text)))
        return True

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo or self.history.pending is not None

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo and self.history.pending is None

    def poll(self) -> bool:
        return self.history.poll()

    def flush(self) -> bool:
        return self.history.flush()

    def handle_shortcut(self, key: str, ctrl: bool = False, shift: bool = False,
                        alt: bool = False, meta: bool = False) -> Optional[str]:
        """
        Dispatch a key event. Returns the command that ran, or None when the
        key is not bound (the host then handles it as normal typing).
        """
        shortcut = match_shortcut(key, ctrl, shift, alt, meta, self.shortcuts)
        if shortcut is None:
            return None
        if shortcut.command == 'undo':
            self.undo()
        elif shortcut.command == 'redo':
            self.redo()
        else:
            self.apply_format(shortcut.command)
        logger.debug(f"Session: shortcut {shortcut.description} -> {shortcut.command}")
        return shortcut.command

    def preview(self, flags: Optional[FeatureFlags] = None) -> RenderResult:
        return self.renderer.render_result(self._text, flags)

    def metrics(self) -> TextMetrics:
        return get_text_metrics(self._text)

    def cursor_position(self) -> LineColumn:
        return position_to_line_column(self._text, self._selection.end)

    def current_paragraph(self) -> Paragraph:
        return get_current_paragraph(self._text, self._selection.start)

    def close(self) -> None:
        self.history.close()
