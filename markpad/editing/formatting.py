"""
Selection-aware markdown formatting.

All functions are pure: they take the full text and a selection and return
the new text with the selection the editor should show afterwards.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

from markpad.core.errors import FormatSpecError

logger = logging.getLogger(__name__)

LinePrefix = Union[str, Callable[[int], str]]


@dataclass(frozen=True)
class Selection:
    start: int
    end: int
    text: str = ''

    @classmethod
    def from_range(cls, text: str, start: int, end: Optional[int] = None) -> "Selection":
        """Selection over text[start:end], clamped into the text."""
        if end is None:
            end = start
        start, end = clamp_range(text, start, end)
        return cls(start, end, text[start:end])

    @classmethod
    def caret(cls, position: int) -> "Selection":
        return cls(position, position, '')

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class EditResult:
    new_text: str
    new_selection: Selection


@dataclass(frozen=True)
class FormatSpec:
    """
    How a format is applied. multiline requires line_prefix; with
    replace_selection the suffix is ignored.
    """
    prefix: str
    suffix: str = ''
    block_level: bool = False
    replace_selection: bool = False
    multiline: bool = False
    line_prefix: Optional[LinePrefix] = None

    def __post_init__(self):
        if self.multiline and self.line_prefix is None:
            raise FormatSpecError("A multiline format needs a line_prefix")

    def prefix_for_line(self, index: int) -> str:
        if callable(self.line_prefix):
            return self.line_prefix(index)
        return self.line_prefix if self.line_prefix is not None else self.prefix


FORMAT_SPECS: Dict[str, FormatSpec] = {
    'bold': FormatSpec('**', '**'),
    'italic': FormatSpec('_', '_'),
    'strikethrough': FormatSpec('~~', '~~'),
    'code': FormatSpec('`', '`'),
    'code_block': FormatSpec('```\n', '\n```', block_level=True),
    'link': FormatSpec('[', '](url)'),
    'image': FormatSpec('![', '](url)'),
    'quote': FormatSpec('> ', block_level=True, multiline=True, line_prefix='> '),
    'h1': FormatSpec('# ', block_level=True),
    'h2': FormatSpec('## ', block_level=True),
    'h3': FormatSpec('### ', block_level=True),
    'h4': FormatSpec('#### ', block_level=True),
    'h5': FormatSpec('##### ', block_level=True),
    'h6': FormatSpec('###### ', block_level=True),
    'unordered_list': FormatSpec('- ', block_level=True, multiline=True, line_prefix='- '),
    'ordered_list': FormatSpec('1. ', block_level=True, multiline=True,
                               line_prefix=lambda i: f'{i + 1}. '),
    'task_list': FormatSpec('- [ ] ', block_level=True, multiline=True, line_prefix='- [ ] '),
    'table': FormatSpec(
        '| Header 1 | Header 2 |\n|----------|----------|\n| Cell 1   | Cell 2   |',
        block_level=True, replace_selection=True,
    ),
    'horizontal_rule': FormatSpec('\n---\n', block_level=True, replace_selection=True),
}


def get_format_spec(name: str) -> FormatSpec:
    try:
        return FORMAT_SPECS[name]
    except KeyError:
        raise FormatSpecError(f"Unknown format: '{name}'") from None


def clamp_range(text: str, start: int, end: int):
    """Clamp offsets into [0, len(text)] and order them."""
    length = len(text)
    start = min(max(start, 0), length)
    end = min(max(end, 0), length)
    if end < start:
        start, end = end, start
    return start, end


def _normalize(text: str, selection: Selection) -> Selection:
    start, end = clamp_range(text, selection.start, selection.end)
    if (start, end) != (selection.start, selection.end):
        logger.debug(f"Clamped selection {selection.start}-{selection.end} to {start}-{end}")
    return Selection(start, end, text[start:end])


def format_text(text: str, selection: Selection, spec: FormatSpec) -> EditResult:
    """
    Apply spec to the selection. First matching rule wins:
    block insert at an empty caret, replace, per-line prefix, wrap.
    """
    selection = _normalize(text, selection)
    start, end, selected = selection.start, selection.end, selection.text
    before, after = text[:start], text[end:]

    if selected == '' and spec.block_level:
        if spec.replace_selection:
            lead, insert = '', spec.prefix
        else:
            lead = '\n' if start > 0 and text[start - 1] != '\n' else ''
            trail = '\n' if text[end:end + 1] != '\n' else ''
            insert = f'{lead}{spec.prefix}{spec.suffix}{trail}'
        caret = start + len(lead) + len(spec.prefix)
        return EditResult(before + insert + after, Selection.caret(caret))

    if spec.replace_selection:
        caret = start + len(spec.prefix)
        return EditResult(before + spec.prefix + after, Selection.caret(caret))

    if spec.multiline and '\n' in selected:
        lines = selected.split('\n')
        formatted = '\n'.join(
            line if not line.strip() else spec.prefix_for_line(i) + line
            for i, line in enumerate(lines)
        )
        new_text = before + formatted + after
        return EditResult(new_text, Selection(start, start + len(formatted), formatted))

    wrapped = spec.prefix + selected + spec.suffix
    new_text = before + wrapped + after
    if selected:
        return EditResult(new_text, Selection(start, start + len(wrapped), wrapped))
    caret = start + len(spec.prefix)
    return EditResult(new_text, Selection.caret(caret))


def toggle_formatting(text: str, selection: Selection, spec: FormatSpec) -> EditResult:
    """
    Remove spec's prefix/suffix when the selection starts and ends with them,
    otherwise apply spec. The check is a plain affix match, so text that
    merely happens to start and end with the markers is also unwrapped.
    """
    selection = _normalize(text, selection)
    selected = selection.text
    if selected == '':
        return format_text(text, selection, spec)

    affix_len = len(spec.prefix) + len(spec.suffix)
    if len(selected) >= affix_len and selected.startswith(spec.prefix) and selected.endswith(spec.suffix):
        inner = selected[len(spec.prefix):len(selected) - len(spec.suffix)]
        new_text = text[:selection.start] + inner + text[selection.end:]
        return EditResult(new_text, Selection(selection.start, selection.start + len(inner), inner))

    return format_text(text, selection, spec)


def apply_format(text: str, selection: Selection, name: str, toggle: bool = True) -> EditResult:
    """Apply one of the named FORMAT_SPECS."""
    spec = get_format_spec(name)
    if toggle:
        return toggle_formatting(text, selection, spec)
    return format_text(text, selection, spec)
