"""
Text metrics and cursor helpers used by the editor chrome and the assist
features (status bar counts, line/column display, paragraph context).
"""

from typing import NamedTuple


class TextMetrics(NamedTuple):
    words: int
    chars: int
    lines: int


class LineColumn(NamedTuple):
    line: int
    column: int


class Paragraph(NamedTuple):
    text: str
    start: int
    end: int


def is_empty_line(line: str) -> bool:
    return line.strip() == ''


def line_starts_with(line: str, prefix: str) -> bool:
    return line.lstrip().startswith(prefix)


def get_indentation_level(line: str) -> int:
    """Number of leading whitespace characters."""
    return len(line) - len(line.lstrip())


def add_indentation(line: str, spaces: int) -> str:
    return ' ' * spaces + line


def remove_indentation(line: str, spaces: int) -> str:
    return line[min(get_indentation_level(line), spaces):]


def get_text_metrics(text: str) -> TextMetrics:
    return TextMetrics(words=len(text.split()), chars=len(text), lines=text.count('\n') + 1)


def position_to_line_column(text: str, position: int) -> LineColumn:
    """1-based line and column of an offset; the offset is clamped into the text."""
    position = min(max(position, 0), len(text))
    before = text[:position]
    line = before.count('\n') + 1
    column = position - (before.rfind('\n') + 1) + 1
    return LineColumn(line, column)


def line_column_to_position(text: str, line: int, column: int) -> int:
    """Offset of a 1-based line/column; out-of-range values are clamped."""
    lines = text.split('\n')
    line = min(max(line, 1), len(lines))
    offset = sum(len(l) + 1 for l in lines[:line - 1])
    column = min(max(column, 1), len(lines[line - 1]) + 1)
    return offset + column - 1


def get_current_paragraph(text: str, position: int) -> Paragraph:
    """
    The paragraph around position: expands to the nearest blank line in both
    directions. On a blank line, that line alone is returned.
    """
    lines = text.split('\n')
    position = min(max(position, 0), len(text))

    offset = 0
    for i, line in enumerate(lines):
        line_end = offset + len(line)
        # The last line also owns the end-of-text position
        if position <= line_end:
            if is_empty_line(line):
                return Paragraph(line, offset, line_end)

            first = i
            while first > 0 and not is_empty_line(lines[first - 1]):
                first -= 1
            last = i
            while last < len(lines) - 1 and not is_empty_line(lines[last + 1]):
                last += 1

            start = sum(len(l) + 1 for l in lines[:first])
            end = start + len('\n'.join(lines[first:last + 1]))
            return Paragraph(text[start:end], start, end)
        offset = line_end + 1

    return Paragraph('', len(text), len(text))
