"""
Block-level render stages.

Every stage takes the working text and the RenderContext and returns new
working text. Emitted markup is stashed in the context and only a placeholder
stays in the text, so later stages never scan markup they did not write.

A line that starts with a block placeholder belongs to an emitted block; any
text after the placeholder on that line was already escaped by the escape
stage. The paragraph stage relies on this.
"""

import html
import logging
import re
from typing import List, Optional

from markdown.util import (
    ETX,
    HTML_PLACEHOLDER,
    HTML_PLACEHOLDER_RE,
    INLINE_PLACEHOLDER_RE,
    STX,
)

from markpad.core.config import LIST_INDENT_WIDTH, MAX_RESTORE_PASSES
from markpad.features.registry import RenderContext

logger = logging.getLogger(__name__)

BLOCK_PLACEHOLDER_PREFIX = HTML_PLACEHOLDER.split('%s')[0]
ANY_PLACEHOLDER_RE = re.compile(STX + '[^' + ETX + ']*' + ETX)

FENCE_RE = re.compile(
    r'^(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w+#.-]*)[^\n]*\n'
    r'(?P<code>.*?)\n?^(?P=fence)[ \t]*$',
    re.MULTILINE | re.DOTALL
)

TASK_ITEM_RE = re.compile(r'^(?P<indent>[ \t]*)[-*+][ \t]+\[(?P<mark>[ xX])\][ \t]+(?P<content>.*)$', re.MULTILINE)
TASK_TOKEN = STX + "task:%d:%d" + ETX
TASK_MARK_RE = re.compile(STX + r'task:(?P<depth>\d+):(?P<checked>[01])' + ETX)

LIST_ITEM_RE = re.compile(r'^(?P<indent>[ \t]*)(?P<marker>[-*+]|\d{1,9}[.)])[ \t]+(?P<content>.*)$')

HEADING_RE = re.compile(r'^(?P<level>#{1,6})[ \t]+(?P<content>.+?)(?:[ \t]+#+)?[ \t]*$', re.MULTILINE)

HARD_BREAK_RE = re.compile(r' {2,}\n')

# The escape stage has already turned ">" into "&gt;"
BLOCKQUOTE_RE = re.compile(r'^(?P<marks>(?:&gt;[ \t]?)+)(?P<content>.*)$', re.MULTILINE)


def escape_html(text: str) -> str:
    """Escape &, <, >, " and ' for use in text or attribute values."""
    return html.escape(text, quote=True)


def escape_attribute(value: str) -> str:
    """Quote-escape a value captured from already text-escaped input."""
    return escape_html(html.unescape(value))


def slugify(text: str) -> str:
    """Heading id: lowercase, runs of non-word characters replaced by '-'."""
    plain = html.unescape(ANY_PLACEHOLDER_RE.sub('', text))
    return re.sub(r'\W+', '-', plain.lower())


def is_block_line(line: str) -> bool:
    return line.startswith(BLOCK_PLACEHOLDER_PREFIX)


def indent_depth(indent: str) -> int:
    return len(indent.replace('\t', ' ' * LIST_INDENT_WIDTH)) // LIST_INDENT_WIDTH


def normalize_source(text: str) -> str:
    """Unify line endings and strip placeholder delimiters from user input."""
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    return text.replace(STX, '').replace(ETX, '')


def normalize(text: str, ctx: RenderContext) -> str:
    return normalize_source(text)


def code_fences(text: str, ctx: RenderContext) -> str:
    """Replace each fenced block by a placeholder; bodies are escaped verbatim."""
    def replace(match):
        lang = match.group('lang')
        code = escape_html(match.group('code'))
        if lang:
            return ctx.block(f'<pre><code class="language-{escape_html(lang)}">{code}</code></pre>')
        return ctx.block(f'<pre><code>{code}</code></pre>')

    return FENCE_RE.sub(replace, text)


def escape_text(text: str, ctx: RenderContext) -> str:
    """Escape all remaining user text. Placeholders contain nothing to escape."""
    return html.escape(text, quote=False)


def task_tokens(text: str, ctx: RenderContext) -> str:
    """
    First phase of task lists: mark "- [ ] x" / "- [x] x" lines with an opaque
    token carrying depth and checked state, so the general list pattern
    does not also match them.
    """
    def replace(match):
        depth = indent_depth(match.group('indent'))
        checked = 1 if match.group('mark') in 'xX' else 0
        return TASK_TOKEN % (depth, checked) + match.group('content')

    return TASK_ITEM_RE.sub(replace, text)


class _Level:
    __slots__ = ('kind', 'item_open')

    def __init__(self, kind: str):
        self.kind = kind
        self.item_open = False


class ListBuilder:
    """
    Line-by-line list state machine. Tracks the open lists as a stack, one
    level per nesting depth. Emits one block line per item.
    """

    CLOSE = {'ul': '</ul>', 'ol': '</ol>', 'task': '</ul>'}

    def __init__(self, ctx: RenderContext):
        self.ctx = ctx
        self.stack: List[_Level] = []
        self.lines: List[str] = []

    @property
    def in_list(self) -> bool:
        return bool(self.stack)

    def _open_tag(self, kind: str, start: Optional[int] = None) -> str:
        if kind == 'task':
            return '<ul class="task-list">'
        if kind == 'ol':
            if start is not None and start != 1:
                return f'<ol start="{start}">'
            return '<ol>'
        return '<ul>'

    def _close_level(self) -> str:
        level = self.stack.pop()
        return ('</li>' if level.item_open else '') + self.CLOSE[level.kind]

    def add_item(self, depth: int, kind: str, content: str, start: Optional[int] = None,
                 item_tag: str = '<li>'):
        # An over-indented item nests one level below the open item, never more
        depth = min(depth, len(self.stack))
        tags = []
        # Depth decrease closes deeper lists before the new item
        while len(self.stack) > depth + 1:
            tags.append(self._close_level())
        if len(self.stack) == depth + 1:
            top = self.stack[-1]
            if top.kind != kind:
                tags.append(self._close_level())
            elif top.item_open:
                tags.append('</li>')
                top.item_open = False
        # A deeper item opens a nested list inside the open item
        if len(self.stack) < depth + 1:
            tags.append(self._open_tag(kind, start))
            self.stack.append(_Level(kind))
        tags.append(item_tag)
        self.stack[-1].item_open = True
        self.lines.append(self.ctx.block(''.join(tags)) + content)

    def close_all(self):
        if not self.stack:
            return
        tags = []
        while self.stack:
            tags.append(self._close_level())
        self.lines.append(self.ctx.block(''.join(tags)))

    def add_line(self, line: str):
        self.close_all()
        self.lines.append(line)

    def result(self) -> str:
        self.close_all()
        return '\n'.join(self.lines)


def lists(text: str, ctx: RenderContext) -> str:
    """
    Resolve ordered, unordered and task lists. A task token line is an item
    of a task list at the token's depth; the token stays in the item for the
    task list stage. Any other non-item line closes every open list.
    """
    builder = ListBuilder(ctx)
    for line in text.split('\n'):
        task = TASK_MARK_RE.match(line)
        if task:
            item_class = 'task-list-item checked' if task.group('checked') == '1' else 'task-list-item'
            builder.add_item(int(task.group('depth')), 'task', line, item_tag=f'<li class="{item_class}">')
            continue
        match = LIST_ITEM_RE.match(line)
        if not match:
            builder.add_line(line)
            continue
        marker = match.group('marker')
        depth = indent_depth(match.group('indent'))
        if marker[0].isdigit():
            builder.add_item(depth, 'ol', match.group('content'), start=int(marker[:-1]))
        else:
            builder.add_item(depth, 'ul', match.group('content'))
    return builder.result()


def task_lists(text: str, ctx: RenderContext) -> str:
    """Second phase of task lists: resolve the tokens into disabled checkboxes."""
    if STX + 'task:' not in text:
        return text
    checked = ctx.span('<input type="checkbox" checked disabled /> ')
    unchecked = ctx.span('<input type="checkbox" disabled /> ')
    return TASK_MARK_RE.sub(lambda m: checked if m.group('checked') == '1' else unchecked, text)


def headings(text: str, ctx: RenderContext) -> str:
    anchors = ctx.flags.anchors

    def replace(match):
        level = len(match.group('level'))
        content = match.group('content')
        heading_id = slugify(content)
        closing = f'</h{level}>'
        if anchors:
            closing = f'<a href="#{heading_id}" class="heading-anchor" aria-hidden="true">#</a>' + closing
        return ctx.block(f'<h{level} id="{heading_id}">') + content + ctx.block(closing)

    return HEADING_RE.sub(replace, text)


def line_breaks(text: str, ctx: RenderContext) -> str:
    """
    Two trailing spaces before a newline become a hard break. Blank lines are
    left in place; the paragraph stage splits on them.
    """
    if not HARD_BREAK_RE.search(text):
        return text
    br = ctx.span('<br />')
    return HARD_BREAK_RE.sub(lambda m: br + '\n', text)


def blockquotes(text: str, ctx: RenderContext) -> str:
    def replace(match):
        depth = match.group('marks').count('&gt;')
        padding = (depth - 1) * 6
        return (ctx.block(f'<blockquote class="blockquote depth-{depth} ml-{padding}">')
                + match.group('content').strip()
                + ctx.block('</blockquote>'))

    return BLOCKQUOTE_RE.sub(replace, text)


def _is_table_row(line: str) -> bool:
    stripped = line.strip()
    return len(stripped) >= 2 and stripped.startswith('|') and stripped.endswith('|')


def _split_cells(row: str) -> List[str]:
    return [cell.strip() for cell in row.strip().split('|')[1:-1]]


def _alignment(cell: str) -> Optional[str]:
    left = cell.startswith(':')
    right = cell.endswith(':')
    if left and right:
        return 'center'
    if right:
        return 'right'
    if left:
        return 'left'
    return None


def _render_table(rows: List[str], ctx: RenderContext) -> List[str]:
    header = _split_cells(rows[0])
    has_alignment = len(rows) > 1 and '---' in rows[1]
    aligns = [_alignment(c) for c in _split_cells(rows[1])] if has_alignment else []
    body = rows[2:] if has_alignment else rows[1:]

    def cell_tag(tag, index):
        align = aligns[index] if index < len(aligns) else None
        return f'<{tag} class="text-{align}">' if align else f'<{tag}>'

    # One cell per line so inline patterns never span two cells
    out = [ctx.block('<table class="table"><thead><tr>')]
    for i, cell in enumerate(header):
        out.append(ctx.block(cell_tag('th', i)) + cell + ctx.block('</th>'))
    out.append(ctx.block('</tr></thead><tbody>'))
    for row in body:
        out.append(ctx.block('<tr>'))
        for i, cell in enumerate(_split_cells(row)):
            out.append(ctx.block(cell_tag('td', i)) + cell + ctx.block('</td>'))
        out.append(ctx.block('</tr>'))
    out.append(ctx.block('</tbody></table>'))
    return out


def tables(text: str, ctx: RenderContext) -> str:
    """A contiguous run of pipe-delimited lines is one table."""
    out: List[str] = []
    run: List[str] = []
    for line in text.split('\n'):
        if _is_table_row(line):
            run.append(line)
            continue
        if run:
            out.extend(_render_table(run, ctx))
            run = []
        out.append(line)
    if run:
        out.extend(_render_table(run, ctx))
    return '\n'.join(out)


def paragraphs(text: str, ctx: RenderContext) -> str:
    """
    Wrap each run of bare lines in a paragraph. Blank lines and emitted
    blocks end a paragraph.
    """
    out: List[str] = []
    para: List[str] = []

    def flush():
        if para:
            out.append(ctx.block('<p>') + '\n'.join(para) + ctx.block('</p>'))
            para.clear()

    for line in text.split('\n'):
        if not line.strip():
            flush()
        elif is_block_line(line):
            flush()
            out.append(line)
        else:
            para.append(line)
    flush()
    return '\n'.join(out)


def restore(text: str, ctx: RenderContext) -> str:
    """Swap placeholders back for the stashed markup, innermost last."""
    blocks = ctx.blocks.rawHtmlBlocks
    spans = ctx.inline.rawHtmlBlocks

    def from_stash(stash):
        def replace(match):
            index = int(match.group(1))
            return stash[index] if index < len(stash) else ''
        return replace

    # Stashed markup can itself hold placeholders (e.g. an image inside a cell)
    for _ in range(MAX_RESTORE_PASSES):
        restored = HTML_PLACEHOLDER_RE.sub(from_stash(blocks), text)
        restored = INLINE_PLACEHOLDER_RE.sub(from_stash(spans), restored)
        if restored == text:
            break
        text = restored

    # Unresolved tokens (e.g. from a stage that failed) must not leak
    return ANY_PLACEHOLDER_RE.sub('', text)
