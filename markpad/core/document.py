"""
Whole-document helpers: headings, table of contents, word count and
reading time. They work on raw markdown and share the renderer's heading
ids, so TOC links point at the rendered headings.
"""

import html
import math
import re
from typing import List, NamedTuple, Optional

from markpad.core.config import WORDS_PER_MINUTE
from markpad.core.sanitizer import Sanitizer, default_sanitizer
from markpad.features.blocks import FENCE_RE, HEADING_RE, escape_html, normalize_source, slugify
from markpad.features.inline import IMAGE_RE

INLINE_CODE_SPAN_RE = re.compile(r'`[^`]+`')
LINK_TEXT_RE = re.compile(r'\[([^\]]+)\]\([^)]+\)')

ELEMENT_PATTERNS = {
    'table': re.compile(r'\|(.+)\|[\r\n]'),
    'code': re.compile(r'```[\s\S]*?```'),
    'heading': re.compile(r'^#{1,6}\s+.+$', re.MULTILINE),
    'list': re.compile(r'^(\s*)([-*+]|\d+\.)(\s+)(.+)$', re.MULTILINE),
}


class Heading(NamedTuple):
    text: str
    level: int
    id: str


def extract_headings(markdown_text: str) -> List[Heading]:
    """
    Headings outside fenced code, in document order. Images are left out of
    the heading text, as they are when the renderer derives the id.
    """
    text = FENCE_RE.sub('', normalize_source(markdown_text))
    headings = []
    for match in HEADING_RE.finditer(text):
        content = match.group('content')
        # Same id the renderer derives from the escaped heading text
        heading_id = slugify(IMAGE_RE.sub('', html.escape(content, quote=False)))
        label = IMAGE_RE.sub('', content).strip() or content
        headings.append(Heading(text=label, level=len(match.group('level')), id=heading_id))
    return headings


def generate_table_of_contents(markdown_text: str, sanitizer: Optional[Sanitizer] = None) -> str:
    """
    Nested <ul> navigation of the document headings. Empty string when the
    document has none.
    """
    headings = extract_headings(markdown_text)
    if not headings:
        return ''

    parts = ['<nav class="toc">', '<h2>Table of Contents</h2>', '<ul>']
    current_level = 0
    for heading in headings:
        if heading.level > current_level:
            parts.extend(['<ul>'] * (heading.level - current_level))
        elif heading.level < current_level:
            parts.extend(['</ul>'] * (current_level - heading.level))
        current_level = heading.level
        parts.append(f'<li><a href="#{escape_html(heading.id)}">{escape_html(heading.text)}</a></li>')

    parts.extend(['</ul>'] * current_level)
    parts.extend(['</ul>', '</nav>'])
    return (sanitizer or default_sanitizer()).sanitize('\n'.join(parts))


def get_word_count(markdown_text: str) -> int:
    """Words outside code; links count their text only."""
    text = re.sub(r'```[\s\S]*?```', '', markdown_text)
    text = INLINE_CODE_SPAN_RE.sub('', text)
    text = LINK_TEXT_RE.sub(r'\1', text)
    return len(text.split())


def get_reading_time(markdown_text: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Reading time in whole minutes, rounded up."""
    if words_per_minute <= 0:
        raise ValueError("words_per_minute must be positive")
    return math.ceil(get_word_count(markdown_text) / words_per_minute)


def contains_element_type(markdown_text: str, element_type: str) -> bool:
    pattern = ELEMENT_PATTERNS.get(element_type)
    if pattern is None:
        return False
    return bool(pattern.search(markdown_text))
