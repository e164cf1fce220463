"""
Inline render stages.

Wrapper tags go to the inline stash; wrapped content stays in the working
text so the stages after it can still format it. Code spans are the
exception: their content is stashed too, so nothing inside them is
reinterpreted.
"""

import html
import logging
import re
from typing import Optional
from urllib.parse import urljoin

from markdown.util import ETX, INLINE_PLACEHOLDER, STX

from markpad.features.blocks import escape_attribute
from markpad.features.registry import RenderContext

logger = logging.getLogger(__name__)

# URLs and titles never contain placeholders, so stashed markup cannot end
# up inside an attribute
IMAGE_RE = re.compile(r'!\[(?P<alt>[^\]]*)\]\((?P<src>[^)\s\x02\x03]+)(?:[ \t]+"(?P<title>[^"\x02\x03]*)")?\)')
LINK_RE = re.compile(r'\[(?P<text>[^\]]+)\]\((?P<href>[^)\s\x02\x03]+)(?:[ \t]+"(?P<title>[^"\x02\x03]*)")?\)')
LINK_TOKEN = STX + "link:%d" + ETX
LINK_TOKEN_RE = re.compile(r'\[(?P<text>[^\]]+)\]' + STX + r'link:(?P<index>\d+)' + ETX)
INLINE_CODE_RE = re.compile(r'(?<!`)(?P<ticks>`+)(?!`)(?P<code>.+?)(?<!`)(?P=ticks)(?!`)')

BOLD_RES = (
    re.compile(r'\*\*(?=\S)(?P<content>.+?)(?<=\S)\*\*'),
    re.compile(r'\b__(?=\S)(?P<content>.+?)(?<=\S)__\b'),
)
ITALIC_RES = (
    re.compile(r'\b_(?=\S)(?P<content>.+?)(?<=\S)_\b'),
    # "***" and list bullets are not emphasis
    re.compile(r'(?<![\w*])\*(?=[^\s*])(?P<content>.+?)(?<=[^\s*])\*(?![\w*])'),
)
STRIKETHROUGH_RE = re.compile(r'~~(?=\S)(?P<content>.+?)(?<=\S)~~')

FOOTNOTE_DEF_RE = re.compile(r'^\[\^(?P<id>[\w-]+)\]:[ \t]*(?P<content>.+)$', re.MULTILINE)
FOOTNOTE_REF_RE = re.compile(r'\[\^(?P<id>[\w-]+)\](?!:)')

HR_RE = re.compile(r'^ {0,3}(?:(?:-[ \t]*){3,}|(?:\*[ \t]*){3,})$', re.MULTILINE)

_ABSOLUTE_URL_RE = re.compile(r'^(?:[a-z][a-z0-9+.\-]*:|//)', re.IGNORECASE)


def resolve_url(url: str, base_url: Optional[str]) -> str:
    """
    Resolve a captured (text-escaped) URL against base_url and return it
    quote-escaped for use in an attribute.
    """
    raw = html.unescape(url)
    if base_url and not _ABSOLUTE_URL_RE.match(raw) and not raw.startswith('#'):
        raw = urljoin(base_url, raw)
    return escape_attribute(raw)


def _title_attr(match) -> str:
    title = match.group('title')
    return f' title="{escape_attribute(title)}"' if title else ''


def images(text: str, ctx: RenderContext) -> str:
    """Runs before links: image syntax is a superset of link syntax."""
    def replace(match):
        src = resolve_url(match.group('src'), ctx.options.base_url)
        alt = escape_attribute(match.group('alt'))
        return ctx.span(f'<img src="{src}" alt="{alt}"{_title_attr(match)} loading="lazy" />')

    return IMAGE_RE.sub(replace, text)


def inline_code(text: str, ctx: RenderContext) -> str:
    def replace(match):
        code = match.group('code')
        if len(match.group('ticks')) > 1:
            code = code.strip()
        return ctx.span(f'<code>{code}</code>')

    return INLINE_CODE_RE.sub(replace, text)


def _wrap(pattern, tag: str, text: str, ctx: RenderContext) -> str:
    if not pattern.search(text):
        return text
    open_tag = ctx.span(f'<{tag}>')
    close_tag = ctx.span(f'</{tag}>')
    return pattern.sub(lambda m: open_tag + m.group('content') + close_tag, text)


def bold(text: str, ctx: RenderContext) -> str:
    for pattern in BOLD_RES:
        text = _wrap(pattern, 'strong', text, ctx)
    return text


def italic(text: str, ctx: RenderContext) -> str:
    for pattern in ITALIC_RES:
        text = _wrap(pattern, 'em', text, ctx)
    return text


def strikethrough(text: str, ctx: RenderContext) -> str:
    return _wrap(STRIKETHROUGH_RE, 'del', text, ctx)


def link_targets(text: str, ctx: RenderContext) -> str:
    """
    First phase of links: stash the opening tag of every [text](href "title")
    before emphasis runs, so "__" or "*" inside a URL is never formatted.
    The target is replaced by a link token; the bracketed text stays.
    """
    options = ctx.options

    def replace(match):
        href = resolve_url(match.group('href'), options.base_url)
        attrs = f'href="{href}"{_title_attr(match)}'
        if options.open_links_in_new_tab and not href.startswith('#'):
            attrs += ' target="_blank" rel="noopener noreferrer"'
        ctx.span(f'<a {attrs}>')
        return f"[{match.group('text')}]" + LINK_TOKEN % (ctx.inline.html_counter - 1)

    return LINK_RE.sub(replace, text)


def links(text: str, ctx: RenderContext) -> str:
    """Second phase of links: wrap the bracketed text before each link token."""
    def replace(match):
        open_tag = INLINE_PLACEHOLDER % int(match.group('index'))
        return open_tag + match.group('text') + ctx.span('</a>')

    return LINK_TOKEN_RE.sub(replace, text)


def footnotes(text: str, ctx: RenderContext) -> str:
    """Definitions become blocks; the remaining [^n] markers are references."""
    def definition(match):
        note = match.group('id')
        backref = f' <a href="#fnref{note}" class="footnote-backref">&#8617;</a></div>'
        return (ctx.block(f'<div class="footnote" id="fn{note}">')
                + f'{note}. ' + match.group('content')
                + ctx.block(backref))

    def reference(match):
        note = match.group('id')
        return ctx.span(f'<sup class="footnote-ref"><a href="#fn{note}" id="fnref{note}">[{note}]</a></sup>')

    text = FOOTNOTE_DEF_RE.sub(definition, text)
    return FOOTNOTE_REF_RE.sub(reference, text)


def horizontal_rules(text: str, ctx: RenderContext) -> str:
    if not HR_RE.search(text):
        return text
    rule = ctx.block('<hr />')
    return HR_RE.sub(lambda m: rule, text)


def custom_renderers(text: str, ctx: RenderContext) -> str:
    """
    Apply the user patterns from RenderOptions. Each callable gets the first
    capture group (or the whole match) and returns an HTML fragment.
    """
    for pattern, renderer in ctx.options.custom_renderers:
        def replace(match, renderer=renderer):
            groups = match.groups()
            content = groups[0] if groups and groups[0] is not None else match.group(0)
            return ctx.span(renderer(content))

        text = re.sub(pattern, replace, text)
    return text
