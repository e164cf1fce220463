"""
Allow-list HTML sanitizer.

The sanitizer is configured once from an immutable AllowList and never
mutated afterwards. It is the second line of defense: the renderer escapes
user text before it ever reaches this module.

Rules, applied to every element of a fragment:
    * forbidden tags (script, style, iframe, ...) are removed with their subtree
    * tags outside the allow-list are unwrapped: the tag goes, its content stays
    * attributes outside the allow-list, any on* handler and style are dropped
    * href/src values with a scheme outside the allowed protocols are dropped
    * comments, doctypes and processing instructions are dropped
"""

import logging
import re
import warnings
from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, Optional

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning
from bs4.element import PreformattedString, Tag

logger = logging.getLogger(__name__)

# Fragments such as "<p>https://example.com</p>" are markup, not locators.
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)

URL_ATTRIBUTES = frozenset({'href', 'src'})

# Browsers ignore these when resolving a scheme ("java\tscript:")
_URL_NOISE_RE = re.compile(r'[\x00-\x20\x7f]+')
_SCHEME_RE = re.compile(r'^([a-z][a-z0-9+.\-]*):', re.IGNORECASE)


@dataclass(frozen=True)
class AllowList:
    tags: FrozenSet[str]
    attributes: FrozenSet[str]
    forbidden_tags: FrozenSet[str]
    forbidden_attributes: FrozenSet[str]
    protocols: FrozenSet[str]

    def allows_tag(self, name: str) -> bool:
        return name in self.tags and name not in self.forbidden_tags

    def allows_attribute(self, name: str) -> bool:
        name = name.lower()
        if name in self.forbidden_attributes or name.startswith('on'):
            return False
        return name in self.attributes


DEFAULT_ALLOW_LIST = AllowList(
    tags=frozenset({
        'a', 'abbr', 'b', 'blockquote', 'br', 'code', 'del', 'div', 'em',
        'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'hr', 'i', 'img', 'input',
        'kbd', 'li', 'nav', 'ol', 'p', 'pre', 's', 'span', 'strong', 'sub',
        'sup', 'table', 'tbody', 'td', 'tfoot', 'th', 'thead', 'tr', 'ul',
    }),
    attributes=frozenset({
        'alt', 'aria-hidden', 'checked', 'class', 'colspan', 'disabled',
        'href', 'id', 'loading', 'rel', 'rowspan', 'src', 'start', 'target',
        'title', 'type',
    }),
    forbidden_tags=frozenset({
        'script', 'style', 'iframe', 'frame', 'object', 'embed', 'form',
    }),
    forbidden_attributes=frozenset({'style'}),
    protocols=frozenset({'http', 'https', 'mailto', 'tel'}),
)


class Sanitizer:
    """Filters HTML fragments through an AllowList."""

    def __init__(self, allow_list: AllowList = DEFAULT_ALLOW_LIST):
        self._allow_list = allow_list

    @property
    def allow_list(self) -> AllowList:
        return self._allow_list

    def sanitize(self, html: str) -> str:
        soup = BeautifulSoup(html, 'html.parser')

        for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
            node.extract()

        for tag in soup.find_all(True):
            if tag.decomposed:
                # Already gone with a forbidden ancestor
                continue
            name = tag.name.lower()
            if name in self._allow_list.forbidden_tags:
                logger.debug(f"Sanitizer: dropped forbidden <{name}> subtree")
                tag.decompose()
            elif not self._allow_list.allows_tag(name):
                logger.debug(f"Sanitizer: unwrapped disallowed <{name}>")
                tag.unwrap()
            else:
                self._clean_attributes(tag)

        return soup.decode()

    def finalize(self, result):
        """
        Sanitize a RenderResult produced without a sanitizer. Already
        sanitized results are returned unchanged.
        """
        if result.sanitized:
            return result
        return result.with_html(self.sanitize(result.html), sanitized=True)

    def _clean_attributes(self, tag: Tag) -> None:
        for attr in list(tag.attrs):
            if not self._allow_list.allows_attribute(attr):
                del tag.attrs[attr]
            elif attr.lower() in URL_ATTRIBUTES and not self.is_safe_url(tag.attrs[attr]):
                logger.debug(f"Sanitizer: dropped unsafe {attr} on <{tag.name}>")
                del tag.attrs[attr]

    def is_safe_url(self, value) -> bool:
        if isinstance(value, list):
            value = ' '.join(value)
        cleaned = _URL_NOISE_RE.sub('', value)
        match = _SCHEME_RE.match(cleaned)
        if not match:
            # Relative URL or fragment
            return True
        return match.group(1).lower() in self._allow_list.protocols


@lru_cache(maxsize=None)
def default_sanitizer() -> Sanitizer:
    """The process-wide sanitizer, built on first use."""
    logger.debug("Initializing default sanitizer")
    return Sanitizer(DEFAULT_ALLOW_LIST)


def sanitize(html: str, sanitizer: Optional[Sanitizer] = None) -> str:
    return (sanitizer or default_sanitizer()).sanitize(html)
