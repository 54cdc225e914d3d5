"""
Sanitizer policy tables

The allowlists below are the single source of truth for what HTML may reach
a browser or a stored field. Both sanitizer backends (the DOM walker and the
DOM-less scanner) receive one of these policy objects and delegate every
attribute and URL decision to it, so the two cannot drift apart.

Policies are frozen and built once at import.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Pattern, Tuple

from .log import LOG


Attribute = Tuple[str, str]

FORBIDDEN_ATTRIBUTE: Pattern[str] = re.compile(r'^on\w+|^style$', re.IGNORECASE)
FORBIDDEN_SCHEME: Pattern[str] = re.compile(r'^(javascript|vbscript|data):', re.IGNORECASE)
SCHEME: Pattern[str] = re.compile(r'^([a-z][a-z0-9+.\-]*):', re.IGNORECASE)

# Browsers ignore ASCII whitespace and control characters inside a scheme
_URL_INVISIBLES: Pattern[str] = re.compile(r'[\x00-\x20\x7f]+')


def url_normalizeForCheck(url: str) -> str:
    """
    Reduce a URL to the form a browser uses to decide its scheme.

    Entity references are decoded and every ASCII whitespace/control
    character is removed, so ``java&#x09;script:`` and ``java\\nscript:``
    both become ``javascript:``.
    """
    return _URL_INVISIBLES.sub('', html.unescape(url))


def url_isAllowed(url: str, permitted_schemes: FrozenSet[str]) -> bool:
    """
    Check a (trimmed) URL against the scheme rules.

    Relative URLs and fragments have no scheme and are allowed. A URL with a
    scheme must not match the forbidden pattern and must use a permitted one.
    """
    normalized = url_normalizeForCheck(url)
    if FORBIDDEN_SCHEME.match(normalized):
        return False
    scheme = SCHEME.match(normalized)
    if scheme and scheme.group(1).lower() not in permitted_schemes:
        return False
    return True


@dataclass(frozen=True)
class SanitizerPolicy:
    """
    Allowlist consumed by both sanitizer backends

    Attributes:
        name: Policy name used in log messages
        allowed_tags: Tags that survive; all others are dropped (their text kept)
        allowed_attributes: Tag-agnostic attribute allowlist
        allow_data_attributes: Whether the whole data-* namespace is allowed
        url_attributes: Attributes whose values are URLs and get scheme checks
        permitted_schemes: Schemes a URL may carry (relative URLs carry none)
        void_tags: Elements emitted in self-closing form
        content_dropping_tags: Elements removed together with their content
        link_attributes: Attributes forced onto <a> elements that keep an href
    """
    name: str
    allowed_tags: FrozenSet[str]
    allowed_attributes: FrozenSet[str]
    allow_data_attributes: bool = True
    url_attributes: FrozenSet[str] = frozenset({'href', 'src'})
    permitted_schemes: FrozenSet[str] = frozenset({'http', 'https', 'mailto', 'tel'})
    void_tags: FrozenSet[str] = frozenset({'br', 'hr', 'img', 'input', 'col'})
    content_dropping_tags: FrozenSet[str] = frozenset({'script', 'style'})
    link_attributes: Tuple[Attribute, ...] = field(default_factory=tuple)

    def tag_isAllowed(self, tag: str) -> bool:
        return tag.lower() in self.allowed_tags

    def attribute_isAllowed(self, name: str) -> bool:
        name = name.lower()
        if FORBIDDEN_ATTRIBUTE.match(name):
            return False
        if name in self.allowed_attributes:
            return True
        return self.allow_data_attributes and name.startswith('data-') and len(name) > 5

    def url_filter(self, url: str) -> str:
        """Return the trimmed URL, or '' when its scheme is not acceptable"""
        trimmed = url.strip()
        if not url_isAllowed(trimmed, self.permitted_schemes):
            LOG(f"[{self.name}] rejected URL {trimmed[:40]!r}", level=3)
            return ''
        return trimmed

    def attributes_filter(self, tag: str, attributes: List[Attribute]) -> List[Attribute]:
        """
        Apply the attribute rules of this policy to one element.

        Both backends call this with the attributes they parsed, in source
        order, and serialize whatever comes back.

        Args:
            tag: Lower-case tag name (already known to be allowed)
            attributes: (name, value) pairs; valueless attributes carry ''

        Returns:
            Filtered (name, value) pairs, first occurrence of each name only
        """
        kept: Dict[str, str] = {}
        for raw_name, value in attributes:
            name = raw_name.lower()
            if name in kept:
                continue
            if not self.attribute_isAllowed(name):
                LOG(f"[{self.name}] dropped attribute {name} on <{tag}>", level=3)
                continue
            if name in self.url_attributes:
                value = self.url_filter(value)
                # An empty href still navigates (to the current page); drop it
                if not value and name == 'href':
                    continue
            kept[name] = value

        if self.link_attributes and tag == 'a' and 'href' in kept:
            for name, value in self.link_attributes:
                kept[name] = value

        return list(kept.items())


DOCUMENT_POLICY = SanitizerPolicy(
    name='document',
    allowed_tags=frozenset({
        # Text formatting
        'p', 'br', 'strong', 'b', 'em', 'i', 'u', 's', 'strike', 'del', 'ins',
        'mark', 'code', 'pre', 'kbd', 'samp', 'var', 'sub', 'sup', 'small',
        # Structure
        'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'div', 'span', 'blockquote', 'hr',
        'nav',
        # Lists
        'ul', 'ol', 'li', 'dl', 'dt', 'dd',
        # Tables
        'table', 'thead', 'tbody', 'tfoot', 'tr', 'th', 'td', 'caption',
        'colgroup', 'col',
        # Links and media
        'a', 'img', 'figure', 'figcaption',
        # Task lists
        'input', 'label',
    }),
    allowed_attributes=frozenset({
        # Global
        'class', 'id', 'title', 'lang', 'dir',
        # Links
        'href', 'target', 'rel',
        # Images
        'src', 'alt', 'width', 'height', 'loading',
        # Tables
        'colspan', 'rowspan', 'scope',
        # Task checkboxes
        'type', 'checked', 'disabled', 'readonly',
    }),
    allow_data_attributes=True,
)

COMMENT_POLICY = SanitizerPolicy(
    name='comment',
    allowed_tags=frozenset({'strong', 'em', 'code', 'br', 'p', 'a', 'mark'}),
    allowed_attributes=frozenset({'href'}),
    allow_data_attributes=False,
    link_attributes=(('target', '_blank'), ('rel', 'noopener noreferrer')),
)
