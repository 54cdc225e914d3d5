"""
HTML sanitization for every rendering exit path

Every interpolation of stored or user-supplied content into an HTML context
goes through exactly one of:

    sanitize_html()           full document allowlist (bodies, previews)
    sanitize_comment()        inline formatting and links only (comments)
    escape_html()             no markup at all
    sanitize_url()            a single URL value
    highlight_search_match()  escaped text with <mark> around query hits

Two backends implement the same policy:

    DomSanitizer   parses with BeautifulSoup and walks the resulting tree
    ScanSanitizer  regex/state-machine scanner for runtimes without a parser

The backend is chosen once, at import, from appsettings.sanitizer_backend.
Sanitization never raises: malformed input loses tags/attributes, and an
unexpected backend failure degrades to escaping the whole input.
"""

import importlib.util
import re
from typing import Dict, List, Optional, Pattern

from bs4 import BeautifulSoup
from bs4.element import PreformattedString, Tag

from ..config import appsettings
from .log import LOG
from .policy import (
    Attribute,
    COMMENT_POLICY,
    DOCUMENT_POLICY,
    SanitizerPolicy,
    url_isAllowed,
)


_HTML_ESCAPES: Dict[str, str] = {
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&#x27;',
    '/': '&#x2F;',
    '`': '&#x60;',
    '=': '&#x3D;',
}
_HTML_ESCAPE_RE: Pattern[str] = re.compile('[&<>"\'/`=]')


def escape_html(text: Optional[str]) -> str:
    """
    Entity-encode text so that no HTML renders from it.

    Encodes & < > " ' / ` = (the OWASP set for both element content and
    unquoted attribute contexts).

    Example:
        >>> escape_html('<b>"hi"</b>')
        '&lt;b&gt;&quot;hi&quot;&lt;&#x2F;b&gt;'
    """
    if not text:
        return ''
    return _HTML_ESCAPE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], str(text))


def sanitize_url(url: Optional[str]) -> str:
    """
    Validate a URL for use in href/src.

    Returns:
        The trimmed URL, or '' if its scheme is forbidden (javascript:,
        vbscript:, data:) or not one of http, https, mailto, tel.
        Relative URLs are returned unchanged (trimmed).
    """
    if not url:
        return ''
    trimmed = str(url).strip()
    if not url_isAllowed(trimmed, DOCUMENT_POLICY.permitted_schemes):
        return ''
    return trimmed


class DomSanitizer:
    """
    Parse-and-walk backend

    The input is parsed into a tree with BeautifulSoup's html.parser, then
    every node is checked against the policy: comments, declarations and
    content-dropping elements are removed, disallowed elements are unwrapped (children kept),
    and allowed elements have their attributes rebuilt by the policy.
    """

    name = 'dom'

    def sanitize(self, dirty: str, policy: SanitizerPolicy) -> str:
        soup = BeautifulSoup(dirty, 'html.parser', multi_valued_attributes=None)

        # Comment, Doctype, CData, Declaration and ProcessingInstruction
        for markup in soup.find_all(string=lambda node: isinstance(node, PreformattedString)):
            markup.extract()

        for element in soup.find_all(list(policy.content_dropping_tags)):
            LOG(f"[{policy.name}] removed <{element.name}> block", level=3)
            element.decompose()

        for element in soup.find_all(True):
            if not isinstance(element, Tag):
                continue
            if not policy.tag_isAllowed(element.name):
                LOG(f"[{policy.name}] dropped tag <{element.name}>", level=3)
                element.unwrap()
                continue
            attributes: List[Attribute] = [
                (name, value if isinstance(value, str) else ' '.join(value))
                for name, value in element.attrs.items()
            ]
            element.attrs = dict(policy.attributes_filter(element.name, attributes))

        return str(soup)


class ScanSanitizer:
    r"""
    DOM-less backend: a tag scanner over the raw string

    Steps:
        1. Remove <script>/<style> blocks with their content (across newlines)
        2. Remove HTML comments, doctypes, CDATA sections and processing
           instructions
        3. Walk the remaining text, alternating between text runs and
           tag-like tokens <name ...> / </name>
        4. Drop tags whose name is not allowed; rebuild allowed tags from the
           attributes the policy keeps; emit void elements as <tag ... />
        5. Escape any '<' left in text runs, so removing a tag can never
           splice two fragments into a new tag (e.g. <<x>script>)
    """

    name = 'scan'

    # Tag names end where html.parser ends them, so <h1-x> is never read as <h1>
    TAG: Pattern[str] = re.compile(r'<(/?)([a-z][^\s/>\x00]*)(?=[\s/>])([^>]*)>', re.IGNORECASE)
    ATTRIBUTE: Pattern[str] = re.compile(
        r'''([^\s"'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]*)))?''',
    )
    COMMENT: Pattern[str] = re.compile(r'<!--[\s\S]*?-->')
    CDATA: Pattern[str] = re.compile(r'<!\[CDATA\[[\s\S]*?\]\]>', re.IGNORECASE)
    DECLARATION: Pattern[str] = re.compile(r'<[!?][^>]*>')

    def __init__(self) -> None:
        self._blocks: Dict[str, Pattern[str]] = {}

    def block_pattern(self, tag: str) -> Pattern[str]:
        """Regex matching a whole <tag>...</tag> block, content included"""
        if tag not in self._blocks:
            self._blocks[tag] = re.compile(
                rf'<{tag}\b[^<]*(?:(?!</{tag}\s*>)<[^<]*)*</{tag}\s*>',
                re.IGNORECASE,
            )
        return self._blocks[tag]

    def attributes_parse(self, raw: str) -> List[Attribute]:
        attributes: List[Attribute] = []
        for match in self.ATTRIBUTE.finditer(raw):
            name = match.group(1)
            value = next((g for g in match.group(2, 3, 4) if g is not None), '')
            attributes.append((name, value))
        return attributes

    def tag_rebuild(self, match: 're.Match[str]', policy: SanitizerPolicy) -> str:
        closing, tag, raw_attributes = match.group(1), match.group(2).lower(), match.group(3)

        if not policy.tag_isAllowed(tag):
            LOG(f"[{policy.name}] dropped tag <{tag}>", level=3)
            return ''

        if closing:
            return '' if tag in policy.void_tags else f'</{tag}>'

        kept = policy.attributes_filter(tag, self.attributes_parse(raw_attributes))
        attrs = ''.join(f' {name}="{value.replace(chr(34), "&quot;")}"' for name, value in kept)

        if tag in policy.void_tags:
            return f'<{tag}{attrs} />'
        return f'<{tag}{attrs}>'

    def sanitize(self, dirty: str, policy: SanitizerPolicy) -> str:
        clean = dirty
        for tag in sorted(policy.content_dropping_tags):
            clean = self.block_pattern(tag).sub('', clean)
        clean = self.COMMENT.sub('', clean)
        clean = self.CDATA.sub('', clean)
        clean = self.DECLARATION.sub('', clean)

        parts: List[str] = []
        pos = 0
        for match in self.TAG.finditer(clean):
            parts.append(clean[pos:match.start()].replace('<', '&lt;'))
            parts.append(self.tag_rebuild(match, policy))
            pos = match.end()
        parts.append(clean[pos:].replace('<', '&lt;'))

        return ''.join(parts)


def backend_select(preference: str) -> 'DomSanitizer | ScanSanitizer':
    """
    Pick the sanitizer backend for this process.

    Args:
        preference: 'dom', 'scan', or 'auto' (dom when an HTML parser is
                    importable in this runtime, scan otherwise)
    """
    if preference == 'dom':
        return DomSanitizer()
    if preference == 'scan':
        return ScanSanitizer()
    if importlib.util.find_spec('bs4') is not None:
        return DomSanitizer()
    return ScanSanitizer()


BACKEND = backend_select(appsettings.sanitizer_backend)


def _run(dirty: Optional[str], policy: SanitizerPolicy) -> str:
    if not dirty:
        return ''
    text = str(dirty)
    try:
        return BACKEND.sanitize(text, policy)
    except Exception as e:
        LOG(f"[{policy.name}] {BACKEND.name} sanitizer failed ({e}); escaping input", level=1)
        return escape_html(text)


def sanitize_html(dirty: Optional[str]) -> str:
    """
    Sanitize HTML against the full document allowlist.

    Used for document bodies and for everything markdown_to_html() emits.

    Example:
        >>> sanitize_html('<p onclick="x()">Hi<script>alert(1)</script></p>')
        '<p>Hi</p>'
    """
    return _run(dirty, DOCUMENT_POLICY)


def sanitize_comment(dirty: Optional[str]) -> str:
    """
    Sanitize HTML against the comment allowlist.

    Only strong, em, code, br, p, a and mark survive, with no attributes
    except a safe href; surviving links open in a new tab with
    rel="noopener noreferrer".
    """
    return _run(dirty, COMMENT_POLICY)


def highlight_search_match(text: Optional[str], query: Optional[str]) -> str:
    """
    Escape text and wrap search hits in <mark>.

    Each whitespace-separated query token of two or more characters is
    matched case-insensitively anywhere in the text. Matching runs on the
    raw text and each segment is escaped on its own, so entity references
    are never split and the inserted <mark> tags are never matched again.

    Example:
        >>> highlight_search_match('<b>Hello</b> world', 'hello')
        '&lt;b&gt;<mark>Hello</mark>&lt;&#x2F;b&gt; world'
    """
    if not text:
        return ''
    text = str(text)
    words = [w for w in (query or '').lower().split() if len(w) >= 2]
    if not words:
        return escape_html(text)

    # Longest first so overlapping tokens prefer the longer hit
    alternatives = sorted(set(words), key=len, reverse=True)
    pattern = re.compile('|'.join(re.escape(w) for w in alternatives), re.IGNORECASE)

    parts: List[str] = []
    pos = 0
    for match in pattern.finditer(text):
        parts.append(escape_html(text[pos:match.start()]))
        parts.append(f'<mark>{escape_html(match.group(0))}</mark>')
        pos = match.end()
    parts.append(escape_html(text[pos:]))
    return ''.join(parts)
