"""
Serializer for canonical HTML back to inkbridge Markdown

A markdownify MarkdownConverter subclass: generic HTML becomes CommonMark
(ATX headings, '-' bullets, '*'/'**' emphasis, fenced code), and every
element carrying a directive signature is re-emitted as dialect syntax.
Attributes equal to their computed defaults are omitted, so

    markdown_to_html('{status:compliant}') → html_to_markdown(...) → '{status:compliant}'

Before conversion the soup is normalized: legacy callout attributes are
renamed, the rendered callout title is removed (it lives in the title
attribute), and callout bodies are unwrapped from their content div.
"""

import re
import unicodedata
from typing import Any, Callable, Dict, Optional, Set

from bs4 import BeautifulSoup
from bs4.element import Tag
from markdownify import MarkdownConverter

from ..config import AppSettings, appsettings
from ..models.directives import DirectiveName
from .directives import (
    REGISTRY,
    attribute_coerce,
    attributes_format,
    evidence_href,
    handlers_checkExhaustive,
    mask_placeholder,
    status_label,
)
from .log import LOG


# Characters ignored at either end when comparing a paragraph to a callout title
_TITLE_NOISE_CATEGORIES = ('S', 'Z', 'Cf', 'Mn', 'Me')
# Icon letters that are not in a symbol category (U+2139 INFORMATION SOURCE is Ll)
_TITLE_NOISE_CHARS = frozenset('\u2139')

# Text the tokenizer would read as directive syntax, and the escape character itself
_DIRECTIVE_SYNTAX = re.compile(r'\\|\{|\[\[toc\]\]|:::')


def title_normalize(text: str) -> str:
    """
    Trim whitespace, symbols and emoji parts from both ends of a title.

    Covers the icon prefixes ("⚠️ ", "ℹ ") older renderers put in front of
    callout titles, including variation selectors and zero-width joiners.
    """
    def noise(char: str) -> bool:
        if char.isspace() or char in _TITLE_NOISE_CHARS:
            return True
        return unicodedata.category(char).startswith(_TITLE_NOISE_CATEGORIES)

    start, end = 0, len(text)
    while start < end and noise(text[start]):
        start += 1
    while end > start and noise(text[end - 1]):
        end -= 1
    return text[start:end]


def element_attr(el: Tag, *names: str) -> Optional[str]:
    """First non-empty value among the given attribute names"""
    for name in names:
        value = el.get(name)
        if isinstance(value, list):
            value = ' '.join(value)
        if value:
            return value
    return None


def code_language(el: Tag) -> Optional[str]:
    """Recover a fence language from <pre><code class="language-x">"""
    code = el.find('code')
    if not isinstance(code, Tag):
        return None
    classes = code.get('class') or []
    if isinstance(classes, str):
        classes = classes.split()
    for cls in classes:
        if cls.startswith('language-'):
            return cls[len('language-'):]
    return None


class DialectConverter(MarkdownConverter):
    """
    markdownify converter with one rule per dialect directive

    Directive rules are looked up in DIRECTIVE_RULES by the element's
    signature; elements without a signature use markdownify's own
    conversion (or, for span/nav, just their text).
    """

    def __init__(self, settings: Optional[AppSettings] = None, **options: Any) -> None:
        self.settings = settings or appsettings
        options.setdefault('heading_style', 'atx')
        options.setdefault('bullets', '-')
        options.setdefault('strong_em_symbol', '*')
        options.setdefault('code_language_callback', code_language)
        super().__init__(**options)

    # --- Pre-processing ------------------------------------------------------

    def convert_soup(self, soup: BeautifulSoup) -> str:
        self.callouts_normalize(soup)
        return super().convert_soup(soup)

    def callouts_normalize(self, soup: BeautifulSoup) -> None:
        """
        Bring every callout element into the shape convert_div expects.

        - data-callout / data-title (legacy) → data-callout-type / data-callout-title
        - .callout-title children removed
        - leading body paragraphs repeating the title removed (when enabled)
        - .callout-content unwrapped
        """
        spec = REGISTRY.specs[DirectiveName.CALLOUT]
        type_attr = spec.attribute_get('type')
        title_attr = spec.attribute_get('title')

        for el in soup.find_all('div'):
            for attr in (type_attr, title_attr):
                legacy = element_attr(el, *attr.legacy_html_names)
                if legacy is not None and not el.has_attr(attr.html_name):
                    el[attr.html_name] = legacy
                for legacy_name in attr.legacy_html_names:
                    if el.has_attr(legacy_name):
                        del el[legacy_name]

        # Collected after renaming; the loop below removes divs from the tree
        for el in soup.find_all('div', attrs={type_attr.html_name: True}):
            for title_div in el.find_all('div', class_='callout-title', recursive=False):
                title_div.extract()

            content = el.find('div', class_='callout-content', recursive=False)
            body = content if isinstance(content, Tag) else el

            title = element_attr(el, title_attr.html_name)
            if title and self.settings.strip_legacy_title_paragraphs:
                self.titleParagraphs_strip(body, title)

            if isinstance(content, Tag):
                content.unwrap()

    def titleParagraphs_strip(self, body: Tag, title: str) -> None:
        """Remove leading <p> children whose text is the callout title"""
        wanted = title_normalize(title)
        while True:
            first = next((c for c in body.children if isinstance(c, Tag) or str(c).strip()), None)
            if not isinstance(first, Tag) or first.name != 'p':
                return
            if title_normalize(first.get_text()) != wanted:
                return
            LOG(f"Removed duplicate callout title paragraph {wanted!r}", level=3)
            first.decompose()

    # --- Directive rules -----------------------------------------------------

    def directive_find(self, el: Tag) -> Optional[DirectiveName]:
        for name, spec in REGISTRY.specs.items():
            attribute, value = spec.html_marker
            if el.name != spec.html_tag:
                continue
            if el.has_attr(attribute) and (value is None or el.get(attribute) == value):
                return name
        # Older evidence links carry only the id
        if el.name == 'a' and el.has_attr('data-evidence-id'):
            return DirectiveName.EVIDENCE_LINK
        return None

    def callout_convert(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        spec = REGISTRY.specs[DirectiveName.CALLOUT]
        callout_type = attribute_coerce(spec, 'type', element_attr(el, 'data-callout-type')) or 'info'
        title = element_attr(el, 'data-callout-title')
        attrs = attributes_format([('title', title)]).strip()
        opening = f':::{callout_type}' + (f'{{{attrs}}}' if attrs else '')
        return f'\n\n{opening}\n{text.strip()}\n:::\n\n'

    def status_convert(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        spec = REGISTRY.specs[DirectiveName.STATUS_BADGE]
        status = attribute_coerce(spec, 'status', element_attr(el, 'data-status')) or 'pending-review'
        label = el.get_text()
        attrs = attributes_format([
            ('id', element_attr(el, 'data-status-id', 'data-control-id')),
            ('text', label if label and label != status_label(status) else None),
        ])
        return f'{{status:{status}{attrs}}}'

    def evidence_convert(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        evidence_id = element_attr(el, 'data-evidence-id') or ''
        href = element_attr(el, 'href')
        label = el.get_text().replace('\\', '\\\\').replace(']', '\\]')
        attrs = attributes_format([
            ('id', evidence_id),
            ('type', element_attr(el, 'data-file-type')),
            ('href', href if href and href != evidence_href(evidence_id) else None),
        ])
        return f'[{label}]{{evidence{attrs}}}'

    def mask_convert(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        spec = REGISTRY.specs[DirectiveName.PRIVACY_MASK]
        mask_type = attribute_coerce(spec, 'type', element_attr(el, 'data-mask-type')) or 'pii'
        placeholder = element_attr(el, 'data-placeholder')
        attrs = attributes_format([
            ('type', mask_type),
            ('placeholder', placeholder if placeholder != mask_placeholder(mask_type) else None),
        ])
        return f'{{mask{attrs}}}{el.get_text()}{{/mask}}'

    def toc_convert(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        return '\n\n[[toc]]\n\n'

    def directive_convert(self, el: Tag, text: str, parent_tags: Set[str]) -> Optional[str]:
        name = self.directive_find(el)
        if name is None:
            return None
        LOG(f"Serializing {name.value} from <{el.name}>", level=3)
        return DIRECTIVE_RULES[name](self, el, text, parent_tags)

    # --- markdownify hooks ---------------------------------------------------

    def escape(self, text: str, parent_tags: Set[str]) -> str:
        """Backslash-escape literal directive syntax so it stays text"""
        text = super().escape(text, parent_tags)
        return _DIRECTIVE_SYNTAX.sub(lambda m: '\\' + m.group(0), text)

    def convert_div(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        converted = self.directive_convert(el, text, parent_tags)
        if converted is not None:
            return converted
        return super().convert_div(el, text, parent_tags)

    def convert_span(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        converted = self.directive_convert(el, text, parent_tags)
        return text if converted is None else converted

    def convert_a(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        converted = self.directive_convert(el, text, parent_tags)
        if converted is not None:
            return converted
        return super().convert_a(el, text, parent_tags)

    def convert_nav(self, el: Tag, text: str, parent_tags: Set[str]) -> str:
        converted = self.directive_convert(el, text, parent_tags)
        return text if converted is None else converted


DIRECTIVE_RULES: Dict[DirectiveName, Callable[..., str]] = {
    DirectiveName.CALLOUT: DialectConverter.callout_convert,
    DirectiveName.TABLE_OF_CONTENTS: DialectConverter.toc_convert,
    DirectiveName.STATUS_BADGE: DialectConverter.status_convert,
    DirectiveName.EVIDENCE_LINK: DialectConverter.evidence_convert,
    DirectiveName.PRIVACY_MASK: DialectConverter.mask_convert,
}
handlers_checkExhaustive(DIRECTIVE_RULES, "Markdown serializer")


def html_to_markdown(html: Optional[str]) -> str:
    """
    Convert canonical (or legacy editor) HTML to dialect Markdown.

    Example:
        >>> html_to_markdown('<p><span data-status="compliant">Compliant</span></p>')
        '{status:compliant}'
    """
    if not html:
        return ''
    markdown = DialectConverter().convert(html)
    LOG(f"Serialized {len(html)} chars of HTML to {len(markdown)} chars of Markdown", level=2)
    return markdown
