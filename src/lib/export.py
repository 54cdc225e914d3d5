"""
Export and import utilities

    export_to_markdown()       HTML → Markdown file (redaction, TOC, front matter)
    import_from_markdown()     Markdown file → sanitized HTML + front matter
    parse_imported_markdown()  dropped .md file → ImportedFragment form data
    toc_populate()             fill [[toc]] scaffolds for static exports

The editor never calls toc_populate(); it fills the table of contents at
display time.
"""

import re
from typing import Dict, List, Optional, Pattern

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..models.directives import DirectiveName
from ..models.export import ExportOptions, ImportedFragment, ImportResult
from .compiler import markdown_to_html
from .directives import REGISTRY, attribute_coerce, attributes_parse, mask_placeholder
from .frontmatter import front_matter_block, front_matter_parse
from .log import LOG
from .sanitizer import sanitize_html
from .serializer import html_to_markdown


TOC_MARKER: Pattern[str] = re.compile(r'\[\[toc\]\]\n*')
_CJK: Pattern[str] = re.compile(r'[\u3000-\u9fff\uf900-\ufaff]')
_WHITESPACE: Pattern[str] = re.compile(r'\s')


def masks_redact(markdown: str) -> str:
    """Replace every privacy mask directive with its placeholder text"""
    spec = REGISTRY.specs[DirectiveName.PRIVACY_MASK]

    def placeholder_for(match: re.Match[str]) -> str:
        attributes = attributes_parse(match.group('attrs'))
        mask_type = attribute_coerce(spec, 'type', attributes.get('type'))
        return attributes.get('placeholder') or mask_placeholder(mask_type)

    return spec.pattern.sub(placeholder_for, markdown)


def export_to_markdown(html: Optional[str], options: Optional[ExportOptions] = None) -> str:
    """
    Export editor HTML as a Markdown document.

    Args:
        html: Canonical HTML
        options: ExportOptions (defaults: redact masks, drop TOC, no front matter)

    Returns:
        Markdown, prefixed with a front matter block when options carry fields
    """
    options = options or ExportOptions()
    markdown = html_to_markdown(html)

    if not options.reveal_privacy:
        markdown = masks_redact(markdown)
    if not options.include_toc:
        markdown = TOC_MARKER.sub('', markdown)

    LOG(f"Exported {len(markdown)} chars of Markdown", level=2)
    return front_matter_block(options.front_matter) + markdown


def import_from_markdown(markdown: Optional[str]) -> ImportResult:
    """
    Import a Markdown document with optional front matter.

    Example:
        >>> result = import_from_markdown('---\\ntitle: "Hi"\\n---\\n# Hi')
        >>> result.front_matter
        {'title': 'Hi'}
    """
    parsed = front_matter_parse(markdown)
    return ImportResult(html=markdown_to_html(parsed.body), front_matter=parsed.front_matter)


def language_detect(text: str) -> str:
    """'ja' when more than 30% of non-whitespace characters are CJK, else 'en'"""
    stripped = _WHITESPACE.sub('', text)
    if not stripped:
        return 'en'
    ratio = len(_CJK.findall(stripped)) / len(stripped)
    return 'ja' if ratio > 0.3 else 'en'


def fragmentId_derive(filename: str) -> str:
    """
    Derive a fragment id from a filename.

    Example:
        >>> fragmentId_derive('My Document.en.md')
        'my-document'
    """
    stem = re.sub(r'\.(en|ja)?\.?md$', '', filename, flags=re.IGNORECASE)
    slug = stem.lower().strip()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'[\s_]+', '-', slug)
    slug = slug.strip('-')[:80]
    return slug or 'imported-fragment'


def parse_imported_markdown(text: str, filename: str) -> ImportedFragment:
    """
    Parse a dropped Markdown file into form data for a new fragment.

    Front matter wins where present; otherwise the id comes from the
    filename, the title from the id, and the language from the body.
    """
    parsed = front_matter_parse(text)
    fields = parsed.front_matter

    language = fields.get('language')
    if language not in ('en', 'ja'):
        language = language_detect(parsed.body)

    fragment_id = fields.get('id') or fragmentId_derive(filename)
    title = fields.get('title') or fragmentId_derive(filename).replace('-', ' ')

    raw_tags = fields.get('tags')
    tags: List[str] = []
    if isinstance(raw_tags, list):
        tags = [str(tag) for tag in raw_tags]
    elif isinstance(raw_tags, str):
        tags = [tag.strip() for tag in raw_tags.split(',') if tag.strip()]

    return ImportedFragment(
        id=str(fragment_id),
        language=language,
        title=str(title),
        category=str(fields.get('category') or ''),
        type=str(fields.get('type') or ''),
        tags=tags,
        body=parsed.body.strip(),
        filename=filename,
    )


def heading_slug(text: str) -> str:
    slug = re.sub(r'[^\w\s-]', '', text.lower()).strip()
    return re.sub(r'[\s-]+', '-', slug) or 'section'


def toc_populate(html: Optional[str]) -> str:
    """
    Fill every table of contents scaffold from the document's headings.

    h2/h3 headings without an id get a unique slug id; each
    nav[data-toc] ul.toc-list receives one <li class="toc-hN"><a href="#id">
    per heading. The result is sanitized.
    """
    if not html:
        return ''
    soup = BeautifulSoup(html, 'html.parser')

    used: Dict[str, int] = {}
    entries = []
    for heading in soup.find_all(['h2', 'h3']):
        anchor = heading.get('id')
        if not anchor:
            base = heading_slug(heading.get_text())
            used[base] = used.get(base, 0) + 1
            anchor = base if used[base] == 1 else f'{base}-{used[base]}'
            heading['id'] = anchor
        entries.append((heading.name, anchor, heading.get_text().strip()))

    for nav in soup.find_all('nav', attrs={'data-toc': True}):
        toc_list = nav.find('ul', class_='toc-list')
        if not isinstance(toc_list, Tag):
            toc_list = soup.new_tag('ul', attrs={'class': 'toc-list'})
            nav.append(toc_list)
        toc_list.clear()
        for level, anchor, text in entries:
            item = soup.new_tag('li', attrs={'class': f'toc-{level}'})
            link = soup.new_tag('a', href=f'#{anchor}')
            link.string = text
            item.append(link)
            toc_list.append(item)

    LOG(f"Populated table of contents with {len(entries)} entries", level=2)
    return sanitize_html(str(soup))
