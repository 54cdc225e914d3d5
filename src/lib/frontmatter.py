"""
Front matter parsing and serialization

Front matter is a leading block

    ---
    key: value
    tags:
      - "a"
      - "b"
    ---

of flat key/value lines. It is deliberately not full YAML: values are
strings unless they look like JSON (quoted strings, arrays, objects), and
indented "- item" lines under an empty key form a list. Parsing never
raises; anything unparseable stays a string.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple

from ..models.export import ParsedMarkdown
from .log import LOG


FRONT_MATTER: Pattern[str] = re.compile(r'^---\n([\s\S]*?)\n---\n')
_LIST_ITEM: Pattern[str] = re.compile(r'^\s+-\s+(.*)$')

# Keys written first, in this order, by serialize_front_matter()
KEY_ORDER: Tuple[str, ...] = (
    'id',
    'slug',
    'language',
    'title',
    'category',
    'type',
    'version',
    'status',
    'tags',
    'summary',
    'sensitivity',
    'author',
    'created',
    'modified',
    'review_due',
    'allowed_collections',
    'diagram_format',
)


def quotes_strip(value: str) -> str:
    """Remove one pair of surrounding quotes, JSON-unescaping double-quoted text"""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
        if value[0] == '"':
            try:
                decoded = json.loads(value)
                if isinstance(decoded, str):
                    return decoded
            except ValueError:
                pass
        return value[1:-1]
    return value


def value_parse(raw: str) -> Any:
    """
    Interpret one front matter value.

    Quoted values lose their quotes; values starting with '[' or '{' are
    tried as JSON and kept as the literal string when that fails.
    """
    value = raw.strip()
    if value.startswith('[') or value.startswith('{'):
        try:
            return json.loads(value)
        except ValueError:
            LOG(f"Front matter value {value[:40]!r} is not JSON; kept as text", level=3)
            return value
    return quotes_strip(value)


def front_matter_parse(markdown: Optional[str]) -> ParsedMarkdown:
    """
    Split Markdown into front matter and body.

    Args:
        markdown: Document text, possibly starting with a ---...--- block

    Returns:
        ParsedMarkdown; front_matter is empty when there is no block
    """
    text = markdown or ''
    match = FRONT_MATTER.match(text)
    if not match:
        return ParsedMarkdown(front_matter={}, body=text)

    fields: Dict[str, Any] = {}
    list_key: Optional[str] = None
    items: List[str] = []

    for line in match.group(1).split('\n'):
        if list_key is not None:
            item = _LIST_ITEM.match(line)
            if item:
                items.append(quotes_strip(item.group(1).strip()))
                continue
            if items:
                fields[list_key] = items
            list_key, items = None, []

        colon = line.find(':')
        if colon <= 0 or line[:1].isspace():
            continue
        key = line[:colon].strip()
        raw = line[colon + 1:].strip()
        if raw == '':
            # Empty scalar, or the start of an indented list
            fields[key] = ''
            list_key = key
            continue
        fields[key] = value_parse(raw)

    if list_key is not None and items:
        fields[list_key] = items

    return ParsedMarkdown(front_matter=fields, body=text[match.end():])


def value_format(value: Any) -> str:
    """Strings are written JSON-quoted, everything else as JSON"""
    return json.dumps(value, ensure_ascii=False, default=str)


def front_matter_block(fields: Mapping[str, Any]) -> str:
    """
    Render fields as a front matter block for export.

    Returns:
        '---\\n...\\n---\\n\\n', or '' when fields is empty
    """
    if not fields:
        return ''
    lines = [f'{key}: {value_format(value)}' for key, value in fields.items()]
    return '---\n' + '\n'.join(lines) + '\n---\n\n'


def serialize_front_matter(fields: Mapping[str, Any], body: str) -> str:
    """
    Serialize fragment fields and body to a Markdown file.

    Known keys come first in KEY_ORDER, the rest in their given order.
    None, empty strings and empty lists are skipped. Lists are written as
    indented '- "item"' lines, scalars as plain text.

    Example:
        >>> serialize_front_matter({'title': 'Hi', 'id': 'x', 'tags': ['a']}, 'Body')
        '---\\nid: x\\ntitle: Hi\\ntags:\\n  - "a"\\n---\\nBody'
    """
    keys = [key for key in KEY_ORDER if key in fields]
    keys += [key for key in fields if key not in KEY_ORDER]

    lines = ['---']
    for key in keys:
        value = fields[key]
        if value is None or value == '':
            continue
        if isinstance(value, (list, tuple)):
            if not value:
                continue
            lines.append(f'{key}:')
            lines.extend(f'  - {json.dumps(str(item), ensure_ascii=False)}' for item in value)
        else:
            lines.append(f'{key}: {value}')
    lines.append('---')

    body = body if body.startswith('\n') else '\n' + body
    return '\n'.join(lines) + body
