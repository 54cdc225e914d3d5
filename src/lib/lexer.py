"""
Custom Pygments lexer for the inkbridge Markdown dialect

Highlights dialect snippets in fenced code blocks (```inkbridge), e.g. in
authoring guides that show the directive syntax itself.

Token types:
- Keyword.Declaration: Callout fences (:::warning, :::)
- Name.Tag: Inline directive names (status:, evidence, mask, /mask)
- Name.Decorator: Table of contents marker ([[toc]])
- Name.Attribute: Attribute names (title, id, type, ...)
- Literal.String: Attribute values
- Punctuation: Braces, brackets and '='
- String: Evidence link labels and masked content
"""

from pygments.lexer import RegexLexer, bygroups, default
from pygments.token import (
    Text,
    Punctuation,
    Name,
    String,
    Keyword,
    Literal,
    Comment,
)


class DialectLexer(RegexLexer):
    """
    Lexer for inkbridge Markdown

    Example:
        :::warning{title="Note"}
        {status:compliant id="A.1"}
        :::

    Tokens:
        :::warning → Keyword.Declaration
        { → Punctuation
        title → Name.Attribute
        "Note" → Literal.String
        status:compliant → Name.Tag
    """

    name = 'Inkbridge'
    aliases = ['inkbridge', 'dialect']
    filenames = ['*.ibmd']

    tokens = {
        'root': [
            # HTML comments
            (r'<!--.*?-->', Comment),

            # Callout open/close fences at line start
            (r'^(:::)([\w-]*)', bygroups(Keyword.Declaration, Keyword.Type)),

            # Table of contents marker
            (r'\[\[toc\]\]', Name.Decorator),

            # Status badge: {status:value
            (r'(\{)(status:)([\w-]+)', bygroups(Punctuation, Name.Tag, Name.Constant), 'attributes'),

            # Privacy mask opening and closing
            (r'(\{)(mask)', bygroups(Punctuation, Name.Tag), 'attributes'),
            (r'(\{)(/mask)(\})', bygroups(Punctuation, Name.Tag, Punctuation)),

            # Evidence link: [label]{evidence
            (r'(\[)((?:[^\]\\\n]|\\.)+)(\])(\{)(evidence)',
             bygroups(Punctuation, String, Punctuation, Punctuation, Name.Tag), 'attributes'),

            # Attribute list directly after a callout type
            (r'\{(?=[A-Za-z][\w-]*=")', Punctuation, 'attributes'),

            # Everything else is text
            (r'[^:\[{<]+', Text),
            (r'.', Text),
        ],

        'attributes': [
            (r'\s+', Text),
            (r'([A-Za-z][\w-]*)(=)("(?:[^"\\]|\\.)*")',
             bygroups(Name.Attribute, Punctuation, Literal.String)),
            (r'\}', Punctuation, '#pop'),
            # Anything else ends the attribute list without consuming input
            default('#pop'),
        ],
    }
