"""
Compiler for inkbridge Markdown to HTML

Renders Markdown (generic CommonMark plus tables and strikethrough, and the
dialect directives tokenized by lib.parser) into the canonical HTML the
editor and the HTML→Markdown serializer agree on. The result always passes
through sanitize_html() before it is returned.
"""

from typing import Any, Callable, Dict, List, Optional

from markdown_it import MarkdownIt
from markdown_it.token import Token
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from ..config import AppSettings, appsettings
from ..models.directives import DirectiveName
from ..models.parser import DirectiveMatch
from .directives import handlers_checkExhaustive
from .lexer import DialectLexer
from .log import LOG
from .parser import TOKEN_TYPES, dialect_plugin
from .sanitizer import escape_html, sanitize_html


RenderRule = Callable[[Any, List[Token], int, Any, Dict], str]


def directive_get(token: Token) -> DirectiveMatch:
    return token.meta["directive"]


def callout_renderOpen(renderer: Any, tokens: List[Token], idx: int, options: Any, env: Dict) -> str:
    directive = directive_get(tokens[idx])
    callout_type = escape_html(directive.attribute('type', 'info'))
    title = directive.attribute('title')

    html = f'<div class="callout callout-{callout_type}" data-callout-type="{callout_type}"'
    if title:
        html += f' data-callout-title="{escape_html(title)}">'
        html += f'<div class="callout-title">{escape_html(title)}</div>'
    else:
        html += '>'
    return html + '<div class="callout-content">\n'


def callout_renderClose(renderer: Any, tokens: List[Token], idx: int, options: Any, env: Dict) -> str:
    return '</div></div>\n'


def toc_render(renderer: Any, tokens: List[Token], idx: int, options: Any, env: Dict) -> str:
    header = escape_html(env.get('toc_header_text') or appsettings.toc_header_text)
    return (
        '<nav class="toc" data-toc="">'
        f'<div class="toc-header">{header}</div>'
        '<ul class="toc-list"></ul>'
        '</nav>\n'
    )


def status_render(renderer: Any, tokens: List[Token], idx: int, options: Any, env: Dict) -> str:
    directive = directive_get(tokens[idx])
    status = escape_html(directive.attribute('status', 'pending-review'))
    html = f'<span class="status-badge status-{status}" data-status="{status}"'
    if directive.attribute('id'):
        html += f' data-status-id="{escape_html(directive.attribute("id"))}"'
    return html + f'>{escape_html(directive.text)}</span>'


def evidence_render(renderer: Any, tokens: List[Token], idx: int, options: Any, env: Dict) -> str:
    directive = directive_get(tokens[idx])
    html = f'<a data-evidence="" data-evidence-id="{escape_html(directive.attribute("id"))}"'
    if directive.attribute('type'):
        html += f' data-file-type="{escape_html(directive.attribute("type"))}"'
    html += f' href="{escape_html(directive.attribute("href"))}"'
    return html + f'>{escape_html(directive.text)}</a>'


def mask_render(renderer: Any, tokens: List[Token], idx: int, options: Any, env: Dict) -> str:
    directive = directive_get(tokens[idx])
    return (
        '<span class="privacy-mask" data-privacy-mask=""'
        f' data-mask-type="{escape_html(directive.attribute("type", "pii"))}"'
        f' data-placeholder="{escape_html(directive.attribute("placeholder"))}">'
        f'{escape_html(directive.text)}</span>'
    )


# Render rules per directive, keyed by markdown-it token type
RENDERERS: Dict[DirectiveName, Dict[str, RenderRule]] = {
    DirectiveName.CALLOUT: {
        f'{TOKEN_TYPES[DirectiveName.CALLOUT]}_open': callout_renderOpen,
        f'{TOKEN_TYPES[DirectiveName.CALLOUT]}_close': callout_renderClose,
    },
    DirectiveName.TABLE_OF_CONTENTS: {TOKEN_TYPES[DirectiveName.TABLE_OF_CONTENTS]: toc_render},
    DirectiveName.STATUS_BADGE: {TOKEN_TYPES[DirectiveName.STATUS_BADGE]: status_render},
    DirectiveName.EVIDENCE_LINK: {TOKEN_TYPES[DirectiveName.EVIDENCE_LINK]: evidence_render},
    DirectiveName.PRIVACY_MASK: {TOKEN_TYPES[DirectiveName.PRIVACY_MASK]: mask_render},
}
handlers_checkExhaustive(RENDERERS, "HTML renderer")


def code_highlight(code: str, language: str, attrs: str) -> str:
    """
    markdown-it highlight hook for fenced code blocks

    Returns class-based Pygments spans (no inline styles, which the
    sanitizer would strip), or '' to let markdown-it escape the code as
    plain text.
    """
    if not language:
        return ''

    lexer: Lexer
    try:
        if language.lower() in DialectLexer.aliases:
            lexer = DialectLexer()
        else:
            lexer = get_lexer_by_name(language)
    except ClassNotFound:
        LOG(f"No lexer for fence language '{language}'; rendering as text", level=3)
        return ''

    return highlight(code, lexer, HtmlFormatter(nowrap=True))


class Compiler:
    """
    Markdown → sanitized HTML

    Owns one configured MarkdownIt instance, built at construction and never
    mutated afterwards; compile() is safe to call from any thread.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or appsettings
        self.md = self.markdown_create()

    def markdown_create(self) -> MarkdownIt:
        """Build the MarkdownIt instance with the dialect plugin and render rules"""
        options: Dict[str, Any] = {"html": self.settings.allow_raw_html}
        if self.settings.highlight_code:
            options["highlight"] = code_highlight

        md = MarkdownIt("commonmark", options).enable(["table", "strikethrough"])
        md.use(dialect_plugin)
        for rules in RENDERERS.values():
            for token_type, rule in rules.items():
                md.add_render_rule(token_type, rule)
        return md

    def compile(self, markdown: Optional[str]) -> str:
        """
        Render Markdown and sanitize the result

        Args:
            markdown: Dialect Markdown source (None yields '')

        Returns:
            Sanitized HTML
        """
        if not markdown:
            return ''

        env: Dict[str, Any] = {"toc_header_text": self.settings.toc_header_text}
        try:
            html = self.md.render(markdown, env)
        except Exception as e:
            LOG(f"Markdown rendering failed ({e}); emitting escaped source", level=1)
            return f'<p>{escape_html(markdown)}</p>'

        LOG(f"Rendered {len(markdown)} chars of Markdown to {len(html)} chars of HTML", level=2)
        return sanitize_html(html)


# Process-wide compiler built from appsettings
COMPILER = Compiler()


def markdown_to_html(markdown: Optional[str]) -> str:
    """
    Convert dialect Markdown to sanitized canonical HTML.

    Example:
        >>> markdown_to_html('{status:compliant}')
        '<p><span class="status-badge status-compliant" data-status="compliant">Compliant</span></p>\\n'
    """
    return COMPILER.compile(markdown)
