"""
inkbridge - Markdown dialect ⇄ HTML transcoding and sanitization

Converters, sanitizer and export utilities.
"""

__version__ = "1.0.0"

from .sanitizer import (
    escape_html,
    highlight_search_match,
    sanitize_comment,
    sanitize_html,
    sanitize_url,
)
from .directives import DirectiveRegistry, REGISTRY, mask_placeholder, status_label
from .compiler import Compiler, markdown_to_html
from .serializer import DialectConverter, html_to_markdown
from .frontmatter import front_matter_parse, serialize_front_matter
from .export import export_to_markdown, import_from_markdown, parse_imported_markdown, toc_populate
from .log import LOG, state_connectToLogger, state_disconnectFromLogger

__all__ = [
    "escape_html",
    "highlight_search_match",
    "sanitize_comment",
    "sanitize_html",
    "sanitize_url",
    "DirectiveRegistry",
    "REGISTRY",
    "mask_placeholder",
    "status_label",
    "Compiler",
    "markdown_to_html",
    "DialectConverter",
    "html_to_markdown",
    "front_matter_parse",
    "serialize_front_matter",
    "export_to_markdown",
    "import_from_markdown",
    "parse_imported_markdown",
    "toc_populate",
    "LOG",
    "state_connectToLogger",
    "state_disconnectFromLogger",
    "__version__",
]
