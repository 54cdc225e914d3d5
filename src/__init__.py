"""
inkbridge - Markdown dialect ⇄ HTML transcoding and sanitization

Converts a compliance-document Markdown dialect (callouts, status badges,
evidence links, privacy masks, table of contents) to sanitized HTML and back.
"""

__version__ = "1.0.0"

from .lib import (
    escape_html,
    export_to_markdown,
    highlight_search_match,
    html_to_markdown,
    import_from_markdown,
    markdown_to_html,
    sanitize_comment,
    sanitize_html,
    sanitize_url,
    LOG,
    state_connectToLogger,
)
from .models import ExportOptions, ImportResult

__all__ = [
    "escape_html",
    "export_to_markdown",
    "highlight_search_match",
    "html_to_markdown",
    "import_from_markdown",
    "markdown_to_html",
    "sanitize_comment",
    "sanitize_html",
    "sanitize_url",
    "ExportOptions",
    "ImportResult",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
