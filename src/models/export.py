"""
Export and import data models

Options and results of the Markdown export/import utilities.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True)
class ExportOptions:
    """
    Options for export_to_markdown()

    Attributes:
        reveal_privacy: Keep masked content; when False every privacy mask is
                        replaced by its placeholder
        include_toc: Keep [[toc]] markers
        front_matter: Fields written as a leading ---...--- block
    """
    reveal_privacy: bool = False
    include_toc: bool = False
    front_matter: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class ParsedMarkdown:
    """Markdown split into its front matter and the remaining body"""
    front_matter: Dict[str, Any]
    body: str


@dataclass
class ImportResult:
    """
    Result of import_from_markdown()

    Attributes:
        html: Sanitized HTML of the body
        front_matter: Parsed front matter fields (empty when absent)
    """
    html: str
    front_matter: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ImportedFragment:
    """
    A dropped Markdown file, ready to pre-fill a new-fragment form

    Attributes:
        id: Fragment id from front matter, or derived from the filename
        language: 'en' or 'ja' (front matter, else detected from the body)
        title: Title from front matter, or the id with spaces
        category: Category from front matter
        type: Type from front matter
        tags: Tags from a front matter list or comma-separated string
        body: Markdown body without front matter, trimmed
        filename: Original filename
    """
    id: str
    language: str
    title: str
    category: str = ""
    type: str = ""
    tags: List[str] = field(default_factory=list)
    body: str = ""
    filename: str = ""
