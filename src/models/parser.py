"""
Tokenizer data models

Type-safe payloads the directive tokenizer attaches to markdown-it tokens
(token.meta["directive"]) for the renderer to consume.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .directives import DirectiveName


@dataclass
class DirectiveMatch:
    """
    One directive occurrence recognized in Markdown source

    Attribute values are already resolved: unknown enum values replaced by
    their defaults and default labels/placeholders/hrefs filled in, so the
    renderer only has to escape and emit.

    Attributes:
        name: Which directive matched
        attributes: Resolved attributes keyed by their Markdown names
        text: Element text (badge text, link label, masked content); empty
              for block directives
        line_number: Zero-based source line of the match, when known

    Example:
        For source '{status:compliant id="A.1"}':
        DirectiveMatch(
            name=DirectiveName.STATUS_BADGE,
            attributes={"status": "compliant", "id": "A.1"},
            text="Compliant",
        )
    """
    name: DirectiveName
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    line_number: Optional[int] = None

    def attribute(self, name: str, default: str = "") -> str:
        return self.attributes.get(name) or default
