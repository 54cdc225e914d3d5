"""
Directive specification and metadata models

Defines the closed set of dialect directives, their attribute schemas and
the canonical HTML each one maps to. The registry in lib.directives builds
its tables from these specs; converters key their per-directive handlers by
DirectiveName so a missing handler is detected at import.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple


class DirectiveName(Enum):
    """
    The closed set of dialect directives

    Adding a member here without adding a handler to every converter makes
    the converter module fail at import with RegistryError.
    """
    CALLOUT = "callout"                  # :::type{title="..."} ... :::
    STATUS_BADGE = "statusBadge"         # {status:value id="..."}
    EVIDENCE_LINK = "evidenceLink"       # [label]{evidence id="..."}
    PRIVACY_MASK = "privacyMask"         # {mask type="..."}content{/mask}
    TABLE_OF_CONTENTS = "tableOfContents"  # [[toc]]


class DirectiveLevel(Enum):
    """Where a directive may appear in a document"""
    BLOCK = "block"      # owns whole lines
    INLINE = "inline"    # appears inside a paragraph


class RegistryError(ValueError):
    """
    Raised at import when directive tables are inconsistent

    Either a converter lacks a handler for some DirectiveName, or two
    directives share an ambiguous Markdown prefix.
    """


@dataclass(frozen=True)
class AttributeSpec:
    """
    One attribute of a directive

    Attributes:
        name: Attribute name as written in the Markdown form
        html_name: data-* attribute carrying the value in HTML
        choices: Allowed values; empty means free text
        default: Value used when the attribute is absent or not a valid choice
        legacy_html_names: Older data-* names still accepted when reading HTML
    """
    name: str
    html_name: str
    choices: Tuple[str, ...] = ()
    default: Optional[str] = None
    legacy_html_names: Tuple[str, ...] = ()

    def value_coerce(self, value: Optional[str]) -> Optional[str]:
        """Return value if acceptable, else the default"""
        if value is None or value == '':
            return self.default
        if self.choices and value not in self.choices:
            return self.default
        return value


@dataclass(frozen=True)
class DirectiveSpec:
    """
    Specification for a dialect directive

    Attributes:
        name: Directive identity
        level: Block or inline
        prefix: Literal text the Markdown form starts with
        pattern: Compiled regex matching one Markdown occurrence
        html_tag: Element of the canonical HTML form
        html_marker: (attribute, value) that identifies the element on the
                     way back from HTML (e.g. ('data-status', None) means
                     "has data-status")
        attributes: Attribute schema, in canonical output order
        description: Human-readable description
        examples: Example Markdown strings
    """
    name: DirectiveName
    level: DirectiveLevel
    prefix: str
    pattern: Pattern[str]
    html_tag: str
    html_marker: Tuple[str, Optional[str]]
    attributes: Tuple[AttributeSpec, ...] = ()
    description: str = ""
    examples: List[str] = field(default_factory=list)

    def attribute_get(self, name: str) -> AttributeSpec:
        """Look up an attribute spec by its Markdown name"""
        for spec in self.attributes:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.name.value} has no attribute '{name}'")

    def defaults(self) -> Dict[str, Optional[str]]:
        return {spec.name: spec.default for spec in self.attributes}
