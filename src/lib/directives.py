"""
Directive registry for the inkbridge dialect

Holds one DirectiveSpec per DirectiveName: the Markdown pattern, the
attribute schema with defaults, and the canonical HTML element. Also holds
the small lookup tables both converters share (status labels, redaction
placeholders) and the attribute-list grammar

    key="value" key2="value with \\"quotes\\""

The registry is built once at import and exposed read-only. Converters key
their handlers by DirectiveName and call handlers_checkExhaustive() so a
directive without a tokenizer or serializer case fails at import.
"""

import re
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple, Union

from ..config import appsettings
from ..models.directives import (
    AttributeSpec,
    DirectiveLevel,
    DirectiveName,
    DirectiveSpec,
    RegistryError,
)


# One key="value" pair; values may contain \" and \\ escapes
ATTRIBUTE_PAIR = r'[A-Za-z][\w-]*="(?:[^"\\]|\\.)*"'
ATTRIBUTE_LIST = rf'(?:\s+{ATTRIBUTE_PAIR})*'

_ATTRIBUTE_PAIR_RE: Pattern[str] = re.compile(r'([A-Za-z][\w-]*)="((?:[^"\\]|\\.)*)"')
_UNESCAPE_RE: Pattern[str] = re.compile(r'\\(.)')


STATUS_LABELS: Mapping[str, str] = MappingProxyType({
    'compliant': 'Compliant',
    'non-compliant': 'Non-Compliant',
    'in-progress': 'In Progress',
    'not-applicable': 'Not Applicable',
    'pending-review': 'Pending Review',
})

MASK_PLACEHOLDERS: Mapping[str, str] = MappingProxyType({
    'pii': '[PERSONAL INFO REDACTED]',
    'internal': '[INTERNAL]',
    'financial': '[FINANCIAL DATA REDACTED]',
    'technical': '[SYSTEM DETAILS REDACTED]',
    'custom': '[REDACTED]',
})

CALLOUT_TYPES: Tuple[str, ...] = ('info', 'warning', 'danger', 'success', 'note')

# Generic Markdown openings no directive pattern may claim
GENERIC_SAMPLES: Tuple[str, ...] = (
    '[label](https://example.com)',
    '[label][ref]',
    '[label]',
    '![alt](image.png)',
    '```python',
    '~~~',
    '> quote',
    '# heading',
    '- item',
    '---',
    '**bold**',
    '`code`',
    '{plain braces}',
)


def status_label(status: Optional[str]) -> str:
    """Default display text of a status badge; unknown values are shown raw"""
    if not status:
        return ''
    return STATUS_LABELS.get(status, status)


def mask_placeholder(mask_type: Optional[str]) -> str:
    """Default redaction string for a mask type; unknown types use custom's"""
    return MASK_PLACEHOLDERS.get(mask_type or '', MASK_PLACEHOLDERS['custom'])


def evidence_href(evidence_id: str) -> str:
    """Default link target of an evidence link"""
    return appsettings.evidenceHref_make(evidence_id)


def attribute_escape(value: str) -> str:
    return value.replace('\\', '\\\\').replace('"', '\\"')


def attribute_format(name: str, value: str) -> str:
    """
    Format one attribute pair.

    Example:
        >>> attribute_format('title', 'Say "hi"')
        'title="Say \\\\"hi\\\\""'
    """
    return f'{name}="{attribute_escape(value)}"'


def attributes_format(pairs: List[Tuple[str, Optional[str]]]) -> str:
    """
    Format a list of pairs, skipping those whose value is None.

    Returns:
        Space-separated pairs with a leading space, or '' when none remain
    """
    parts = [attribute_format(name, value) for name, value in pairs if value is not None]
    return ''.join(f' {part}' for part in parts)


def attributes_parse(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse an attribute list into a dict.

    The inverse of attributes_format(): escapes are undone, and the first
    occurrence of a repeated key wins.

    Example:
        >>> attributes_parse(' id="A.1" text="Say \\\\"hi\\\\""')
        {'id': 'A.1', 'text': 'Say "hi"'}
    """
    attributes: Dict[str, str] = {}
    for match in _ATTRIBUTE_PAIR_RE.finditer(raw or ''):
        name = match.group(1)
        if name not in attributes:
            attributes[name] = _UNESCAPE_RE.sub(r'\1', match.group(2))
    return attributes


def attribute_coerce(spec: DirectiveSpec, name: str, value: Optional[str]) -> Optional[str]:
    """
    Return value if the schema accepts it, otherwise the schema default.

    Args:
        spec: Directive the attribute belongs to
        name: Attribute name in its Markdown form
        value: Value as found in Markdown or HTML (None when absent)
    """
    return spec.attribute_get(name).value_coerce(value)


class DirectiveRegistry:
    """
    Registry of directive specifications

    Built once; after __init__ the table is only reachable through a
    read-only mapping. Lookups of unknown names return None, which callers
    treat as "no directive here".
    """

    def __init__(self) -> None:
        """Initialize the registry and register all directives"""
        specs: Dict[DirectiveName, DirectiveSpec] = {}
        for spec in self.blockDirectives_build() + self.inlineDirectives_build():
            specs[spec.name] = spec
        self.specs: Mapping[DirectiveName, DirectiveSpec] = MappingProxyType(specs)

        missing = [name.value for name in DirectiveName if name not in self.specs]
        if missing:
            raise RegistryError(f"No specification for directive(s): {', '.join(missing)}")
        self.prefixes_checkUnambiguous()

    def blockDirectives_build(self) -> List[DirectiveSpec]:
        """Block directives, in the order the tokenizer tries them"""
        callout = DirectiveSpec(
            name=DirectiveName.CALLOUT,
            level=DirectiveLevel.BLOCK,
            prefix=':::',
            pattern=re.compile(
                rf':::(?![ \t]*$)(?P<type>[\w-]*)'
                rf'(?:\{{(?P<attrs>\s*(?:{ATTRIBUTE_PAIR}(?:\s+{ATTRIBUTE_PAIR})*)?\s*)\}})?[ \t]*$'
            ),
            html_tag='div',
            html_marker=('data-callout-type', None),
            attributes=(
                AttributeSpec('type', 'data-callout-type', CALLOUT_TYPES, 'info', ('data-callout',)),
                AttributeSpec('title', 'data-callout-title', (), None, ('data-title',)),
            ),
            description='Highlighted box with an optional title; its body is Markdown',
            examples=[':::warning{title="Note"}', ':::info', ':::{title="Untyped"}'],
        )

        toc = DirectiveSpec(
            name=DirectiveName.TABLE_OF_CONTENTS,
            level=DirectiveLevel.BLOCK,
            prefix='[[toc]]',
            pattern=re.compile(r'\[\[toc\]\][ \t]*$'),
            html_tag='nav',
            html_marker=('data-toc', None),
            description='Table of contents scaffold, populated at display time',
            examples=['[[toc]]'],
        )
        return [callout, toc]

    def inlineDirectives_build(self) -> List[DirectiveSpec]:
        """Inline directives, in the order the tokenizer tries them"""
        status = DirectiveSpec(
            name=DirectiveName.STATUS_BADGE,
            level=DirectiveLevel.INLINE,
            prefix='{status:',
            pattern=re.compile(rf'\{{status:(?P<status>\w+(?:-\w+)*)(?P<attrs>{ATTRIBUTE_LIST})\s*\}}'),
            html_tag='span',
            html_marker=('data-status', None),
            attributes=(
                AttributeSpec('status', 'data-status', tuple(STATUS_LABELS), 'pending-review'),
                AttributeSpec('id', 'data-status-id', (), None, ('data-control-id',)),
                AttributeSpec('text', '', (), None),
            ),
            description='Compliance status pill',
            examples=['{status:compliant}', '{status:in-progress id="A.5.1" text="Half done"}'],
        )

        evidence = DirectiveSpec(
            name=DirectiveName.EVIDENCE_LINK,
            level=DirectiveLevel.INLINE,
            prefix='[',
            pattern=re.compile(
                rf'\[(?P<label>(?:[^\]\\\n]|\\.)+)\]\{{evidence(?P<attrs>{ATTRIBUTE_LIST})\s*\}}'
            ),
            html_tag='a',
            html_marker=('data-evidence', None),
            attributes=(
                AttributeSpec('id', 'data-evidence-id'),
                AttributeSpec('type', 'data-file-type'),
                AttributeSpec('href', 'href'),
            ),
            description='Link to an uploaded evidence file',
            examples=['[Audit report]{evidence id="EV-001" type="pdf"}'],
        )

        mask = DirectiveSpec(
            name=DirectiveName.PRIVACY_MASK,
            level=DirectiveLevel.INLINE,
            prefix='{mask',
            pattern=re.compile(
                rf'\{{mask(?P<attrs>{ATTRIBUTE_LIST})\s*\}}(?P<content>[\s\S]+?)\{{/mask\}}'
            ),
            html_tag='span',
            html_marker=('data-privacy-mask', None),
            attributes=(
                AttributeSpec('type', 'data-mask-type', tuple(MASK_PLACEHOLDERS), 'pii'),
                AttributeSpec('placeholder', 'data-placeholder'),
            ),
            description='Content redacted on export unless privacy is revealed',
            examples=['{mask type="financial"}1234-5678{/mask}'],
        )
        return [status, evidence, mask]

    def get(self, name: Union[DirectiveName, str]) -> Optional[DirectiveSpec]:
        """Get a spec by enum member or by its string value"""
        return self.spec_get(name)

    def spec_get(self, name: Union[DirectiveName, str]) -> Optional[DirectiveSpec]:
        """
        Get full directive specification by name

        Unknown names return None; they mean "no directive matched".
        """
        if isinstance(name, DirectiveName):
            return self.specs.get(name)
        try:
            return self.specs.get(DirectiveName(name))
        except ValueError:
            return None

    def directives_listByLevel(self, level: DirectiveLevel) -> List[DirectiveSpec]:
        """Get all directives of a level, in registration order"""
        return [spec for spec in self.specs.values() if spec.level == level]

    def prefixes_checkUnambiguous(self) -> None:
        """
        Verify no two directives can claim the same input.

        At each level: no prefix is a prefix of another, every example is
        matched by its own pattern only, and no pattern matches a generic
        Markdown construct.

        Raises:
            RegistryError: on the first conflict found
        """
        for level in DirectiveLevel:
            specs = self.directives_listByLevel(level)
            for spec in specs:
                for other in specs:
                    if other is not spec and other.prefix.startswith(spec.prefix):
                        raise RegistryError(
                            f"Prefix '{spec.prefix}' of {spec.name.value} is ambiguous "
                            f"with {other.name.value}"
                        )
                for example in spec.examples:
                    claimants = [s.name.value for s in specs if s.pattern.match(example)]
                    if claimants != [spec.name.value]:
                        raise RegistryError(
                            f"Example {example!r} of {spec.name.value} is matched by {claimants}"
                        )
                for sample in GENERIC_SAMPLES:
                    if spec.pattern.match(sample):
                        raise RegistryError(
                            f"{spec.name.value} pattern claims generic Markdown {sample!r}"
                        )


def handlers_checkExhaustive(handlers: Mapping[DirectiveName, Any], owner: str) -> None:
    """
    Verify a converter has a case for every directive.

    Args:
        handlers: Converter's per-directive table
        owner: Converter name for the error message

    Raises:
        RegistryError: if any DirectiveName has no entry
    """
    missing = [name.value for name in DirectiveName if name not in handlers]
    if missing:
        raise RegistryError(f"{owner} has no case for directive(s): {', '.join(missing)}")


# Process-wide registry, read-only after construction
REGISTRY = DirectiveRegistry()
