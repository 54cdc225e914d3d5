"""
Directive tokenizer for the inkbridge Markdown dialect

Extends markdown-it-py with one rule per directive:

    block   callout          :::type{title="..."} ... :::
            tableOfContents  [[toc]]
    inline  statusBadge      {status:value id="..." text="..."}
            evidenceLink     [label]{evidence id="..." type="..." href="..."}
            privacyMask      {mask type="..." placeholder="..."}content{/mask}

Block rules run before markdown-it's own block rules (ahead of `fence`) and
inline rules ahead of `link`, in registry order. A rule that does not match
returns False and markdown-it's generic rules take over, so malformed
directives degrade to plain Markdown.

Every rule stores a DirectiveMatch in token.meta["directive"]; rendering is
done by the compiler.

Example:
    >>> md = MarkdownIt("commonmark").use(dialect_plugin)
    >>> [t.type for t in md.parse(':::note\\nHi\\n:::')][:2]
    ['callout_open', 'paragraph_open']
"""

import re
from typing import Callable, Dict, Optional

from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from markdown_it.rules_inline import StateInline

from ..models.directives import DirectiveLevel, DirectiveName, DirectiveSpec
from ..models.parser import DirectiveMatch
from .directives import (
    REGISTRY,
    attribute_coerce,
    attributes_parse,
    evidence_href,
    handlers_checkExhaustive,
    mask_placeholder,
    status_label,
)
from .log import LOG


# markdown-it token type emitted for each directive
TOKEN_TYPES: Dict[DirectiveName, str] = {
    DirectiveName.CALLOUT: "callout",
    DirectiveName.TABLE_OF_CONTENTS: "toc",
    DirectiveName.STATUS_BADGE: "status_badge",
    DirectiveName.EVIDENCE_LINK: "evidence_link",
    DirectiveName.PRIVACY_MASK: "privacy_mask",
}

# Block constructs a directive may interrupt
BLOCK_ALT = ["paragraph", "reference", "blockquote", "list"]

_FENCE = re.compile(r'(`{3,}|~{3,})')
_LABEL_UNESCAPE = re.compile(r'\\(.)')


def line_get(state: StateBlock, line: int) -> str:
    """Text of a source line without its leading indentation"""
    return state.src[state.bMarks[line] + state.tShift[line]:state.eMarks[line]]


def callout_findClose(state: StateBlock, spec: DirectiveSpec, startLine: int, endLine: int) -> Optional[int]:
    """
    Find the line closing the callout opened at startLine.

    Nested callouts are depth-counted; lines inside fenced code are not
    inspected.

    Returns:
        Line index of the matching ':::' or None when the callout is unclosed
    """
    depth = 1
    fence: Optional[str] = None
    for line in range(startLine + 1, endLine):
        text = line_get(state, line).rstrip()
        opener = _FENCE.match(text)
        if fence:
            if opener and opener.group(1)[0] == fence[0] and len(opener.group(1)) >= len(fence) \
                    and not text[len(opener.group(1)):].strip():
                fence = None
            continue
        if opener:
            fence = opener.group(1)
            continue
        if text == ':::':
            depth -= 1
            if depth == 0:
                return line
        elif spec.pattern.match(text):
            depth += 1
    return None


def callout_block(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    spec = REGISTRY.specs[DirectiveName.CALLOUT]
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False

    match = spec.pattern.match(line_get(state, startLine))
    if not match:
        return False

    closeLine = callout_findClose(state, spec, startLine, endLine)
    if closeLine is None:
        LOG(f"Unclosed callout at line {startLine + 1}; left as text", level=3)
        return False
    if silent:
        return True

    attributes = attributes_parse(match.group('attrs'))
    resolved = {'type': attribute_coerce(spec, 'type', match.group('type')) or 'info'}
    if attributes.get('title'):
        resolved['title'] = attributes['title']
    directive = DirectiveMatch(name=spec.name, attributes=resolved, line_number=startLine)

    old_parent = state.parentType
    old_line_max = state.lineMax
    state.parentType = "callout"
    state.lineMax = closeLine

    token = state.push("callout_open", "div", 1)
    token.markup = ":::"
    token.block = True
    token.map = [startLine, closeLine + 1]
    token.meta = {"directive": directive}

    state.md.block.tokenize(state, startLine + 1, closeLine)

    token = state.push("callout_close", "div", -1)
    token.markup = ":::"
    token.block = True

    state.parentType = old_parent
    state.lineMax = old_line_max
    state.line = closeLine + 1

    LOG(f"Callout '{resolved['type']}' at lines {startLine + 1}-{closeLine + 1}", level=2)
    return True


def toc_block(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    spec = REGISTRY.specs[DirectiveName.TABLE_OF_CONTENTS]
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    if not spec.pattern.match(line_get(state, startLine)):
        return False
    if silent:
        return True

    token = state.push("toc", "nav", 0)
    token.markup = "[[toc]]"
    token.block = True
    token.map = [startLine, startLine + 1]
    token.meta = {"directive": DirectiveMatch(name=spec.name, line_number=startLine)}
    state.line = startLine + 1
    return True


def status_resolve(spec: DirectiveSpec, match: re.Match[str]) -> Optional[DirectiveMatch]:
    attributes = attributes_parse(match.group('attrs'))
    status = attribute_coerce(spec, 'status', match.group('status')) or 'pending-review'
    resolved = {'status': status}
    if attributes.get('id'):
        resolved['id'] = attributes['id']
    return DirectiveMatch(
        name=spec.name,
        attributes=resolved,
        text=attributes.get('text') or status_label(status),
    )


def evidence_resolve(spec: DirectiveSpec, match: re.Match[str]) -> Optional[DirectiveMatch]:
    attributes = attributes_parse(match.group('attrs'))
    evidence_id = attributes.get('id')
    if not evidence_id:
        return None
    resolved = {
        'id': evidence_id,
        'href': attributes.get('href') or evidence_href(evidence_id),
    }
    if attributes.get('type'):
        resolved['type'] = attributes['type']
    return DirectiveMatch(
        name=spec.name,
        attributes=resolved,
        text=_LABEL_UNESCAPE.sub(r'\1', match.group('label')),
    )


def mask_resolve(spec: DirectiveSpec, match: re.Match[str]) -> Optional[DirectiveMatch]:
    attributes = attributes_parse(match.group('attrs'))
    mask_type = attribute_coerce(spec, 'type', attributes.get('type')) or 'pii'
    return DirectiveMatch(
        name=spec.name,
        attributes={
            'type': mask_type,
            'placeholder': attributes.get('placeholder') or mask_placeholder(mask_type),
        },
        text=match.group('content'),
    )


def inlineRule_make(
    spec: DirectiveSpec,
    resolve: Callable[[DirectiveSpec, re.Match[str]], Optional[DirectiveMatch]],
) -> Callable[[StateInline, bool], bool]:
    """Build a markdown-it inline rule for one directive"""
    token_type = TOKEN_TYPES[spec.name]

    def rule(state: StateInline, silent: bool) -> bool:
        if not state.src.startswith(spec.prefix, state.pos):
            return False
        match = spec.pattern.match(state.src, state.pos, state.posMax)
        if not match:
            return False
        directive = resolve(spec, match)
        if directive is None:
            return False
        if not silent:
            token = state.push(token_type, spec.html_tag, 0)
            token.markup = match.group(0)
            token.meta = {"directive": directive}
        state.pos = match.end()
        return True

    return rule


TOKENIZERS: Dict[DirectiveName, Callable] = {
    DirectiveName.CALLOUT: callout_block,
    DirectiveName.TABLE_OF_CONTENTS: toc_block,
    DirectiveName.STATUS_BADGE: inlineRule_make(REGISTRY.specs[DirectiveName.STATUS_BADGE], status_resolve),
    DirectiveName.EVIDENCE_LINK: inlineRule_make(REGISTRY.specs[DirectiveName.EVIDENCE_LINK], evidence_resolve),
    DirectiveName.PRIVACY_MASK: inlineRule_make(REGISTRY.specs[DirectiveName.PRIVACY_MASK], mask_resolve),
}
handlers_checkExhaustive(TOKENIZERS, "Markdown tokenizer")


def dialect_plugin(md: MarkdownIt) -> None:
    """
    markdown-it plugin installing every directive rule.

    Usage:
        md = MarkdownIt("commonmark").use(dialect_plugin)
    """
    for spec in REGISTRY.directives_listByLevel(DirectiveLevel.BLOCK):
        md.block.ruler.before("fence", TOKEN_TYPES[spec.name], TOKENIZERS[spec.name], {"alt": BLOCK_ALT})
    for spec in REGISTRY.directives_listByLevel(DirectiveLevel.INLINE):
        md.inline.ruler.before("link", TOKEN_TYPES[spec.name], TOKENIZERS[spec.name])
