"""
HTML to Markdown tests

Tests the serializer: directive round trips, omission of default
attributes, legacy editor HTML and generic Markdown output.
"""

import pytest

from inkbridge.config import AppSettings
from inkbridge.lib.compiler import markdown_to_html
from inkbridge.lib.serializer import DialectConverter, html_to_markdown, title_normalize


LEGACY_CALLOUT = (
    '<div class="callout callout-warning" data-callout="warning" data-title="Note">'
    '<div class="callout-content"><p>⚠️ Note</p><p>Body</p></div>'
    '</div>'
)


class TestRoundTrip:
    """Markdown → HTML → Markdown returns the source for canonical input"""

    @pytest.mark.parametrize('source', [
        ':::warning{title="Note"}\nHello\n:::',
        ':::info\nPlain body\n:::',
        '{status:compliant}',
        '{status:in-progress id="A.5.1" text="Half done"}',
        '{mask type="financial"}1234-5678{/mask}',
        '{mask type="internal" placeholder="[HIDDEN]"}ops-db-01{/mask}',
        '[Audit report]{evidence id="EV-001" type="pdf"}',
        '[Report]{evidence id="E1" href="https://files.example.com/r.pdf"}',
        '[Annex \\] B]{evidence id="E2"}',
        '[[toc]]',
    ])
    def test_round_trip(self, source):
        assert html_to_markdown(markdown_to_html(source)) == source

    def test_round_trip_is_stable(self):
        """A second round trip changes nothing"""
        source = 'Status {status:non-compliant id="C.1"} and {mask type="pii"}Jane{/mask}.'
        once = html_to_markdown(markdown_to_html(source))
        twice = html_to_markdown(markdown_to_html(once))
        assert once == twice == source

    def test_several_titled_callouts(self):
        """Removing rendered titles does not disturb the callouts after them"""
        source = ':::warning{title="A"}\nOne\n:::\n\nBetween\n\n:::danger{title="B"}\nTwo\n:::'
        assert html_to_markdown(markdown_to_html(source)) == source

    def test_nested_titled_callouts(self):
        source = ':::info{title="Outer"}\nText\n\n:::warning{title="Inner"}\nDeep\n:::\n:::'
        markdown = html_to_markdown(markdown_to_html(source))
        assert markdown.startswith(':::info{title="Outer"}\nText')
        assert ':::warning{title="Inner"}\nDeep\n:::' in markdown
        assert 'callout-title' not in markdown

    def test_nested_callout_round_trip(self):
        source = ':::info\nOuter\n\n:::warning\nInner\n:::\n:::'
        markdown = html_to_markdown(markdown_to_html(source))
        assert markdown.startswith(':::info\nOuter')
        assert ':::warning\nInner\n:::' in markdown
        assert markdown.endswith(':::')


class TestLiteralDirectiveText:
    """Directive syntax appearing as plain text is escaped, never revived"""

    @pytest.mark.parametrize('source', [
        'Literal \\{status:compliant}',
        'Text \\{mask type="pii"}x\\{/mask}',
        '\\[[toc]]',
        '\\:::warning',
        'Path C:\\\\data',
    ])
    def test_escaped_source_round_trip(self, source):
        html = markdown_to_html(source)
        markdown = html_to_markdown(html)
        assert markdown == source
        assert markdown_to_html(markdown) == html

    def test_text_from_html_stays_text(self):
        markdown = html_to_markdown('<p>Literal {status:compliant}</p>')
        assert markdown == 'Literal \\{status:compliant}'
        assert 'data-status' not in markdown_to_html(markdown)

    def test_directives_inside_code_untouched(self):
        markdown = html_to_markdown('<p><code>{status:compliant}</code></p>')
        assert markdown == '`{status:compliant}`'


class TestOmitDefaults:
    """Attributes equal to their defaults are not written"""

    def test_status_text_equal_to_label(self):
        html = '<span data-status="not-applicable">Not Applicable</span>'
        assert html_to_markdown(html) == '{status:not-applicable}'

    def test_status_custom_text_kept(self):
        html = '<span data-status="compliant">Done</span>'
        assert html_to_markdown(html) == '{status:compliant text="Done"}'

    def test_evidence_default_href_omitted(self):
        html = '<a data-evidence="" data-evidence-id="EV-9" href="/api/evidence/EV-9">Log</a>'
        assert html_to_markdown(html) == '[Log]{evidence id="EV-9"}'

    def test_mask_default_placeholder_omitted(self):
        html = ('<span data-privacy-mask="" data-mask-type="pii" '
                'data-placeholder="[PERSONAL INFO REDACTED]">Jane</span>')
        assert html_to_markdown(html) == '{mask type="pii"}Jane{/mask}'

    def test_unknown_values_coerced(self):
        html = '<span data-status="sparkling">Pending Review</span>'
        assert html_to_markdown(html) == '{status:pending-review}'


class TestLegacyHtml:
    """Older editor output is repaired on the way back"""

    def test_legacy_attributes_and_duplicate_title(self):
        assert html_to_markdown(LEGACY_CALLOUT) == ':::warning{title="Note"}\nBody\n:::'

    def test_repeated_title_paragraphs_removed(self):
        html = (
            '<div data-callout-type="info" data-callout-title="Scope">'
            '<div class="callout-title">Scope</div>'
            '<div class="callout-content"><p>Scope</p><p> ℹ Scope</p><p>Text</p></div>'
            '</div>'
        )
        assert html_to_markdown(html) == ':::info{title="Scope"}\nText\n:::'

    def test_repair_can_be_disabled(self):
        converter = DialectConverter(settings=AppSettings(strip_legacy_title_paragraphs=False))
        markdown = converter.convert(LEGACY_CALLOUT)
        assert markdown.startswith(':::warning{title="Note"}')
        assert '⚠️ Note' in markdown
        assert 'Body' in markdown

    def test_rendered_title_never_serialized(self):
        html = (
            '<div class="callout callout-danger" data-callout-type="danger" data-callout-title="Stop">'
            '<div class="callout-title">Stop</div><div class="callout-content"><p>Now</p></div></div>'
        )
        assert html_to_markdown(html) == ':::danger{title="Stop"}\nNow\n:::'

    def test_control_id(self):
        html = '<span data-status="in-progress" data-control-id="A.5.1">In Progress</span>'
        assert html_to_markdown(html) == '{status:in-progress id="A.5.1"}'

    def test_evidence_without_marker(self):
        html = '<a data-evidence-id="EV-2" href="/api/evidence/EV-2">Scan</a>'
        assert html_to_markdown(html) == '[Scan]{evidence id="EV-2"}'

    def test_title_with_quotes(self):
        html = '<div data-callout-type="note" data-callout-title=\'Say "hi"\'><p>x</p></div>'
        assert html_to_markdown(html) == ':::note{title="Say \\"hi\\""}\nx\n:::'


class TestGenericMarkdown:
    """Elements without a directive signature use markdownify's rules"""

    def test_headings_lists_emphasis(self):
        markdown = html_to_markdown(
            '<h2>Title</h2><ul><li>one</li><li>two</li></ul>'
            '<p><strong>bold</strong> and <em>it</em></p>'
        )
        assert '## Title' in markdown
        assert '- one' in markdown
        assert '- two' in markdown
        assert '**bold** and *it*' in markdown

    def test_ordinary_link(self):
        assert html_to_markdown('<a href="https://example.com">site</a>') == '[site](https://example.com)'

    def test_plain_span_and_div(self):
        assert html_to_markdown('<div><span class="x">just text</span></div>') == 'just text'

    def test_code_language_recovered(self):
        markdown = html_to_markdown('<pre><code class="language-python">print(1)\n</code></pre>')
        assert markdown.startswith('```python\n')
        assert 'print(1)' in markdown

    def test_highlighted_code_round_trip(self):
        source = '```python\nprint("hi")\n```'
        markdown = html_to_markdown(markdown_to_html(source))
        assert markdown.startswith('```python\n')
        assert 'print("hi")' in markdown

    def test_none_and_empty(self):
        assert html_to_markdown(None) == ''
        assert html_to_markdown('') == ''


class TestTitleNormalize:
    """Test title_normalize()"""

    @pytest.mark.parametrize('raw', [
        'Note',
        '  Note  ',
        '⚠️ Note',
        'ℹ Note',
        '‍⚠ Note ‍',
    ])
    def test_strips_icons_and_space(self, raw):
        assert title_normalize(raw) == 'Note'

    def test_inner_text_kept(self):
        assert title_normalize('⚠ Do not ⚠ touch') == 'Do not ⚠ touch'
