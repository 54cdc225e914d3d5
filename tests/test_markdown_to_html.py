"""
Markdown to HTML tests

Tests every dialect directive through markdown_to_html(), the fall-through
behaviour of malformed directives, escaping, sanitizing of raw HTML and
fenced code highlighting.
"""

import pytest
from bs4 import BeautifulSoup

from markdown_it import MarkdownIt
from pygments.token import Keyword, Name, Punctuation

from inkbridge.config import AppSettings
from inkbridge.lib.compiler import Compiler, markdown_to_html
from inkbridge.lib.lexer import DialectLexer
from inkbridge.lib.parser import dialect_plugin
from inkbridge.models.directives import DirectiveName


def soup_of(markdown: str) -> BeautifulSoup:
    return BeautifulSoup(markdown_to_html(markdown), 'html.parser', multi_valued_attributes=None)


class TestEmpty:
    """Test empty and generic input"""

    def test_none_and_empty(self):
        assert markdown_to_html(None) == ''
        assert markdown_to_html('') == ''

    def test_plain_paragraph(self):
        assert markdown_to_html('Hello world') == '<p>Hello world</p>\n'

    def test_tables_and_strikethrough(self):
        """The commonmark preset is extended with tables and strikethrough"""
        soup = soup_of('| a | b |\n|---|---|\n| 1 | 2 |\n\n~~gone~~')
        assert soup.find('table') is not None
        assert soup.find('s').get_text() == 'gone'


class TestCallout:
    """Test :::type callout blocks"""

    def test_callout_with_title(self):
        """Canonical structure with a title div outside the content div"""
        soup = soup_of(':::warning{title="Note"}\nHello\n:::')
        callout = soup.find('div', attrs={'data-callout-type': True})
        assert callout['class'] == 'callout callout-warning'
        assert callout['data-callout-type'] == 'warning'
        assert callout['data-callout-title'] == 'Note'

        children = callout.find_all('div', recursive=False)
        assert [c['class'] for c in children] == ['callout-title', 'callout-content']
        assert children[0].get_text() == 'Note'
        assert children[1].find('p').get_text() == 'Hello'

    def test_title_not_repeated_in_content(self):
        soup = soup_of(':::info{title="Scope"}\nBody text\n:::')
        content = soup.find('div', class_='callout-content')
        assert 'Scope' not in content.get_text()

    def test_callout_without_title(self):
        soup = soup_of(':::info\nBody\n:::')
        callout = soup.find('div', attrs={'data-callout-type': 'info'})
        assert not callout.has_attr('data-callout-title')
        assert callout.find('div', class_='callout-title') is None

    def test_missing_type_defaults_to_info(self):
        soup = soup_of(':::{title="Untyped"}\nBody\n:::')
        assert soup.find('div')['data-callout-type'] == 'info'

    def test_unknown_type_defaults_to_info(self):
        soup = soup_of(':::purple\nBody\n:::')
        assert soup.find('div')['data-callout-type'] == 'info'

    def test_unclosed_callout_is_text(self):
        """A callout with no closing marker falls through to a paragraph"""
        soup = soup_of(':::warning\nHello')
        assert soup.find('div') is None
        assert soup.find('p').get_text() == ':::warning\nHello'

    def test_body_is_markdown(self):
        soup = soup_of(':::note\n## Heading\n\n- **one**\n- two\n:::')
        content = soup.find('div', class_='callout-content')
        assert content.find('h2').get_text() == 'Heading'
        assert [li.get_text() for li in content.find_all('li')] == ['one', 'two']
        assert content.find('strong').get_text() == 'one'

    def test_nested_callouts(self):
        """Nesting is depth-counted, the inner ::: closes the inner callout"""
        soup = soup_of(':::info\nOuter\n:::warning\nInner\n:::\nAfter\n:::')
        outer = soup.find('div', attrs={'data-callout-type': 'info'})
        inner = outer.find('div', attrs={'data-callout-type': 'warning'})
        assert inner is not None
        assert inner.find('p').get_text() == 'Inner'
        outer_paragraphs = outer.find('div', class_='callout-content').find_all('p', recursive=False)
        assert [p.get_text() for p in outer_paragraphs] == ['Outer', 'After']

    def test_interrupts_paragraph(self):
        soup = soup_of('Intro line\n:::info\nBody\n:::')
        assert soup.find('p').get_text() == 'Intro line'
        assert soup.find('div', attrs={'data-callout-type': 'info'}) is not None

    def test_fenced_closer_is_ignored(self):
        """A ::: line inside fenced code does not close the callout"""
        soup = soup_of(':::info\n```\n:::\n```\nAfter\n:::')
        callout = soup.find('div', attrs={'data-callout-type': 'info'})
        assert callout.find('code').get_text() == ':::\n'
        assert callout.find('p').get_text() == 'After'

    def test_title_is_escaped(self):
        html = markdown_to_html(':::info{title="<img src=x onerror=alert(1)>"}\nx\n:::')
        soup = BeautifulSoup(html, 'html.parser')
        assert soup.find('img') is None
        assert soup.find('div', class_='callout-title').get_text() == '<img src=x onerror=alert(1)>'


class TestStatusBadge:
    """Test {status:...} badges"""

    def test_compliant(self):
        assert markdown_to_html('{status:compliant}') == (
            '<p><span class="status-badge status-compliant" data-status="compliant">'
            'Compliant</span></p>\n'
        )

    def test_hyphenated_value_with_id_and_text(self):
        soup = soup_of('{status:in-progress id="A.5.1" text="Half done"}')
        badge = soup.find('span')
        assert badge['data-status'] == 'in-progress'
        assert badge['data-status-id'] == 'A.5.1'
        assert badge.get_text() == 'Half done'

    def test_unknown_status_defaults(self):
        badge = soup_of('{status:sparkling}').find('span')
        assert badge['data-status'] == 'pending-review'
        assert badge.get_text() == 'Pending Review'

    def test_inside_sentence(self):
        soup = soup_of('Control A.1 is {status:compliant} today.')
        assert soup.find('p').get_text() == 'Control A.1 is Compliant today.'

    def test_text_is_escaped(self):
        html = markdown_to_html('{status:compliant text="<script>alert(1)</script>"}')
        assert '<script' not in html
        assert BeautifulSoup(html, 'html.parser').find('span').get_text() == '<script>alert(1)</script>'

    def test_malformed_is_text(self):
        assert soup_of('{status:}').find('p').get_text() == '{status:}'


class TestEvidenceLink:
    """Test [label]{evidence ...} links"""

    def test_default_href(self):
        link = soup_of('[Audit report]{evidence id="EV-001" type="pdf"}').find('a')
        assert link.has_attr('data-evidence')
        assert link['data-evidence-id'] == 'EV-001'
        assert link['data-file-type'] == 'pdf'
        assert link['href'] == '/api/evidence/EV-001'
        assert link.get_text() == 'Audit report'

    def test_explicit_href(self):
        link = soup_of('[Report]{evidence id="E1" href="https://files.example.com/r.pdf"}').find('a')
        assert link['href'] == 'https://files.example.com/r.pdf'

    def test_dangerous_href_removed(self):
        link = soup_of('[Report]{evidence id="E1" href="javascript:alert(1)"}').find('a')
        assert not link.has_attr('href')

    def test_escaped_bracket_in_label(self):
        link = soup_of('[Annex \\] B]{evidence id="E2"}').find('a')
        assert link.get_text() == 'Annex ] B'

    def test_without_id_is_text(self):
        soup = soup_of('[Report]{evidence type="pdf"}')
        assert soup.find('a') is None

    def test_ordinary_link_unaffected(self):
        link = soup_of('[site](https://example.com)').find('a')
        assert link['href'] == 'https://example.com'
        assert not link.has_attr('data-evidence')


class TestPrivacyMask:
    """Test {mask ...}content{/mask}"""

    def test_typed_mask(self):
        mask = soup_of('Card {mask type="financial"}1234-5678{/mask}').find('span')
        assert mask['class'] == 'privacy-mask'
        assert mask.has_attr('data-privacy-mask')
        assert mask['data-mask-type'] == 'financial'
        assert mask['data-placeholder'] == '[FINANCIAL DATA REDACTED]'
        assert mask.get_text() == '1234-5678'

    def test_default_type(self):
        mask = soup_of('{mask}Jane Doe{/mask}').find('span')
        assert mask['data-mask-type'] == 'pii'
        assert mask['data-placeholder'] == '[PERSONAL INFO REDACTED]'

    def test_custom_placeholder(self):
        mask = soup_of('{mask type="internal" placeholder="[HIDDEN]"}x{/mask}').find('span')
        assert mask['data-placeholder'] == '[HIDDEN]'

    def test_unclosed_is_text(self):
        soup = soup_of('{mask}secret')
        assert soup.find('span') is None
        assert soup.find('p').get_text() == '{mask}secret'


class TestTableOfContents:
    """Test [[toc]]"""

    def test_scaffold(self):
        nav = soup_of('[[toc]]\n\n## Intro').find('nav')
        assert nav['class'] == 'toc'
        assert nav.has_attr('data-toc')
        assert nav.find('div', class_='toc-header').get_text() == 'Table of Contents'
        toc_list = nav.find('ul', class_='toc-list')
        assert toc_list is not None
        assert toc_list.find('li') is None

    def test_header_from_settings(self):
        compiler = Compiler(settings=AppSettings(toc_header_text='Contents'))
        soup = BeautifulSoup(compiler.compile('[[toc]]'), 'html.parser')
        assert soup.find('div', class_='toc-header').get_text() == 'Contents'

    def test_inline_marker_is_text(self):
        assert soup_of('See [[toc]] here').find('nav') is None


class TestRawHtml:
    """Test raw HTML embedded in Markdown"""

    def test_script_removed(self):
        html = markdown_to_html('<script>alert(1)</script>\n\nHello')
        assert 'script' not in html
        assert 'Hello' in html

    def test_event_handler_removed(self):
        html = markdown_to_html('<div onclick="x()">Boxed</div>')
        assert 'onclick' not in html
        assert 'Boxed' in html

    def test_raw_html_escaped_when_disabled(self):
        compiler = Compiler(settings=AppSettings(allow_raw_html=False))
        html = compiler.compile('<b>bold</b>')
        assert '<b>' not in html
        assert '&lt;b&gt;' in html


class TestCodeHighlighting:
    """Test fenced code blocks"""

    def test_python_is_highlighted(self):
        soup = soup_of('```python\nprint("hi")\n```')
        code = soup.find('code')
        assert code['class'] == 'language-python'
        assert code.find('span', class_='nb').get_text() == 'print'
        assert code.get_text() == 'print("hi")\n'

    def test_no_inline_styles(self):
        html = markdown_to_html('```python\nx = 1\n```')
        assert 'style=' not in html

    def test_unknown_language_is_plain(self):
        soup = soup_of('```nosuchlanguage\n<b>x</b>\n```')
        code = soup.find('code')
        assert code.find('span') is None
        assert code.find('b') is None
        assert code.get_text() == '<b>x</b>\n'

    def test_dialect_fence(self):
        soup = soup_of('```inkbridge\n{status:compliant}\n```')
        assert soup.find('span', class_='nt').get_text() == 'status:'
        assert soup.find('span') is not None
        assert soup.find('span', attrs={'data-status': True}) is None

    def test_highlighting_disabled(self):
        compiler = Compiler(settings=AppSettings(highlight_code=False))
        soup = BeautifulSoup(compiler.compile('```python\nx = 1\n```'), 'html.parser')
        assert soup.find('code').find('span') is None


class TestTokens:
    """Test the markdown-it tokens produced by the dialect plugin"""

    def test_block_tokens(self):
        md = MarkdownIt('commonmark').use(dialect_plugin)
        tokens = md.parse(':::note\nHi\n:::\n\n[[toc]]')
        types = [t.type for t in tokens]
        assert types[0] == 'callout_open'
        assert 'callout_close' in types
        assert types[-1] == 'toc'
        assert tokens[0].meta['directive'].name is DirectiveName.CALLOUT
        assert tokens[0].meta['directive'].attributes == {'type': 'note'}

    def test_inline_tokens(self):
        md = MarkdownIt('commonmark').use(dialect_plugin)
        inline = md.parse('{status:compliant id="A.1"} {mask}x{/mask}')[1]
        types = [t.type for t in inline.children]
        assert types == ['status_badge', 'text', 'privacy_mask']
        badge = inline.children[0].meta['directive']
        assert badge.attributes == {'status': 'compliant', 'id': 'A.1'}
        assert badge.text == 'Compliant'


class TestDialectLexer:
    """Test the Pygments lexer for dialect snippets"""

    def tokens_of(self, text: str):
        return [(t, v) for t, v in DialectLexer().get_tokens(text) if v.strip()]

    def test_callout_fence(self):
        tokens = self.tokens_of(':::warning{title="Note"}\n')
        assert tokens[0] == (Keyword.Declaration, ':::')
        assert tokens[1] == (Keyword.Type, 'warning')
        assert (Name.Attribute, 'title') in tokens

    def test_status(self):
        tokens = self.tokens_of('{status:compliant id="A.1"}')
        assert tokens[:3] == [(Punctuation, '{'), (Name.Tag, 'status:'), (Name.Constant, 'compliant')]
        assert tokens[-1] == (Punctuation, '}')

    def test_toc_marker(self):
        assert self.tokens_of('[[toc]]') == [(Name.Decorator, '[[toc]]')]

    @pytest.mark.parametrize('alias', ['inkbridge', 'dialect'])
    def test_aliases(self, alias):
        assert alias in DialectLexer.aliases
