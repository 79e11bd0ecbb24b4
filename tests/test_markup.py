"""Tests for Markdown rendering, highlighting and layouts."""

import logging
import pytest
from pathlib import Path

from jinja2 import TemplateNotFound

from sitesmith_pkg.document import Document
from sitesmith_pkg.layouts import LayoutEngine, layout_filename
from sitesmith_pkg.markup import MarkdownRenderer, highlight_code, highlight_html, is_markdown


class TestMarkdownRenderer:
    """Test cases for MarkdownRenderer."""

    def test_renders_headings_and_paragraphs(self):
        html = MarkdownRenderer()("# Title\n\nSome *text*.")
        assert '<h1>Title</h1>' in html
        assert '<em>text</em>' in html

    def test_fenced_code_gets_language_class(self):
        html = MarkdownRenderer()("```python\nprint(1 < 2)\n```")
        assert '<pre class="language-python"><code class="language-python">' in html
        assert '1 &lt; 2' in html

    def test_fenced_code_without_language(self):
        html = MarkdownRenderer()("```\nplain\n```")
        assert '<pre><code>plain' in html

    def test_tables_plugin(self):
        html = MarkdownRenderer()("| a | b |\n|---|---|\n| 1 | 2 |")
        assert '<table>' in html

    @pytest.mark.parametrize('identity, expected', [
        ('post.md', True), ('notes/POST.MARKDOWN', True), ('page.html', False), ('style.css', False),
    ])
    def test_is_markdown(self, identity, expected):
        assert is_markdown(identity) is expected


class TestHighlight:
    """Test cases for code highlighting."""

    def test_highlights_known_language(self):
        text = '<pre class="language-python"><code class="language-python">def f():\n    return &quot;x&quot;</code></pre>'
        result = highlight_html(text)
        assert '<span' in result
        assert result.startswith('<pre class="language-python"><code class="language-python">')

    def test_unknown_language_falls_back_to_text(self, caplog):
        caplog.set_level(logging.WARNING, logger='sitesmith')
        result = highlight_code('hello', 'nosuchlanguage', 'post.html')
        assert result == 'hello'
        assert 'Unrecognized language nosuchlanguage in post.html' in caplog.text

    def test_line_numbers_class(self):
        text = '<pre class="language-js"><code class="language-js">let a = 1;</code></pre>'
        assert '<pre class="language-js line-numbers">' in highlight_html(text, line_numbers=True)

    def test_html_without_code_is_unchanged(self):
        assert highlight_html('<p>nothing</p>') == '<p>nothing</p>'


class TestLayouts:
    """Test cases for the Jinja2 layout engine."""

    @pytest.mark.parametrize('name, expected', [
        ('post', 'post.html'), ('post.html', 'post.html'), ('page.njk', 'page.njk'), (None, None),
    ])
    def test_layout_filename(self, name, expected):
        assert layout_filename(name) == expected

    def test_layout_filename_custom_extension(self):
        assert layout_filename('post', 'j2') == 'post.j2'

    def test_render_layout(self, temp_dir):
        Path(temp_dir, 'post.html').write_text('<h1>{{ title }}</h1>{{ contents }}<p>{{ site_title }} {{ path }}</p>')
        engine = LayoutEngine(temp_dir)
        document = Document('blog/a.html', '<p>body</p>', {'title': 'A'}, '/blog/a/')
        html = engine.render(document, 'post', {'site_title': 'Site'})
        assert html == '<h1>A</h1><p>body</p><p>Site /blog/a/</p>'

    def test_frontmatter_wins_over_globals(self, temp_dir):
        Path(temp_dir, 'post.html').write_text('{{ title }}')
        document = Document('a.html', '', {'title': 'Mine'})
        assert LayoutEngine(temp_dir).render(document, 'post.html', {'title': 'Site'}) == 'Mine'

    def test_missing_layout(self, temp_dir):
        with pytest.raises(TemplateNotFound):
            LayoutEngine(temp_dir).render(Document('a.html'), 'missing', {})

    def test_render_string(self, temp_dir):
        document = Document('about.html.j2', '{{ site_title }} - {{ title }}', {'title': 'About'})
        result = LayoutEngine(temp_dir).render_string(document.body, document, {'site_title': 'Site'})
        assert result == 'Site - About'
