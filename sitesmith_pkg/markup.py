"""
Default text transforms: Markdown rendering and code highlighting.
"""

import html
import logging
import re

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

MARKDOWN_EXTENSIONS = ('.md', '.markdown')
CODE_BLOCK_RE = re.compile(r'<code class="(?:language|lang)-([\w+#-]+)">(.*?)</code>', re.DOTALL)
PRE_RE = re.compile(r'<pre class="((?:language|lang)-[\w+#-]+)">')

logger = logging.getLogger('sitesmith.markup')


class MarkdownRenderer:
    """Render Markdown to HTML with a Mistune parser."""

    def __init__(self, plugins=None):
        self.plugins = plugins or ['table', 'task_lists', 'strikethrough']
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)

            def block_code(self, code, info=None):
                escaped_code = mistune.escape(code)
                language = info.split()[0] if info and info.strip() else None
                if not language:
                    return '<pre><code>{}</code></pre>\n'.format(escaped_code)
                lang_class = 'language-{}'.format(language)
                return '<pre class="{0}"><code class="{0}">{1}</code></pre>\n'.format(lang_class, escaped_code)
        return mistune.create_markdown(renderer=CustomRenderer(), plugins=self.plugins)

    def __call__(self, text):
        return self.markdown_parser(text)


def is_markdown(identity):
    return identity.lower().endswith(MARKDOWN_EXTENSIONS)


def highlight_code(code, language, identity=None):
    """Highlight a code snippet, falling back to plain text for unknown languages."""
    try:
        lexer = get_lexer_by_name(language)
    except ClassNotFound:
        where = f" in {identity}" if identity else ''
        logger.warning(f"Unrecognized language {language}{where}, defaulting to text")
        lexer = TextLexer()
    return highlight(code, lexer, HtmlFormatter(nowrap=True)).rstrip('\n')


def highlight_html(text, line_numbers=False, identity=None):
    """Highlight every ``language-*`` code element of an HTML document."""
    def replace(match):
        language = match.group(1)
        code = html.unescape(match.group(2))
        highlighted = highlight_code(code, language, identity)
        return f'<code class="language-{language}">{highlighted}</code>'

    result = CODE_BLOCK_RE.sub(replace, text)
    if line_numbers:
        result = PRE_RE.sub(r'<pre class="\1 line-numbers">', result)
    return result
