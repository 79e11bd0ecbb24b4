"""Test configuration and fixtures for Sitesmith tests."""

import pytest
import tempfile
import shutil
import os
import sys
from datetime import date
from pathlib import Path

import jinja2

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_source_dir(temp_dir):
    """Create a mock source tree with posts, pages, layouts and an asset."""
    source_dir = Path(temp_dir) / 'src'
    blog_dir = source_dir / 'blog'
    layouts_dir = source_dir / 'layouts'
    css_dir = source_dir / 'css'

    blog_dir.mkdir(parents=True)
    layouts_dir.mkdir()
    css_dir.mkdir()

    for num in range(1, 7):
        (blog_dir / f'post-{num}.md').write_text(f"""---
title: Post {num}
date: 2020-01-0{num}
tags: [python]
---

# Post {num}

Body of post {num}.
""")

    (source_dir / 'index.html').write_text("""---
title: Home
---
<p>home</p>
""")

    (source_dir / '404.html').write_text("""---
title: Not found
---
<p>missing</p>
""")

    (css_dir / 'style.css').write_bytes(b'body { margin: 0; }')

    (layouts_dir / 'post.html').write_text(
        "<article><h1>{{ title }}</h1>{{ contents }}</article>")
    (layouts_dir / 'page.html').write_text(
        "<ul>{% for doc in pagination.files %}<li>{{ doc.frontmatter.title }}</li>{% endfor %}</ul>"
        "{% if pagination.next %}<a href=\"{{ pagination.next.path }}\">next</a>{% endif %}"
        "{% if pagination.previous %}<a href=\"{{ pagination.previous.path }}\">prev</a>{% endif %}")

    return str(source_dir)


@pytest.fixture
def mock_output_dir(temp_dir):
    """Create a mock output directory."""
    output_dir = Path(temp_dir) / 'public'
    output_dir.mkdir()
    return str(output_dir)


@pytest.fixture
def make_posts():
    """Factory for in-memory blog posts dated one day apart."""
    def factory(count, directory='blog', **frontmatter):
        files = {}
        for num in range(1, count + 1):
            data = {'title': f'Post {num}', 'date': date(2020, 1, num)}
            data.update(frontmatter)
            files[f'{directory}/post-{num}.md'] = {'body': f'# Post {num}', 'frontmatter': data}
        return files
    return factory


class StubLayoutEngine:
    """Layout engine that wraps bodies in a tag named after the layout."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def render(self, document, layout_name, global_metadata):
        if self.fail_on and document.identity.startswith(self.fail_on):
            raise RuntimeError(f"template exploded for {document.identity}")
        self.calls.append((document.identity, layout_name))
        return f"<{layout_name}>{document.body}</{layout_name}>"

    def render_string(self, source, document, global_metadata):
        context = dict(global_metadata)
        context.update(document.frontmatter)
        return jinja2.Template(source).render(**context)


@pytest.fixture
def stub_engine():
    return StubLayoutEngine()


@pytest.fixture
def failing_engine():
    """Layout engine that fails for every document under fr/."""
    return StubLayoutEngine(fail_on='fr/')
