"""Tests for permalink resolution."""

import pytest
from datetime import date, datetime

from sitesmith_pkg.document import Document
from sitesmith_pkg.errors import ConfigurationError
from sitesmith_pkg.permalinks import check_pattern, expand_pattern, pattern_tokens, resolve_permalink

PATTERNS = {'blog': 'blog/:slug', 'news': ':date/:slug'}


def make_doc(identity='blog/hello.html', **frontmatter):
    return Document(identity, '', frontmatter)


class TestResolvePermalink:
    """Test cases for resolve_permalink."""

    def test_resolves_pattern_for_type(self):
        doc = make_doc(slug='hello-world', type='blog')
        assert resolve_permalink(doc, PATTERNS) == '/blog/hello-world/'

    def test_type_falls_back_to_first_collection(self):
        doc = make_doc(slug='hello-world')
        doc.add_membership('blog', 0)
        assert resolve_permalink(doc, PATTERNS) == '/blog/hello-world/'

    def test_missing_field_resolves_to_nothing(self):
        doc = make_doc(type='blog')
        assert resolve_permalink(doc, PATTERNS) is None

    def test_empty_field_resolves_to_nothing(self):
        doc = make_doc(type='blog', slug='')
        assert resolve_permalink(doc, PATTERNS) is None

    def test_no_pattern_for_type(self):
        assert resolve_permalink(make_doc(type='recipes', slug='x'), PATTERNS) is None

    def test_no_type(self):
        assert resolve_permalink(make_doc(slug='x'), PATTERNS) is None

    def test_permalink_false_suppresses_resolution(self):
        doc = make_doc(type='blog', slug='hello', permalink=False)
        assert resolve_permalink(doc, PATTERNS) is None

    def test_explicit_permalink_pattern_wins(self):
        doc = make_doc(type='blog', slug='hello', permalink='custom/:slug')
        assert resolve_permalink(doc, PATTERNS) == '/custom/hello/'

    def test_date_values_use_date_format(self):
        doc = make_doc(type='news', slug='launch', date=date(2020, 1, 5))
        assert resolve_permalink(doc, PATTERNS) == '/2020/01/05/launch/'
        assert resolve_permalink(doc, PATTERNS, '%Y') == '/2020/launch/'

    def test_datetime_values(self):
        doc = make_doc(type='news', slug='launch', date=datetime(2021, 12, 31, 8, 30))
        assert resolve_permalink(doc, PATTERNS) == '/2021/12/31/launch/'

    def test_values_with_unsafe_characters_are_slugified(self):
        doc = make_doc(type='t', title='Hello World')
        assert resolve_permalink(doc, {'t': 'blog/:title'}) == '/blog/hello-world/'


class TestExpandPattern:
    """Test cases for expand_pattern."""

    def test_repeated_tokens_get_the_same_value(self):
        assert expand_pattern('x/:slug/:slug', {'slug': 'a'}) == '/x/a/a/'

    def test_never_returns_partial_substitution(self):
        assert expand_pattern('blog/:slug/:missing', {'slug': 'a'}) is None

    def test_pattern_without_tokens(self):
        assert expand_pattern('about', {}) == '/about/'

    def test_numbers(self):
        assert expand_pattern('blog/:num', {'num': 2}) == '/blog/2/'

    def test_pattern_tokens_in_order(self):
        assert pattern_tokens(':date/:slug/:date') == ['date', 'slug']


class TestCheckPattern:
    @pytest.mark.parametrize('pattern', ['', '/', None, 42, 'has space/:slug', 'a/::slug'])
    def test_invalid_patterns_raise(self, pattern):
        with pytest.raises(ConfigurationError, match='permalinks.blog'):
            check_pattern(pattern, 'permalinks.blog')

    def test_valid_pattern_is_returned(self):
        assert check_pattern('blog/:slug', 'permalinks.blog') == 'blog/:slug'
