"""Tests for settings loading and config normalization."""

import json
import pytest
import yaml
from pathlib import Path

from sitesmith_pkg.errors import ConfigurationError
from sitesmith_pkg.settings import ERROR_PAGES_PATTERN, SitesmithSettings, normalize_config


class TestSitesmithSettings:
    """Test cases for loading configuration files."""

    def test_defaults_without_config_file(self, temp_dir):
        settings = SitesmithSettings(temp_dir).load_settings()
        assert settings['source'] == 'src'
        assert settings['destination'] == 'public'
        assert settings['ignore'] == ['layouts', 'includes', '.DS_Store']

    def test_loads_yaml(self, temp_dir, capsys):
        Path(temp_dir, 'sitesmith.yml').write_text(yaml.dump({'source': 'content', 'workers': 4}))
        loader = SitesmithSettings(temp_dir)
        settings = loader.load_settings()
        assert settings['source'] == 'content'
        assert settings['workers'] == 4
        assert loader.config_file_path.endswith('sitesmith.yml')
        assert 'Loaded configuration from' in capsys.readouterr().out

    def test_loads_json(self, temp_dir):
        Path(temp_dir, 'sitesmith.json').write_text(json.dumps({'destination': 'out'}))
        assert SitesmithSettings(temp_dir).load_settings()['destination'] == 'out'

    def test_yaml_preferred_over_json(self, temp_dir):
        Path(temp_dir, 'sitesmith.json').write_text(json.dumps({'destination': 'json'}))
        Path(temp_dir, 'sitesmith.yaml').write_text('destination: yaml\n')
        assert SitesmithSettings(temp_dir).load_settings()['destination'] == 'yaml'

    def test_invalid_yaml_falls_back_to_defaults(self, temp_dir, capsys):
        Path(temp_dir, 'sitesmith.yml').write_text('source: [unclosed\n')
        settings = SitesmithSettings(temp_dir).load_settings()
        assert settings['source'] == 'src'
        assert 'Warning: Failed to load config file' in capsys.readouterr().out

    def test_non_mapping_config_is_rejected(self, temp_dir, capsys):
        Path(temp_dir, 'sitesmith.yml').write_text('- a\n- b\n')
        settings = SitesmithSettings(temp_dir).load_settings()
        assert settings['source'] == 'src'
        assert 'must contain a mapping' in capsys.readouterr().out

    def test_merge_with_args(self, temp_dir):
        loader = SitesmithSettings(temp_dir)
        loader.load_settings()
        merged = loader.merge_with_args({'destination': 'dist', 'ignore': 'drafts, .git', 'workers': None})
        assert merged['destination'] == 'dist'
        assert merged['ignore'] == ['drafts', '.git']
        assert merged['workers'] == 1

    @pytest.mark.parametrize('file_format', ['yml', 'json'])
    def test_sample_config_is_valid(self, temp_dir, file_format):
        loader = SitesmithSettings(temp_dir)
        path = loader.create_sample_config(file_format)
        assert Path(path).exists()

        config = normalize_config(SitesmithSettings(temp_dir).load_settings())
        assert config.collections[0].name == 'blog'
        assert config.collections[0].paginate.per_page == 5
        assert config.i18n.locales == ['en', 'fr']
        assert config.sitemap_hostname == 'https://example.com'

    def test_unsupported_sample_format(self, temp_dir):
        with pytest.raises(ValueError):
            SitesmithSettings(temp_dir).create_sample_config('toml')


class TestNormalizeConfig:
    """Test cases for normalize_config."""

    def test_defaults(self):
        config = normalize_config({})
        assert config.source == 'src'
        assert config.layouts_dir.endswith('layouts')
        assert config.ignore == ['layouts', 'includes', '.DS_Store']
        assert config.in_place_pattern == '**/*.j2'
        assert config.metadata_rules == [(ERROR_PAGES_PATTERN, {'permalink': False})]
        assert config.highlight == {'line_numbers': False}
        assert config.i18n is None
        assert config.locales is None

    def test_collection_defaults(self):
        config = normalize_config({'collections': {'blog': {'pattern': 'blog/*.md'}}})
        spec = config.collections[0]
        assert spec.layout == 'blog.html'
        assert spec.permalink == 'blog/:slug'
        assert config.permalinks == {'blog': 'blog/:slug'}
        assert config.metadata_rules[1] == ('blog/*.md', {'layout': 'blog.html'})

    def test_collection_options(self):
        config = normalize_config({
            'layouts': {'extension': 'j2'},
            'collections': {'news': {
                'pattern': 'news/*.md', 'sortBy': 'date', 'reverse': True, 'layout': 'article',
                'permalink': '/news/:date/:slug', 'date': '%Y', 'metadata': {'section': 'news'},
                'paginate': {'perPage': 10, 'layout': 'list', 'path': 'news/page/:num'},
            }},
        })
        spec = config.collections[0]
        assert spec.sort_by == 'date'
        assert spec.reverse is True
        assert spec.layout == 'article.j2'
        assert spec.paginate.per_page == 10
        assert spec.paginate.layout == 'list.j2'
        assert spec.paginate.path == 'news/page/:num'
        assert config.permalinks['news'] == 'news/:date/:slug'
        assert config.date_formats == {'news': '%Y'}
        assert config.metadata_rules[1] == ('news/*.md', {'section': 'news', 'layout': 'article.j2'})

    def test_collection_without_permalink(self):
        config = normalize_config({'collections': {'drafts': {'pattern': 'drafts/*.md', 'permalink': False}}})
        assert config.collections[0].permalink is None
        assert 'drafts' not in config.permalinks

    def test_explicit_permalink_table_wins(self):
        config = normalize_config({'permalinks': {'blog': 'posts/:slug'},
                                   'collections': {'blog': {'pattern': 'blog/*.md'}}})
        assert config.permalinks['blog'] == 'posts/:slug'

    @pytest.mark.parametrize('per_page', [0, -5, '5', True])
    def test_invalid_page_size(self, per_page):
        with pytest.raises(ConfigurationError, match='collections.blog.paginate'):
            normalize_config({'collections': {'blog': {'paginate': {'per_page': per_page}}}})

    def test_pagination_path_needs_num(self):
        with pytest.raises(ConfigurationError, match=':num'):
            normalize_config({'collections': {'blog': {'paginate': {'per_page': 5, 'path': 'blog/page'}}}})

    def test_invalid_permalink_pattern(self):
        with pytest.raises(ConfigurationError, match='permalinks.blog'):
            normalize_config({'permalinks': {'blog': 'blog /:slug'}})

    def test_i18n(self):
        config = normalize_config({'i18n': {'locales': ['en', 'fr'], 'mode': 'clone'}})
        assert config.i18n.mode == 'clone'
        assert config.locales == ['en', 'fr']

    @pytest.mark.parametrize('i18n, match', [
        ({'locales': []}, 'i18n.locales'),
        ({'locales': 'en'}, 'i18n.locales'),
        ({'locales': ['en', '']}, 'i18n.locales'),
        ({'locales': ['en'], 'mode': 'translate'}, 'i18n.mode'),
        (['en'], 'i18n'),
    ])
    def test_invalid_i18n(self, i18n, match):
        with pytest.raises(ConfigurationError, match=match):
            normalize_config({'i18n': i18n})

    def test_tags(self):
        config = normalize_config({'tags': {'layout': 'tag', 'perPage': 10}})
        assert config.tags.path == 'tags/:tag'
        assert config.tags.layout == 'tag.html'
        assert config.tags.per_page == 10

    def test_tag_path_needs_tag(self):
        with pytest.raises(ConfigurationError, match='tags.path'):
            normalize_config({'tags': {'path': 'topics/'}})

    @pytest.mark.parametrize('value, expected', [
        (False, None), (None, None), (True, {}), ({'line_numbers': True}, {'line_numbers': True}),
    ])
    def test_highlight(self, value, expected):
        assert normalize_config({'highlight': value}).highlight == expected

    @pytest.mark.parametrize('workers', [0, -1, 'many'])
    def test_invalid_workers(self, workers):
        with pytest.raises(ConfigurationError, match='workers'):
            normalize_config({'workers': workers})

    def test_sitemap_and_flags(self):
        config = normalize_config({'sitemap': {'hostname': 'https://example.com'}, 'watch': True,
                                   'strict_paths': True, 'math': True, 'multilingual': False})
        assert config.sitemap_hostname == 'https://example.com'
        assert config.watch and config.strict_paths and config.math
        assert config.multilingual is False
