#!/usr/bin/env python3
"""
Settings loader for the Sitesmith build pipeline.
Supports configuration from sitesmith.yml, sitesmith.yaml, or sitesmith.json files,
and normalizes the merged settings into a typed BuildConfig.
"""

import copy
import os
import json
import yaml
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

from .errors import ConfigurationError
from .grouping import CollectionSpec
from .layouts import DEFAULT_EXTENSION, layout_filename
from .multilingual import MODES, REWRITE
from .pagination import PaginateSpec, TagSpec, is_page_size
from .permalinks import check_pattern

ERROR_PAGES_PATTERN = '**/{500,404}.*'


@dataclass
class I18nSpec:
    locales: List[str]
    mode: str = REWRITE


@dataclass
class BuildConfig:
    source: str = 'src'
    destination: str = 'public'
    ignore: List[str] = field(default_factory=lambda: ['layouts', 'includes', '.DS_Store'])
    layouts_dir: Optional[str] = None
    layout_extension: str = DEFAULT_EXTENSION
    in_place_pattern: Optional[str] = '**/*.j2'
    metadata: Dict[str, Any] = field(default_factory=dict)
    collections: List[CollectionSpec] = field(default_factory=list)
    permalinks: Dict[str, str] = field(default_factory=dict)
    date_formats: Dict[str, str] = field(default_factory=dict)
    metadata_rules: List[Tuple[Any, Dict[str, Any]]] = field(
        default_factory=lambda: [(ERROR_PAGES_PATTERN, {'permalink': False})])
    tags: Optional[TagSpec] = None
    i18n: Optional[I18nSpec] = None
    multilingual: bool = True
    highlight: Optional[Dict[str, Any]] = field(default_factory=dict)
    math: bool = False
    sitemap_hostname: Optional[str] = None
    watch: bool = False
    strict_paths: bool = False
    workers: int = 1
    log_dir: Optional[str] = None

    @property
    def locales(self) -> Optional[List[str]]:
        return self.i18n.locales if self.i18n else None


class SitesmithSettings:
    """Load and manage Sitesmith configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'source': 'src',
        'destination': 'public',
        'ignore': ['layouts', 'includes', '.DS_Store'],
        'layouts': {'directory': None, 'extension': DEFAULT_EXTENSION},
        'in_place': {'pattern': '**/*.j2'},
        'metadata': {},
        'collections': {},
        'permalinks': {},
        'tags': None,
        'i18n': None,
        'multilingual': True,
        'highlight': {'line_numbers': False},
        'math': False,
        'sitemap': None,
        'watch': False,
        'strict_paths': False,
        'workers': 1,
        'log_dir': None,
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['sitesmith.yml', 'sitesmith.yaml', 'sitesmith.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            try:
                loaded_settings = self._load_config_file(config_file)
                if loaded_settings:
                    # Merge with defaults, giving preference to loaded settings
                    self.settings.update(loaded_settings)
                    print(f"Loaded configuration from: {os.path.relpath(config_file)}")
            except (ValueError, IOError, OSError) as e:
                print(f"Warning: Failed to load config file {config_file}: {e}")

        return copy.deepcopy(self.settings)

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        try:
            file_ext = os.path.splitext(config_path)[1].lower()

            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    loaded = yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    loaded = json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        return loaded

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            'source': 'src',
            'destination': 'public',
            'metadata': {'site_title': 'My Static Site'},
            'collections': {
                'blog': {
                    'pattern': 'blog/**/*.md',
                    'sort_by': 'date',
                    'reverse': True,
                    'permalink': 'blog/:slug/',
                    'layout': 'post',
                    'paginate': {'per_page': 5, 'layout': 'page', 'path': 'blog/:num/', 'first': 'blog/'},
                },
            },
            'tags': {'path': 'tags/:tag', 'layout': 'page', 'sort_by': 'date', 'reverse': True},
            'i18n': {'locales': ['en', 'fr'], 'mode': 'rewrite'},
            'sitemap': {'hostname': 'https://example.com'},
            'watch': False,
        }

        filename = f'sitesmith.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# Sitesmith Configuration File\n")
                    f.write("# Source documents are read from `source` and written to `destination`.\n\n")
                    yaml.safe_dump(sample_config, f, sort_keys=False, default_flow_style=False)
                elif file_format == 'json':
                    json.dump(sample_config, f, indent=2)
                else:
                    raise ValueError(f"Unsupported config file format: {file_format}")
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(self.settings)

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                if key == 'ignore' and isinstance(value, str):
                    # Convert comma-separated string to list
                    merged[key] = [item.strip() for item in value.split(',')]
                else:
                    merged[key] = value

        return merged


def _pick(data, *keys, default=None):
    """Read the first present key, accepting both snake_case and camelCase names."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _mapping(value, field_name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"expected a mapping, got {type(value).__name__}", field=field_name)
    return value


def parse_paginate(name: str, data, extension: str) -> PaginateSpec:
    field_name = f"collections.{name}.paginate"
    data = _mapping(data, field_name)
    per_page = _pick(data, 'per_page', 'perPage')
    if not is_page_size(per_page):
        raise ConfigurationError(f"per_page must be a positive integer, got {per_page!r}", field=field_name)

    path = data.get('path')
    if path is not None:
        check_pattern(path, f"{field_name}.path")
        if ':num' not in path:
            raise ConfigurationError(f"pagination path {path!r} has no :num token", field=f"{field_name}.path")
    first = data.get('first')
    if first is not None:
        check_pattern(first, f"{field_name}.first")

    layout = data.get('layout')
    return PaginateSpec(per_page, layout_filename(layout, extension) if layout else None, path, first)


def parse_collection(name: str, data, extension: str) -> CollectionSpec:
    field_name = f"collections.{name}"
    data = _mapping(data, field_name)

    permalink = data.get('permalink')
    if permalink is False:
        permalink = None
    else:
        permalink = check_pattern(permalink or f"{name}/:slug", f"{field_name}.permalink").lstrip('/')

    metadata = dict(_mapping(data.get('metadata'), f"{field_name}.metadata"))
    if isinstance(metadata.get('layout'), str):
        metadata['layout'] = layout_filename(metadata['layout'], extension)

    layout = data.get('layout') if isinstance(data.get('layout'), str) else name
    paginate = data.get('paginate')

    return CollectionSpec(
        name=name,
        pattern=data.get('pattern'),
        sort_by=_pick(data, 'sort_by', 'sortBy'),
        reverse=bool(data.get('reverse', False)),
        layout=layout_filename(layout, extension),
        permalink=permalink,
        date_format=data.get('date'),
        metadata=metadata,
        paginate=parse_paginate(name, paginate, extension) if paginate else None,
    )


def parse_tags(data, extension: str) -> Optional[TagSpec]:
    if not data:
        return None
    data = _mapping(data, 'tags')
    path = check_pattern(data.get('path') or 'tags/:tag', 'tags.path')
    if ':tag' not in path:
        raise ConfigurationError(f"tag path {path!r} has no :tag token", field='tags.path')
    per_page = _pick(data, 'per_page', 'perPage')
    if per_page is not None and not is_page_size(per_page):
        raise ConfigurationError(f"per_page must be a positive integer, got {per_page!r}", field='tags.per_page')
    layout = data.get('layout')
    return TagSpec(
        path=path,
        layout=layout_filename(layout, extension) if layout else None,
        per_page=per_page,
        sort_by=_pick(data, 'sort_by', 'sortBy'),
        reverse=bool(data.get('reverse', False)),
    )


def parse_i18n(data) -> Optional[I18nSpec]:
    if not data:
        return None
    data = _mapping(data, 'i18n')
    locales = data.get('locales')
    if not isinstance(locales, list) or not locales or not all(isinstance(l, str) and l for l in locales):
        raise ConfigurationError(f"locales must be a non-empty list of names, got {locales!r}", field='i18n.locales')
    mode = data.get('mode') or REWRITE
    if mode not in MODES:
        raise ConfigurationError(f"unknown mode {mode!r}, expected one of {', '.join(MODES)}", field='i18n.mode')
    return I18nSpec(list(locales), mode)


def normalize_config(settings: Dict[str, Any]) -> BuildConfig:
    """Turn merged settings into a BuildConfig, validating every field."""
    merged = copy.deepcopy(SitesmithSettings.DEFAULT_SETTINGS)
    merged.update(settings)
    settings = merged

    layouts = _mapping(settings.get('layouts'), 'layouts')
    extension = layouts.get('extension') or DEFAULT_EXTENSION
    source = settings.get('source') or 'src'
    destination = settings.get('destination') or 'public'
    if destination.startswith('~/'):
        destination = os.path.expanduser(destination)

    collections = [parse_collection(name, data, extension)
                   for name, data in _mapping(settings.get('collections'), 'collections').items()]

    permalinks = {}
    for type_name, pattern in _mapping(settings.get('permalinks'), 'permalinks').items():
        permalinks[type_name] = check_pattern(pattern, f"permalinks.{type_name}").lstrip('/')
    for spec in collections:
        if spec.permalink:
            permalinks.setdefault(spec.name, spec.permalink)

    metadata_rules = [(ERROR_PAGES_PATTERN, {'permalink': False})]
    for spec in collections:
        if spec.pattern:
            metadata_rules.append((spec.pattern, dict(spec.metadata, layout=spec.layout)))

    highlight = settings.get('highlight')
    if highlight is False or highlight is None:
        highlight = None
    elif highlight is True:
        highlight = {}
    else:
        highlight = dict(_mapping(highlight, 'highlight'))

    workers = settings.get('workers', 1)
    if not is_page_size(workers):
        raise ConfigurationError(f"workers must be a positive integer, got {workers!r}", field='workers')

    sitemap = _mapping(settings.get('sitemap'), 'sitemap')
    in_place = _mapping(settings.get('in_place'), 'in_place')

    return BuildConfig(
        source=source,
        destination=destination,
        ignore=list(settings.get('ignore') or []),
        layouts_dir=layouts.get('directory') or os.path.join(source, 'layouts'),
        layout_extension=extension,
        in_place_pattern=in_place.get('pattern'),
        metadata=dict(_mapping(settings.get('metadata'), 'metadata')),
        collections=collections,
        permalinks=permalinks,
        date_formats={spec.name: spec.date_format for spec in collections if spec.date_format},
        metadata_rules=metadata_rules,
        tags=parse_tags(settings.get('tags'), extension),
        i18n=parse_i18n(settings.get('i18n')),
        multilingual=bool(settings.get('multilingual', True)),
        highlight=highlight,
        math=bool(settings.get('math', False)),
        sitemap_hostname=sitemap.get('hostname'),
        watch=bool(settings.get('watch', False)),
        strict_paths=bool(settings.get('strict_paths', False)),
        workers=workers,
        log_dir=settings.get('log_dir'),
    )
