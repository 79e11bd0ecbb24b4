"""
Build orchestration.

``Sitesmith`` reads the source once per locale pass, threads a ``BuildContext``
through the ordered stages and hands the result to a sink. Console logging is
configured here with a filter that keeps only the build milestones at INFO.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .document import DocumentSet
from .errors import ConfigurationError, SitesmithError, StageFailure
from .layouts import LayoutEngine
from .markup import MarkdownRenderer
from .multilingual import CLONE
from .pagination import pagination_data
from .paths import fixup_path
from .settings import BuildConfig
from .sources import FileSystemSink, FileSystemSource
from .stages import (ApplyLayouts, Emit, ExpandLocales, FixupPaths, GroupCollections, Highlight, Paginate,
                     RenderMarkup, Report, ResolvePermalinks, Sitemap, TagPages, TypesetMath)


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno > logging.INFO:
            return True
        allowed_messages = [
            "Site build completed in",
            "Starting site build",
            "Building locale",
            "Total documents generated:",
            "Failed locale passes:",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def setup_logging(log_dir=None, verbose=False):
    """Set up logging configuration."""
    logger = logging.getLogger('sitesmith')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not logger.handlers:
        # Console handler with filter
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        if not verbose:
            console_handler.addFilter(InfoFilter())
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        # File handler for all logs
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            log_filename = datetime.now().strftime('sitesmith_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(log_dir, log_filename))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(file_handler)
            logger.setLevel(logging.DEBUG)

    return logger


class BuildContext:
    """Mutable state shared by the stages of one locale pass."""

    def __init__(self, documents: DocumentSet, config: BuildConfig, locale: Optional[str] = None,
                 metadata: Optional[Dict[str, Any]] = None):
        self.documents = documents
        self.config = config
        self.locale = locale
        self.locales = config.locales
        self.metadata = metadata if metadata is not None else {}
        self.collections: Dict[str, list] = {}
        self.emitted: List[Tuple[str, Optional[str], str]] = []


@dataclass
class PassResult:
    locale: Optional[str]
    emitted: List[Tuple[str, Optional[str], str]] = field(default_factory=list)
    error: Optional[SitesmithError] = None

    @property
    def ok(self):
        return self.error is None


class Sitesmith:
    """
    Drives the build: one pass per locale, each running the ordered stages
    over a freshly read document set.

    In watch mode a failed pass is logged and the next locale still builds;
    otherwise the first failure ends the build.
    """

    def __init__(self, config: BuildConfig, source=None, sink=None, renderer: Optional[Callable] = None,
                 layout_engine=None, typesetter: Optional[Callable] = None, watch: Optional[bool] = None):
        self.config = config
        self.source = source or FileSystemSource(config.source, config.ignore)
        self.sink = sink or FileSystemSink(config.destination)
        self.renderer = renderer or MarkdownRenderer()
        self.layout_engine = layout_engine or LayoutEngine(
            config.layouts_dir or os.path.join(config.source, 'layouts'), config.layout_extension)
        self.typesetter = typesetter
        self.watch = config.watch if watch is None else watch
        self.logger = logging.getLogger('sitesmith')
        self.documents_generated = 0

        if config.math and typesetter is None:
            raise ConfigurationError("math rendering is enabled but no typesetter was supplied", field='math')

    def locale_passes(self) -> List[Optional[str]]:
        """Locales to build, in order. The default locale builds as None."""
        i18n = self.config.i18n
        if not i18n or not self.config.multilingual or i18n.mode == CLONE:
            return [None]
        return [None if locale == i18n.locales[0] else locale for locale in i18n.locales]

    def build_stages(self) -> list:
        config = self.config
        locales = config.locales
        expand = bool(config.i18n and config.multilingual)

        stages = [
            GroupCollections(config.collections, config.metadata_rules, locales if expand else None),
            ExpandLocales(locales, config.i18n.mode) if expand else None,
            RenderMarkup(self.renderer, config.workers),
            Paginate(config.collections),
            TagPages(config.tags) if config.tags else None,
            ResolvePermalinks(config.permalinks, config.date_formats),
            FixupPaths(locales),
            ApplyLayouts(self.layout_engine, config.layout_extension, config.in_place_pattern),
            Highlight(config.highlight.get('line_numbers', False)) if config.highlight is not None else None,
            TypesetMath(self.typesetter) if config.math else None,
            FixupPaths(locales),
            Sitemap(config.sitemap_hostname) if config.sitemap_hostname else None,
            Emit(self.sink, config.strict_paths),
            Report(),
        ]
        return [stage for stage in stages if stage is not None]

    def global_metadata(self, locale: Optional[str]) -> Dict[str, Any]:
        """Template globals for one pass; never shared between passes."""
        locales = self.config.locales
        metadata = copy.deepcopy(self.config.metadata)
        metadata['locale'] = locale or (locales[0] if locales else None)
        metadata['locales'] = locales
        metadata['url'] = lambda path: fixup_path(path, locale, locales)
        metadata['paginate'] = lambda name, collection, page: self.page_data(name, collection, page, locale)
        return metadata

    def page_data(self, name, collection, page, locale=None):
        """Pagination metadata for one page of a collection; None when the collection is not paginated."""
        spec = next((s for s in self.config.collections if s.name == name), None)
        if spec is None or spec.paginate is None:
            return None
        options = spec.paginate
        data = pagination_data(name, collection, page, options.per_page, options.path, options.first)
        if data is not None:
            for link in list(data.pages):
                link.path = fixup_path(link.path, locale, self.config.locales)
        return data

    def run_pass(self, locale: Optional[str] = None) -> BuildContext:
        """Run every stage for one locale, aborting at the first failure."""
        context = BuildContext(self.source.read(), self.config, locale, self.global_metadata(locale))

        for stage in self.build_stages():
            try:
                context = stage(context)
            except SitesmithError:
                raise
            except Exception as e:
                raise StageFailure(stage.name, e) from e

        self.documents_generated += len(context.emitted)
        return context

    def build(self) -> List[PassResult]:
        """Main build process."""
        self.logger.info("Starting site build...")
        results = []

        for locale in self.locale_passes():
            if locale:
                self.logger.info(f"Building locale {locale}")
            try:
                context = self.run_pass(locale)
                results.append(PassResult(locale, context.emitted))
            except SitesmithError as e:
                if not self.watch:
                    raise
                tag = f"[{locale}] " if locale else ''
                self.logger.error(f"{tag}Build failed: {e}")
                results.append(PassResult(locale, error=e))

        self.logger.info(f"Total documents generated: {self.documents_generated}")
        failed = [r for r in results if not r.ok]
        if failed:
            self.logger.info(f"Failed locale passes: {len(failed)}")
        return results
