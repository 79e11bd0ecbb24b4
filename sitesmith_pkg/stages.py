"""
Pipeline stages.

Every stage is a callable taking the shared ``BuildContext`` and returning it.
Stages run strictly one after another; a stage only returns once every
document has been processed. Failures of external collaborators are raised
as ``StageFailure`` naming the stage and the document being processed.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from xml.sax.saxutils import escape

from .document import Document, get_bool, get_date
from .errors import IdentityCollision, SitesmithError, StageFailure
from .grouping import CollectionSpec, apply_metadata, default_slug, group_collections, matches
from .layouts import layout_filename
from .markup import highlight_html, is_markdown
from .multilingual import REWRITE, expand_locales, locale_prefix, replace_members
from .pagination import TagSpec, paginate, tag_pages
from .paths import fixup_path, output_file
from .permalinks import DEFAULT_DATE_FORMAT, resolve_permalink

logger = logging.getLogger('sitesmith.stages')


class Stage:
    name = 'stage'

    def __call__(self, context):
        raise NotImplementedError

    def each(self, documents, action: Callable[[Document], None]) -> None:
        """Apply an action per document, tagging collaborator errors with the identity."""
        for document in documents:
            try:
                action(document)
            except SitesmithError:
                raise
            except Exception as e:
                raise StageFailure(self.name, e, document.identity) from e

    def __repr__(self):
        return f"<{type(self).__name__}>"


class GroupCollections(Stage):
    """Merge pattern metadata, default slugs and build collections."""

    name = 'collections'

    def __init__(self, specs: Sequence[CollectionSpec], metadata_rules=(), locales: Optional[Sequence[str]] = None):
        self.specs = list(specs)
        self.metadata_rules = list(metadata_rules)
        self.locales = list(locales) if locales else None

    def __call__(self, context):
        apply_metadata(context.documents, self.metadata_rules)
        for document in context.documents:
            # Translations take their source's slug once locales are expanded.
            if self.locales and locale_prefix(document.identity, self.locales):
                continue
            if document.is_html or is_markdown(document.identity):
                default_slug(document)
        context.collections = group_collections(context.documents, self.specs)
        context.metadata['collections'] = context.collections
        return context


class ExpandLocales(Stage):
    name = 'multilingual'

    def __init__(self, locales: Sequence[str], mode: str = REWRITE):
        self.locales = list(locales)
        self.mode = mode

    def __call__(self, context):
        replaced = expand_locales(context.documents, self.locales, self.mode, context.locale)
        if replaced:
            for name, members in context.collections.items():
                context.collections[name] = replace_members(name, members, replaced)
        for document in context.documents:
            if document.is_html or is_markdown(document.identity):
                default_slug(document)
        return context


class RenderMarkup(Stage):
    """Render Markdown documents to HTML and rename them to ``.html``."""

    name = 'markdown'

    def __init__(self, renderer: Callable[[str], str], workers: int = 1):
        self.renderer = renderer
        self.workers = workers

    def __call__(self, context):
        targets = [d for d in context.documents if is_markdown(d.identity)]
        rendered: Dict[str, str] = {}

        if self.workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = {executor.submit(self.renderer, d.body): d for d in targets}
                for future in as_completed(futures):
                    document = futures[future]
                    try:
                        rendered[document.identity] = future.result()
                    except Exception as e:
                        raise StageFailure(self.name, e, document.identity) from e
        else:
            self.each(targets, lambda d: rendered.__setitem__(d.identity, self.renderer(d.body)))

        for document in targets:
            document.body = rendered[document.identity]
        context.documents.rename_many({d.identity: os.path.splitext(d.identity)[0] + '.html' for d in targets})
        return context


def _add_shells(context, shells: List[Document]) -> None:
    for shell in shells:
        if context.locale:
            shell.identity = f"{context.locale}/{shell.identity}"
            shell.frontmatter.setdefault('locale', context.locale)
        context.documents.add(shell)


class Paginate(Stage):
    name = 'pagination'

    def __init__(self, specs: Sequence[CollectionSpec]):
        self.specs = [spec for spec in specs if spec.paginate]

    def __call__(self, context):
        for spec in self.specs:
            options = spec.paginate
            members = context.collections.get(spec.name, [])
            shells = paginate(spec.name, members, options.per_page, options.path, options.first,
                              options.layout or spec.layout)
            _add_shells(context, shells)
            logger.debug(f"Paginated {spec.name}: {len(members)} documents into {len(shells)} pages")
        return context


class TagPages(Stage):
    name = 'tags'

    def __init__(self, spec: TagSpec):
        self.spec = spec

    def __call__(self, context):
        content = [d for d in context.documents if d.pagination is None]
        _add_shells(context, tag_pages(content, self.spec))
        return context


class ResolvePermalinks(Stage):
    name = 'permalinks'

    def __init__(self, patterns: Mapping[str, str], date_formats: Optional[Mapping[str, str]] = None):
        self.patterns = dict(patterns)
        self.date_formats = dict(date_formats or {})

    def __call__(self, context):
        for document in context.documents:
            if document.pagination is not None:
                continue
            date_format = self.date_formats.get(document.type) or DEFAULT_DATE_FORMAT
            resolved = resolve_permalink(document, self.patterns, date_format)
            if resolved is not None:
                document.path = resolved
        return context


class FixupPaths(Stage):
    """
    Give HTML documents a pass-through path when they have none, then localize
    and normalize every path, including pagination links.
    """

    name = 'pathfinder'

    def __init__(self, locales: Optional[Sequence[str]] = None):
        self.locales = list(locales) if locales else None

    def __call__(self, context):
        for document in context.documents:
            locale = document.locale or context.locale
            if document.path is None and document.is_html:
                document.path = f"/{document.identity}"
            if document.path is not None:
                document.path = fixup_path(document.path, locale, self.locales)
            if document.pagination:
                pagination = document.pagination
                links = list(pagination.pages) + [pagination.next, pagination.previous]
                for link in links:
                    if link is not None:
                        link.path = fixup_path(link.path, locale, self.locales)
        return context


class ApplyLayouts(Stage):
    """Render in-place templates, then wrap HTML documents in their layout."""

    name = 'layouts'

    def __init__(self, engine, extension: str = 'html', in_place_pattern: Optional[str] = None):
        self.engine = engine
        self.extension = extension
        self.in_place_pattern = in_place_pattern

    def render_in_place(self, context, document):
        document.body = self.engine.render_string(document.body, document, context.metadata)

    def render_layout(self, context, document):
        document.body = self.engine.render(document, layout_filename(document.layout, self.extension),
                                           context.metadata)

    def __call__(self, context):
        if self.in_place_pattern:
            templates = [d for d in context.documents
                         if isinstance(d.body, str) and matches(d.identity, self.in_place_pattern)]
            self.each(templates, lambda d: self.render_in_place(context, d))
            context.documents.rename_many({d.identity: os.path.splitext(d.identity)[0] for d in templates})

        laid_out = [d for d in context.documents if d.is_html and d.layout and isinstance(d.body, str)]
        self.each(laid_out, lambda d: self.render_layout(context, d))
        return context


class Highlight(Stage):
    """Syntax-highlight code blocks of documents that opt in with ``highlight: true``."""

    name = 'highlight'

    def __init__(self, line_numbers: bool = False):
        self.line_numbers = line_numbers

    def render(self, document):
        document.body = highlight_html(document.body, self.line_numbers, document.identity)

    def __call__(self, context):
        targets = [d for d in context.documents
                   if d.is_html and isinstance(d.body, str) and get_bool(d.frontmatter, 'highlight')]
        self.each(targets, self.render)
        return context


class TypesetMath(Stage):
    """Pass documents with ``math: true`` through an external typesetter."""

    name = 'math'

    def __init__(self, typesetter: Callable[[str], str]):
        self.typesetter = typesetter

    def render(self, document):
        document.body = self.typesetter(document.body)

    def __call__(self, context):
        targets = [d for d in context.documents
                   if d.is_html and isinstance(d.body, str) and get_bool(d.frontmatter, 'math')]
        self.each(targets, self.render)
        return context


class Sitemap(Stage):
    name = 'sitemap'

    def __init__(self, hostname: str):
        self.hostname = hostname.rstrip('/')

    def format_entry(self, document):
        entry = f"<url>\n<loc>{escape(self.hostname + document.path)}</loc>\n"
        lastmod = get_date(document.frontmatter, 'date')
        if lastmod is not None:
            entry += f"<lastmod>{lastmod.strftime('%Y-%m-%d')}</lastmod>\n"
        return entry + "</url>\n"

    def __call__(self, context):
        listed = sorted((d for d in context.documents if d.path and d.permalink is not False),
                        key=lambda d: d.path)
        content = '<?xml version="1.0" encoding="UTF-8"?>\n'
        content += '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        content += ''.join(self.format_entry(d) for d in listed)
        content += '</urlset>\n'

        identity = f"{context.locale}/sitemap.xml" if context.locale else 'sitemap.xml'
        context.documents.discard(identity)
        context.documents.add(Document(identity, content, {'permalink': False}))
        return context


class Emit(Stage):
    """Hand every document to the sink after checking for output collisions."""

    name = 'emit'

    def __init__(self, sink, strict: bool = False):
        self.sink = sink
        self.strict = strict

    def check_collisions(self, documents):
        targets: Dict[str, List[str]] = {}
        for document in documents:
            targets.setdefault(output_file(document.path, document.identity), []).append(document.identity)
        for target, identities in targets.items():
            if len(identities) < 2:
                continue
            if self.strict:
                raise IdentityCollision(f"/{target}", identities)
            logger.warning(f"Output collision at /{target}: {', '.join(identities)} (last one wins)")

    def write(self, context, document):
        written = self.sink.write(document.identity, document.path, document.body)
        context.emitted.append((document.identity, document.path, written))

    def __call__(self, context):
        self.check_collisions(context.documents)
        self.each(context.documents, lambda d: self.write(context, d))
        return context


class Report(Stage):
    """Log every emitted document."""

    name = 'reporter'

    def __init__(self):
        self.logger = logging.getLogger('sitesmith')

    def __call__(self, context):
        prefix = f"[{context.locale}] " if context.locale else ''
        for identity, _, _ in context.emitted:
            self.logger.info(f"{prefix}Generated {identity}")
        return context
