"""
Pagination of ordered collections into page shell documents.

Page paths follow one canonical rule: every configured ``path``/``first``
pattern is normalized like any other path, so a bare ``blog/:num`` becomes
the directory path ``/blog/2/`` and is written out as ``blog/2/index.html``.
Patterns ending in ``.html`` are kept as files.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .document import Document, PageLink, Pagination, get_list
from .errors import ConfigurationError
from .grouping import sort_documents
from .paths import slugify
from .permalinks import expand_pattern


@dataclass
class PaginateSpec:
    per_page: int
    layout: Optional[str] = None
    path: Optional[str] = None
    first: Optional[str] = None


@dataclass
class TagSpec:
    path: str = 'tags/:tag'
    layout: Optional[str] = None
    per_page: Optional[int] = None
    sort_by: Optional[str] = None
    reverse: bool = False


def is_page_size(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def page_paths(collection_name: str, count: int, path: Optional[str] = None,
               first: Optional[str] = None, fields: Optional[Mapping[str, Any]] = None) -> List[str]:
    """Compute the output path of every page of a collection."""
    paths = []
    for index in range(count):
        num = index + 1
        pattern = first if (index == 0 and first) else path
        if pattern:
            values = dict(fields or {})
            values['num'] = num
            resolved = expand_pattern(pattern, values)
            if resolved is None:
                raise ConfigurationError(f"cannot expand pagination path {pattern!r}", field=collection_name)
            paths.append(resolved)
        elif index == 0:
            paths.append(f"/{collection_name}/")
        else:
            paths.append(f"/{collection_name}/{num}/")
    return paths


def paginate(collection_name: str, documents: Sequence[Document], per_page, path: Optional[str] = None,
             first: Optional[str] = None, layout: Optional[str] = None,
             fields: Optional[Mapping[str, Any]] = None) -> List[Document]:
    """
    Split an ordered collection into page shell documents.

    Returns no pages when the collection is empty or ``per_page`` is not a
    positive integer. All shells of a collection share one ``pages`` list.
    """
    if not documents or not is_page_size(per_page):
        return []

    chunks = [list(documents[i:i + per_page]) for i in range(0, len(documents), per_page)]
    links = [PageLink(p) for p in page_paths(collection_name, len(chunks), path, first, fields)]

    shells = []
    for index, chunk in enumerate(chunks):
        num = index + 1
        frontmatter: Dict[str, Any] = {'collection_name': collection_name}
        if layout:
            frontmatter['layout'] = layout
        shell = Document(f"{collection_name}/{num}/index.html", '', frontmatter, links[index].path)
        shell.pagination = Pagination(
            files=chunk,
            index=index,
            num=num,
            pages=links,
            next=links[index + 1] if index + 1 < len(links) else None,
            previous=links[index - 1] if index > 0 else None,
        )
        shells.append(shell)
    return shells


def pagination_data(collection_name: str, collection: Sequence[Document], current_page: int,
                    per_page, path: Optional[str] = None, first: Optional[str] = None) -> Optional[Pagination]:
    """Pagination metadata for one page number, or None when out of range."""
    shells = paginate(collection_name, collection, per_page, path, first)
    if not is_page_size(current_page) or current_page > len(shells):
        return None
    return shells[current_page - 1].pagination


def tag_pages(documents: Sequence[Document], spec: TagSpec) -> List[Document]:
    """Build paginated listing pages for every tag used by the documents."""
    by_tag: Dict[str, List[Document]] = {}
    for document in documents:
        for tag in get_list(document.frontmatter, 'tags'):
            members = by_tag.setdefault(str(tag), [])
            if document not in members:
                members.append(document)

    shells = []
    for tag, members in by_tag.items():
        slug = slugify(tag)
        if not slug:
            continue
        if spec.sort_by:
            members = sort_documents(members, spec.sort_by)
        if spec.reverse:
            members.reverse()
        base = expand_pattern(spec.path, {'tag': slug})
        if base is None:
            raise ConfigurationError(f"cannot expand tag path {spec.path!r}", field='tags.path')
        stem = base[:-len('.html')] if base.endswith('.html') else base.rstrip('/')
        rest = stem + '/:num/'
        for shell in paginate(stem.strip('/'), members, spec.per_page or len(members),
                              path=rest, first=base, layout=spec.layout):
            shell.frontmatter['tag'] = tag
            shells.append(shell)
    return shells
