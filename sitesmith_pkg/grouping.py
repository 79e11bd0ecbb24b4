"""
Collection grouping and pattern-driven metadata.

Identities are matched against minimatch-style globs: ``*`` and ``?`` stay
inside one path segment, ``**/`` spans zero or more directories and
``{a,b}`` expands alternatives.
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .document import Document, get_list, parse_date
from .paths import slugify

Pattern = Union[str, Sequence[str]]


@dataclass
class CollectionSpec:
    name: str
    pattern: Optional[Pattern] = None
    sort_by: Optional[str] = None
    reverse: bool = False
    layout: Optional[str] = None
    permalink: Optional[str] = None
    date_format: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    paginate: Optional[Any] = None


def _translate(pattern: str) -> str:
    i, n = 0, len(pattern)
    out = []
    while i < n:
        char = pattern[i]
        if char == '*':
            if pattern.startswith('**/', i):
                out.append('(?:.*/)?')
                i += 3
                continue
            if pattern.startswith('**', i):
                out.append('.*')
                i += 2
                continue
            out.append('[^/]*')
        elif char == '?':
            out.append('[^/]')
        elif char == '{':
            end = pattern.find('}', i)
            if end == -1:
                out.append(re.escape(char))
            else:
                options = pattern[i + 1:end].split(',')
                out.append('(?:' + '|'.join(_translate(option) for option in options) + ')')
                i = end + 1
                continue
        elif char == '[':
            end = pattern.find(']', i + 1)
            if end == -1:
                out.append(re.escape(char))
            else:
                body = pattern[i + 1:end]
                if body.startswith('!'):
                    body = '^' + body[1:]
                out.append('[' + body.replace('\\', '\\\\') + ']')
                i = end + 1
                continue
        else:
            out.append(re.escape(char))
        i += 1
    return ''.join(out)


@lru_cache(maxsize=256)
def compile_glob(pattern: str):
    return re.compile(_translate(pattern))


def matches(identity: str, pattern: Optional[Pattern]) -> bool:
    """Check an identity against a glob or a list of globs."""
    if not pattern:
        return False
    patterns = [pattern] if isinstance(pattern, str) else pattern
    return any(compile_glob(p).fullmatch(identity) for p in patterns)


def _sort_value(value):
    if isinstance(value, str):
        return value
    return parse_date(value) if hasattr(value, 'year') else value


def sort_documents(documents: Iterable[Document], sort_by: str) -> List[Document]:
    """
    Stable sort by a frontmatter field, ascending.

    Documents missing the field keep their discovery order after the others.
    Values that cannot be compared with each other fall back to string order.
    """
    documents = list(documents)
    present = [d for d in documents if d.frontmatter.get(sort_by) is not None]
    missing = [d for d in documents if d.frontmatter.get(sort_by) is None]
    try:
        ordered = sorted(present, key=lambda d: _sort_value(d.frontmatter[sort_by]))
    except TypeError:
        ordered = sorted(present, key=lambda d: str(d.frontmatter[sort_by]))
    return ordered + missing


def group_collections(documents: Iterable[Document],
                      specs: Sequence[CollectionSpec]) -> Dict[str, List[Document]]:
    """
    Build every configured collection and tag members with their position.

    A document joins a collection when its identity matches the collection
    pattern or when its ``collection`` frontmatter names it. Collections named
    only in frontmatter are kept in discovery order.
    """
    documents = list(documents)
    groups: Dict[str, List[Document]] = {}

    for spec in specs:
        selected = [d for d in documents
                    if matches(d.identity, spec.pattern) or spec.name in get_list(d.frontmatter, 'collection')]
        if spec.sort_by:
            selected = sort_documents(selected, spec.sort_by)
        if spec.reverse:
            selected.reverse()
        groups[spec.name] = selected

    for document in documents:
        for name in get_list(document.frontmatter, 'collection'):
            if name not in groups:
                groups[name] = [d for d in documents if name in get_list(d.frontmatter, 'collection')]

    for name, members in groups.items():
        for index, document in enumerate(members):
            document.add_membership(name, index)

    return groups


def merge_defaults(target: Dict[str, Any], defaults: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge defaults into target; values already in target win."""
    for key, value in defaults.items():
        if key not in target:
            target[key] = value if not isinstance(value, Mapping) else merge_defaults({}, value)
        elif isinstance(target[key], dict) and isinstance(value, Mapping):
            merge_defaults(target[key], value)
    return target


def apply_metadata(documents: Iterable[Document],
                   rules: Sequence[Tuple[Pattern, Mapping[str, Any]]]) -> None:
    """Merge the metadata of the first rule whose pattern matches each document."""
    for document in documents:
        for pattern, metadata in rules:
            if matches(document.identity, pattern):
                merge_defaults(document.frontmatter, metadata)
                break


def default_slug(document: Document) -> str:
    """Give a document a slug from its title, or from its file name."""
    if not document.frontmatter.get('slug'):
        title = document.frontmatter.get('title')
        document.frontmatter['slug'] = (slugify(title) if title else '') or slugify(document.stem)
    return document.frontmatter['slug']
