"""
In-memory document model shared by every pipeline stage.

A ``Document`` is one file of the source tree: its identity (path relative to
the source root), body and open-ended frontmatter mapping, plus the fields the
pipeline computes (output path, collection memberships, pagination). A
``DocumentSet`` keeps documents ordered by discovery and unique by identity.
"""

import copy
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .errors import FrontmatterTypeError, IdentityCollision

HTML_EXTENSIONS = ('.html', '.htm')
DATE_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%d', '%b %d, %Y']


@dataclass
class PageLink:
    path: str


@dataclass
class Pagination:
    files: List['Document']
    index: int
    num: int
    pages: List[PageLink]
    next: Optional[PageLink] = None
    previous: Optional[PageLink] = None


class Document:
    """A single source file flowing through the pipeline."""

    def __init__(self, identity: str, body: Any = '', frontmatter: Optional[Mapping[str, Any]] = None,
                 path: Optional[str] = None):
        self.identity = identity
        self.body = body
        self.frontmatter: Dict[str, Any] = dict(frontmatter or {})
        self.path = path
        self.collections: List[str] = []
        self.collection_index: Dict[str, int] = {}
        self.pagination: Optional[Pagination] = None

    @property
    def permalink(self):
        """Unset (None), an explicit pattern string, or False when suppressed."""
        value = self.frontmatter.get('permalink')
        if value is False:
            return False
        if isinstance(value, str) and value:
            return value
        return None

    @property
    def layout(self) -> Optional[str]:
        return get_str(self.frontmatter, 'layout')

    @property
    def locale(self) -> Optional[str]:
        return get_str(self.frontmatter, 'locale')

    @property
    def type(self) -> Optional[str]:
        """Discriminator used to pick a permalink pattern."""
        declared = get_str(self.frontmatter, 'type')
        if declared:
            return declared
        return self.collections[0] if self.collections else None

    @property
    def stem(self) -> str:
        return os.path.splitext(os.path.basename(self.identity))[0]

    @property
    def extension(self) -> str:
        return os.path.splitext(self.identity)[1].lower()

    @property
    def is_html(self) -> bool:
        return self.extension in HTML_EXTENSIONS

    def add_membership(self, name: str, index: int) -> None:
        if name not in self.collection_index:
            self.collections.append(name)
        self.collection_index[name] = index

    def clone(self, identity: str) -> 'Document':
        """Return an independent copy of this document under a new identity."""
        twin = Document(identity, self.body, copy.deepcopy(self.frontmatter), self.path)
        twin.collections = list(self.collections)
        twin.collection_index = dict(self.collection_index)
        twin.pagination = copy.deepcopy(self.pagination)
        return twin

    def __repr__(self):
        return f"Document({self.identity!r}, path={self.path!r})"


class DocumentSet:
    """Ordered, identity-unique collection of documents."""

    def __init__(self, documents: Iterable[Document] = ()):
        self._documents: Dict[str, Document] = {}
        for document in documents:
            self.add(document)

    def add(self, document: Document) -> Document:
        if document.identity in self._documents:
            raise IdentityCollision(document.identity, [document.identity, document.identity])
        self._documents[document.identity] = document
        return document

    def get(self, identity: str) -> Optional[Document]:
        return self._documents.get(identity)

    def discard(self, identity: str) -> None:
        self._documents.pop(identity, None)

    def rename(self, old: str, new: str) -> None:
        self.rename_many({old: new})

    def rename_many(self, renames: Mapping[str, str]) -> None:
        """Rewrite several identities at once, keeping discovery order."""
        if not renames:
            return
        rebuilt: Dict[str, Document] = {}
        for identity, document in self._documents.items():
            target = renames.get(identity, identity)
            if target in rebuilt:
                raise IdentityCollision(target, [rebuilt[target].identity, identity])
            rebuilt[target] = document
        for identity, document in rebuilt.items():
            document.identity = identity
        self._documents = rebuilt

    def identities(self) -> List[str]:
        return list(self._documents)

    def __contains__(self, identity) -> bool:
        return identity in self._documents

    def __getitem__(self, identity: str) -> Document:
        return self._documents[identity]

    def __iter__(self) -> Iterator[Document]:
        return iter(list(self._documents.values()))

    def __len__(self) -> int:
        return len(self._documents)


def parse_date(value):
    """Parse a date value, returning datetime.min when it cannot be read."""
    if isinstance(value, datetime):
        return value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
    return datetime.min


# Typed frontmatter readers. A missing key yields the default; a present value
# of the wrong type raises FrontmatterTypeError.

def get_str(frontmatter: Mapping[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = frontmatter.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise FrontmatterTypeError(key, 'string', value)
    return value


def get_bool(frontmatter: Mapping[str, Any], key: str, default: bool = False) -> bool:
    value = frontmatter.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise FrontmatterTypeError(key, 'boolean', value)
    return value


def get_list(frontmatter: Mapping[str, Any], key: str) -> List[Any]:
    value = frontmatter.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise FrontmatterTypeError(key, 'list', value)
    return list(value)


def get_date(frontmatter: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = frontmatter.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, date)):
        raise FrontmatterTypeError(key, 'date', value)
    parsed = parse_date(value)
    if parsed == datetime.min:
        raise FrontmatterTypeError(key, 'date', value)
    return parsed
