"""
Locale expansion of a document set.

Two policies are supported:

* ``rewrite`` moves every document not already under a locale directory into
  the current locale's namespace (``post.md`` -> ``fr/post.md``). The default
  locale is never prefixed, so rewriting into it leaves identities alone.
* ``clone`` keeps the originals and adds an independent copy for every
  non-default locale.

An explicit translation already at the target identity wins in both modes. It
takes over the collection memberships, layout and slug of the document it
translates; in rewrite mode that original is dropped from the pass. Both
policies are safe to re-run.
"""

import copy
import logging
from typing import Dict, List, Optional, Sequence

from .document import Document, DocumentSet
from .errors import ConfigurationError
from .grouping import merge_defaults

REWRITE = 'rewrite'
CLONE = 'clone'
MODES = (REWRITE, CLONE)

logger = logging.getLogger('sitesmith.multilingual')


def locale_prefix(identity: str, locales: Sequence[str]) -> Optional[str]:
    """Return the locale an identity lives under, if any."""
    head = identity.split('/', 1)[0]
    return head if head in locales else None


def adopt_source(translation: Document, source: Document) -> None:
    """
    Give an explicit translation the collection memberships and metadata of
    the default-locale document it translates. Its own frontmatter wins.
    """
    for name in source.collections:
        translation.add_membership(name, source.collection_index[name])
    merge_defaults(translation.frontmatter, copy.deepcopy(source.frontmatter))


def replace_members(name: str, members: List[Document], replaced: Dict[Document, Document]) -> List[Document]:
    """Swap dropped originals in a collection for their translations, keeping positions."""
    if not any(member in replaced for member in members):
        return members
    translations = set(replaced.values())
    updated = [replaced.get(member, member) for member in members if member not in translations]
    for index, document in enumerate(updated):
        document.add_membership(name, index)
    return updated


def expand_locales(documents: DocumentSet, locales: Sequence[str], mode: str = REWRITE,
                   locale: Optional[str] = None) -> Dict[Document, Document]:
    """
    Expand the set in place for one pass. Returns the originals dropped in
    favour of an existing translation, mapped to that translation.
    """
    if not locales:
        return {}
    if mode not in MODES:
        raise ConfigurationError(f"unknown mode {mode!r}, expected one of {', '.join(MODES)}", field='i18n.mode')
    if locale is not None and locale not in locales:
        raise ConfigurationError(f"unknown locale {locale!r}", field='locale')

    for document in documents:
        prefix = locale_prefix(document.identity, locales)
        if prefix:
            document.frontmatter.setdefault('locale', prefix)

    if mode == REWRITE:
        return _relocate(documents, locale or locales[0], locales)
    _clone(documents, locales)
    return {}


def _relocate(documents: DocumentSet, target: str, locales: Sequence[str]) -> Dict[Document, Document]:
    if target == locales[0]:
        return {}
    renames = {}
    replaced = {}
    for document in documents:
        if locale_prefix(document.identity, locales) is not None:
            continue
        identity = f"{target}/{document.identity}"
        translation = documents.get(identity)
        if translation is not None:
            adopt_source(translation, document)
            replaced[document] = translation
            continue
        renames[document.identity] = identity
        document.frontmatter.setdefault('locale', target)

    for document in replaced:
        documents.discard(document.identity)
    documents.rename_many(renames)
    logger.debug(f"Relocated {len(renames)} documents under {target}/, kept {len(replaced)} translations")
    return replaced


def _clone(documents: DocumentSet, locales: Sequence[str]) -> None:
    created = 0
    for document in documents:
        if locale_prefix(document.identity, locales) is not None:
            continue
        document.frontmatter.setdefault('locale', locales[0])
        for target in locales[1:]:
            identity = f"{target}/{document.identity}"
            translation = documents.get(identity)
            if translation is not None:
                adopt_source(translation, document)
                continue
            twin = document.clone(identity)
            twin.frontmatter['locale'] = target
            documents.add(twin)
            created += 1
    logger.debug(f"Cloned {created} documents into {len(locales) - 1} locales")
