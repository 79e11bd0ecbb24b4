"""
Permalink resolution: turn ``blog/:slug`` style patterns into output paths.
"""

import logging
import re
from datetime import date
from typing import Any, List, Mapping, Optional

from .errors import ConfigurationError
from .paths import SAFE_PATH_RE, normalize_path, slugify

TOKEN_RE = re.compile(r':(\w+)')
DEFAULT_DATE_FORMAT = '%Y/%m/%d'

logger = logging.getLogger('sitesmith.permalinks')


def pattern_tokens(pattern: str) -> List[str]:
    """Return the ``:field`` tokens of a pattern in order of first appearance."""
    tokens = []
    for name in TOKEN_RE.findall(pattern):
        if name not in tokens:
            tokens.append(name)
    return tokens


def check_pattern(pattern, field: str) -> str:
    """Validate a configured pattern, raising ConfigurationError when unusable."""
    if not isinstance(pattern, str) or not pattern.strip('/ '):
        raise ConfigurationError(f"invalid permalink pattern {pattern!r}", field=field)
    if ' ' in pattern or '::' in pattern:
        raise ConfigurationError(f"malformed permalink pattern {pattern!r}", field=field)
    return pattern


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, (str, list, tuple, dict)) and not value


def format_value(value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Render a frontmatter value as a path fragment."""
    if isinstance(value, date):
        return value.strftime(date_format)
    if isinstance(value, bool):
        return str(value).lower()
    text = str(value)
    if SAFE_PATH_RE.fullmatch(text):
        return text
    return slugify(text)


def expand_pattern(pattern: str, fields: Mapping[str, Any],
                   date_format: str = DEFAULT_DATE_FORMAT) -> Optional[str]:
    """
    Substitute every ``:field`` token of a pattern from ``fields``.

    Returns the normalized path, or None when any token has no usable value.
    No partially substituted path is ever returned.
    """
    values = {}
    for token in pattern_tokens(pattern):
        value = fields.get(token)
        if _is_empty(value):
            return None
        text = format_value(value, date_format)
        if not text:
            return None
        values[token] = text

    return normalize_path(TOKEN_RE.sub(lambda match: values[match.group(1)], pattern))


def resolve_permalink(document, patterns: Mapping[str, str],
                      date_format: str = DEFAULT_DATE_FORMAT) -> Optional[str]:
    """
    Resolve a document's output path from the pattern configured for its type.

    An explicit string ``permalink`` in the frontmatter wins over the table and
    ``permalink: false`` suppresses resolution entirely.
    """
    if document.permalink is False:
        return None

    pattern = document.permalink
    if not pattern and document.type:
        pattern = patterns.get(document.type)
    if not pattern:
        return None

    resolved = expand_pattern(pattern, document.frontmatter, date_format)
    if resolved is None:
        logger.debug(f"Unresolvable permalink {pattern!r} for {document.identity}")
    return resolved
