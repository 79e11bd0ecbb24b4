"""
Output path helpers.

``normalize_path`` turns a raw or partial path into a canonical absolute one,
``localize_path`` prefixes it with a non-default locale. Callers localize
first and normalize last so the absolute/trailing-slash rules always hold.
"""

import re
from typing import Optional, Sequence

SAFE_PATH_RE = re.compile(r'[a-zA-Z0-9\-_/.]+')
SLUG_STRIP_RE = re.compile(r'[^a-z0-9]+')


def normalize_path(path):
    """
    Make a path absolute and ensure it ends in '/' or '.html'.

    Paths containing characters outside letters, digits, '-', '_', '/' and '.'
    are returned untouched.
    """
    if not isinstance(path, str) or not SAFE_PATH_RE.fullmatch(path):
        return path
    if not path.startswith('/'):
        path = f"/{path}"
    if not path.endswith('.html') and not path.endswith('/'):
        path = f"{path}/"
    return path


def localize_path(path, current_locale: Optional[str], locales: Optional[Sequence[str]]):
    """Prefix a path with the current locale unless it is the default one."""
    # The default locale is never prefixed.
    if not current_locale or not locales or current_locale == locales[0]:
        return path
    if not isinstance(path, str):
        return path

    parts = [part for part in path.split('/') if part]
    if not parts or parts[0] not in locales:
        parts.insert(0, current_locale)
    return '/' + '/'.join(parts)


def fixup_path(path, current_locale: Optional[str] = None, locales: Optional[Sequence[str]] = None):
    return normalize_path(localize_path(path, current_locale, locales))


def slugify(value) -> str:
    """Lowercase a value and collapse anything but letters and digits to '-'."""
    return SLUG_STRIP_RE.sub('-', str(value).lower()).strip('-')


def output_file(path, identity: str) -> str:
    """Relative file an emitted document is written to."""
    if not path:
        return identity
    relative = path.lstrip('/')
    if not relative or path.endswith('/'):
        return f"{relative}index.html"
    return relative
