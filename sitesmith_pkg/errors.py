"""
Exception types raised by the Sitesmith build pipeline.
"""

from typing import Iterable, Optional


class SitesmithError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class ConfigurationError(SitesmithError):
    """Malformed configuration: bad pattern, page size, locale or mode."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class FrontmatterTypeError(ConfigurationError):
    """A frontmatter value does not have the type its reader expects."""

    def __init__(self, key: str, expected: str, value):
        self.key = key
        self.expected = expected
        self.value = value
        super().__init__(f"expected {expected}, got {type(value).__name__} ({value!r})", field=key)


class StageFailure(SitesmithError):
    """An external collaborator failed while a stage was running."""

    def __init__(self, stage: str, cause: BaseException, identity: Optional[str] = None):
        self.stage = stage
        self.cause = cause
        self.identity = identity
        where = f" on {identity}" if identity else ""
        super().__init__(f"Stage '{stage}' failed{where}: {cause}")


class IdentityCollision(SitesmithError):
    """Two documents claim the same identity or output path."""

    def __init__(self, path: str, identities: Iterable[str]):
        self.path = path
        self.identities = list(identities)
        super().__init__(f"Multiple documents resolve to {path}: {', '.join(self.identities)}")
