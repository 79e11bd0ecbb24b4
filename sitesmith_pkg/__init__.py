"""
Sitesmith - a staged static site generation pipeline.

Sitesmith reads a tree of Markdown, templates and assets, groups documents
into collections, paginates and localizes them, resolves permalinks, renders
Markdown and Jinja2 layouts, and writes a fully rendered output tree.
"""

__version__ = "1.0.0"

from .core import Sitesmith, BuildContext, PassResult
from .document import Document, DocumentSet
from .errors import ConfigurationError, IdentityCollision, SitesmithError, StageFailure
from .settings import BuildConfig, SitesmithSettings, normalize_config

__all__ = [
    'Sitesmith', 'BuildContext', 'PassResult', 'Document', 'DocumentSet', 'BuildConfig',
    'SitesmithSettings', 'normalize_config', 'SitesmithError', 'ConfigurationError',
    'StageFailure', 'IdentityCollision',
]
