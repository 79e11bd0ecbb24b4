"""
Source providers and output sinks.

The pipeline itself never touches the filesystem: a source yields a fresh
``DocumentSet`` for every locale pass and a sink persists the final
``(identity, path, content)`` records.
"""

import copy
import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .document import Document, DocumentSet
from .grouping import matches
from .paths import output_file

TEXT_EXTENSIONS = ('.md', '.markdown', '.html', '.htm', '.j2', '.jinja', '.txt', '.xml', '.json', '.svg')
FRONTMATTER_EXTENSIONS = ('.md', '.markdown', '.html', '.htm', '.j2', '.jinja')

logger = logging.getLogger('sitesmith.sources')


def parse_frontmatter(content, source=None):
    """Split YAML front matter from the rest of a text document."""
    if not content.startswith('---'):
        return {}, content

    parts = content.split('---', 2)
    if len(parts) < 3:
        return {}, content

    try:
        metadata = yaml.safe_load(parts[1])
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML front matter in {source}: {e}")
        metadata = {}
    if not isinstance(metadata, dict):
        metadata = {}
    return metadata, parts[2].strip()


class FileSystemSource:
    """Read a source directory into documents keyed by relative path."""

    def __init__(self, source_dir: str, ignore: Optional[Sequence[str]] = None):
        self.source_dir = source_dir
        self.ignore = list(ignore or [])

    def is_ignored(self, relative: str) -> bool:
        name = os.path.basename(relative)
        return any(matches(relative, pattern) or matches(name, pattern) for pattern in self.ignore)

    def read_document(self, full_path: str, relative: str) -> Document:
        ext = os.path.splitext(relative)[1].lower()
        if ext not in TEXT_EXTENSIONS:
            with open(full_path, 'rb') as f:
                return Document(relative, f.read())

        with open(full_path, 'r', encoding='utf-8') as f:
            content = f.read()
        if ext in FRONTMATTER_EXTENSIONS:
            metadata, body = parse_frontmatter(content, relative)
            return Document(relative, body, metadata)
        return Document(relative, content)

    def read(self) -> DocumentSet:
        documents = DocumentSet()
        if not os.path.isdir(self.source_dir):
            logger.warning(f"Source directory not found: {self.source_dir}")
            return documents

        for root, dirs, files in os.walk(self.source_dir):
            rel_root = os.path.relpath(root, self.source_dir)
            rel_root = '' if rel_root == '.' else rel_root.replace(os.sep, '/')
            dirs[:] = sorted(d for d in dirs if not self.is_ignored(f"{rel_root}/{d}".lstrip('/')))
            for name in sorted(files):
                relative = f"{rel_root}/{name}".lstrip('/')
                if self.is_ignored(relative):
                    continue
                try:
                    documents.add(self.read_document(os.path.join(root, name), relative))
                except (IOError, OSError, PermissionError) as e:
                    logger.error(f"Failed to read source file {relative}: {e}")
                    raise
        return documents


class MemorySource:
    """Serve documents from a ``{identity: {body, frontmatter}}`` mapping."""

    def __init__(self, files: Mapping[str, Mapping[str, Any]]):
        self.files = files

    def read(self) -> DocumentSet:
        documents = DocumentSet()
        for identity, data in self.files.items():
            documents.add(Document(identity, data.get('body', ''), copy.deepcopy(data.get('frontmatter') or {})))
        return documents


class FileSystemSink:
    """Write emitted documents below an output directory."""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def write(self, identity: str, path: Optional[str], content) -> str:
        relative = output_file(path, identity)
        target = os.path.join(self.output_dir, relative)
        root = os.path.abspath(self.output_dir)
        if os.path.commonpath([root, os.path.abspath(target)]) != root:
            raise ValueError(f"Path traversal attempt detected: {relative}")

        os.makedirs(os.path.dirname(target) or self.output_dir, exist_ok=True)
        try:
            if isinstance(content, bytes):
                with open(target, 'wb') as f:
                    f.write(content)
            else:
                with open(target, 'w', encoding='utf-8') as f:
                    f.write(content)
        except (IOError, OSError, PermissionError) as e:
            logger.error(f"Failed to write {target}: {e}")
            raise
        logger.debug(f"Wrote {target}")
        return relative


class MemorySink:
    """Collect emitted documents in memory."""

    def __init__(self):
        self.files: Dict[str, Any] = {}
        self.records: List[Tuple[str, Optional[str], Any]] = []

    def write(self, identity: str, path: Optional[str], content) -> str:
        relative = output_file(path, identity)
        self.files[relative] = content
        self.records.append((identity, path, content))
        return relative
