"""
Sandboxed per-user storage.

This module resolves caller-supplied paths against a user's root folder,
rejects anything that escapes it (including through symbolic links), and
builds directory trees, paginated listings and folder/file mutations on
top of that guarantee.
"""

from cloudpage.filesystem.config import StorageConfig
from cloudpage.filesystem.exceptions import (
    AlreadyExistsError,
    DeletionError,
    EntryNotFoundError,
    FileAccessError,
    InvalidArgumentError,
    InvalidPathError,
    PathViolationError,
    StorageError,
)
from cloudpage.filesystem.listing import DirectoryLister, SortKey, parse_sort
from cloudpage.filesystem.metadata import (
    GuessingMimeProbe,
    MimeProbe,
    NullMimeProbe,
    read_metadata,
)
from cloudpage.filesystem.models import (
    EntryMetadata,
    FileEntry,
    FileResource,
    ListingItem,
    Page,
    TreeNode,
)
from cloudpage.filesystem.reader import SandboxReader
from cloudpage.filesystem.sandbox import PathSandbox
from cloudpage.filesystem.service import UserFileSystem
from cloudpage.filesystem.tree import TreeBuilder
from cloudpage.filesystem.writer import SandboxWriter

__all__ = [
    # Configuration
    "StorageConfig",
    # Errors
    "StorageError",
    "PathViolationError",
    "InvalidPathError",
    "EntryNotFoundError",
    "InvalidArgumentError",
    "AlreadyExistsError",
    "FileAccessError",
    "DeletionError",
    # Models
    "EntryMetadata",
    "FileEntry",
    "FileResource",
    "ListingItem",
    "Page",
    "TreeNode",
    # Components
    "PathSandbox",
    "MimeProbe",
    "GuessingMimeProbe",
    "NullMimeProbe",
    "read_metadata",
    "TreeBuilder",
    "DirectoryLister",
    "SortKey",
    "parse_sort",
    "SandboxWriter",
    "SandboxReader",
    "UserFileSystem",
]
