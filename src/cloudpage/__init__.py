"""
Cloudpage - sandboxed per-user file storage.

This package confines folder and file operations to a user's root
folder and provides browsable trees and paginated listings of it.
"""

__version__ = "0.1.0"

from cloudpage.filesystem import (
    AlreadyExistsError,
    DeletionError,
    EntryNotFoundError,
    FileAccessError,
    FileEntry,
    FileResource,
    InvalidArgumentError,
    InvalidPathError,
    ListingItem,
    Page,
    PathSandbox,
    PathViolationError,
    StorageConfig,
    StorageError,
    TreeNode,
    UserFileSystem,
)

from cloudpage.settings import CloudpageConfig

__all__ = [
    # Version
    "__version__",
    # Facade
    "UserFileSystem",
    "PathSandbox",
    # Models
    "TreeNode",
    "FileEntry",
    "ListingItem",
    "Page",
    "FileResource",
    # Errors
    "StorageError",
    "PathViolationError",
    "InvalidPathError",
    "EntryNotFoundError",
    "InvalidArgumentError",
    "AlreadyExistsError",
    "FileAccessError",
    "DeletionError",
    # Settings
    "StorageConfig",
    "CloudpageConfig",
]
