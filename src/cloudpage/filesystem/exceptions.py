"""
Exceptions for sandboxed storage operations.

Validation failures (PathViolationError, InvalidArgumentError) are kept
apart from not-found failures (InvalidPathError, EntryNotFoundError) so a
boundary layer can report "rejected" and "absent" differently.
"""

from typing import Optional


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, path: str, reason: str = "Storage operation failed"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class PathViolationError(StorageError):
    """Raised when a path escapes the root or cannot be safely resolved."""

    def __init__(self, path: str, reason: str = "Path traversal attempt detected"):
        super().__init__(path, reason)


class InvalidPathError(StorageError):
    """Raised when a target is missing or of the wrong kind."""

    def __init__(self, path: str, reason: str = "Invalid path"):
        super().__init__(path, reason)


class EntryNotFoundError(StorageError):
    """Raised when a file to read or open does not exist."""

    def __init__(self, path: str, reason: str = "File not found"):
        super().__init__(path, reason)


class InvalidArgumentError(StorageError, ValueError):
    """Raised for bad paging parameters or entry names."""

    def __init__(self, argument: str, reason: str = "Invalid argument"):
        super().__init__(argument, reason)


class AlreadyExistsError(StorageError):
    """Raised when creating an entry that already exists."""

    def __init__(self, path: str, reason: str = "Entry already exists"):
        super().__init__(path, reason)


class FileAccessError(StorageError):
    """Raised when attributes or bytes of an entry cannot be read or written."""

    def __init__(
        self,
        path: str,
        reason: str = "Failed to access entry",
        cause: Optional[BaseException] = None,
    ):
        self.cause = cause
        if cause is not None:
            reason = f"{reason} ({cause})"
        super().__init__(path, reason)


class DeletionError(StorageError):
    """Raised when a recursive delete stops part way through."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.cause = cause
        reason = "Failed to delete"
        if cause is not None:
            reason = f"{reason} ({cause})"
        super().__init__(path, reason)
