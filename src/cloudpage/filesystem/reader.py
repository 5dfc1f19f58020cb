"""
Sandboxed file reader for content and resource access.
"""

import codecs
import logging
import os
from pathlib import Path
from typing import Optional

from cloudpage.filesystem.exceptions import (
    EntryNotFoundError,
    FileAccessError,
    InvalidArgumentError,
)
from cloudpage.filesystem.models import FileResource
from cloudpage.filesystem.sandbox import PathSandbox

logger = logging.getLogger(__name__)


def make_etag(size: int, last_modified_millis: int) -> str:
    """Build a quoted entity tag from size and modification time."""
    return f'"{size}-{last_modified_millis}"'


class SandboxReader:
    """
    Reads files inside a sandbox.

    Usage:
        reader = SandboxReader(PathSandbox("/srv/users/alice"))

        text = reader.read_file_content("notes/todo.md")
        resource = reader.load_as_resource("photos/cat.jpg")
        with resource.open() as f:
            ...
    """

    def __init__(self, sandbox: PathSandbox, encoding: str = "utf-8"):
        """
        Initialize the reader.

        Args:
            sandbox: Sandbox all paths are resolved against
            encoding: Default text encoding for read_file_content
        """
        self.sandbox = sandbox
        self.encoding = encoding

    def _regular_file(self, relative: str) -> Path:
        path = self.sandbox.resolve(relative)
        if not path.is_file():
            raise EntryNotFoundError(relative)
        return path

    def read_file_content(self, relative: str, encoding: Optional[str] = None) -> str:
        """
        Read a file as text.

        Args:
            relative: File relative to the root
            encoding: Text encoding (default: the reader's encoding)

        Returns:
            File contents as string

        Raises:
            PathViolationError: If the file escapes the root
            EntryNotFoundError: If the file does not exist or is not a regular file
            InvalidArgumentError: If the encoding is unknown
            FileAccessError: If the file cannot be read or decoded
        """
        encoding = encoding or self.encoding
        try:
            codecs.lookup(encoding)
        except LookupError as e:
            raise InvalidArgumentError("encoding", f"Unknown encoding {encoding!r}") from e

        path = self._regular_file(relative)
        try:
            content = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read file {path}: {e}")
            raise FileAccessError(str(path), "Failed to read file", cause=e) from e

        logger.debug(f"Read file: {path} ({len(content)} chars)")
        return content

    def load_as_resource(self, relative: str) -> FileResource:
        """
        Open a file for serving, with its ETag and modification time.

        Args:
            relative: File relative to the root

        Returns:
            FileResource for the file

        Raises:
            PathViolationError: If the file escapes the root
            EntryNotFoundError: If the file does not exist, is not a regular file,
                or is not readable
            FileAccessError: If the file attributes cannot be read
        """
        path = self._regular_file(relative)
        if not os.access(path, os.R_OK):
            raise EntryNotFoundError(relative, "File not readable")

        try:
            st = path.stat()
        except OSError as e:
            raise FileAccessError(str(path), "Failed to read file attributes", cause=e) from e

        last_modified = st.st_mtime_ns // 1_000_000
        return FileResource(
            path=path,
            etag=make_etag(st.st_size, last_modified),
            last_modified=last_modified,
            size=st.st_size,
        )
