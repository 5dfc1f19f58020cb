"""
Sandboxed writer for folder and file mutations.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Optional

from cloudpage.filesystem.exceptions import (
    AlreadyExistsError,
    DeletionError,
    FileAccessError,
    InvalidArgumentError,
    InvalidPathError,
    PathViolationError,
)
from cloudpage.filesystem.sandbox import PathSandbox

logger = logging.getLogger(__name__)


def check_entry_name(name: Optional[str]) -> str:
    """
    Ensure a name is a single path component.

    Raises:
        InvalidArgumentError: If the name is empty, "." / "..", or contains separators
    """
    if not name or not name.strip():
        raise InvalidArgumentError("name", "Name must not be empty")
    if name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
        raise InvalidArgumentError(name, "Name must be a single path component")
    return name


def join_relative(parent: Optional[str], name: str) -> str:
    """Join a root-relative parent and a child name."""
    parent = (parent or "").rstrip("/\\")
    return f"{parent}/{name}" if parent else name


class SandboxWriter:
    """
    Creates, moves and deletes entries inside a sandbox.

    Every operation validates its paths first and touches nothing when
    validation fails.

    Usage:
        writer = SandboxWriter(PathSandbox("/srv/users/alice"))

        writer.create_folder("", "photos")
        writer.rename_or_move("photos", "archive/photos")
        writer.delete_folder("archive")
    """

    def __init__(self, sandbox: PathSandbox):
        """
        Initialize the writer.

        Args:
            sandbox: Sandbox all paths are resolved against
        """
        self.sandbox = sandbox

    def create_folder(self, parent: Optional[str], name: str) -> Path:
        """
        Create a folder under an existing parent.

        Args:
            parent: Parent folder relative to the root
            name: Name of the new folder

        Returns:
            Resolved path of the created folder

        Raises:
            PathViolationError: If the parent or the new folder escapes the root
            InvalidArgumentError: If name is not a single path component
            InvalidPathError: If the parent is not an existing directory
            AlreadyExistsError: If an entry with that name already exists
        """
        name = check_entry_name(name)
        parent_path = self.sandbox.resolve(parent)
        if not parent_path.is_dir():
            raise InvalidPathError(
                parent or ".", "Parent folder does not exist or is not a directory"
            )

        target = self.sandbox.resolve(join_relative(parent, name))
        if os.path.lexists(target):
            raise AlreadyExistsError(join_relative(parent, name))

        try:
            target.mkdir()
        except FileExistsError as e:
            raise AlreadyExistsError(join_relative(parent, name)) from e
        except OSError as e:
            logger.error(f"Failed to create folder {target}: {e}")
            raise FileAccessError(str(target), "Failed to create folder", cause=e) from e

        logger.info(f"Created folder: {target}")
        return target

    def delete_folder(self, relative: str) -> None:
        """
        Delete a folder and everything in it, deepest entries first.

        Deletion stops at the first failure; entries already removed
        stay removed.

        Args:
            relative: Folder relative to the root

        Raises:
            PathViolationError: If the folder escapes the root or is the root
            InvalidPathError: If the folder does not exist or is not a directory
            DeletionError: If an entry cannot be removed
        """
        folder = self.sandbox.resolve(relative)
        if self.sandbox.is_root(folder):
            raise PathViolationError(relative or ".", "Refusing to delete the root folder")
        if not folder.is_dir():
            raise InvalidPathError(relative, "Folder does not exist or is not a directory")

        count = 0
        for path in self._deletion_order(folder):
            try:
                if path.is_dir() and not path.is_symlink():
                    path.rmdir()
                else:
                    path.unlink()
            except OSError as e:
                logger.error(f"Failed to delete {path}: {e}")
                raise DeletionError(str(path), cause=e) from e
            count += 1

        logger.info(f"Deleted folder {folder} ({count} entries)")

    def _deletion_order(self, folder: Path):
        """Yield every entry below folder, children before parents, folder last."""

        def fail(error: OSError):
            raise DeletionError(error.filename or str(folder), cause=error) from error

        for dirpath, dirnames, filenames in os.walk(folder, topdown=False, onerror=fail):
            current = Path(dirpath)
            for name in filenames:
                yield current / name
            for name in dirnames:
                yield current / name
        yield folder

    def rename_or_move(self, source: str, target: str) -> Path:
        """
        Rename or move an entry with a single filesystem rename.

        An existing destination is replaced where the platform allows it.
        Folders are never merged.

        Args:
            source: Entry relative to the root
            target: New location relative to the root; its parent must exist

        Returns:
            Resolved destination path

        Raises:
            PathViolationError: If either side escapes the root, or source is the root
            InvalidPathError: If source is missing or target's parent is not a directory
            FileAccessError: If the rename fails
        """
        source_path = self.sandbox.resolve(source)
        if self.sandbox.is_root(source_path):
            raise PathViolationError(source or ".", "Refusing to move the root folder")
        if not os.path.lexists(source_path):
            raise InvalidPathError(source, "Source does not exist")

        target_relative = (target or "").rstrip("/\\")
        parent_relative = os.path.dirname(target_relative.lstrip("/\\"))
        parent_path = self.sandbox.resolve(parent_relative)
        if not parent_path.is_dir():
            raise InvalidPathError(
                parent_relative or ".", "Target folder does not exist or is not a directory"
            )
        target_path = self.sandbox.resolve(target_relative)
        if self.sandbox.is_root(target_path):
            raise PathViolationError(target or ".", "Refusing to replace the root folder")

        try:
            os.replace(source_path, target_path)
        except OSError as e:
            logger.error(f"Failed to move {source_path} to {target_path}: {e}")
            raise FileAccessError(
                str(source_path), f"Failed to move to {target_path}", cause=e
            ) from e

        logger.info(f"Moved {source_path} -> {target_path}")
        return target_path

    def upload_file(self, folder: Optional[str], name: str, source: BinaryIO) -> Path:
        """
        Write a byte stream to folder/name, replacing any existing file.

        The folder is created (with parents) when missing.

        Args:
            folder: Destination folder relative to the root
            name: File name
            source: Readable binary stream

        Returns:
            Resolved path of the written file

        Raises:
            PathViolationError: If the destination escapes the root
            InvalidArgumentError: If name is not a single path component
            InvalidPathError: If the folder is a file or the destination is an
                existing directory
            FileAccessError: If the bytes cannot be written
        """
        name = check_entry_name(name)
        folder_path = self.sandbox.resolve(folder)
        if folder_path.exists() and not folder_path.is_dir():
            raise InvalidPathError(folder or ".", "Folder is not a directory")
        target = self.sandbox.resolve(join_relative(folder, name))
        if target.is_dir():
            raise InvalidPathError(join_relative(folder, name), "Target is a directory")

        try:
            if not folder_path.exists():
                folder_path.mkdir(parents=True)
                logger.debug(f"Created folder for upload: {folder_path}")
            with open(target, "wb") as out:
                shutil.copyfileobj(source, out)
                written = out.tell()
        except OSError as e:
            logger.error(f"Failed to write file {target}: {e}")
            raise FileAccessError(str(target), "Failed to write file", cause=e) from e

        logger.info(f"Uploaded file: {target} ({written} bytes)")
        return target

    def delete_file(self, relative: str) -> None:
        """
        Delete a file. Deleting a file that is already gone succeeds.

        Args:
            relative: File relative to the root

        Raises:
            PathViolationError: If the file escapes the root
            InvalidPathError: If the path is a directory
            FileAccessError: If the file cannot be removed
        """
        path = self.sandbox.resolve(relative)
        if path.is_dir():
            raise InvalidPathError(relative, "Path is a directory, not a file")

        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete file {path}: {e}")
            raise FileAccessError(str(path), "Failed to delete file", cause=e) from e

        logger.info(f"Deleted file: {path}")
