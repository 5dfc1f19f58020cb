"""
Recursive directory tree builder.
"""

import logging
import os
from pathlib import Path

from cloudpage.filesystem.exceptions import FileAccessError, InvalidPathError
from cloudpage.filesystem.metadata import MimeProbe, read_metadata
from cloudpage.filesystem.models import FileEntry, TreeNode
from cloudpage.filesystem.sandbox import PathSandbox

logger = logging.getLogger(__name__)


def sorted_children(directory: Path) -> list[Path]:
    """
    List the immediate children of a directory, sorted case-insensitively.

    Names equal apart from case are ordered by their exact spelling.

    Raises:
        FileAccessError: If the directory cannot be read
    """
    try:
        with os.scandir(directory) as entries:
            names = [entry.name for entry in entries]
    except OSError as e:
        raise FileAccessError(str(directory), "Failed to list directory", cause=e) from e
    return [directory / name for name in sorted(names, key=lambda n: (n.lower(), n))]


class TreeBuilder:
    """
    Builds the full tree below a directory inside a sandbox.

    Every child is re-validated through the sandbox as it is visited, so
    a symlink pointing out of the root aborts the build, and a dangling
    link or an entry that vanished mid-walk fails it with FileAccessError,
    as in a listing. Sockets and FIFOs are left out. A directory
    link that loops back to one of its own ancestors is kept as an empty
    leaf instead of being descended again.

    Usage:
        builder = TreeBuilder(PathSandbox("/srv/users/alice"), GuessingMimeProbe())
        tree = builder.build(builder.sandbox.resolve("."))
    """

    def __init__(self, sandbox: PathSandbox, probe: MimeProbe):
        self.sandbox = sandbox
        self.probe = probe

    def build(self, start: Path) -> TreeNode:
        """
        Build the tree rooted at a resolved directory.

        Args:
            start: Sandbox-resolved directory

        Returns:
            TreeNode for start with all descendants

        Raises:
            InvalidPathError: If start is not an existing directory
            PathViolationError: If any descendant escapes the root
            FileAccessError: If any descendant cannot be read
        """
        if not start.is_dir():
            raise InvalidPathError(
                str(start), "Folder does not exist or is not a directory"
            )
        tree = self._read_folder(start, start.name, ancestors=(start,))
        logger.debug(f"Built tree for {start}")
        return tree

    def _read_folder(
        self, directory: Path, name: str, ancestors: tuple[Path, ...]
    ) -> TreeNode:
        children: list[TreeNode] = []
        files: list[FileEntry] = []

        for child in sorted_children(directory):
            resolved = self.sandbox.check(child)

            if resolved.is_dir():
                if resolved in ancestors:
                    logger.warning(f"Not descending into {child}: links back to {resolved}")
                    children.append(self._leaf(child.name, resolved))
                else:
                    children.append(
                        self._read_folder(resolved, child.name, ancestors + (resolved,))
                    )
            elif resolved.is_file():
                metadata = read_metadata(resolved, self.probe)
                files.append(
                    FileEntry(
                        name=child.name,
                        path=self.sandbox.relativize(resolved),
                        size=metadata.size,
                        mime_type=metadata.mime_type,
                    )
                )
            else:
                self._check_special(resolved)

        return TreeNode(
            name=name,
            path=self.sandbox.relativize(directory),
            children=children,
            files=files,
        )

    def _check_special(self, path: Path) -> None:
        # sockets and FIFOs are skipped; a dangling or vanished entry fails
        try:
            path.stat()
        except OSError as e:
            raise FileAccessError(str(path), "Failed to read attributes", cause=e) from e
        logger.debug(f"Skipping special file {path}")

    def _leaf(self, name: str, resolved: Path) -> TreeNode:
        return TreeNode(name=name, path=self.sandbox.relativize(resolved))
