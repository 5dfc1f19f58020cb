"""
Per-user storage facade.

Bundles a user's root with the storage configuration and exposes the
folder and file operations a presentation layer (HTTP controller, CLI)
calls. Each call re-validates against the live filesystem; nothing is
cached between calls.
"""

from pathlib import Path
from typing import BinaryIO, Optional, Union

from cloudpage.filesystem.config import StorageConfig
from cloudpage.filesystem.listing import DirectoryLister
from cloudpage.filesystem.metadata import GuessingMimeProbe, MimeProbe, NullMimeProbe
from cloudpage.filesystem.models import FileResource, ListingItem, Page, TreeNode
from cloudpage.filesystem.reader import SandboxReader
from cloudpage.filesystem.sandbox import PathSandbox
from cloudpage.filesystem.tree import TreeBuilder
from cloudpage.filesystem.writer import SandboxWriter


class UserFileSystem:
    """
    Folder and file operations confined to one user's root.

    Usage:
        fs = UserFileSystem("/srv/users/alice")

        fs.create_folder("", "docs")
        tree = fs.get_folder_tree()
        page = fs.get_folder_content_page("docs", page=0, size=20, sort="name,asc")
    """

    def __init__(
        self,
        root: Union[str, Path],
        config: Optional[StorageConfig] = None,
        probe: Optional[MimeProbe] = None,
    ):
        """
        Initialize the facade.

        Args:
            root: The user's root folder (must exist)
            config: Storage configuration (default: StorageConfig())
            probe: Mime probe (default: guess from file names, or none when
                probing is disabled in config)

        Raises:
            InvalidPathError: If the root does not exist or is not a directory
        """
        self.config = config or StorageConfig()
        if probe is None:
            probe = GuessingMimeProbe() if self.config.probe_mime_types else NullMimeProbe()
        self.probe = probe
        self.sandbox = PathSandbox(root)
        self.writer = SandboxWriter(self.sandbox)
        self.reader = SandboxReader(self.sandbox, encoding=self.config.text_encoding)

    @property
    def root(self) -> Path:
        return self.sandbox.root

    # Folders

    def get_folder_tree(self, relative: Optional[str] = None) -> TreeNode:
        """Build the full tree below a folder (the root by default)."""
        folder = self.sandbox.resolve(relative)
        return TreeBuilder(self.sandbox, self.probe).build(folder)

    def get_folder_content_page(
        self,
        relative: Optional[str] = None,
        page: int = 0,
        size: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Page[ListingItem]:
        """List one page of a folder's immediate children."""
        lister = DirectoryLister(
            self.sandbox, self.probe, max_page_size=self.config.max_page_size
        )
        return lister.list(
            relative,
            page=page,
            size=self.config.default_page_size if size is None else size,
            sort=sort if sort and sort.strip() else self.config.default_sort,
        )

    def create_folder(self, parent: Optional[str], name: str) -> Path:
        return self.writer.create_folder(parent, name)

    def delete_folder(self, relative: str) -> None:
        self.writer.delete_folder(relative)

    def rename_or_move_folder(self, relative: str, new_relative: str) -> Path:
        return self.writer.rename_or_move(relative, new_relative)

    # Files

    def upload_file(self, folder: Optional[str], name: str, source: BinaryIO) -> Path:
        return self.writer.upload_file(folder, name, source)

    def delete_file(self, relative: str) -> None:
        self.writer.delete_file(relative)

    def rename_or_move_file(self, relative: str, new_relative: str) -> Path:
        return self.writer.rename_or_move(relative, new_relative)

    def read_file_content(self, relative: str, encoding: Optional[str] = None) -> str:
        return self.reader.read_file_content(relative, encoding=encoding)

    def load_as_resource(self, relative: str) -> FileResource:
        return self.reader.load_as_resource(relative)

    def get_summary(self) -> dict:
        """Summary of the facade's configuration."""
        return {
            "root": str(self.root),
            "probe_mime_types": self.config.probe_mime_types,
            "default_page_size": self.config.default_page_size,
            "max_page_size": self.config.max_page_size,
            "default_sort": self.config.default_sort,
        }

    def __repr__(self) -> str:
        return f"UserFileSystem(root={str(self.root)!r})"
