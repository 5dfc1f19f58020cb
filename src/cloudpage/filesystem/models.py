"""
Storage data models.

This module defines Pydantic models for the snapshots the storage core
hands back: directory trees, listing pages and opened file resources.
All paths in these models are relative to the user's root and use "/"
as separator.
"""

from pathlib import Path
from typing import BinaryIO, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class EntryMetadata(BaseModel):
    """Size and best-effort mime type of a single entry."""

    model_config = {"frozen": True}

    size: int = Field(default=0, description="Size in bytes (0 for directories)")
    mime_type: Optional[str] = Field(
        default=None, description="Detected mime type, None when unknown"
    )


class FileEntry(BaseModel):
    """A regular file inside a tree node."""

    model_config = {"frozen": True}

    name: str = Field(description="File name")
    path: str = Field(description="Path relative to the root")
    size: int = Field(description="Size in bytes")
    mime_type: Optional[str] = Field(default=None, description="Detected mime type")


class TreeNode(BaseModel):
    """A directory and everything below it."""

    model_config = {"frozen": True}

    name: str = Field(description="Directory name")
    path: str = Field(description="Path relative to the root, '.' for the root itself")
    children: list["TreeNode"] = Field(default_factory=list, description="Subdirectories")
    files: list[FileEntry] = Field(default_factory=list, description="Files in this directory")

    def find(self, path: str) -> Optional["TreeNode"]:
        """Find the node with the given root-relative path."""
        if self.path == path:
            return self
        for child in self.children:
            found = child.find(path)
            if found is not None:
                return found
        return None


class ListingItem(BaseModel):
    """One immediate child of a listed directory."""

    model_config = {"frozen": True}

    name: str = Field(description="Entry name")
    path: str = Field(description="Path relative to the root")
    is_directory: bool = Field(description="Whether the entry is a directory")
    size: int = Field(default=0, description="Size in bytes (0 for directories)")
    mime_type: Optional[str] = Field(
        default=None, description="Detected mime type (None for directories)"
    )


class Page(BaseModel, Generic[T]):
    """One window of a sorted result set."""

    model_config = {"frozen": True}

    content: list[T] = Field(default_factory=list, description="Items on this page")
    total_elements: int = Field(description="Number of items across all pages")
    total_pages: int = Field(description="Number of pages for the requested size")
    page_number: int = Field(description="Zero-based page index that was requested")


class FileResource(BaseModel):
    """A validated file ready to be served, with its cache validators."""

    model_config = {"frozen": True}

    path: Path = Field(description="Resolved absolute path of the file")
    etag: str = Field(description='Entity tag, formatted as "<size>-<lastModifiedMillis>"')
    last_modified: int = Field(description="Last modification time in epoch milliseconds")
    size: int = Field(description="Size in bytes")

    @property
    def filename(self) -> str:
        return self.path.name

    def open(self) -> BinaryIO:
        """Open the file for binary reading. The caller closes it."""
        return self.path.open("rb")
