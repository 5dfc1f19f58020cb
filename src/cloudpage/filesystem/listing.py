"""
Paginated, sorted listing of a single directory.
"""

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from cloudpage.filesystem.exceptions import InvalidArgumentError, InvalidPathError
from cloudpage.filesystem.metadata import MimeProbe, read_metadata
from cloudpage.filesystem.models import ListingItem, Page
from cloudpage.filesystem.sandbox import PathSandbox
from cloudpage.filesystem.tree import sorted_children

logger = logging.getLogger(__name__)


class SortKey(str, Enum):
    """Fields a listing can be sorted by."""

    NAME = "name"


SORT_KEYS: dict[SortKey, Callable[[ListingItem], tuple[str, str]]] = {
    SortKey.NAME: lambda item: (item.name.lower(), item.name),
}


def parse_sort(sort: Optional[str]) -> tuple[SortKey, bool]:
    """
    Parse a "<field>,<asc|desc>" sort token.

    Unknown or missing fields fall back to name; any direction other
    than "desc" (case-insensitive) is ascending.

    Returns:
        Tuple of (sort key, descending)
    """
    key = SortKey.NAME
    descending = False

    if sort and sort.strip():
        parts = sort.split(",")
        field = parts[0].strip()
        try:
            key = SortKey(field)
        except ValueError:
            if field:
                logger.debug(f"Unknown sort field {field!r}, sorting by name")
        if len(parts) > 1 and parts[1].strip():
            descending = parts[1].strip().lower() == "desc"

    return key, descending


def paginate(items: list, page: int, size: int) -> Page:
    """Cut one page out of a fully sorted item list."""
    total = len(items)
    start = page * size
    content = items[start : min(start + size, total)] if start < total else []
    return Page(
        content=content,
        total_elements=total,
        total_pages=math.ceil(total / size),
        page_number=page,
    )


class DirectoryLister:
    """
    Lists the immediate children of a directory inside a sandbox.

    Usage:
        lister = DirectoryLister(PathSandbox("/srv/users/alice"), GuessingMimeProbe())
        page = lister.list("docs", page=0, size=20, sort="name,desc")
    """

    def __init__(
        self,
        sandbox: PathSandbox,
        probe: MimeProbe,
        max_page_size: Optional[int] = None,
    ):
        self.sandbox = sandbox
        self.probe = probe
        self.max_page_size = max_page_size

    def list(
        self,
        relative: Optional[str],
        page: int,
        size: int,
        sort: Optional[str] = None,
    ) -> Page[ListingItem]:
        """
        List one page of a directory.

        Args:
            relative: Directory relative to the root (None or "" for the root)
            page: Zero-based page index
            size: Page size
            sort: Optional "<field>,<asc|desc>" token

        Returns:
            Page of ListingItem

        Raises:
            InvalidArgumentError: If page or size are out of range
            PathViolationError: If the directory or a child escapes the root
            InvalidPathError: If the directory does not exist
            FileAccessError: If a child's attributes cannot be read
        """
        if page < 0:
            raise InvalidArgumentError("page", "page must be greater than or equal to 0")
        if size <= 0:
            raise InvalidArgumentError("size", "size must be greater than 0")
        if self.max_page_size is not None and size > self.max_page_size:
            raise InvalidArgumentError(
                "size", f"size must not exceed {self.max_page_size}"
            )

        folder = self.sandbox.resolve(relative)
        if not folder.is_dir():
            raise InvalidPathError(
                relative or ".", "Folder does not exist or is not a directory"
            )

        items = [self._item(child) for child in sorted_children(folder)]

        key, descending = parse_sort(sort)
        items.sort(key=SORT_KEYS[key], reverse=descending)

        logger.debug(
            f"Listed {len(items)} entries in {folder} (page={page}, size={size}, "
            f"sort={key.value},{'desc' if descending else 'asc'})"
        )
        return paginate(items, page, size)

    def _item(self, child: Path) -> ListingItem:
        resolved = self.sandbox.check(child)
        is_directory = resolved.is_dir()
        if is_directory:
            size, mime_type = 0, None
        else:
            metadata = read_metadata(resolved, self.probe)
            size, mime_type = metadata.size, metadata.mime_type

        return ListingItem(
            name=child.name,
            path=self.sandbox.relativize(resolved),
            is_directory=is_directory,
            size=size,
            mime_type=mime_type,
        )
