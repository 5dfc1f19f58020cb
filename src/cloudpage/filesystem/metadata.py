"""
Entry metadata: size and best-effort mime type of a single path.
"""

import logging
import mimetypes
import stat
from pathlib import Path
from typing import Optional, Protocol

from cloudpage.filesystem.exceptions import FileAccessError
from cloudpage.filesystem.models import EntryMetadata

logger = logging.getLogger(__name__)


class MimeProbe(Protocol):
    """Capability that guesses the content type of a file."""

    def probe_type(self, path: Path) -> Optional[str]:
        """Return the mime type of path, or None if it cannot be told."""
        ...


class GuessingMimeProbe:
    """Guesses mime types from file names using the mimetypes registry."""

    def probe_type(self, path: Path) -> Optional[str]:
        mime_type, _ = mimetypes.guess_type(path.as_posix())
        return mime_type


class NullMimeProbe:
    """Probe that never detects anything."""

    def probe_type(self, path: Path) -> Optional[str]:
        return None


def probe_mime_type(path: Path, probe: MimeProbe) -> Optional[str]:
    """Run a probe, treating any failure as an unknown type."""
    try:
        return probe.probe_type(path)
    except Exception as e:
        logger.debug(f"Mime probe failed for {path}: {e}")
        return None


def read_metadata(path: Path, probe: MimeProbe) -> EntryMetadata:
    """
    Read size and mime type of an entry.

    Directories report size 0 and no mime type.

    Args:
        path: Resolved path of the entry
        probe: Mime type probe

    Returns:
        EntryMetadata for the entry

    Raises:
        FileAccessError: If the attributes cannot be read
    """
    try:
        st = path.stat()
    except OSError as e:
        raise FileAccessError(str(path), "Failed to read file attributes", cause=e) from e

    if stat.S_ISDIR(st.st_mode):
        return EntryMetadata(size=0, mime_type=None)

    return EntryMetadata(size=st.st_size, mime_type=probe_mime_type(path, probe))
