"""
Path sandbox confining every operation to a user's root directory.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from cloudpage.filesystem.exceptions import InvalidPathError, PathViolationError

logger = logging.getLogger(__name__)


class PathSandbox:
    """
    Resolves caller-supplied relative paths against a root and proves
    the result stays inside it.

    Symbolic links are resolved on every call, so a link pointing
    outside the root is rejected even when it is only discovered while
    walking a directory. Paths that do not exist yet are accepted when
    their nearest existing ancestor lies inside the root.

    Usage:
        sandbox = PathSandbox("/srv/users/alice")

        target = sandbox.resolve("docs/report.pdf")
        sandbox.resolve("../bob")          # raises PathViolationError
    """

    def __init__(self, root: Union[str, Path]):
        """
        Initialize the sandbox.

        Args:
            root: Existing directory all paths are confined to

        Raises:
            InvalidPathError: If the root does not exist or is not a directory
        """
        self.root = Path(root).expanduser().absolute()
        if not self.root.is_dir():
            raise InvalidPathError(
                str(self.root), "Root folder does not exist or is not a directory"
            )

    @property
    def real_root(self) -> Path:
        """Canonical form of the root, recomputed on each access."""
        try:
            return self.root.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise InvalidPathError(str(self.root), f"Cannot resolve root folder: {e}")

    def resolve(self, relative: Optional[str]) -> Path:
        """
        Resolve a root-relative path to its validated canonical form.

        Leading separators are ignored, so "/docs" means "docs" under the
        root. "" and "." resolve to the root.

        Args:
            relative: Path relative to the root

        Returns:
            Canonical path guaranteed to be inside the root

        Raises:
            PathViolationError: If the path escapes the root
        """
        relative = str(relative or "").lstrip("/\\")
        if "\x00" in relative:
            raise PathViolationError(repr(relative), "Path contains a null byte")
        joined = Path(os.path.normpath(self.root / relative))
        return self._contain(joined, display=relative or ".")

    def check(self, path: Union[str, Path]) -> Path:
        """
        Validate an absolute path found while traversing the root.

        Args:
            path: Absolute path, usually a directory child

        Returns:
            Canonical path guaranteed to be inside the root

        Raises:
            PathViolationError: If the path escapes the root
        """
        joined = Path(os.path.normpath(path))
        return self._contain(joined, display=str(path))

    def relativize(self, path: Path) -> str:
        """
        Express a canonical path relative to the canonical root.

        Returns:
            "/"-separated relative path, "." for the root itself
        """
        relative = path.relative_to(self.real_root).as_posix()
        return relative if relative not in ("", ".") else "."

    def is_root(self, path: Path) -> bool:
        """Check if a canonical path is the root itself."""
        return path == self.real_root

    def _contain(self, joined: Path, display: str) -> Path:
        """Canonicalize a normalized absolute path and check containment."""
        real_root = self.real_root

        if os.path.lexists(joined):
            candidate = self._canonical(joined, display)
        else:
            # Walk up to the first ancestor that exists
            ancestor = joined
            missing: list[str] = []
            while not os.path.lexists(ancestor):
                if ancestor.parent == ancestor:
                    raise PathViolationError(display, "No existing ancestor for path")
                missing.append(ancestor.name)
                ancestor = ancestor.parent

            real_ancestor = self._canonical(ancestor, display)
            if not self._is_within(real_ancestor, real_root):
                logger.warning(f"Path escapes root via ancestor {ancestor}: {display}")
                raise PathViolationError(display)

            candidate = real_ancestor.joinpath(*reversed(missing))

        if not self._is_within(candidate, real_root):
            logger.warning(f"Path escapes root {real_root}: {display}")
            raise PathViolationError(display)

        return candidate

    def _canonical(self, path: Path, display: str) -> Path:
        """Resolve every symlink along an existing path."""
        try:
            return path.resolve()
        except (OSError, RuntimeError) as e:
            raise PathViolationError(display, f"Cannot resolve path: {e}")

    def _is_within(self, path: Path, directory: Path) -> bool:
        """Check if path is within directory (component-wise)."""
        try:
            path.relative_to(directory)
            return True
        except ValueError:
            return False

    def __repr__(self) -> str:
        return f"PathSandbox(root={str(self.root)!r})"
