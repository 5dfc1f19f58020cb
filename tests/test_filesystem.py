"""
Tests for the path sandbox, entry metadata, tree builder and lister.
"""

import os
import tempfile
from pathlib import Path

import pytest

from cloudpage.filesystem import (
    DirectoryLister,
    FileAccessError,
    GuessingMimeProbe,
    InvalidArgumentError,
    InvalidPathError,
    NullMimeProbe,
    PathSandbox,
    PathViolationError,
    SortKey,
    TreeBuilder,
    parse_sort,
    read_metadata,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def root(temp_dir):
    """A user root inside the temporary directory."""
    path = temp_dir / "root"
    path.mkdir()
    return path


@pytest.fixture
def outside(temp_dir):
    """A directory next to the root, holding a secret file."""
    path = temp_dir / "outside"
    path.mkdir()
    (path / "secret.txt").write_text("secret")
    return path


@pytest.fixture
def sandbox(root):
    return PathSandbox(root)


@pytest.fixture
def lister(sandbox):
    return DirectoryLister(sandbox, GuessingMimeProbe())


@pytest.fixture
def builder(sandbox):
    return TreeBuilder(sandbox, GuessingMimeProbe())


class FailingProbe:
    def probe_type(self, path):
        raise RuntimeError("probe exploded")


class TestPathSandbox:
    """Test PathSandbox."""

    def test_root_must_exist(self, temp_dir):
        """Test that a missing root is rejected."""
        with pytest.raises(InvalidPathError):
            PathSandbox(temp_dir / "missing")

    def test_root_must_be_directory(self, temp_dir):
        """Test that a file cannot be a root."""
        file_root = temp_dir / "file"
        file_root.write_text("")
        with pytest.raises(InvalidPathError):
            PathSandbox(file_root)

    @pytest.mark.parametrize("relative", ["", ".", None, "/", "a/.."])
    def test_root_aliases_resolve_to_root(self, root, sandbox, relative):
        """Test that empty and dot paths resolve to the root itself."""
        (root / "a").mkdir()
        assert sandbox.resolve(relative) == root.resolve()

    def test_existing_child(self, root, sandbox):
        """Test resolving an existing file."""
        (root / "docs").mkdir()
        (root / "docs" / "a.txt").write_text("a")

        assert sandbox.resolve("docs/a.txt") == (root / "docs" / "a.txt").resolve()

    @pytest.mark.parametrize(
        "relative", ["..", "../outside", "../../etc/passwd", "docs/../../outside"]
    )
    def test_dot_dot_escape_rejected(self, sandbox, outside, relative):
        """Test that .. segments leaving the root are rejected."""
        with pytest.raises(PathViolationError):
            sandbox.resolve(relative)

    def test_leading_slash_is_relative(self, root, sandbox):
        """Test that absolute-looking paths stay under the root."""
        assert sandbox.resolve("/etc/passwd") == root.resolve() / "etc" / "passwd"

    def test_sibling_with_common_prefix_rejected(self, temp_dir, sandbox):
        """Test that /root-evil is not considered inside /root."""
        (temp_dir / "root-evil").mkdir()
        with pytest.raises(PathViolationError):
            sandbox.resolve("../root-evil")

    def test_missing_path_inside_root(self, root, sandbox):
        """Test that not-yet-existing paths inside the root are accepted."""
        resolved = sandbox.resolve("new/deeper/file.txt")

        assert resolved == root.resolve() / "new" / "deeper" / "file.txt"
        assert resolved.is_relative_to(root.resolve())

    def test_symlink_escape_rejected(self, root, outside, sandbox):
        """Test that a symlink pointing outside the root is rejected."""
        os.symlink(outside / "secret.txt", root / "link.txt")

        with pytest.raises(PathViolationError):
            sandbox.resolve("link.txt")

    def test_missing_path_under_symlinked_ancestor_rejected(self, root, outside, sandbox):
        """Test that new paths below an escaping directory link are rejected."""
        os.symlink(outside, root / "escape")

        with pytest.raises(PathViolationError):
            sandbox.resolve("escape/new/file.txt")

    def test_dangling_symlink_escape_rejected(self, root, outside, sandbox):
        """Test that a dangling link to outside the root is rejected."""
        os.symlink(outside / "not-there.txt", root / "dangling")

        with pytest.raises(PathViolationError):
            sandbox.resolve("dangling")

    def test_symlink_inside_root_allowed(self, root, sandbox):
        """Test that links staying inside the root resolve to their target."""
        (root / "real").mkdir()
        os.symlink(root / "real", root / "alias")

        assert sandbox.resolve("alias") == (root / "real").resolve()

    def test_symlinked_root(self, temp_dir, root):
        """Test that a root reached through a symlink still works."""
        (root / "a.txt").write_text("a")
        os.symlink(root, temp_dir / "root-link")
        sandbox = PathSandbox(temp_dir / "root-link")

        assert sandbox.resolve("a.txt") == (root / "a.txt").resolve()
        assert sandbox.relativize(sandbox.resolve("a.txt")) == "a.txt"

    def test_null_byte_rejected(self, sandbox):
        """Test that null bytes never reach the filesystem."""
        with pytest.raises(PathViolationError):
            sandbox.resolve("a\x00b")

    def test_check_absolute_child(self, root, outside, sandbox):
        """Test validating absolute paths found while walking."""
        (root / "a.txt").write_text("a")
        assert sandbox.check(root / "a.txt") == (root / "a.txt").resolve()

        with pytest.raises(PathViolationError):
            sandbox.check(outside / "secret.txt")

    def test_relativize(self, root, sandbox):
        """Test root-relative paths use slashes and '.' for the root."""
        (root / "a" / "b").mkdir(parents=True)

        assert sandbox.relativize(sandbox.resolve("")) == "."
        assert sandbox.relativize(sandbox.resolve("a/b")) == "a/b"


class TestEntryMetadata:
    """Test read_metadata."""

    def test_file_metadata(self, root):
        """Test size and mime type of a regular file."""
        (root / "info.txt").write_text("12345")

        metadata = read_metadata(root / "info.txt", GuessingMimeProbe())
        assert metadata.size == 5
        assert metadata.mime_type == "text/plain"

    def test_directory_metadata(self, root):
        """Test that directories report size 0 and no mime type."""
        metadata = read_metadata(root, GuessingMimeProbe())
        assert metadata.size == 0
        assert metadata.mime_type is None

    def test_unknown_mime_type_is_none(self, root):
        """Test that an undetectable type is None, not an error."""
        (root / "blob.unknownext").write_bytes(b"\x00\x01")

        metadata = read_metadata(root / "blob.unknownext", GuessingMimeProbe())
        assert metadata.size == 2
        assert metadata.mime_type is None

    def test_probe_failure_is_unknown_type(self, root):
        """Test that a failing probe yields None."""
        (root / "a.txt").write_text("a")

        metadata = read_metadata(root / "a.txt", FailingProbe())
        assert metadata.mime_type is None

    def test_missing_entry_raises_access_error(self, root):
        """Test that an entry vanishing before stat is a FileAccessError."""
        with pytest.raises(FileAccessError):
            read_metadata(root / "gone.txt", GuessingMimeProbe())


class TestTreeBuilder:
    """Test TreeBuilder."""

    def test_empty_folder(self, sandbox, builder):
        """Test the tree of an empty root."""
        tree = builder.build(sandbox.resolve(""))

        assert tree.path == "."
        assert tree.children == []
        assert tree.files == []

    def test_nested_folders_with_files(self, root, sandbox, builder):
        """Test that the whole tree is built with relative paths."""
        (root / "sub" / "deeper").mkdir(parents=True)
        (root / "root.txt").write_text("root")
        (root / "sub" / "child.txt").write_text("child")
        (root / "sub" / "deeper" / "leaf.md").write_text("leaf")

        tree = builder.build(sandbox.resolve(""))

        assert [f.name for f in tree.files] == ["root.txt"]
        assert tree.files[0].path == "root.txt"
        assert tree.files[0].size == 4

        sub = tree.children[0]
        assert sub.name == "sub"
        assert sub.path == "sub"
        assert [f.path for f in sub.files] == ["sub/child.txt"]

        deeper = sub.children[0]
        assert deeper.path == "sub/deeper"
        assert deeper.files[0].path == "sub/deeper/leaf.md"
        assert tree.find("sub/deeper") == deeper

    def test_subtree(self, root, sandbox, builder):
        """Test building from a subfolder keeps root-relative paths."""
        (root / "docs").mkdir()
        (root / "docs" / "readme.md").write_text("# Readme")

        tree = builder.build(sandbox.resolve("docs"))

        assert tree.name == "docs"
        assert tree.path == "docs"
        assert tree.files[0].path == "docs/readme.md"

    def test_children_sorted_case_insensitively(self, root, sandbox, builder):
        """Test deterministic ordering of folders and files."""
        for name in ("b", "A", "c"):
            (root / name).mkdir()
        for name in ("Zed.txt", "alpha.txt"):
            (root / name).write_text("")

        tree = builder.build(sandbox.resolve(""))

        assert [c.name for c in tree.children] == ["A", "b", "c"]
        assert [f.name for f in tree.files] == ["alpha.txt", "Zed.txt"]

    def test_names_differing_in_case_have_fixed_order(self, root, sandbox, builder):
        """Test that names equal apart from case are ordered by exact spelling."""
        for name in ("b.txt", "B.txt", "a.txt"):
            (root / name).write_text("")

        tree = builder.build(sandbox.resolve(""))

        assert [f.name for f in tree.files] == ["a.txt", "B.txt", "b.txt"]

    def test_dangling_child_is_access_failure(self, root, sandbox, builder):
        """Test that a link to a missing file fails the build like a listing does."""
        (root / "sub").mkdir()
        os.symlink(root / "gone.txt", root / "sub" / "dangling.txt")

        with pytest.raises(FileAccessError):
            builder.build(sandbox.resolve(""))

    def test_escaping_child_aborts_build(self, root, outside, sandbox, builder):
        """Test that a symlink out of the root found mid-walk aborts the build."""
        (root / "sub").mkdir()
        os.symlink(outside, root / "sub" / "escape")

        with pytest.raises(PathViolationError):
            builder.build(sandbox.resolve(""))

    def test_symlink_cycle_becomes_leaf(self, root, sandbox, builder):
        """Test that a link back to an ancestor is not descended again."""
        (root / "sub").mkdir()
        (root / "sub" / "a.txt").write_text("a")
        os.symlink(root / "sub", root / "sub" / "loop")

        tree = builder.build(sandbox.resolve(""))

        sub = tree.children[0]
        loop = sub.children[0]
        assert loop.name == "loop"
        assert loop.path == "sub"
        assert loop.children == []
        assert loop.files == []

    def test_missing_start_raises(self, sandbox, builder):
        """Test building from a folder that does not exist."""
        with pytest.raises(InvalidPathError):
            builder.build(sandbox.resolve("nope"))


class TestParseSort:
    """Test sort token parsing."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            (None, (SortKey.NAME, False)),
            ("", (SortKey.NAME, False)),
            ("name", (SortKey.NAME, False)),
            ("name,asc", (SortKey.NAME, False)),
            ("name,desc", (SortKey.NAME, True)),
            ("name,DESC", (SortKey.NAME, True)),
            ("size,desc", (SortKey.NAME, True)),
            ("bogus", (SortKey.NAME, False)),
            (",desc", (SortKey.NAME, True)),
        ],
    )
    def test_parse(self, token, expected):
        assert parse_sort(token) == expected


class TestDirectoryLister:
    """Test DirectoryLister."""

    def _touch(self, root, names):
        for name in names:
            (root / name).write_text(name)

    def test_empty_folder(self, lister):
        """Test listing an empty folder."""
        page = lister.list("", page=0, size=10)

        assert page.total_elements == 0
        assert page.total_pages == 0
        assert page.page_number == 0
        assert page.content == []

    def test_files_and_folders(self, root, lister):
        """Test that directories and files are classified."""
        (root / "folder1").mkdir()
        self._touch(root, ["file1.txt"])

        page = lister.list("", page=0, size=10)

        assert page.total_elements == 2
        file, folder = page.content
        assert folder.name == "folder1"
        assert folder.is_directory is True
        assert folder.size == 0
        assert folder.mime_type is None
        assert file.is_directory is False
        assert file.size == len("file1.txt")
        assert file.mime_type == "text/plain"

    def test_pagination(self, root, lister):
        """Test page windows and totals."""
        self._touch(root, [f"file{i:02d}.txt" for i in range(23)])

        last = lister.list("", page=2, size=10)
        assert last.total_elements == 23
        assert last.total_pages == 3
        assert len(last.content) == 3
        assert last.content[0].name == "file20.txt"

    def test_page_beyond_end_is_empty(self, root, lister):
        """Test that a page past the end is empty but keeps accurate totals."""
        self._touch(root, [f"f{i}.txt" for i in range(5)])

        page = lister.list(".", page=2, size=10)

        assert page.content == []
        assert page.total_elements == 5
        assert page.total_pages == 1
        assert page.page_number == 2

    def test_sort_ascending_and_descending(self, root, lister):
        """Test case-insensitive name sorting in both directions."""
        self._touch(root, ["b.txt", "a.txt", "c.txt"])

        ascending = lister.list("", page=0, size=10, sort="name,asc")
        descending = lister.list("", page=0, size=10, sort="name,desc")

        assert [i.name for i in ascending.content] == ["a.txt", "b.txt", "c.txt"]
        assert [i.name for i in descending.content] == ["c.txt", "b.txt", "a.txt"]

    def test_sort_is_case_insensitive(self, root, lister):
        """Test that upper-case names do not sort before lower-case ones."""
        self._touch(root, ["Zebra.txt", "apple.txt", "Banana.txt"])

        page = lister.list("", page=0, size=10, sort="name,asc")

        assert [i.name for i in page.content] == ["apple.txt", "Banana.txt", "Zebra.txt"]

    def test_names_differing_in_case_have_fixed_order(self, root, lister):
        self._touch(root, ["b.txt", "B.txt"])

        ascending = lister.list("", page=0, size=10, sort="name,asc")
        descending = lister.list("", page=0, size=10, sort="name,desc")

        assert [i.name for i in ascending.content] == ["B.txt", "b.txt"]
        assert [i.name for i in descending.content] == ["b.txt", "B.txt"]

    @pytest.mark.parametrize("sort", [None, "", "unknown,asc"])
    def test_default_sort_is_name_ascending(self, root, lister, sort):
        """Test that missing or unknown sort tokens sort by name ascending."""
        self._touch(root, ["zebra.txt", "apple.txt"])

        page = lister.list("", page=0, size=10, sort=sort)

        assert [i.name for i in page.content] == ["apple.txt", "zebra.txt"]

    def test_sort_applies_before_paging(self, root, lister):
        """Test that order does not depend on the page size."""
        self._touch(root, ["d.txt", "b.txt", "a.txt", "c.txt"])

        first = lister.list("", page=0, size=2, sort="name,desc")
        second = lister.list("", page=1, size=2, sort="name,desc")

        names = [i.name for i in first.content + second.content]
        assert names == ["d.txt", "c.txt", "b.txt", "a.txt"]

    def test_subfolder_paths(self, root, lister):
        """Test listing a subfolder returns root-relative paths."""
        (root / "sub").mkdir()
        (root / "sub" / "sub.txt").write_text("sub")
        (root / "root.txt").write_text("root")

        page = lister.list("sub", page=0, size=10)

        assert page.total_elements == 1
        assert page.content[0].path == "sub/sub.txt"

    @pytest.mark.parametrize("page,size", [(-1, 10), (0, 0), (0, -5)])
    def test_invalid_arguments(self, lister, page, size):
        """Test that bad paging parameters are rejected."""
        with pytest.raises(InvalidArgumentError):
            lister.list("", page=page, size=size)

    def test_max_page_size(self, sandbox):
        """Test that sizes above the configured maximum are rejected."""
        lister = DirectoryLister(sandbox, NullMimeProbe(), max_page_size=50)
        with pytest.raises(InvalidArgumentError):
            lister.list("", page=0, size=51)

    def test_missing_folder(self, lister):
        """Test listing a folder that does not exist."""
        with pytest.raises(InvalidPathError):
            lister.list("nope", page=0, size=10)

    def test_file_is_not_a_folder(self, root, lister):
        """Test listing a regular file."""
        (root / "a.txt").write_text("a")
        with pytest.raises(InvalidPathError):
            lister.list("a.txt", page=0, size=10)

    def test_traversal_rejected(self, lister, outside):
        """Test listing outside the root."""
        with pytest.raises(PathViolationError):
            lister.list("../outside", page=0, size=10)

    def test_escaping_child_rejected(self, root, outside, lister):
        """Test that a child linking out of the root fails the listing."""
        os.symlink(outside / "secret.txt", root / "leak.txt")

        with pytest.raises(PathViolationError):
            lister.list("", page=0, size=10)

    def test_dangling_child_is_access_failure(self, root, lister):
        """Test that a link to a missing file inside the root surfaces as an access failure."""
        os.symlink(root / "gone.txt", root / "dangling.txt")

        with pytest.raises(FileAccessError):
            lister.list("", page=0, size=10)
