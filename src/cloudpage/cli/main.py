"""
Command line front end for Cloudpage storage.

Browse and manage the files under a user's root folder from a terminal.
Every command goes through the same sandbox as any other caller, so
paths outside the root are rejected.
"""

import functools
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from cloudpage import __version__
from cloudpage.filesystem import (
    AlreadyExistsError,
    EntryNotFoundError,
    InvalidArgumentError,
    InvalidPathError,
    PathViolationError,
    StorageError,
    TreeNode,
    UserFileSystem,
)
from cloudpage.settings import CloudpageConfig

# Load environment variables
load_dotenv()

console = Console()
err_console = Console(stderr=True)

EXIT_REJECTED = 1
EXIT_ABSENT = 2
EXIT_FAILED = 3


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Setup rich logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
        force=True,
    )


def exit_code_for(error: StorageError) -> int:
    """Map a storage error to a process exit code."""
    if isinstance(error, (PathViolationError, InvalidArgumentError, AlreadyExistsError)):
        return EXIT_REJECTED
    if isinstance(error, (InvalidPathError, EntryNotFoundError)):
        return EXIT_ABSENT
    return EXIT_FAILED


def handle_storage_errors(func):
    """Print storage errors and exit with a code telling rejected from absent."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StorageError as e:
            err_console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            sys.exit(exit_code_for(e))

    return wrapper


def human_size(size: int) -> str:
    """Format a byte count for display."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def render_tree(node: TreeNode, branch: Optional[Tree] = None) -> Tree:
    """Convert a TreeNode into a rich Tree."""
    label = f"[bold blue]{escape(node.name)}/[/bold blue] [dim]{escape(node.path)}[/dim]"
    tree = Tree(label) if branch is None else branch.add(label)
    for child in node.children:
        render_tree(child, tree)
    for entry in node.files:
        mime = f" [dim]{escape(entry.mime_type)}[/dim]" if entry.mime_type else ""
        tree.add(f"{escape(entry.name)} [green]{human_size(entry.size)}[/green]{mime}")
    return tree


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--root",
    "-r",
    envvar="CLOUDPAGE_ROOT",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Root folder to operate in (env: CLOUDPAGE_ROOT)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML or JSON configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, root: Optional[Path], config_path: Optional[Path], verbose: bool):
    """Cloudpage - sandboxed per-user file storage."""
    try:
        config = (
            CloudpageConfig.from_file(config_path)
            if config_path
            else CloudpageConfig.from_env()
        )
    except (FileNotFoundError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint="--config")

    if root is not None:
        config = config.model_copy(update={"root": root.expanduser().absolute()})

    setup_logging(verbose, config.log_level)
    ctx.obj = config


def get_filesystem(ctx) -> UserFileSystem:
    """Build the storage facade for the configured root."""
    config: CloudpageConfig = ctx.obj
    if config.root is None:
        raise click.UsageError("No root folder configured (use --root or CLOUDPAGE_ROOT)")
    return UserFileSystem(config.root, config=config.storage)


@cli.command()
@click.argument("path", default="")
@click.pass_context
@handle_storage_errors
def tree(ctx, path: str):
    """
    Show the full folder tree.

    Examples:

        cloudpage -r ~/storage tree

        cloudpage -r ~/storage tree docs
    """
    fs = get_filesystem(ctx)
    console.print(render_tree(fs.get_folder_tree(path or None)))


@cli.command(name="ls")
@click.argument("path", default="")
@click.option("--page", "-p", type=int, default=0, help="Zero-based page index")
@click.option("--size", "-n", type=int, default=None, help="Page size")
@click.option("--sort", "-s", default=None, help='Sort token, e.g. "name,desc"')
@click.pass_context
@handle_storage_errors
def list_folder(ctx, path: str, page: int, size: Optional[int], sort: Optional[str]):
    """
    List one page of a folder.

    Examples:

        cloudpage -r ~/storage ls

        cloudpage -r ~/storage ls docs --page 1 --size 10 --sort name,desc
    """
    fs = get_filesystem(ctx)
    result = fs.get_folder_content_page(path, page=page, size=size, sort=sort)

    table = Table(title=escape(f"/{path.strip('/')}"))
    table.add_column("Name")
    table.add_column("Path", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Type")
    for item in result.content:
        if item.is_directory:
            table.add_row(
                f"[bold blue]{escape(item.name)}/[/bold blue]", escape(item.path), "", "folder"
            )
        else:
            table.add_row(
                escape(item.name),
                escape(item.path),
                human_size(item.size),
                escape(item.mime_type or ""),
            )
    console.print(table)
    console.print(
        f"[dim]Page {result.page_number + 1} of {max(result.total_pages, 1)} "
        f"({result.total_elements} entries)[/dim]"
    )


@cli.command()
@click.argument("parent")
@click.argument("name")
@click.pass_context
@handle_storage_errors
def mkdir(ctx, parent: str, name: str):
    """Create folder NAME inside PARENT ("" for the root)."""
    fs = get_filesystem(ctx)
    created = fs.create_folder(parent, name)
    console.print(f"[green]Created[/green] {escape(fs.sandbox.relativize(created))}")


@cli.command()
@click.argument("path")
@click.pass_context
@handle_storage_errors
def rmdir(ctx, path: str):
    """Delete a folder and everything in it."""
    get_filesystem(ctx).delete_folder(path)
    console.print(f"[green]Deleted[/green] {escape(path)}")


@cli.command()
@click.argument("source")
@click.argument("target")
@click.pass_context
@handle_storage_errors
def mv(ctx, source: str, target: str):
    """Rename or move SOURCE to TARGET (the parent of TARGET must exist)."""
    fs = get_filesystem(ctx)
    moved = fs.rename_or_move_file(source, target)
    console.print(
        f"[green]Moved[/green] {escape(source)} -> {escape(fs.sandbox.relativize(moved))}"
    )


@cli.command()
@click.argument("folder")
@click.argument("file", type=click.File("rb"))
@click.option("--name", default=None, help="Stored file name (default: local name)")
@click.pass_context
@handle_storage_errors
def upload(ctx, folder: str, file, name: Optional[str]):
    """Copy a local FILE into FOLDER, replacing any file with the same name."""
    fs = get_filesystem(ctx)
    stored_name = name or Path(file.name).name
    written = fs.upload_file(folder, stored_name, file)
    console.print(f"[green]Uploaded[/green] {escape(fs.sandbox.relativize(written))}")


@cli.command()
@click.argument("path")
@click.pass_context
@handle_storage_errors
def rm(ctx, path: str):
    """Delete a file (succeeds if it is already gone)."""
    get_filesystem(ctx).delete_file(path)
    console.print(f"[green]Deleted[/green] {escape(path)}")


@cli.command()
@click.argument("path")
@click.option("--encoding", default=None, help="Text encoding")
@click.pass_context
@handle_storage_errors
def cat(ctx, path: str, encoding: Optional[str]):
    """Print a file's content."""
    content = get_filesystem(ctx).read_file_content(path, encoding=encoding)
    click.echo(content, nl=False)


@cli.command()
@click.argument("path")
@click.pass_context
@handle_storage_errors
def stat(ctx, path: str):
    """Show the size, ETag and modification time of a file."""
    resource = get_filesystem(ctx).load_as_resource(path)
    table = Table(show_header=False)
    table.add_row("Name", escape(resource.filename))
    table.add_row("Size", f"{resource.size} bytes")
    table.add_row("ETag", resource.etag)
    table.add_row("Last modified", str(resource.last_modified))
    console.print(table)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
