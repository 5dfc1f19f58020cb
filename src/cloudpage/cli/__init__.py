"""Command line interface for Cloudpage."""

from cloudpage.cli.main import cli, main

__all__ = ["cli", "main"]
