"""CLI package for podlists."""

from podlists.cli.main import main

__all__ = ["main"]
