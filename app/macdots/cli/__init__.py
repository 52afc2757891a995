"""CLI package for macdots.

This package contains the Typer application and all subcommands.
"""

from macdots.cli.main import app

__all__ = ["app"]
