"""CLI commands for macdots.

This package contains all subcommand implementations.
"""

from macdots.cli.commands import brewfile, config, nav, shell

__all__ = ["brewfile", "config", "nav", "shell"]
