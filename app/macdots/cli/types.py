"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

from enum import Enum
from pathlib import Path

import typer

from macdots.core.settings import Settings, SettingsError, load_settings
from macdots.utils.formatting import print_error


class KindChoice(str, Enum):
    """Brewfile directive kinds for CLI commands."""

    TAP = "tap"
    BREW = "brew"
    CASK = "cask"


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def get_settings_path(ctx: typer.Context) -> Path | None:
    """Settings file passed with the global --settings option, if any."""
    obj = ctx.find_root().obj or {}
    return obj.get("settings_path")


def require_settings(ctx: typer.Context) -> Settings:
    """Load settings or exit with an error message.

    Args:
        ctx: Typer context carrying the global options.

    Returns:
        Loaded settings (defaults when no settings file exists).

    Raises:
        typer.Exit: If the settings file is invalid.
    """
    try:
        return load_settings(get_settings_path(ctx))
    except SettingsError as e:
        print_error(f"Failed to load settings: {e}")
        raise typer.Exit(code=1) from e
