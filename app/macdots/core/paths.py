"""XDG-compliant path management for macdots.

This module provides standardized paths following the XDG Base Directory
Specification for macdots' own configuration, plus the default locations
of the bundle files it reads.

XDG defaults:
- Config: ~/.config/macdots/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "macdots"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/macdots/ (or XDG_CONFIG_HOME/macdots/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_settings_path() -> Path:
    """Get the settings file path.

    Returns:
        Path to ~/.config/macdots/settings.toml.
    """
    return get_config_dir() / "settings.toml"


def get_theme_path() -> Path:
    """Get the user theme override path.

    Returns:
        Path to ~/.config/macdots/theme.toml.
    """
    return get_config_dir() / "theme.toml"


# =============================================================================
# Bundle file defaults
# =============================================================================


def get_default_brewfile_path() -> Path:
    """Default Brewfile location (~/Brewfile)."""
    return Path.home() / "Brewfile"


def get_default_zshrc_path() -> Path:
    """Default zsh startup file location (~/.zshrc)."""
    return Path.home() / ".zshrc"


def get_default_alias_path() -> Path:
    """Default alias file location (~/.alias)."""
    return Path.home() / ".alias"


def get_default_netrc_path() -> Path:
    """Default network credentials file location (~/.netrc)."""
    return Path.home() / ".netrc"
