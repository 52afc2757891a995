"""macdots settings and their TOML storage.

Settings tell macdots where the bundle files live, which directory
browser the path selector launches, and which environment variables are
filled from the credential store.

Configuration is stored in ~/.config/macdots/settings.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from macdots.core.paths import (
    get_default_alias_path,
    get_default_brewfile_path,
    get_default_netrc_path,
    get_default_zshrc_path,
    get_settings_path,
)

logger = logging.getLogger(__name__)

DEFAULT_BROWSER = "walk"
DEFAULT_FUNCTION_NAME = "lk"

# Environment variable overriding the configured browser
BROWSER_ENV_VAR = "MACDOTS_BROWSER"


class Settings(BaseModel):
    """User settings for macdots.

    Attributes:
        brewfile: Homebrew Bundle manifest.
        zshrc: zsh startup file sourced to build a session.
        alias_file: Alias file (normally sourced by the startup file).
        netrc: netrc file backing the credential provider.
        browser: Interactive directory browser launched by the path selector.
        function_name: Name of the shell function emitted by shell-init.
        skip_sources: Glob patterns of sourced files that are not followed
            (framework loaders such as oh-my-zsh.sh).
        credentials: Environment variable name -> credential key.
    """

    model_config = ConfigDict(extra="forbid")

    brewfile: Annotated[Path, Field(default_factory=get_default_brewfile_path)]
    zshrc: Annotated[Path, Field(default_factory=get_default_zshrc_path)]
    alias_file: Annotated[Path, Field(default_factory=get_default_alias_path)]
    netrc: Annotated[Path, Field(default_factory=get_default_netrc_path)]
    browser: Annotated[str, Field(min_length=1, description="Directory browser command")] = (
        DEFAULT_BROWSER
    )
    function_name: Annotated[
        str,
        Field(pattern=r"^[A-Za-z_][A-Za-z0-9_-]*$", description="Shell function name"),
    ] = DEFAULT_FUNCTION_NAME
    skip_sources: Annotated[list[str], Field(default_factory=lambda: ["*/oh-my-zsh.sh"])]
    credentials: Annotated[dict[str, str], Field(default_factory=dict)]

    @field_validator("brewfile", "zshrc", "alias_file", "netrc", mode="after")
    @classmethod
    def expand_home(cls, value: Path) -> Path:
        """Expand a leading ~ in configured paths."""
        return value.expanduser()

    @property
    def effective_browser(self) -> str:
        """Browser command, honoring the MACDOTS_BROWSER override."""
        return os.environ.get(BROWSER_ENV_VAR) or self.browser


# Keys that can be changed with `macdots config set`
SETTABLE_KEYS = ("brewfile", "zshrc", "alias_file", "netrc", "browser", "function_name")


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a TOML file.

    A missing file is not an error: defaults are returned.

    Args:
        path: Path to the settings file. If None, uses the default path.

    Returns:
        Validated Settings object.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the file cannot be read or the content is invalid.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        logger.debug("No settings file at %s, using defaults", settings_path)
        return Settings()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings content: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The Settings object to save.
        path: Path to save the settings. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = _settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path


def update_setting(settings: Settings, key: str, value: str) -> Settings:
    """Return a copy of settings with one key changed and re-validated.

    Raises:
        SettingsError: If the key is not settable or the value is invalid.
    """
    if key not in SETTABLE_KEYS:
        msg = f"Unknown setting '{key}'. Settable keys: {', '.join(SETTABLE_KEYS)}"
        raise SettingsError(msg)
    data = settings.model_dump()
    data[key] = value
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid value for '{key}': {e}") from e


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings to a dictionary for TOML serialization.

    Only values that differ from the defaults are written, to keep the
    file clean.
    """
    defaults = Settings()
    result: dict[str, Any] = {}
    for key in ("brewfile", "zshrc", "alias_file", "netrc"):
        value: Path = getattr(settings, key)
        if value != getattr(defaults, key):
            result[key] = str(value)
    if settings.browser != defaults.browser:
        result["browser"] = settings.browser
    if settings.function_name != defaults.function_name:
        result["function_name"] = settings.function_name
    if settings.skip_sources != defaults.skip_sources:
        result["skip_sources"] = list(settings.skip_sources)
    if settings.credentials:
        result["credentials"] = dict(settings.credentials)
    return result
