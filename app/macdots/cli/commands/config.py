"""Settings commands.

View and change ~/.config/macdots/settings.toml, including the bindings
from environment variables to credential keys.
"""

from typing import Annotated

import typer
from rich.markup import escape

from macdots.cli.types import get_settings_path, require_settings
from macdots.core.paths import get_settings_path as default_settings_path
from macdots.core.settings import (
    BROWSER_ENV_VAR,
    Settings,
    SettingsError,
    save_settings,
    update_setting,
)
from macdots.utils.formatting import console, create_table, print_error, print_info, print_success

app = typer.Typer(
    help="View and change macdots settings.",
    no_args_is_help=True,
)


def _save(ctx: typer.Context, settings: Settings) -> None:
    try:
        path = save_settings(settings, get_settings_path(ctx))
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_info(f"Saved {path}")


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective settings."""
    settings = require_settings(ctx)

    table = create_table("Settings", "Key", "Value")
    table.add_row("brewfile", escape(str(settings.brewfile)))
    table.add_row("zshrc", escape(str(settings.zshrc)))
    table.add_row("alias_file", escape(str(settings.alias_file)))
    table.add_row("netrc", escape(str(settings.netrc)))
    browser = settings.effective_browser
    if browser != settings.browser:
        browser = f"{browser} [muted](from {BROWSER_ENV_VAR})[/muted]"
    table.add_row("browser", browser)
    table.add_row("function_name", settings.function_name)
    table.add_row("skip_sources", escape(", ".join(settings.skip_sources) or "-"))
    console.print(table)

    if settings.credentials:
        bindings = create_table("Credential Bindings", "Variable", "Key")
        for variable, key in settings.credentials.items():
            bindings.add_row(variable, escape(key))
        console.print(bindings)


@app.command()
def path(ctx: typer.Context) -> None:
    """Print the settings file path."""
    typer.echo(str(get_settings_path(ctx) or default_settings_path()))


@app.command("set")
def set_value(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name, e.g. browser.")],
    value: Annotated[str, typer.Argument(help="New value.")],
) -> None:
    """Change a setting."""
    settings = require_settings(ctx)
    try:
        updated = update_setting(settings, key, value)
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    _save(ctx, updated)
    print_success(f"{key} = {getattr(updated, key)}")


@app.command()
def bind(
    ctx: typer.Context,
    variable: Annotated[str, typer.Argument(help="Environment variable to export.")],
    key: Annotated[
        str,
        typer.Argument(help="Credential key, e.g. 'kafka.local:password'."),
    ],
) -> None:
    """Export VARIABLE from the credential store at session start."""
    if not variable.isidentifier():
        print_error(f"Invalid variable name '{variable}'")
        raise typer.Exit(code=1)

    settings = require_settings(ctx)
    credentials = {**settings.credentials, variable: key}
    _save(ctx, settings.model_copy(update={"credentials": credentials}))
    print_success(f"{variable} <- {key}")


@app.command()
def unbind(
    ctx: typer.Context,
    variable: Annotated[str, typer.Argument(help="Environment variable to unbind.")],
) -> None:
    """Remove a credential binding."""
    settings = require_settings(ctx)
    if variable not in settings.credentials:
        print_error(f"No credential binding for {variable}")
        raise typer.Exit(code=1)

    credentials = {k: v for k, v in settings.credentials.items() if k != variable}
    _save(ctx, settings.model_copy(update={"credentials": credentials}))
    print_success(f"Removed binding for {variable}")
