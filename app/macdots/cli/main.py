"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from macdots import __version__
from macdots.cli.commands import brewfile, config, nav, shell
from macdots.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="macdots",
    help="Tooling for a macOS development-environment bundle.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"macdots version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich.

    WARNING by default, DEBUG with --verbose, ERROR with --quiet.
    """
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=verbose)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    settings_path: Annotated[
        Path | None,
        typer.Option(
            "--settings",
            help="Settings file to use instead of ~/.config/macdots/settings.toml.",
            envvar="MACDOTS_SETTINGS",
        ),
    ] = None,
) -> None:
    """macdots - Tooling for a macOS development-environment bundle.

    Inspect the Brewfile, zsh startup file and alias file of your
    dotfiles, and jump between directories with an interactive browser.
    """
    configure_logging(verbose, quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["settings_path"] = settings_path


# Register commands
app.add_typer(brewfile.app, name="brewfile")
app.add_typer(shell.app, name="shell")
app.add_typer(config.app, name="config")
app.command(
    name="nav",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)(nav.nav)
app.command(name="shell-init")(nav.shell_init)


if __name__ == "__main__":
    app()
