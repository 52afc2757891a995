"""Shell configuration commands.

Shows what an interactive session ends up with after sourcing the zsh
startup file or the alias file: aliases, variables, theme and plugins.
Nothing in the files is executed.
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from macdots.cli.display import create_aliases_table, create_variables_table
from macdots.cli.types import OutputFormat, require_settings
from macdots.core.credentials import CredentialError
from macdots.core.session import Session, bootstrap_session
from macdots.core.shellrc import ShellConfigError
from macdots.utils.formatting import console, mask_secret, print_error, print_info, print_warning

app = typer.Typer(
    help="Inspect the zsh startup and alias files.",
    no_args_is_help=True,
)


@app.command()
def aliases(
    ctx: typer.Context,
    path: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="File to source (default: 'alias_file' setting)."),
    ] = None,
    search: Annotated[
        str | None,
        typer.Option("--search", "-s", help="Only show aliases whose name or command matches."),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """Show the effective alias table after sourcing the alias file.

    Later definitions of the same alias override earlier ones, as they
    do in the shell.
    """
    settings = require_settings(ctx)
    alias_path = path or settings.alias_file
    if not alias_path.is_file():
        print_error(f"Alias file not found: {alias_path}")
        raise typer.Exit(code=1)

    session = Session.from_process(skip_sources=settings.skip_sources)
    try:
        session.source(alias_path)
    except ShellConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    table = session.aliases
    if search:
        needle = search.lower()
        table = {k: v for k, v in table.items() if needle in k.lower() or needle in v.lower()}

    if output_format == OutputFormat.JSON:
        typer.echo(json.dumps(table, indent=2))
        return

    if not table:
        print_info("No aliases found.")
        return
    console.print(create_aliases_table(table))
    console.print(f"\n[dim]{len(table)} alias(es)[/dim]")


@app.command()
def env(
    ctx: typer.Context,
    path: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Startup file to source (default: 'zshrc' setting)."),
    ] = None,
    show_secrets: Annotated[
        bool,
        typer.Option("--show-secrets", help="Show credential values in clear text."),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """Show the session a zsh startup would produce.

    Lists variables set by the startup file (and files it sources),
    credential-backed variables, the oh-my-zsh theme and plugins, and
    statements that were not evaluated.
    """
    settings = require_settings(ctx)
    if path is not None:
        settings = settings.model_copy(update={"zshrc": path})
    if not settings.zshrc.is_file():
        print_error(f"Startup file not found: {settings.zshrc}")
        raise typer.Exit(code=1)

    try:
        session = bootstrap_session(settings)
    except (ShellConfigError, CredentialError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        _print_json(session, show_secrets)
        return

    console.print(create_variables_table(session, show_secrets=show_secrets))
    console.print(f"\nTheme: [info]{session.theme or '-'}[/info]")
    console.print(f"Plugins: [info]{', '.join(session.plugins) or '-'}[/info]")
    console.print(
        f"[dim]{len(session.aliases)} alias(es), {len(session.functions)} function(s), "
        f"{len(session.sourced)} file(s) sourced[/dim]"
    )
    if session.unresolved:
        print_warning(f"{len(session.unresolved)} statement(s) were not evaluated:")
        for statement in session.unresolved:
            location = escape(statement.location)
            console.print(f"  [muted]{location}[/muted]  {escape(statement.text)}")


def _print_json(session: Session, show_secrets: bool) -> None:
    """Print the session as JSON for scripting."""
    variables: dict[str, object] = {}
    for name, location in session.definitions.items():
        if name in session.arrays:
            variables[name] = session.arrays[name]
            continue
        value = session.lookup(name) or ""
        if location.startswith("credential:") and not show_secrets:
            value = mask_secret(value)
        variables[name] = value

    data = {
        "variables": variables,
        "theme": session.theme,
        "plugins": session.plugins,
        "aliases": session.aliases,
        "functions": sorted(session.functions),
        "sourced": [str(p) for p in session.sourced],
        "unresolved": [
            {"location": s.location, "text": s.text} for s in session.unresolved
        ],
    }
    typer.echo(json.dumps(data, indent=2))
