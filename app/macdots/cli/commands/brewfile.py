"""Brewfile commands.

Inspect, validate, format and edit the Homebrew Bundle manifest. macdots
never installs anything; `brew bundle` remains the consumer of the file.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from macdots.cli.display import create_entries_table, create_issues_table
from macdots.cli.types import KindChoice, OutputFormat, require_settings
from macdots.core.brewfile import (
    BrewfileError,
    BrewfileParseError,
    check_brewfile,
    dump_brewfile,
    parse_option_value,
    require_brewfile,
    save_brewfile,
)
from macdots.models.brewfile import Brewfile, BrewfileEntry, OptionValue
from macdots.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    help="Inspect and edit the Brewfile.",
    no_args_is_help=True,
)

FileOption = Annotated[
    Path | None,
    typer.Option(
        "--file",
        "-f",
        help="Brewfile to use (default: 'brewfile' setting).",
    ),
]


def _resolve_path(ctx: typer.Context, path: Path | None) -> Path:
    return path or require_settings(ctx).brewfile


def _save(brewfile: Brewfile, path: Path) -> None:
    try:
        save_brewfile(brewfile, path)
    except BrewfileError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


@app.command("list")
def list_entries(
    ctx: typer.Context,
    path: FileOption = None,
    kind: Annotated[
        KindChoice | None,
        typer.Option("--kind", "-k", help="Only show one directive kind.", case_sensitive=False),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", help="Output format.", case_sensitive=False),
    ] = OutputFormat.TABLE,
) -> None:
    """List taps, formulae and casks declared in the Brewfile."""
    brewfile_path = _resolve_path(ctx, path)
    brewfile = require_brewfile(brewfile_path)
    entries = brewfile.entries
    if kind is not None:
        entries = [e for e in entries if e.kind == kind.value]

    if output_format == OutputFormat.JSON:
        data = [e.model_dump(exclude_none=True) for e in entries]
        typer.echo(json.dumps(data, indent=2))
        return

    if not entries:
        print_info(f"No entries in {brewfile_path}.")
        return

    console.print(create_entries_table(entries, title=str(brewfile_path)))
    console.print(
        f"\n[dim]{len(brewfile.taps)} taps, {len(brewfile.brews)} formulae, "
        f"{len(brewfile.casks)} casks[/dim]"
    )


@app.command()
def check(
    ctx: typer.Context,
    path: FileOption = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Treat unknown directives as parse errors."),
    ] = False,
) -> None:
    """Validate the Brewfile.

    Reports malformed directives, packages listed before their tap,
    duplicates and unknown options. Exits with status 1 on errors.
    """
    brewfile = require_brewfile(_resolve_path(ctx, path), strict=strict)
    issues = check_brewfile(brewfile)

    if not issues:
        print_success(f"Brewfile OK ({len(brewfile.entries)} entries).")
        return

    console.print(create_issues_table(issues))
    errors = sum(1 for issue in issues if issue.is_error)
    warnings = len(issues) - errors
    console.print(f"\n[error]{errors} error(s)[/error], [warning]{warnings} warning(s)[/warning]")
    if errors:
        raise typer.Exit(code=1)


@app.command()
def fmt(
    ctx: typer.Context,
    path: FileOption = None,
    check_only: Annotated[
        bool,
        typer.Option("--check", help="Only report whether the file would change."),
    ] = False,
) -> None:
    """Rewrite directives in canonical form, keeping comments in place."""
    brewfile_path = _resolve_path(ctx, path)
    brewfile = require_brewfile(brewfile_path)
    original = brewfile_path.read_text(encoding="utf-8")
    formatted = dump_brewfile(brewfile)

    if formatted == original:
        print_success(f"{brewfile_path} is already formatted.")
        return

    if check_only:
        print_warning(f"{brewfile_path} would be reformatted.")
        raise typer.Exit(code=1)

    _save(brewfile, brewfile_path)
    print_success(f"Formatted {brewfile_path}.")


def _parse_options(raw_options: list[str]) -> dict[str, OptionValue]:
    options: dict[str, OptionValue] = {}
    for raw in raw_options:
        name, sep, value = raw.partition("=")
        if not sep or not name.strip():
            print_error(f"Invalid option '{raw}'. Use key=value, e.g. link=false.")
            raise typer.Exit(code=1)
        try:
            options[name.strip()] = parse_option_value(value.strip())
        except BrewfileParseError as e:
            print_error(f"Invalid value for option '{name}': {e}")
            raise typer.Exit(code=1) from e
    return options


@app.command()
def add(
    ctx: typer.Context,
    kind: Annotated[KindChoice, typer.Argument(help="Directive kind.", case_sensitive=False)],
    name: Annotated[str, typer.Argument(help="Tap ('org/repo'), formula or cask name.")],
    path: FileOption = None,
    option: Annotated[
        list[str] | None,
        typer.Option(
            "--option",
            "-o",
            help="Option as key=value in Brewfile syntax (repeatable), e.g. restart_service=true.",
        ),
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", help="Custom clone URL (taps only)."),
    ] = None,
    comment: Annotated[
        str | None,
        typer.Option("--comment", "-c", help="Trailing comment."),
    ] = None,
) -> None:
    """Add a directive, declaring its tap first when needed."""
    brewfile_path = _resolve_path(ctx, path)
    brewfile = require_brewfile(brewfile_path) if brewfile_path.exists() else Brewfile()

    try:
        entry = BrewfileEntry(
            kind=kind.value,
            name=name,
            url=url,
            options=_parse_options(option or []),
            comment=comment,
        )
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not brewfile.add_entry(entry):
        print_info(f"{kind.value} '{name}' is already in {brewfile_path}.")
        return

    _save(brewfile, brewfile_path)
    print_success(f"Added {kind.value} '{name}' to {brewfile_path}.")


@app.command()
def remove(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Tap, formula or cask name.")],
    path: FileOption = None,
    kind: Annotated[
        KindChoice | None,
        typer.Option("--kind", "-k", help="Only match this directive kind.", case_sensitive=False),
    ] = None,
) -> None:
    """Remove a directive from the Brewfile."""
    brewfile_path = _resolve_path(ctx, path)
    brewfile = require_brewfile(brewfile_path)

    removed = brewfile.remove_entry(name, kind.value if kind else None)
    if removed is None:
        print_error(f"'{name}' not found in {brewfile_path}.")
        raise typer.Exit(code=1)

    _save(brewfile, brewfile_path)
    print_success(f"Removed {removed.kind} '{removed.name}' from {brewfile_path}.")
    if removed.kind == "tap":
        dependents = [e for e in brewfile.entries if e.tap == removed.name.lower()]
        if dependents:
            names = ", ".join(f"{e.kind} {e.short_name}" for e in dependents)
            print_warning(f"Still used by: {names}")

