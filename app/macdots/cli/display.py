"""Shared Rich display functions for the bundle data.

Provides reusable table builders for Brewfile entries, check findings,
alias tables and session variables.
"""

from rich.markup import escape
from rich.table import Table

from macdots.core.brewfile import format_value
from macdots.core.session import Session
from macdots.models.brewfile import BrewfileEntry, BrewfileIssue
from macdots.utils.formatting import create_table, mask_secret


def create_entries_table(entries: list[BrewfileEntry], title: str = "Brewfile") -> Table:
    """Create a table of Brewfile directives.

    Each kind is styled distinctly (tap, brew, cask) and options are
    rendered in Brewfile syntax.

    Args:
        entries: Entries to display, in file order.
        title: Table title.

    Returns:
        Rich Table configured for entry display.
    """
    table = create_table(title, "Kind", "Name", "Options", "Comment")
    for entry in entries:
        options = ", ".join(f"{k}: {format_value(v)}" for k, v in entry.options.items())
        if entry.url:
            options = f"url: {entry.url}" + (f", {options}" if options else "")
        if entry.condition:
            options = f"{options} {entry.condition}".strip()
        table.add_row(
            f"[{entry.kind}]{entry.kind}[/{entry.kind}]",
            escape(entry.name),
            f"[muted]{escape(options)}[/muted]",
            f"[muted]{escape(entry.comment or '')}[/muted]",
        )
    return table


def create_issues_table(issues: list[BrewfileIssue]) -> Table:
    """Create a table of Brewfile check findings.

    Args:
        issues: Findings in line order.

    Returns:
        Rich Table with Line, Severity and Message columns.
    """
    table = create_table("Brewfile Check", "Line", "Severity", "Message")
    for issue in issues:
        style = "error" if issue.is_error else "warning"
        table.add_row(
            str(issue.line_number),
            f"[{style}]{issue.severity.value}[/{style}]",
            escape(issue.message),
        )
    return table


def create_aliases_table(aliases: dict[str, str]) -> Table:
    """Create a table of the effective alias table."""
    table = create_table("Aliases", "Alias", "Command")
    for name, command in aliases.items():
        table.add_row(f"[alias]{escape(name)}[/alias]", escape(command))
    return table


def create_variables_table(session: Session, show_secrets: bool = False) -> Table:
    """Create a table of variables defined while sourcing.

    Variables filled from the credential store are masked unless
    show_secrets is set.

    Args:
        session: Bootstrapped session.
        show_secrets: Show credential values in clear text.

    Returns:
        Rich Table with Name, Value, Exported and Defined At columns.
    """
    table = create_table("Environment", "Name", "Value", "Exported", "Defined At")
    for name, location in session.definitions.items():
        if name in session.arrays:
            value = "(" + " ".join(session.arrays[name]) + ")"
        else:
            value = session.lookup(name) or ""
        if location.startswith("credential:") and not show_secrets:
            value = f"[secret]{mask_secret(value)}[/secret]"
        else:
            value = escape(value)
        exported = "yes" if name in session.env else "no"
        table.add_row(name, value, exported, f"[muted]{escape(location)}[/muted]")
    return table
