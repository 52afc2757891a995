"""Data models for macdots.

This module exports the core data structures used throughout the application.
"""

from macdots.models.brewfile import (
    Brewfile,
    BrewfileEntry,
    BrewfileIssue,
    DirectiveKind,
    IssueSeverity,
    OptionValue,
    VerbatimLine,
)
from macdots.models.shellrc import ShellStatement, StatementKind

__all__ = [
    "Brewfile",
    "BrewfileEntry",
    "BrewfileIssue",
    "DirectiveKind",
    "IssueSeverity",
    "OptionValue",
    "ShellStatement",
    "StatementKind",
    "VerbatimLine",
]
