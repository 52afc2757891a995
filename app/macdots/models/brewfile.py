"""Brewfile models for the Homebrew package manifest.

This module defines the Pydantic models representing a Brewfile: the
``tap``, ``brew`` and ``cask`` directives macdots understands, plus
verbatim lines (comments, blanks and other directives) that are carried
through untouched so a file can be rewritten without losing content.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Type alias for the directive keyword of a recognized line
DirectiveKind = Literal["tap", "brew", "cask"]

# Ruby symbols (``:changed``) are stored as strings with a leading colon
ScalarValue = bool | int | str | list[str]

# Hash values such as ``args: { appdir: "~/Applications" }`` hold scalars
OptionValue = ScalarValue | dict[str, ScalarValue]

KNOWN_OPTIONS: dict[str, frozenset[str]] = {
    "tap": frozenset({"force_auto_update"}),
    "brew": frozenset(
        {"args", "conflicts_with", "link", "postinstall", "restart_service", "start_service"}
    ),
    "cask": frozenset({"args", "greedy", "postinstall"}),
}

# Taps Homebrew knows without a tap directive
IMPLICIT_TAPS = frozenset({"homebrew/core", "homebrew/cask"})


class BrewfileEntry(BaseModel):
    """A single recognized directive line.

    Attributes:
        kind: Directive keyword ("tap", "brew" or "cask").
        name: Quoted first argument (tap "org/repo", formula or cask name).
        url: Optional clone URL, only valid for taps.
        options: Keyword options in file order (e.g. restart_service: true).
        condition: Ruby statement modifier kept as written (e.g. "if OS.mac?").
        comment: Trailing comment text without the leading '#'.
    """

    model_config = ConfigDict(extra="forbid")

    kind: Annotated[DirectiveKind, Field(description="Directive keyword")]
    name: Annotated[str, Field(min_length=1, description="Tap, formula or cask name")]
    url: Annotated[str | None, Field(description="Custom tap clone URL")] = None
    options: Annotated[
        dict[str, OptionValue],
        Field(default_factory=dict, description="Directive options"),
    ]
    condition: Annotated[str | None, Field(description="Trailing if/unless modifier")] = None
    comment: Annotated[str | None, Field(description="Trailing comment")] = None

    @model_validator(mode="after")
    def validate_shape(self) -> "BrewfileEntry":
        """Validate tap naming and that only taps carry a URL."""
        if self.url is not None and self.kind != "tap":
            msg = f"Only taps accept a clone URL, not {self.kind} '{self.name}'"
            raise ValueError(msg)
        if self.kind == "tap" and self.name.count("/") != 1:
            msg = f"Tap name must have the form 'org/repo': {self.name!r}"
            raise ValueError(msg)
        return self

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the entry within a Brewfile (kind, lowercased name)."""
        return (self.kind, self.name.lower())

    @property
    def tap(self) -> str | None:
        """Tap a fully qualified formula or cask ('org/repo/name') depends on."""
        if self.kind == "tap":
            return None
        parts = self.name.split("/")
        if len(parts) != 3:
            return None
        return f"{parts[0]}/{parts[1]}".lower()

    @property
    def short_name(self) -> str:
        """Name without its tap prefix."""
        if self.kind == "tap":
            return self.name
        return self.name.rsplit("/", 1)[-1]

    @property
    def unknown_options(self) -> list[str]:
        """Option names not documented for this directive kind."""
        known = KNOWN_OPTIONS[self.kind]
        return [name for name in self.options if name not in known]


class VerbatimLine(BaseModel):
    """A line macdots does not interpret (comment, blank, other directive)."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["verbatim"] = "verbatim"
    text: str = ""

    @property
    def is_directive(self) -> bool:
        """Whether the line holds a directive rather than a comment or blank."""
        stripped = self.text.strip()
        return bool(stripped) and not stripped.startswith("#")

    @property
    def keyword(self) -> str | None:
        """First word of a directive line."""
        if not self.is_directive:
            return None
        return self.text.split(None, 1)[0].split("(", 1)[0]


BrewfileLine = Annotated[BrewfileEntry | VerbatimLine, Field(discriminator="kind")]


class Brewfile(BaseModel):
    """A parsed Brewfile.

    Lines are kept in file order, one model per source line, so the
    index of a line plus one is its line number.

    Attributes:
        lines: Ordered directive and verbatim lines.
    """

    model_config = ConfigDict(extra="forbid")

    lines: Annotated[list[BrewfileLine], Field(default_factory=list)]

    @property
    def entries(self) -> list[BrewfileEntry]:
        """All recognized directives in file order."""
        return [line for line in self.lines if isinstance(line, BrewfileEntry)]

    @property
    def taps(self) -> list[BrewfileEntry]:
        """Tap directives in file order."""
        return [e for e in self.entries if e.kind == "tap"]

    @property
    def brews(self) -> list[BrewfileEntry]:
        """Formula directives in file order."""
        return [e for e in self.entries if e.kind == "brew"]

    @property
    def casks(self) -> list[BrewfileEntry]:
        """Cask directives in file order."""
        return [e for e in self.entries if e.kind == "cask"]

    def find(self, name: str, kind: DirectiveKind | None = None) -> BrewfileEntry | None:
        """Find the first entry with the given name (case-insensitive).

        Args:
            name: Tap, formula or cask name.
            kind: Restrict the search to one directive kind.

        Returns:
            The matching entry, or None.
        """
        wanted = name.lower()
        for entry in self.entries:
            if kind is not None and entry.kind != kind:
                continue
            if entry.name.lower() == wanted:
                return entry
        return None

    def add_entry(self, entry: BrewfileEntry) -> bool:
        """Add an entry, keeping taps declared before the packages using them.

        The entry goes after the last entry of the same kind, or at the
        end when there is none. A formula or cask from an undeclared tap
        gets its tap directive added first, and a new tap is never placed
        after a package that already uses it.

        Args:
            entry: Entry to add.

        Returns:
            True if the entry was added, False if it was already present.
        """
        if self.find(entry.name, entry.kind) is not None:
            return False

        if entry.tap and entry.tap not in IMPLICIT_TAPS and self.find(entry.tap, "tap") is None:
            self.add_entry(BrewfileEntry(kind="tap", name=entry.tap))

        position = len(self.lines)
        same_kind = [i for i, line in enumerate(self.lines) if line.kind == entry.kind]
        if same_kind:
            position = same_kind[-1] + 1
        if entry.tap:
            for i, line in enumerate(self.lines):
                if isinstance(line, BrewfileEntry) and line.key == ("tap", entry.tap):
                    position = max(position, i + 1)
        if entry.kind == "tap":
            tap = entry.name.lower()
            for i, line in enumerate(self.lines):
                if isinstance(line, BrewfileEntry) and line.tap == tap:
                    position = min(position, i)
                    break

        self.lines.insert(position, entry)
        return True

    def remove_entry(self, name: str, kind: DirectiveKind | None = None) -> BrewfileEntry | None:
        """Remove the first entry matching name (and kind, when given).

        Returns:
            The removed entry, or None if nothing matched.
        """
        entry = self.find(name, kind)
        if entry is None:
            return None
        for i, line in enumerate(self.lines):
            if line is entry:
                del self.lines[i]
                break
        return entry


class IssueSeverity(Enum):
    """Severity of a Brewfile check finding."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class BrewfileIssue:
    """A problem found while checking a Brewfile.

    Attributes:
        line_number: 1-based line the issue refers to.
        severity: Whether the issue should fail a check.
        message: Human readable description.
    """

    line_number: int
    severity: IssueSeverity
    message: str

    @property
    def is_error(self) -> bool:
        """Check if this issue is an error."""
        return self.severity == IssueSeverity.ERROR
