"""Statement models for zsh startup and alias files.

A shell script is reduced to an ordered list of statements. Only the
kinds that shape a session (aliases, variables, sourcing, functions) are
interpreted; everything else is kept as UNSUPPORTED with its line number.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class StatementKind(Enum):
    """Kind of a parsed shell statement.

    Attributes:
        ALIAS: ``alias name='command'``.
        UNALIAS: ``unalias name``.
        EXPORT: ``export NAME=value`` or ``export NAME``.
        ASSIGN: ``NAME=value`` (shell variable, not exported).
        ARRAY: ``NAME=(a b c)``, e.g. oh-my-zsh ``plugins``.
        SOURCE: ``source file`` or ``. file``.
        FUNCTION: Function definition; the body is not interpreted.
        UNSUPPORTED: Any other command or compound block.
    """

    ALIAS = "alias"
    UNALIAS = "unalias"
    EXPORT = "export"
    ASSIGN = "assign"
    ARRAY = "array"
    SOURCE = "source"
    FUNCTION = "function"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True, slots=True)
class ShellStatement:
    """A single statement from a shell script.

    Attributes:
        kind: Statement kind.
        line_number: 1-based line where the statement starts.
        text: Source text of the statement's first line.
        name: Alias, variable or function name (None for SOURCE/UNSUPPORTED).
        value: Alias command (already unquoted), or the raw unexpanded word
            of an assignment or source target. None for ``export NAME``.
        values: Raw unexpanded words of an array assignment.
        origin: File the statement was read from, if any.
    """

    kind: StatementKind
    line_number: int
    text: str
    name: str | None = None
    value: str | None = None
    values: tuple[str, ...] = ()
    origin: Path | None = None

    @property
    def location(self) -> str:
        """Human readable ``file:line`` location."""
        if self.origin is None:
            return f"line {self.line_number}"
        return f"{self.origin}:{self.line_number}"
