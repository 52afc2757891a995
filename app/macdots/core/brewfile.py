"""Brewfile parsing, serialization and file I/O.

This module reads and writes the line-oriented Homebrew Bundle format:

    tap "homebrew/cask-fonts"
    brew "postgresql@16", restart_service: true
    brew "python@3.12", link: false
    cask "font-fira-code"

Only ``tap``, ``brew`` and ``cask`` are interpreted. Everything else is
kept as a verbatim line so a file survives a parse/dump cycle.
"""

import logging
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import ValidationError

from macdots.core.paths import get_default_brewfile_path
from macdots.models.brewfile import (
    IMPLICIT_TAPS,
    Brewfile,
    BrewfileEntry,
    BrewfileIssue,
    BrewfileLine,
    IssueSeverity,
    OptionValue,
    ScalarValue,
    VerbatimLine,
)

logger = logging.getLogger(__name__)

DIRECTIVES = ("tap", "brew", "cask")

# Other Homebrew Bundle directives that are valid but not interpreted
PASSTHROUGH_DIRECTIVES = frozenset(
    {"cargo", "cask_args", "flatpak", "go", "mas", "tap_args", "uv", "vscode", "whalebrew"}
)

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*[?!]?")
_INT = re.compile(r"-?\d+")
_KEYWORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_MODIFIER = re.compile(r"(?:if|unless)\b")
_BOOL_OPTIONS = frozenset({"force_auto_update", "greedy", "link", "start_service"})
_LIST_OPTIONS = frozenset({"args", "conflicts_with"})


class BrewfileError(Exception):
    """Base exception for Brewfile-related errors."""


class BrewfileNotFoundError(BrewfileError):
    """Raised when the Brewfile is not found."""


class BrewfileParseError(BrewfileError):
    """Raised when a directive line cannot be parsed.

    Attributes:
        line_number: 1-based line number of the offending line, if known.
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class _LineScanner:
    """Cursor over a single directive line."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in " \t":
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        self.skip_ws()
        return self.pos >= len(self.text) or self.peek() == "#"

    def comment(self) -> str | None:
        self.skip_ws()
        if self.peek() != "#":
            return None
        return self.text[self.pos + 1 :].strip() or None

    def expect(self, char: str) -> None:
        self.skip_ws()
        if self.peek() != char:
            found = self.peek() or "end of line"
            raise ValueError(f"expected '{char}' but found '{found}'")
        self.pos += 1

    def accept(self, char: str) -> bool:
        self.skip_ws()
        if self.peek() == char:
            self.pos += 1
            return True
        return False

    def read_string(self) -> str:
        self.skip_ws()
        quote = self.peek()
        if quote not in ('"', "'"):
            raise ValueError("expected a quoted string")
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\" and self.pos + 1 < len(self.text):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            if char == quote:
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise ValueError("unterminated string")

    def read_ident(self) -> str:
        self.skip_ws()
        match = _IDENT.match(self.text, self.pos)
        if match is None:
            raise ValueError("expected an option name")
        self.pos = match.end()
        return match.group(0)

    def read_scalar(self) -> ScalarValue:
        self.skip_ws()
        char = self.peek()
        if char in ('"', "'"):
            return self.read_string()
        if char == "[":
            self.pos += 1
            items: list[str] = []
            if self.accept("]"):
                return items
            while True:
                items.append(self.read_string())
                if self.accept("]"):
                    return items
                self.expect(",")
        if char == ":":
            self.pos += 1
            return ":" + self.read_ident()
        match = _IDENT.match(self.text, self.pos)
        if match is not None and match.group(0) in ("true", "false"):
            self.pos = match.end()
            return match.group(0) == "true"
        match = _INT.match(self.text, self.pos)
        if match is not None:
            self.pos = match.end()
            return int(match.group(0))
        raise ValueError(f"unsupported option value starting at '{self.text[self.pos :]}'")

    def read_hash_key(self) -> str:
        """Read ``key:`` or ``:key =>``."""
        self.skip_ws()
        if self.peek() == ":":
            self.pos += 1
            key = self.read_ident()
            self.skip_ws()
            if not self.text.startswith("=>", self.pos):
                raise ValueError(f"expected '=>' after :{key}")
            self.pos += 2
            return key
        key = self.read_ident()
        self.expect(":")
        return key

    def read_value(self) -> OptionValue:
        if not self.accept("{"):
            return self.read_scalar()
        items: dict[str, ScalarValue] = {}
        if self.accept("}"):
            return items
        while True:
            key = self.read_hash_key()
            if key in items:
                raise ValueError(f"duplicate hash key '{key}'")
            items[key] = self.read_scalar()
            if self.accept("}"):
                return items
            self.expect(",")

    def read_modifier(self) -> str | None:
        """Read a trailing ``if``/``unless`` modifier up to an unquoted '#'."""
        self.skip_ws()
        match = _MODIFIER.match(self.text, self.pos)
        if match is None:
            return None
        start = self.pos
        quote: str | None = None
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if quote is not None:
                if char == "\\":
                    self.pos += 1
                elif char == quote:
                    quote = None
            elif char in ('"', "'"):
                quote = char
            elif char == "#":
                break
            self.pos += 1
        if quote is not None:
            raise ValueError("unterminated string")
        condition = self.text[start : self.pos].strip()
        if condition == match.group(0):
            raise ValueError(f"missing condition after '{condition}'")
        return condition


def parse_line(line: str, line_number: int | None = None, *, strict: bool = False) -> BrewfileLine:
    """Parse one Brewfile line.

    Args:
        line: Raw line without its newline.
        line_number: 1-based line number used in error messages.
        strict: Raise on directives macdots does not recognize instead of
            keeping them verbatim.

    Returns:
        A BrewfileEntry for tap/brew/cask lines, otherwise a VerbatimLine.

    Raises:
        BrewfileParseError: If a tap/brew/cask line is malformed, or an
            unknown directive is found in strict mode.
    """
    stripped = line.strip()
    match = _KEYWORD.match(stripped)
    keyword = match.group(0) if match else ""
    rest = stripped[len(keyword) :]
    if rest and rest[0] not in " \t(\"'":
        keyword = ""

    if keyword not in DIRECTIVES:
        verbatim = VerbatimLine(text=line.rstrip())
        if verbatim.keyword and verbatim.keyword not in PASSTHROUGH_DIRECTIVES:
            if strict:
                raise BrewfileParseError(f"unknown directive '{verbatim.keyword}'", line_number)
            logger.debug("Keeping unknown directive on line %s: %r", line_number, line[:100])
        return verbatim

    scanner = _LineScanner(rest)
    try:
        # Ruby allows the arguments in parentheses: brew("git", link: false)
        parenthesized = scanner.accept("(")
        name = scanner.read_string()
        url: str | None = None
        options: dict[str, OptionValue] = {}
        while scanner.accept(","):
            scanner.skip_ws()
            if keyword == "tap" and url is None and not options and scanner.peek() in ('"', "'"):
                url = scanner.read_string()
                continue
            option = scanner.read_ident()
            if option in options:
                raise ValueError(f"duplicate option '{option}'")
            scanner.expect(":")
            options[option] = scanner.read_value()
        if parenthesized:
            scanner.expect(")")
        condition = scanner.read_modifier()
        if not scanner.at_end():
            raise ValueError(f"expected ',' but found '{scanner.peek()}'")
        comment = scanner.comment()
    except ValueError as e:
        raise BrewfileParseError(f"{keyword}: {e}", line_number) from e

    try:
        return BrewfileEntry(
            kind=keyword,
            name=name,
            url=url,
            options=options,
            condition=condition,
            comment=comment,
        )
    except ValidationError as e:
        raise BrewfileParseError(f"invalid {keyword} directive: {e}", line_number) from e


def parse_brewfile(text: str, *, strict: bool = False) -> Brewfile:
    """Parse Brewfile content.

    Args:
        text: Full file content.
        strict: Reject unknown directives (see parse_line).

    Returns:
        Brewfile with one line model per source line.

    Raises:
        BrewfileParseError: On the first malformed line.
    """
    return Brewfile(
        lines=[
            parse_line(line, number, strict=strict)
            for number, line in enumerate(text.splitlines(), start=1)
        ]
    )


def _format_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_value(value: OptionValue) -> str:
    """Serialize an option value using Brewfile (Ruby) syntax."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return "[" + ", ".join(_format_string(item) for item in value) + "]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        pairs = ", ".join(f"{key}: {format_value(item)}" for key, item in value.items())
        return f"{{ {pairs} }}"
    if value.startswith(":") and _IDENT.fullmatch(value[1:]):
        return value
    return _format_string(value)


def parse_option_value(text: str) -> OptionValue:
    """Parse a single option value written in Brewfile syntax.

    Example:
        >>> parse_option_value("false")
        False
        >>> parse_option_value(':changed')
        ':changed'

    Raises:
        BrewfileParseError: If the text is not a complete option value.
    """
    scanner = _LineScanner(text)
    try:
        value = scanner.read_value()
        if not scanner.at_end() or scanner.comment() is not None:
            raise ValueError(f"unexpected trailing text in {text!r}")
    except ValueError as e:
        raise BrewfileParseError(str(e)) from e
    return value


def format_entry(entry: BrewfileEntry) -> str:
    """Serialize an entry to its canonical directive line.

    Example:
        >>> format_entry(BrewfileEntry(kind="brew", name="mysql", options={"link": False}))
        'brew "mysql", link: false'
    """
    parts = [f"{entry.kind} {_format_string(entry.name)}"]
    if entry.url is not None:
        parts.append(_format_string(entry.url))
    parts.extend(f"{name}: {format_value(value)}" for name, value in entry.options.items())
    line = ", ".join(parts)
    if entry.condition:
        line = f"{line} {entry.condition}"
    if entry.comment:
        line = f"{line} # {entry.comment}"
    return line


def dump_brewfile(brewfile: Brewfile) -> str:
    """Serialize a Brewfile, formatting directives canonically.

    Verbatim lines are emitted unchanged, so comments and uninterpreted
    directives keep their position.
    """
    if not brewfile.lines:
        return ""
    rendered = [
        format_entry(line) if isinstance(line, BrewfileEntry) else line.text
        for line in brewfile.lines
    ]
    return "\n".join(rendered) + "\n"


def load_brewfile(path: Path | None = None, *, strict: bool = False) -> Brewfile:
    """Load and parse a Brewfile.

    Args:
        path: Path to the Brewfile. If None, uses ~/Brewfile.
        strict: Reject unknown directives.

    Returns:
        Parsed Brewfile.

    Raises:
        BrewfileNotFoundError: If the file doesn't exist.
        BrewfileParseError: If a directive line is malformed.
        BrewfileError: If the file cannot be read.
    """
    brewfile_path = path or get_default_brewfile_path()

    if not brewfile_path.exists():
        raise BrewfileNotFoundError(f"Brewfile not found: {brewfile_path}")

    try:
        text = brewfile_path.read_text(encoding="utf-8")
    except OSError as e:
        raise BrewfileError(f"Failed to read Brewfile: {e}") from e

    brewfile = parse_brewfile(text, strict=strict)
    logger.debug("Loaded %d entries from %s", len(brewfile.entries), brewfile_path)
    return brewfile


def save_brewfile(brewfile: Brewfile, path: Path | None = None) -> Path:
    """Save a Brewfile.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        brewfile: The Brewfile to save.
        path: Destination. If None, uses ~/Brewfile.

    Returns:
        Path where the Brewfile was saved.

    Raises:
        BrewfileError: If the file cannot be written.
    """
    brewfile_path = path or get_default_brewfile_path()
    brewfile_path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=brewfile_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(dump_brewfile(brewfile))
        os.replace(str(tmp_path), str(brewfile_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise BrewfileError(f"Failed to write Brewfile: {e}") from e

    return brewfile_path


def brewfile_exists(path: Path | None = None) -> bool:
    """Check if a Brewfile exists.

    Args:
        path: Path to check. If None, uses ~/Brewfile.
    """
    return (path or get_default_brewfile_path()).exists()


def _check_option_types(entry: BrewfileEntry) -> list[str]:
    problems: list[str] = []
    for name, value in entry.options.items():
        if name == "restart_service":
            if not isinstance(value, bool) and value != ":changed":
                problems.append("restart_service must be true, false or :changed")
        elif name == "args" and entry.kind == "cask":
            if not isinstance(value, dict):
                problems.append('args must be a hash, e.g. { appdir: "~/Applications" }')
        elif name in _BOOL_OPTIONS and not isinstance(value, bool):
            problems.append(f"{name} must be true or false")
        elif name in _LIST_OPTIONS and not isinstance(value, list):
            problems.append(f"{name} must be a list of strings")
    return problems


def check_brewfile(brewfile: Brewfile) -> list[BrewfileIssue]:
    """Validate Brewfile conventions that Homebrew only enforces at install time.

    Errors:
        - A tap-qualified formula or cask ('org/repo/name') appears before
          its tap directive, or its tap is never declared.
        - An option has a value of the wrong type.

    Warnings:
        - Duplicate directives.
        - Options that are not documented for the directive.
        - Directives macdots does not recognize.

    Args:
        brewfile: Parsed Brewfile.

    Returns:
        Issues in line order.
    """
    issues: list[BrewfileIssue] = []
    tap_lines: dict[str, int] = {}
    for number, line in enumerate(brewfile.lines, start=1):
        if isinstance(line, BrewfileEntry) and line.kind == "tap":
            tap_lines.setdefault(line.name.lower(), number)

    # Entries guarded by different conditions are not duplicates
    seen: dict[tuple[str, str, str | None], int] = {}
    for number, line in enumerate(brewfile.lines, start=1):
        if isinstance(line, VerbatimLine):
            if line.keyword and line.keyword not in PASSTHROUGH_DIRECTIVES:
                issues.append(
                    BrewfileIssue(
                        number, IssueSeverity.WARNING, f"Unrecognized directive '{line.keyword}'"
                    )
                )
            continue

        label = f"{line.kind} '{line.name}'"
        identity = (*line.key, line.condition)
        if identity in seen:
            issues.append(
                BrewfileIssue(
                    number,
                    IssueSeverity.WARNING,
                    f"Duplicate {label} (first declared on line {seen[identity]})",
                )
            )
        else:
            seen[identity] = number

        tap = line.tap
        if tap and tap not in IMPLICIT_TAPS:
            tap_line = tap_lines.get(tap)
            if tap_line is None:
                issues.append(
                    BrewfileIssue(
                        number, IssueSeverity.ERROR, f"{label} uses undeclared tap '{tap}'"
                    )
                )
            elif tap_line > number:
                issues.append(
                    BrewfileIssue(
                        number,
                        IssueSeverity.ERROR,
                        f"{label} appears before its tap '{tap}' (line {tap_line})",
                    )
                )

        for problem in _check_option_types(line):
            issues.append(BrewfileIssue(number, IssueSeverity.ERROR, f"{label}: {problem}"))
        for option in line.unknown_options:
            issues.append(
                BrewfileIssue(number, IssueSeverity.WARNING, f"{label}: unknown option '{option}'")
            )

    return issues


def require_brewfile(path: Path | None = None, *, strict: bool = False) -> Brewfile:
    """Load a Brewfile or exit with a helpful error message.

    Convenience wrapper around load_brewfile() for CLI commands.

    Args:
        path: Brewfile path. If None, uses ~/Brewfile.
        strict: Reject unknown directives.

    Returns:
        Parsed Brewfile.

    Raises:
        typer.Exit: If the Brewfile cannot be loaded.
    """
    import typer

    from macdots.utils.formatting import print_error, print_info

    brewfile_path = path or get_default_brewfile_path()
    try:
        return load_brewfile(brewfile_path, strict=strict)
    except BrewfileNotFoundError as e:
        print_error(f"Brewfile not found: {brewfile_path}")
        print_info("Set 'brewfile' with 'macdots config set brewfile <path>' or pass --file.")
        raise typer.Exit(code=1) from e
    except BrewfileError as e:
        print_error(f"Failed to load Brewfile: {e}")
        raise typer.Exit(code=1) from e
