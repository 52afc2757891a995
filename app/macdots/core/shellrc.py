"""zsh startup and alias file parsing.

Reduces a shell script to an ordered list of ShellStatement objects and
expands words the way the shell would at source time. Nothing is ever
executed: command substitutions are reported as unresolved instead.
"""

import logging
import re
from collections.abc import Callable, Iterator
from pathlib import Path

from macdots.models.shellrc import ShellStatement, StatementKind

logger = logging.getLogger(__name__)

_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_ASSIGNMENT = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)=")
_ARRAY_START = re.compile(r"([A-Za-z_][A-Za-z0-9_]*)=\(")
_FUNCTION_DEF = re.compile(
    r"^(?:function\s+([A-Za-z_][\w:.-]*)\s*(?:\(\s*\))?|([A-Za-z_][\w:.-]*)\s*\(\s*\))\s*(?:\{|$)"
)
_PARAMETER = re.compile(r"([A-Za-z_][A-Za-z0-9_]*|[0-9@*#?$!-])(.*)", re.DOTALL)

_BLOCK_OPENERS = frozenset({"if", "for", "while", "until", "case", "select"})
_BLOCK_CLOSERS = frozenset({"fi", "done", "esac"})
_SPECIAL_PARAMETERS = "0123456789@*#?$!-"


class ShellConfigError(Exception):
    """Base exception for shell configuration errors."""


class UnresolvedExpansionError(ShellConfigError):
    """Raised when a word needs command execution to be expanded."""


def _walk(text: str) -> Iterator[tuple[int, str, bool]]:
    """Yield (index, char, top_level) for each character of a command line.

    A character is top-level when it is outside quotes, outside
    ``$(...)`` substitutions and not escaped by a backslash.
    """
    quote: str | None = None
    depth = 0
    escaped = False
    prev = ""
    for i, char in enumerate(text):
        if escaped:
            escaped = False
            prev = ""
            yield i, char, False
            continue
        if char == "\\" and quote != "'":
            escaped = True
            yield i, char, False
            continue
        if depth > 0:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            prev = char
            yield i, char, False
            continue
        if quote is not None:
            if char == quote:
                quote = None
            elif char == "(" and prev == "$" and quote == '"':
                depth = 1
            prev = char
            yield i, char, False
            continue
        if char == "(" and prev == "$":
            depth = 1
            prev = char
            yield i, char, False
            continue
        if char in "'\"`":
            quote = char
            prev = char
            yield i, char, False
            continue
        prev = char
        yield i, char, True


def _strip_comment(line: str) -> str:
    for i, char, top in _walk(line):
        if top and char == "#" and (i == 0 or line[i - 1] in " \t;"):
            return line[:i]
    return line


def _tokenize(text: str) -> list[str]:
    """Split on unquoted whitespace, keeping quotes and substitutions intact."""
    words: list[str] = []
    current: list[str] = []
    for _, char, top in _walk(text):
        if top and char in " \t":
            if current:
                words.append("".join(current))
                current = []
            continue
        current.append(char)
    if current:
        words.append("".join(current))
    return words


def _split_commands(text: str) -> list[str]:
    commands: list[str] = []
    start = 0
    for i, char, top in _walk(text):
        if top and char == ";":
            commands.append(text[start:i])
            start = i + 1
    commands.append(text[start:])
    return [c.strip() for c in commands if c.strip()]


def _brace_delta(text: str) -> int:
    delta = 0
    for _, char, top in _walk(text):
        if top and char == "{":
            delta += 1
        elif top and char == "}":
            delta -= 1
    return delta


def _block_delta(text: str) -> int:
    delta = 0
    for word in re.split(r"[\s;|&()]+", text):
        if word in _BLOCK_OPENERS:
            delta += 1
        elif word in _BLOCK_CLOSERS:
            delta -= 1
    return delta


def _close_paren_index(text: str) -> int | None:
    for i, char, top in _walk(text):
        if top and char == ")":
            return i
    return None


def _parse_simple(
    command: str, line_number: int, text: str, origin: Path | None
) -> list[ShellStatement]:
    """Parse a single command without compound structure."""

    def statement(kind: StatementKind, **fields: str | None) -> ShellStatement:
        return ShellStatement(
            kind=kind, line_number=line_number, text=text, origin=origin, **fields
        )

    unsupported = [statement(StatementKind.UNSUPPORTED)]
    words = _tokenize(command)
    if not words:
        return []
    head = words[0]

    if head == "alias":
        aliases = []
        for word in words[1:]:
            try:
                token = unquote_word(word)
            except ShellConfigError as e:
                logger.warning("Cannot parse alias at line %d: %s", line_number, e)
                return unsupported
            name, sep, value = token.partition("=")
            if token.startswith("-") or not sep or not name:
                continue
            aliases.append(statement(StatementKind.ALIAS, name=name, value=value))
        return aliases or unsupported

    if head == "unalias":
        names = [w for w in words[1:] if not w.startswith("-")]
        return [statement(StatementKind.UNALIAS, name=name) for name in names] or unsupported

    if head == "export":
        exports = []
        for word in words[1:]:
            if word.startswith("-"):
                continue
            match = _ASSIGNMENT.match(word)
            if match:
                exports.append(
                    statement(StatementKind.EXPORT, name=match.group(1), value=word[match.end() :])
                )
            elif _NAME.fullmatch(word):
                exports.append(statement(StatementKind.EXPORT, name=word))
            else:
                return unsupported
        return exports or unsupported

    if head in ("source", "."):
        if len(words) < 2:
            return unsupported
        return [statement(StatementKind.SOURCE, value=words[1])]

    matches = [_ASSIGNMENT.match(word) for word in words]
    if all(matches):
        return [
            statement(StatementKind.ASSIGN, name=match.group(1), value=word[match.end() :])
            for word, match in zip(words, matches, strict=True)
            if match is not None
        ]

    # Environment prefixes on a command (FOO=1 cmd) or any plain command
    return unsupported


def parse_shell_script(text: str, origin: Path | None = None) -> list[ShellStatement]:
    """Parse a zsh startup or alias file into statements.

    Args:
        text: Script content.
        origin: File the content came from, recorded on each statement.

    Returns:
        Statements in file order. Definitions inside if/for/while/case
        blocks and function bodies are not returned individually.
    """
    lines = text.splitlines()
    statements: list[ShellStatement] = []
    index = 0

    while index < len(lines):
        line_number = index + 1
        line = lines[index]
        index += 1
        while line.endswith("\\") and index < len(lines):
            line = line[:-1] + " " + lines[index]
            index += 1

        code = _strip_comment(line).strip()
        if not code:
            continue
        first_line = line.strip()
        words = _tokenize(code)

        if words[0] in _BLOCK_OPENERS:
            depth = _block_delta(code)
            while depth > 0 and index < len(lines):
                depth += _block_delta(_strip_comment(lines[index]))
                index += 1
            logger.debug("Skipping compound block at line %d", line_number)
            statements.append(
                ShellStatement(
                    kind=StatementKind.UNSUPPORTED,
                    line_number=line_number,
                    text=first_line,
                    origin=origin,
                )
            )
            continue

        function = _FUNCTION_DEF.match(code)
        if function:
            depth = _brace_delta(code)
            if "{" not in code and index < len(lines):
                # Opening brace on the following line
                depth += _brace_delta(_strip_comment(lines[index]))
                index += 1
            while depth > 0 and index < len(lines):
                depth += _brace_delta(_strip_comment(lines[index]))
                index += 1
            statements.append(
                ShellStatement(
                    kind=StatementKind.FUNCTION,
                    line_number=line_number,
                    text=first_line,
                    name=function.group(1) or function.group(2),
                    origin=origin,
                )
            )
            continue

        array = _ARRAY_START.match(code)
        if array:
            body = code[array.end() :]
            close = _close_paren_index(body)
            while close is None and index < len(lines):
                body = f"{body} {_strip_comment(lines[index]).strip()}"
                index += 1
                close = _close_paren_index(body)
            inner = body if close is None else body[:close]
            statements.append(
                ShellStatement(
                    kind=StatementKind.ARRAY,
                    line_number=line_number,
                    text=first_line,
                    name=array.group(1),
                    values=tuple(_tokenize(inner)),
                    origin=origin,
                )
            )
            continue

        for command in _split_commands(code):
            statements.extend(_parse_simple(command, line_number, first_line, origin))

    return statements


def load_shell_script(path: Path) -> list[ShellStatement]:
    """Read and parse a shell script.

    Raises:
        ShellConfigError: If the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ShellConfigError(f"Failed to read {path}: {e}") from e
    statements = parse_shell_script(text, origin=path)
    logger.debug("Parsed %d statements from %s", len(statements), path)
    return statements


# =============================================================================
# Word expansion
# =============================================================================


def _matching_brace(word: str, start: int) -> int:
    depth = 0
    for i in range(start, len(word)):
        if word[i] == "{":
            depth += 1
        elif word[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    raise ShellConfigError(f"unterminated parameter expansion in {word!r}")


def _expand_parameter(
    word: str, start: int, lookup: Callable[[str], str | None]
) -> tuple[str, int]:
    """Expand the parameter beginning with '$' at word[start]."""
    following = word[start + 1 : start + 2]
    if following == "(":
        raise UnresolvedExpansionError(f"command substitution in {word!r}")

    if following == "{":
        end = _matching_brace(word, start + 1)
        body = word[start + 2 : end]
        match = _PARAMETER.fullmatch(body)
        if match is None:
            raise UnresolvedExpansionError(f"unsupported parameter expansion ${{{body}}}")
        name, rest = match.groups()
        value = lookup(name)
        if rest == "":
            return value or "", end + 1
        if rest.startswith(":-"):
            return (value if value else expand_word(rest[2:], lookup)), end + 1
        if rest.startswith("-"):
            return (value if value is not None else expand_word(rest[1:], lookup)), end + 1
        raise UnresolvedExpansionError(f"unsupported parameter expansion ${{{body}}}")

    match = _NAME.match(word, start + 1)
    if match:
        return lookup(match.group(0)) or "", match.end()
    if following and following in _SPECIAL_PARAMETERS:
        # Positional and special parameters are empty while sourcing
        return "", start + 2
    return "$", start + 1


def _process_word(word: str, lookup: Callable[[str], str | None] | None) -> str:
    """Remove quoting from a word, expanding parameters when lookup is given."""
    out: list[str] = []
    index = 0
    if lookup is not None and (word == "~" or word.startswith("~/")):
        out.append(lookup("HOME") or "~")
        index = 1

    in_double = False
    while index < len(word):
        char = word[index]
        if char == "'" and not in_double:
            end = word.find("'", index + 1)
            if end < 0:
                raise ShellConfigError(f"unterminated single quote in {word!r}")
            out.append(word[index + 1 : end])
            index = end + 1
        elif char == '"':
            in_double = not in_double
            index += 1
        elif char == "\\" and index + 1 < len(word):
            escaped = word[index + 1]
            if not in_double or escaped in '$`"\\':
                out.append(escaped)
            else:
                out.append(char + escaped)
            index += 2
        elif char == "`" and lookup is not None:
            raise UnresolvedExpansionError(f"command substitution in {word!r}")
        elif char == "$" and lookup is not None:
            value, index = _expand_parameter(word, index, lookup)
            out.append(value)
        else:
            out.append(char)
            index += 1

    if in_double:
        raise ShellConfigError(f"unterminated double quote in {word!r}")
    return "".join(out)


def expand_word(word: str, lookup: Callable[[str], str | None]) -> str:
    """Expand a raw shell word against a variable lookup.

    Handles single and double quotes, backslash escapes, ``$NAME``,
    ``${NAME}``, ``${NAME:-default}``, ``${NAME-default}`` and a leading
    ``~``. Unknown variables expand to the empty string.

    Args:
        word: Raw word as written in the script.
        lookup: Returns a variable's value, or None when unset.

    Returns:
        The expanded string.

    Raises:
        UnresolvedExpansionError: If the word contains a command
            substitution or an unsupported parameter expansion.
        ShellConfigError: If quotes are unbalanced.
    """
    return _process_word(word, lookup)


def unquote_word(word: str) -> str:
    """Remove quotes and backslash escapes from a word without expanding it.

    Uses the same quoting rules as expand_word, so ``"echo \\$HOME"``
    becomes ``echo $HOME``. Parameters, substitutions and ``~`` are kept
    literally, as alias definitions store them.

    Raises:
        ShellConfigError: If quotes are unbalanced.
    """
    return _process_word(word, None)
