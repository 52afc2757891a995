"""Unit tests for shell script parsing and word expansion."""

from pathlib import Path

import pytest
from macdots.core.shellrc import (
    ShellConfigError,
    UnresolvedExpansionError,
    expand_word,
    load_shell_script,
    parse_shell_script,
    unquote_word,
)
from macdots.models.shellrc import ShellStatement, StatementKind


def _kinds(statements: list[ShellStatement]) -> list[StatementKind]:
    return [s.kind for s in statements]


class TestParseAliases:
    """Tests for alias and unalias parsing."""

    def test_single_quoted_alias(self) -> None:
        """The alias value is unquoted."""
        [statement] = parse_shell_script("alias ll='ls -la'")

        assert statement.kind == StatementKind.ALIAS
        assert statement.name == "ll"
        assert statement.value == "ls -la"
        assert statement.line_number == 1

    def test_unquoted_alias(self) -> None:
        """Unquoted alias values are accepted."""
        [statement] = parse_shell_script("alias k=kubectl")

        assert statement.value == "kubectl"

    def test_several_aliases_on_one_line(self) -> None:
        """One alias statement can define several aliases."""
        statements = parse_shell_script("alias -g gs='git status' gd=\"git diff\"")

        assert [(s.name, s.value) for s in statements] == [
            ("gs", "git status"),
            ("gd", "git diff"),
        ]

    def test_alias_listing_is_unsupported(self) -> None:
        """`alias name` without a value only prints and defines nothing."""
        assert _kinds(parse_shell_script("alias ll")) == [StatementKind.UNSUPPORTED]

    def test_unalias(self) -> None:
        """unalias yields one statement per name."""
        statements = parse_shell_script("unalias ll gs")

        assert _kinds(statements) == [StatementKind.UNALIAS, StatementKind.UNALIAS]
        assert [s.name for s in statements] == ["ll", "gs"]

    def test_comment_after_alias(self) -> None:
        """Trailing comments are stripped."""
        [statement] = parse_shell_script("alias ll='ls -la'  # long listing")

        assert statement.value == "ls -la"

    def test_hash_inside_quotes(self) -> None:
        """A '#' inside quotes does not start a comment."""
        [statement] = parse_shell_script("alias h='echo #tag'")

        assert statement.value == "echo #tag"

    def test_double_quoted_escapes_are_removed(self) -> None:
        """Escaped $ and backquote inside double quotes lose their backslash."""
        [statement] = parse_shell_script('alias home="echo \\$HOME \\`date\\`"')

        assert statement.value == "echo $HOME `date`"

    def test_alias_value_is_not_expanded(self) -> None:
        """Parameters in an alias value are stored literally."""
        statements = parse_shell_script("alias p='echo $PATH' q=\"cd ~/src\"")

        assert [s.value for s in statements] == ["echo $PATH", "cd ~/src"]

    def test_unbalanced_quote_is_unsupported(self) -> None:
        """An alias with an unterminated quote defines nothing."""
        assert _kinds(parse_shell_script("alias x='oops")) == [StatementKind.UNSUPPORTED]


class TestParseVariables:
    """Tests for export, assignment and array parsing."""

    def test_export(self) -> None:
        """export keeps the raw unexpanded word."""
        [statement] = parse_shell_script('export GOPATH="$HOME/go"')

        assert statement.kind == StatementKind.EXPORT
        assert statement.name == "GOPATH"
        assert statement.value == '"$HOME/go"'

    def test_bare_export(self) -> None:
        """`export NAME` has no value."""
        [statement] = parse_shell_script("export EDITOR")

        assert statement.kind == StatementKind.EXPORT
        assert statement.value is None

    def test_assignment(self) -> None:
        """NAME=value is a shell variable assignment."""
        [statement] = parse_shell_script('ZSH_THEME="robbyrussell"')

        assert statement.kind == StatementKind.ASSIGN
        assert statement.name == "ZSH_THEME"

    def test_command_substitution_stays_one_word(self) -> None:
        """Spaces inside $( ) do not split the word."""
        [statement] = parse_shell_script("export TOKEN=$(awk '/kafka/ {print $6}' ~/.netrc)")

        assert statement.kind == StatementKind.EXPORT
        assert statement.value == "$(awk '/kafka/ {print $6}' ~/.netrc)"

    def test_env_prefix_on_command_is_unsupported(self) -> None:
        """FOO=1 cmd runs a command and is not an assignment."""
        assert _kinds(parse_shell_script("LANG=C sort file")) == [StatementKind.UNSUPPORTED]

    def test_inline_array(self) -> None:
        """NAME=(a b) is an array assignment."""
        [statement] = parse_shell_script("plugins=(git docker kubectl)")

        assert statement.kind == StatementKind.ARRAY
        assert statement.values == ("git", "docker", "kubectl")

    def test_multiline_array(self) -> None:
        """Arrays may span several lines and contain comments."""
        text = "plugins=(\n  git  # vcs\n  docker\n)\nexport A=1\n"

        statements = parse_shell_script(text)

        assert _kinds(statements) == [StatementKind.ARRAY, StatementKind.EXPORT]
        assert statements[0].values == ("git", "docker")
        assert statements[1].line_number == 5

    def test_semicolon_separated_commands(self) -> None:
        """Commands separated by ';' are parsed separately."""
        statements = parse_shell_script("export A=1; B=2")

        assert _kinds(statements) == [StatementKind.EXPORT, StatementKind.ASSIGN]
        assert all(s.line_number == 1 for s in statements)


class TestParseStructure:
    """Tests for sourcing, functions, blocks and continuations."""

    @pytest.mark.parametrize("line", ["source ~/.alias", ". ~/.alias"])
    def test_source(self, line: str) -> None:
        """source and '.' both source a file."""
        [statement] = parse_shell_script(line)

        assert statement.kind == StatementKind.SOURCE
        assert statement.value == "~/.alias"

    def test_function_is_one_statement(self) -> None:
        """A function definition is recorded by name and its body skipped."""
        text = 'mkcd() {\n  mkdir -p "$1"\n  alias x=y\n}\nalias ll=ls\n'

        statements = parse_shell_script(text)

        assert _kinds(statements) == [StatementKind.FUNCTION, StatementKind.ALIAS]
        assert statements[0].name == "mkcd"
        assert statements[1].line_number == 5

    def test_function_keyword_with_brace_on_next_line(self) -> None:
        """`function name` with the brace on the following line is supported."""
        text = "function greet\n{\n  echo hi\n}\nexport A=1\n"

        statements = parse_shell_script(text)

        assert _kinds(statements) == [StatementKind.FUNCTION, StatementKind.EXPORT]
        assert statements[0].name == "greet"

    def test_one_line_function(self) -> None:
        """A function defined on one line ends on that line."""
        statements = parse_shell_script("up() { cd ..; }\nalias a=b\n")

        assert _kinds(statements) == [StatementKind.FUNCTION, StatementKind.ALIAS]

    def test_if_block_is_one_unsupported_statement(self) -> None:
        """Conditional blocks are not evaluated, including nested ones."""
        text = (
            "if [ -f ~/.fzf.zsh ]; then\n"
            "  for f in a b; do\n"
            "    echo $f\n"
            "  done\n"
            "  export INSIDE=1\n"
            "fi\n"
            "export OUTSIDE=1\n"
        )

        statements = parse_shell_script(text)

        assert _kinds(statements) == [StatementKind.UNSUPPORTED, StatementKind.EXPORT]
        assert statements[0].text == "if [ -f ~/.fzf.zsh ]; then"
        assert statements[1].name == "OUTSIDE"

    def test_line_continuation(self) -> None:
        """Backslash continuations join lines; the statement keeps the first line number."""
        statements = parse_shell_script("export A=1 \\\n  B=2\nexport C=3\n")

        assert [(s.name, s.line_number) for s in statements] == [
            ("A", 1),
            ("B", 1),
            ("C", 3),
        ]

    def test_plain_commands_are_unsupported(self) -> None:
        """Ordinary commands are kept as UNSUPPORTED with their text."""
        [statement] = parse_shell_script("\n\neval \"$(pyenv init -)\"\n")

        assert statement.kind == StatementKind.UNSUPPORTED
        assert statement.line_number == 3
        assert statement.text == 'eval "$(pyenv init -)"'

    def test_origin_is_recorded(self, tmp_path: Path) -> None:
        """Statements remember the file they came from."""
        path = tmp_path / "rc"
        path.write_text("alias ll=ls\n", encoding="utf-8")

        [statement] = load_shell_script(path)

        assert statement.origin == path
        assert statement.location == f"{path}:1"

    def test_load_missing_file(self, tmp_path: Path) -> None:
        """load_shell_script wraps read errors."""
        with pytest.raises(ShellConfigError):
            load_shell_script(tmp_path / "missing")


class TestExpandWord:
    """Tests for expand_word function."""

    @pytest.fixture
    def variables(self) -> dict[str, str]:
        return {"HOME": "/Users/dev", "EMPTY": "", "NAME": "world"}

    def _expand(self, word: str, variables: dict[str, str]) -> str:
        return expand_word(word, variables.get)

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("plain", "plain"),
            ("$NAME", "world"),
            ("${NAME}s", "worlds"),
            ('"hello $NAME"', "hello world"),
            ("'hello $NAME'", "hello $NAME"),
            ("$UNSET", ""),
            ("${UNSET:-fallback}", "fallback"),
            ("${EMPTY:-fallback}", "fallback"),
            ("${EMPTY-fallback}", ""),
            ("${UNSET-fallback}", "fallback"),
            ("${UNSET:-$NAME}", "world"),
            ("~", "/Users/dev"),
            ("~/go", "/Users/dev/go"),
            ('"~/go"', "~/go"),
            ("\\$NAME", "$NAME"),
            ('"a\\"b"', 'a"b'),
            ("$1", ""),
            ("cost$", "cost$"),
            ("$HOME/bin:$NAME", "/Users/dev/bin:world"),
        ],
    )
    def test_expansion(self, word: str, expected: str, variables: dict[str, str]) -> None:
        """Words expand the way the shell expands them at source time."""
        assert self._expand(word, variables) == expected

    @pytest.mark.parametrize("word", ["$(whoami)", '"$(date)"', "`date`", "${NAME/o/0}"])
    def test_unresolved(self, word: str, variables: dict[str, str]) -> None:
        """Command substitutions are never executed."""
        with pytest.raises(UnresolvedExpansionError):
            self._expand(word, variables)

    @pytest.mark.parametrize("word", ["'open", '"open', "${NAME"])
    def test_malformed(self, word: str, variables: dict[str, str]) -> None:
        """Unbalanced quoting raises ShellConfigError."""
        with pytest.raises(ShellConfigError):
            self._expand(word, variables)


class TestUnquoteWord:
    """Tests for unquote_word function."""

    @pytest.mark.parametrize(
        ("word", "expected"),
        [
            ("'a b'", "a b"),
            ('"a \\$b"', "a $b"),
            ('"a \\n"', "a \\n"),
            ("a\\ b", "a b"),
            ("$HOME/~", "$HOME/~"),
            ("~/src", "~/src"),
            ("$(date)", "$(date)"),
        ],
    )
    def test_unquote(self, word: str, expected: str) -> None:
        """Quotes and escapes are removed, expansions are kept."""
        assert unquote_word(word) == expected

    def test_unterminated_quote(self) -> None:
        """Unbalanced quotes raise ShellConfigError."""
        with pytest.raises(ShellConfigError):
            unquote_word('"open')
