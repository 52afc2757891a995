"""Interactive shell session state.

A Session owns what an interactive zsh keeps as ambient globals: the
working directory, variables, aliases and function names. Sourcing a file
applies its statements in order, so later definitions override earlier
ones exactly as they would in the shell.
"""

import fnmatch
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from macdots.core.credentials import (
    CREDENTIAL_ENV_PREFIX,
    ChainCredentialProvider,
    CredentialProvider,
    EnvironmentCredentialProvider,
    NetrcCredentialProvider,
)
from macdots.core.settings import Settings
from macdots.core.shellrc import (
    ShellConfigError,
    UnresolvedExpansionError,
    expand_word,
    load_shell_script,
)
from macdots.models.shellrc import ShellStatement, StatementKind

logger = logging.getLogger(__name__)

# Maximum nesting of source statements before a cycle is assumed
MAX_SOURCE_DEPTH = 16


@dataclass
class Session:
    """State of one interactive shell session.

    Attributes:
        cwd: Current working directory.
        env: Exported variables (what child processes receive).
        variables: Shell variables that are set but not exported.
        arrays: Array variables such as oh-my-zsh ``plugins``.
        aliases: Alias table, token -> literal command.
        functions: Defined function names -> definition location.
        definitions: Variables set by sourced files -> definition location.
        sourced: Files sourced so far, in order.
        skipped: Source targets that were not followed.
        unresolved: Statements that were not evaluated.
        skip_sources: Glob patterns of source targets not to follow.
        bound: Mirror chdir() onto the real process working directory.
    """

    cwd: Path
    env: dict[str, str] = field(default_factory=dict)
    variables: dict[str, str] = field(default_factory=dict)
    arrays: dict[str, list[str]] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    functions: dict[str, str] = field(default_factory=dict)
    definitions: dict[str, str] = field(default_factory=dict)
    sourced: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    unresolved: list[ShellStatement] = field(default_factory=list)
    skip_sources: tuple[str, ...] = ()
    bound: bool = False

    @classmethod
    def from_process(cls, *, bind: bool = False, skip_sources: Iterable[str] = ()) -> "Session":
        """Create a session from the current process cwd and environment.

        Args:
            bind: Also change the real process directory on chdir().
            skip_sources: Glob patterns of source targets not to follow.
        """
        return cls(
            cwd=Path.cwd(),
            env=dict(os.environ),
            skip_sources=tuple(skip_sources),
            bound=bind,
        )

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------

    def lookup(self, name: str) -> str | None:
        """Return a variable's value as the shell would expand it."""
        if name in self.env:
            return self.env[name]
        if name in self.variables:
            return self.variables[name]
        if name in self.arrays:
            return " ".join(self.arrays[name])
        return None

    def expand(self, word: str) -> str:
        """Expand a raw shell word against this session's variables."""
        return expand_word(word, self.lookup)

    def set_variable(self, name: str, value: str, *, export: bool = False) -> None:
        """Set a variable; exported variables stay exported on reassignment."""
        self.arrays.pop(name, None)
        if export or name in self.env:
            self.variables.pop(name, None)
            self.env[name] = value
        else:
            self.variables[name] = value

    @property
    def theme(self) -> str | None:
        """oh-my-zsh theme selector (ZSH_THEME)."""
        return self.lookup("ZSH_THEME")

    @property
    def plugins(self) -> list[str]:
        """oh-my-zsh plugin list."""
        return list(self.arrays.get("plugins", []))

    # -------------------------------------------------------------------------
    # Working directory
    # -------------------------------------------------------------------------

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a path the way cd does: ~ expansion, relative to cwd."""
        target = Path(os.path.expanduser(str(path)))
        if not target.is_absolute():
            target = self.cwd / target
        return Path(os.path.normpath(target))

    def chdir(self, path: str | Path) -> Path:
        """Change the session's working directory.

        Args:
            path: Absolute path, or a path relative to the current cwd.

        Returns:
            The new working directory.

        Raises:
            FileNotFoundError: If the path does not exist.
            NotADirectoryError: If the path is not a directory.
        """
        target = self.resolve_path(path)
        if not target.exists():
            raise FileNotFoundError(f"No such directory: {target}")
        if not target.is_dir():
            raise NotADirectoryError(f"Not a directory: {target}")
        if self.bound:
            os.chdir(target)
        self.env["OLDPWD"] = str(self.cwd)
        self.env["PWD"] = str(target)
        self.cwd = target
        logger.debug("Session cwd changed to %s", target)
        return target

    # -------------------------------------------------------------------------
    # Sourcing
    # -------------------------------------------------------------------------

    def source(self, path: str | Path, *, _depth: int = 0) -> None:
        """Source a file: parse it and apply its statements in order.

        Missing files and targets matching skip_sources are skipped and
        logged, mirroring a shell that reports the error and continues.

        Raises:
            ShellConfigError: If sourcing nests deeper than MAX_SOURCE_DEPTH
                or the file cannot be read.
        """
        if _depth > MAX_SOURCE_DEPTH:
            msg = f"Source nesting deeper than {MAX_SOURCE_DEPTH} at {path} (cycle?)"
            raise ShellConfigError(msg)

        target = self.resolve_path(path)
        if any(fnmatch.fnmatch(str(target), pattern) for pattern in self.skip_sources):
            logger.info("Not following %s (matches skip_sources)", target)
            self.skipped.append(target)
            return
        if not target.is_file():
            logger.warning("Cannot source %s: no such file", target)
            self.skipped.append(target)
            return

        self.sourced.append(target)
        self.apply(load_shell_script(target), _depth=_depth)

    def apply(self, statements: Iterable[ShellStatement], *, _depth: int = 0) -> None:
        """Apply statements in order (a left fold into the session state)."""
        for statement in statements:
            self._apply_one(statement, _depth)

    def _apply_one(self, statement: ShellStatement, depth: int) -> None:
        kind = statement.kind
        name = statement.name

        if kind == StatementKind.ALIAS and name is not None:
            self.aliases[name] = statement.value or ""
        elif kind == StatementKind.UNALIAS and name is not None:
            self.aliases.pop(name, None)
        elif kind in (StatementKind.EXPORT, StatementKind.ASSIGN) and name is not None:
            export = kind == StatementKind.EXPORT
            if statement.value is None:
                # Bare `export NAME` promotes an existing shell variable
                if name in self.variables:
                    self.env[name] = self.variables.pop(name)
                return
            value = self._expand_or_record(statement, statement.value)
            if value is not None:
                self.set_variable(name, value, export=export)
                self.definitions[name] = statement.location
        elif kind == StatementKind.ARRAY and name is not None:
            values = [self._expand_or_record(statement, word) for word in statement.values]
            if all(value is not None for value in values):
                self.variables.pop(name, None)
                self.arrays[name] = [value for value in values if value is not None]
                self.definitions[name] = statement.location
        elif kind == StatementKind.SOURCE and statement.value is not None:
            target = self._expand_or_record(statement, statement.value)
            if target:
                self.source(target, _depth=depth + 1)
        elif kind == StatementKind.FUNCTION and name is not None:
            self.functions[name] = statement.location
        else:
            logger.debug("Not evaluating %s: %s", statement.location, statement.text)
            self.unresolved.append(statement)

    def _expand_or_record(self, statement: ShellStatement, word: str) -> str | None:
        try:
            return self.expand(word)
        except UnresolvedExpansionError as e:
            logger.warning("Not evaluating %s: %s", statement.location, e)
        except ShellConfigError as e:
            logger.warning("Cannot expand %s: %s", statement.location, e)
        if statement not in self.unresolved:
            self.unresolved.append(statement)
        return None

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    def resolve_credentials(
        self, bindings: Mapping[str, str], provider: CredentialProvider
    ) -> list[str]:
        """Export credential-backed variables.

        Args:
            bindings: Environment variable name -> credential key.
            provider: Credential source.

        Returns:
            Names of variables whose key could not be resolved.
        """
        missing: list[str] = []
        for variable, key in bindings.items():
            value = provider.get(key)
            if value is None:
                logger.warning("Credential '%s' for %s not found", key, variable)
                missing.append(variable)
                continue
            self.set_variable(variable, value, export=True)
            self.definitions[variable] = f"credential:{key}"
        return missing


def bootstrap_session(
    settings: Settings,
    provider: CredentialProvider | None = None,
    *,
    bind: bool = False,
) -> Session:
    """Build a session the way an interactive zsh starts up.

    Sources the configured startup file, then exports the credential
    bindings from the provider. By default a MACDOTS_CREDENTIAL_* variable
    in the process environment wins over the netrc file.

    Args:
        settings: macdots settings.
        provider: Credential provider. If None, chains the environment and
            settings.netrc.
        bind: Mirror chdir() onto the real process.

    Returns:
        The initialized session.
    """
    session = Session.from_process(bind=bind, skip_sources=settings.skip_sources)
    session.source(settings.zshrc)
    if settings.credentials:
        if provider is None:
            provider = ChainCredentialProvider(
                EnvironmentCredentialProvider(os.environ, prefix=CREDENTIAL_ENV_PREFIX),
                NetrcCredentialProvider(settings.netrc),
            )
        session.resolve_credentials(settings.credentials, provider)
    return session
