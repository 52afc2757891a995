"""Unit tests for the interactive session state."""

from pathlib import Path

import pytest
from macdots.core.credentials import StaticCredentialProvider
from macdots.core.session import MAX_SOURCE_DEPTH, Session, bootstrap_session
from macdots.core.settings import Settings
from macdots.core.shellrc import ShellConfigError, parse_shell_script
from macdots.models.shellrc import StatementKind


@pytest.fixture
def session(tmp_path: Path) -> Session:
    """Session rooted in tmp_path with a minimal environment."""
    return Session(
        cwd=tmp_path,
        env={"HOME": str(tmp_path), "PATH": "/usr/bin:/bin"},
        skip_sources=("*/oh-my-zsh.sh",),
    )


class TestVariables:
    """Tests for variable handling."""

    def test_assign_is_not_exported(self, session: Session) -> None:
        """NAME=value sets a shell variable only."""
        session.apply(parse_shell_script("EDITOR=nvim"))

        assert session.variables["EDITOR"] == "nvim"
        assert "EDITOR" not in session.env
        assert session.lookup("EDITOR") == "nvim"

    def test_export(self, session: Session) -> None:
        """export sets an environment variable."""
        session.apply(parse_shell_script('export GOPATH="$HOME/go"'))

        assert session.env["GOPATH"] == f"{session.env['HOME']}/go"

    def test_bare_export_promotes_variable(self, session: Session) -> None:
        """`export NAME` moves a shell variable into the environment."""
        session.apply(parse_shell_script("EDITOR=nvim\nexport EDITOR"))

        assert session.env["EDITOR"] == "nvim"
        assert "EDITOR" not in session.variables

    def test_reassigning_exported_variable_keeps_it_exported(self, session: Session) -> None:
        """A plain assignment to an exported variable updates the environment."""
        session.apply(parse_shell_script('PATH="/opt/bin:$PATH"'))

        assert session.env["PATH"] == "/opt/bin:/usr/bin:/bin"
        assert "PATH" not in session.variables

    def test_later_definition_overrides(self, session: Session) -> None:
        """The last definition of a variable wins and is the recorded location."""
        session.apply(parse_shell_script("export A=1\nexport A=2"))

        assert session.env["A"] == "2"
        assert session.definitions["A"] == "line 2"

    def test_arrays_and_theme(self, session: Session) -> None:
        """oh-my-zsh theme and plugins are exposed."""
        session.apply(parse_shell_script('ZSH_THEME="agnoster"\nplugins=(git docker)'))

        assert session.theme == "agnoster"
        assert session.plugins == ["git", "docker"]
        assert session.lookup("plugins") == "git docker"

    def test_command_substitution_is_recorded_not_run(self, session: Session) -> None:
        """Values needing command execution are left unset and reported."""
        session.apply(parse_shell_script("export TOKEN=$(cat ~/.token)"))

        assert "TOKEN" not in session.env
        assert [s.kind for s in session.unresolved] == [StatementKind.EXPORT]


class TestAliases:
    """Tests for alias handling."""

    def test_later_alias_overrides(self, session: Session) -> None:
        """The last alias definition wins."""
        session.apply(parse_shell_script("alias gs='git status'\nalias gs='git status -s'"))

        assert session.aliases == {"gs": "git status -s"}

    def test_unalias(self, session: Session) -> None:
        """unalias removes an alias; unknown names are ignored."""
        session.apply(parse_shell_script("alias ll=ls\nunalias ll nothere"))

        assert session.aliases == {}

    def test_alias_is_literal(self, session: Session) -> None:
        """Alias commands are stored without expansion."""
        session.apply(parse_shell_script("alias cdgo='cd $GOPATH'"))

        assert session.aliases["cdgo"] == "cd $GOPATH"


class TestSource:
    """Tests for Session.source."""

    def test_source_startup_file(self, session: Session, zshrc_path: Path) -> None:
        """Sourcing the startup file builds the expected session."""
        session.source(zshrc_path)

        assert session.theme == "robbyrussell"
        assert session.plugins == ["git", "docker"]
        assert session.env["EDITOR"] == "nvim"
        assert session.env["PATH"].startswith(f"{session.env['HOME']}/go/bin:")
        assert session.aliases == {
            "ll": "ls -la",
            "gs": "git status --short",
            "k": "kubectl",
        }
        assert "mkcd" in session.functions
        assert "KAFKA_PASSWORD" not in session.env
        assert len(session.sourced) == 2
        assert [p.name for p in session.skipped] == ["oh-my-zsh.sh"]

    def test_unresolved_statements(self, session: Session, zshrc_path: Path) -> None:
        """The command substitution and the if block are reported, not evaluated."""
        session.source(zshrc_path)

        texts = [s.text for s in session.unresolved]
        assert any(text.startswith("export KAFKA_PASSWORD") for text in texts)
        assert any(text.startswith("if [") for text in texts)

    def test_source_twice_is_idempotent(self, session: Session, zshrc_path: Path) -> None:
        """Sourcing the same file again yields the same definitions."""
        session.source(zshrc_path)
        aliases = dict(session.aliases)
        theme = session.theme
        editor = session.env["EDITOR"]

        session.source(zshrc_path)

        assert session.aliases == aliases
        assert session.theme == theme
        assert session.env["EDITOR"] == editor

    def test_relative_source_resolves_against_cwd(self, session: Session, tmp_path: Path) -> None:
        """Relative source targets are resolved against the session cwd."""
        (tmp_path / "extra.zsh").write_text("alias x=y\n", encoding="utf-8")

        session.apply(parse_shell_script("source extra.zsh"))

        assert session.aliases == {"x": "y"}

    def test_source_expands_variables(self, session: Session, tmp_path: Path) -> None:
        """Source targets are expanded before resolution."""
        (tmp_path / "extra.zsh").write_text("alias x=y\n", encoding="utf-8")

        session.apply(parse_shell_script('DOTS="$HOME"\nsource $DOTS/extra.zsh'))

        assert session.aliases == {"x": "y"}

    def test_missing_file_is_skipped(self, session: Session, tmp_path: Path) -> None:
        """A missing source target is skipped, not fatal."""
        session.source(tmp_path / "missing.zsh")

        assert session.sourced == []
        assert session.skipped == [tmp_path / "missing.zsh"]

    def test_skip_sources_pattern(self, session: Session, tmp_path: Path) -> None:
        """Targets matching skip_sources are not followed even when present."""
        loader = tmp_path / "oh-my-zsh.sh"
        loader.write_text("alias omz=yes\n", encoding="utf-8")

        session.source(loader)

        assert session.aliases == {}
        assert session.skipped == [loader]

    def test_source_cycle_is_detected(self, session: Session, tmp_path: Path) -> None:
        """Files that source each other stop at MAX_SOURCE_DEPTH."""
        (tmp_path / "a.zsh").write_text(f"source {tmp_path / 'b.zsh'}\n", encoding="utf-8")
        (tmp_path / "b.zsh").write_text(f"source {tmp_path / 'a.zsh'}\n", encoding="utf-8")

        with pytest.raises(ShellConfigError, match="cycle"):
            session.source(tmp_path / "a.zsh")

        assert len(session.sourced) == MAX_SOURCE_DEPTH + 1


class TestChdir:
    """Tests for Session.chdir."""

    def test_absolute(self, session: Session, tmp_path: Path) -> None:
        """chdir moves the session and updates PWD and OLDPWD."""
        target = tmp_path / "src"
        target.mkdir()

        result = session.chdir(target)

        assert result == target
        assert session.cwd == target
        assert session.env["PWD"] == str(target)
        assert session.env["OLDPWD"] == str(tmp_path)

    def test_relative(self, session: Session, tmp_path: Path) -> None:
        """Relative paths resolve against the current cwd."""
        (tmp_path / "a" / "b").mkdir(parents=True)
        session.chdir("a")

        session.chdir("b/..")

        assert session.cwd == tmp_path / "a"

    def test_missing(self, session: Session, tmp_path: Path) -> None:
        """chdir to a missing directory fails and leaves cwd unchanged."""
        with pytest.raises(FileNotFoundError):
            session.chdir(tmp_path / "nope")

        assert session.cwd == tmp_path

    def test_not_a_directory(self, session: Session, tmp_path: Path) -> None:
        """chdir to a file fails."""
        (tmp_path / "file").write_text("", encoding="utf-8")

        with pytest.raises(NotADirectoryError):
            session.chdir("file")

    def test_unbound_session_does_not_move_process(
        self, session: Session, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Only bound sessions change the process working directory."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "sub").mkdir()

        session.chdir("sub")

        assert Path.cwd().resolve() == tmp_path.resolve()

    def test_bound_session_moves_process(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A bound session mirrors chdir onto the process."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "sub").mkdir()
        session = Session.from_process(bind=True)

        session.chdir("sub")

        assert Path.cwd().resolve() == (tmp_path / "sub").resolve()


class TestCredentials:
    """Tests for credential resolution."""

    def test_resolve_credentials(self, session: Session) -> None:
        """Resolved credentials are exported and marked as credential-backed."""
        provider = StaticCredentialProvider({"kafka.local:password": "s3cret"})

        missing = session.resolve_credentials(
            {"KAFKA_PASSWORD": "kafka.local:password", "NPM_TOKEN": "npm"}, provider
        )

        assert missing == ["NPM_TOKEN"]
        assert session.env["KAFKA_PASSWORD"] == "s3cret"
        assert session.definitions["KAFKA_PASSWORD"] == "credential:kafka.local:password"
        assert "NPM_TOKEN" not in session.env

    def test_bootstrap_session(
        self, tmp_path: Path, zshrc_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """bootstrap_session sources the startup file and then resolves credentials."""
        monkeypatch.setenv("HOME", str(tmp_path))
        netrc_path = tmp_path / ".netrc"
        netrc_path.write_text("machine kafka.local login svc password s3cret\n", encoding="utf-8")
        settings = Settings(
            zshrc=zshrc_path,
            netrc=netrc_path,
            credentials={"KAFKA_PASSWORD": "kafka.local:password"},
        )

        session = bootstrap_session(settings)

        assert session.env["KAFKA_PASSWORD"] == "s3cret"
        assert session.aliases["gs"] == "git status --short"
        assert session.theme == "robbyrussell"

    def test_bootstrap_session_environment_overrides_netrc(
        self, tmp_path: Path, zshrc_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A MACDOTS_CREDENTIAL_* variable wins over the netrc entry."""
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("MACDOTS_CREDENTIAL_KAFKA_LOCAL_PASSWORD", "from-env")
        netrc_path = tmp_path / ".netrc"
        netrc_path.write_text("machine kafka.local login svc password s3cret\n", encoding="utf-8")
        settings = Settings(
            zshrc=zshrc_path,
            netrc=netrc_path,
            credentials={
                "KAFKA_PASSWORD": "kafka.local:password",
                "KAFKA_USER": "kafka.local:login",
            },
        )

        session = bootstrap_session(settings)

        assert session.env["KAFKA_PASSWORD"] == "from-env"
        assert session.env["KAFKA_USER"] == "svc"

    def test_bootstrap_session_with_provider(self, zshrc_path: Path) -> None:
        """An injected provider replaces the netrc lookup."""
        settings = Settings(zshrc=zshrc_path, credentials={"API_KEY": "api"})

        session = bootstrap_session(settings, StaticCredentialProvider({"api": "k3y"}))

        assert session.env["API_KEY"] == "k3y"
