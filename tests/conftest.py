"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import stat
from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def sample_brewfile_text() -> str:
    """Sample Brewfile content with taps, formulae, casks and comments."""
    return """# Development tools
tap "homebrew/cask-fonts"
tap "hashicorp/tap"

brew "git"
brew "postgresql@16", restart_service: true
brew "python@3.12", link: false # keep system python
brew "hashicorp/tap/terraform"

cask "iterm2"
cask "font-fira-code"
mas "Xcode", id: 497799835
"""


@pytest.fixture
def brewfile_path(tmp_path: Path, sample_brewfile_text: str) -> Path:
    """Sample Brewfile written to a temporary directory."""
    path = tmp_path / "Brewfile"
    path.write_text(sample_brewfile_text, encoding="utf-8")
    return path


@pytest.fixture
def alias_path(tmp_path: Path) -> Path:
    """Alias file with overrides and an unalias."""
    path = tmp_path / ".alias"
    path.write_text(
        """# Navigation
alias ll='ls -la'
alias gs='git status'
alias k=kubectl
alias gs='git status --short'
alias tmp='echo temp'
unalias tmp
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def zshrc_path(tmp_path: Path, alias_path: Path) -> Path:
    """zsh startup file in oh-my-zsh style that sources the alias file."""
    path = tmp_path / ".zshrc"
    path.write_text(
        f"""export ZSH="$HOME/.oh-my-zsh"
ZSH_THEME="robbyrussell"
plugins=(
  git
  docker
)
source $ZSH/oh-my-zsh.sh

export EDITOR=nvim
export GOPATH="$HOME/go"
export PATH="$GOPATH/bin:$PATH"
export KAFKA_PASSWORD=$(awk '/kafka/ {{print $6}}' ~/.netrc)

if [ -f ~/.fzf.zsh ]; then
  source ~/.fzf.zsh
fi

mkcd() {{
  mkdir -p "$1" && cd "$1"
}}

source {alias_path}
""",
        encoding="utf-8",
    )
    return path


StubFactory = Callable[[str], Path]


@pytest.fixture
def make_browser(tmp_path: Path) -> StubFactory:
    """Factory writing an executable /bin/sh stub that stands in for the browser.

    The body is the script after the shebang line.
    """
    counter = iter(range(1000))

    def _make(body: str) -> Path:
        path = tmp_path / f"browser-{next(counter)}"
        path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Settings path for CLI runs so the user's real settings are never read."""
    return tmp_path / "config" / "settings.toml"
