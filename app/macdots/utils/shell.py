"""Shell execution utilities.

Provides safe subprocess execution with proper error handling.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command (empty when not captured).
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def command_exists(name: str, path: str | None = None) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.
        path: Search path to use instead of the process PATH.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name, path=path) is not None


def run_selector(
    args: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Execute an interactive selector and capture only its standard output.

    Stdin and stderr stay attached to the user's terminal so the
    selector can draw its UI, while whatever it prints to stdout on exit
    is returned. There is no timeout: the call blocks for as long as the
    user keeps the selector open.

    Args:
        args: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Additional environment variables (merged with current env).

    Returns:
        CommandResult with the captured stdout and the exit code.

    Raises:
        FileNotFoundError: If command executable is not found.
        OSError: If command cannot be executed.
    """
    full_env = {**os.environ, **(env or {})}
    result = subprocess.run(
        args,
        stdout=subprocess.PIPE,
        text=True,
        check=False,
        cwd=cwd,
        env=full_env,
    )
    return CommandResult(
        stdout=result.stdout or "",
        stderr="",
        returncode=result.returncode,
    )
