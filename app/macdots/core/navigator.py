"""Interactive path selector.

Launches an external terminal directory browser (``walk`` by default),
waits for the user to pick a directory, and moves the session there. An
empty selection is the cancel outcome and leaves the session untouched.

Example:
    >>> session = Session.from_process()
    >>> result = navigate(session, "~/src")
    >>> if result.changed:
    ...     print(session.cwd)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from macdots.core.session import Session
from macdots.core.settings import DEFAULT_BROWSER
from macdots.utils.shell import command_exists, run_selector

logger = logging.getLogger(__name__)


class NavigatorError(Exception):
    """Base exception for path selector errors."""


class BrowserNotFoundError(NavigatorError):
    """Raised when the directory browser is not on the search path."""


class InvalidSelectionError(NavigatorError):
    """Raised when the browser reports a path that is not a usable directory."""


class NavigatorBusyError(NavigatorError):
    """Raised when navigate() is called while a browser is already running."""


class SelectorState(Enum):
    """Lifecycle of a PathSelector."""

    IDLE = "idle"
    BROWSING = "browsing"


class NavigationOutcome(Enum):
    """How a navigation ended."""

    CHANGED = "changed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class NavigationResult:
    """Result of one navigate() call.

    Attributes:
        outcome: CHANGED when the session moved, CANCELLED otherwise.
        path: New working directory (None when cancelled).
        returncode: Exit code of the browser process.
        previous_cwd: Working directory before the call.
    """

    outcome: NavigationOutcome
    path: Path | None
    returncode: int
    previous_cwd: Path

    @property
    def changed(self) -> bool:
        """Check if the working directory was changed."""
        return self.outcome == NavigationOutcome.CHANGED


def _first_line(output: str) -> str:
    lines = output.splitlines()
    return lines[0] if lines else ""


class PathSelector:
    """Runs a directory browser and applies its selection to a session.

    Attributes:
        session: Session whose working directory is changed.
        browser: Browser command name or path.
        state: IDLE, or BROWSING while the browser process runs.
    """

    def __init__(self, session: Session, browser: str = DEFAULT_BROWSER) -> None:
        self.session = session
        self.browser = browser
        self.state = SelectorState.IDLE

    def navigate(self, *args: str) -> NavigationResult:
        """Browse for a directory and change the session's cwd to it.

        Blocks until the browser exits. Arguments are forwarded verbatim
        to the browser. Only the first line of the browser's stdout
        matters: empty output cancels whatever the exit code was.

        Args:
            args: Initial arguments for the browser, e.g. a starting path.

        Returns:
            NavigationResult describing the outcome.

        Raises:
            NavigatorBusyError: If a browser is already running.
            BrowserNotFoundError: If the browser command cannot be found.
            InvalidSelectionError: If the selection is not a directory.
        """
        if self.state != SelectorState.IDLE:
            raise NavigatorBusyError("A directory browser is already running")

        previous = self.session.cwd
        search_path = self.session.env.get("PATH")
        if "/" not in self.browser and not command_exists(self.browser, search_path):
            raise BrowserNotFoundError(f"command not found: {self.browser}")

        self.state = SelectorState.BROWSING
        try:
            logger.debug("Launching %s %s in %s", self.browser, list(args), previous)
            try:
                result = run_selector(
                    [self.browser, *args],
                    cwd=str(previous),
                    env=self.session.env,
                )
            except FileNotFoundError as e:
                raise BrowserNotFoundError(f"command not found: {self.browser}") from e
            except OSError as e:
                raise BrowserNotFoundError(f"cannot execute {self.browser}: {e}") from e

            if not result.success:
                logger.debug("%s exited with code %d", self.browser, result.returncode)
            selection = _first_line(result.stdout).rstrip("\r")
            if not selection:
                logger.info("Selection cancelled")
                return NavigationResult(
                    outcome=NavigationOutcome.CANCELLED,
                    path=None,
                    returncode=result.returncode,
                    previous_cwd=previous,
                )

            try:
                target = self.session.chdir(selection)
            except OSError as e:
                raise InvalidSelectionError(f"cd: {e}") from e
            return NavigationResult(
                outcome=NavigationOutcome.CHANGED,
                path=target,
                returncode=result.returncode,
                previous_cwd=previous,
            )
        finally:
            self.state = SelectorState.IDLE


def navigate(session: Session, *args: str, browser: str | None = None) -> NavigationResult:
    """Run the directory browser once for a session.

    Args:
        session: Session to relocate.
        args: Arguments forwarded to the browser.
        browser: Browser command. Defaults to DEFAULT_BROWSER.

    Returns:
        NavigationResult describing the outcome.
    """
    return PathSelector(session, browser or DEFAULT_BROWSER).navigate(*args)
