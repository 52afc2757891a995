"""Path selector commands.

`macdots nav` runs the configured directory browser and prints the
chosen directory. A child process cannot change its parent shell's
working directory, so `macdots shell-init` emits a zsh function that
calls `macdots nav` and changes directory with the result.
"""

from typing import Annotated

import typer

from macdots.cli.types import require_settings
from macdots.core.navigator import BrowserNotFoundError, NavigatorError, PathSelector
from macdots.core.session import Session
from macdots.core.settings import SettingsError, update_setting
from macdots.utils.formatting import print_error

# Exit status a shell uses for "command not found"
EXIT_COMMAND_NOT_FOUND = 127

SHELL_FUNCTION_TEMPLATE = """\
# macdots interactive path selector
{name}() {{
  local dir
  dir="$(command macdots nav -- "$@")" || return $?
  if [ -n "$dir" ]; then
    builtin cd -- "$dir"
  fi
}}
"""


def nav(
    ctx: typer.Context,
    args: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments forwarded to the directory browser."),
    ] = None,
) -> None:
    """Browse for a directory and print it.

    Prints nothing when the selection is cancelled. Exits with status
    127 when the browser is not installed.
    """
    settings = require_settings(ctx)
    selector = PathSelector(Session.from_process(), settings.effective_browser)

    try:
        result = selector.navigate(*(args or []))
    except BrowserNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(code=EXIT_COMMAND_NOT_FOUND) from e
    except NavigatorError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if result.changed and result.path is not None:
        typer.echo(str(result.path))


def shell_init(
    ctx: typer.Context,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Function name (default: 'function_name' setting)."),
    ] = None,
) -> None:
    """Print the zsh function that wraps `macdots nav`.

    Add `eval "$(macdots shell-init)"` to ~/.zshrc.
    """
    settings = require_settings(ctx)
    if name is not None:
        try:
            settings = update_setting(settings, "function_name", name)
        except SettingsError as e:
            print_error(f"Invalid function name '{name}'")
            raise typer.Exit(code=1) from e
    function_name = settings.function_name
    typer.echo(SHELL_FUNCTION_TEMPLATE.format(name=function_name), nl=False)
