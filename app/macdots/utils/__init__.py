"""Utility modules for macdots.

This module exports commonly used utility functions.
"""

from macdots.utils.formatting import (
    console,
    create_table,
    err_console,
    mask_secret,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from macdots.utils.shell import CommandResult, command_exists, run_selector

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_table",
    "err_console",
    "mask_secret",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_selector",
]
