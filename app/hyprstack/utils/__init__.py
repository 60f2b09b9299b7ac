"""Utility modules for hyprstack.

This module exports commonly used utility functions.
"""

from hyprstack.utils.formatting import (
    console,
    create_table,
    err_console,
    format_status,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from hyprstack.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_table",
    "err_console",
    "format_status",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
