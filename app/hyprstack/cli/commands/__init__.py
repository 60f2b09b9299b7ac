"""CLI commands for hyprstack.

This package contains all subcommand implementations.
"""

from hyprstack.cli.commands import cancel, config, history, install, list_cmd, status

__all__ = ["cancel", "config", "history", "install", "list_cmd", "status"]
