"""CLI package for hyprstack.

This package contains the Typer application and all subcommands.
"""

from hyprstack.cli.main import app

__all__ = ["app"]
