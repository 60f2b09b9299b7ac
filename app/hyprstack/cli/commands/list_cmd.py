"""List command implementation.

This module provides the `hyprstack list` command for viewing stored
installation sessions.
"""

import json
from typing import Annotated

import typer

from hyprstack.cli.display import create_sessions_table
from hyprstack.cli.services import get_repository
from hyprstack.core.lifecycle import ListInstallationsUseCase
from hyprstack.utils.formatting import console, print_info

app = typer.Typer(
    name="list",
    help="List installation sessions.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def list_sessions(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of sessions to show.",
        ),
    ] = 20,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """List installation sessions, newest first.

    Examples:
        hyprstack list              # Show last 20 sessions
        hyprstack list -n 5
        hyprstack list --json       # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    sessions = ListInstallationsUseCase(get_repository()).execute(limit=limit)
    if not sessions:
        print_info("No installation sessions found.")
        return

    if json_output:
        typer.echo(json.dumps([s.to_dict() for s in sessions], indent=2))
        return

    console.print(create_sessions_table(sessions))
