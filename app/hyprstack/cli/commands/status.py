"""Status command implementation.

Shows the progress of one installation session.
"""

import json
from typing import Annotated

import typer

from hyprstack.cli.display import print_progress_details
from hyprstack.cli.services import get_repository
from hyprstack.core.lifecycle import GetInstallationStatusUseCase
from hyprstack.models.errors import InstallationError, SessionNotFoundError
from hyprstack.utils.formatting import print_error


def status(
    session_id: Annotated[
        str,
        typer.Argument(help="Session ID as printed by 'hyprstack install'."),
    ],
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the status of an installation session.

    Examples:
        hyprstack status 3f2b9c1e-...
        hyprstack status 3f2b9c1e-... --json
    """
    use_case = GetInstallationStatusUseCase(get_repository())
    try:
        progress = use_case.execute(session_id)
    except SessionNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except InstallationError as e:
        print_error(f"Cannot read session: {e}")
        raise typer.Exit(code=1) from e

    if json_output:
        typer.echo(json.dumps(progress.to_dict(), indent=2))
        return

    print_progress_details(progress)
