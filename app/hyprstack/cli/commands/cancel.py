"""Cancel command implementation.

Cancels an installation session that has not terminated yet. A running
install notices the cancellation at its next phase boundary.
"""

from typing import Annotated

import typer

from hyprstack.cli.services import get_history_service, get_repository
from hyprstack.core.lifecycle import DEFAULT_CANCEL_DETAIL, CancelInstallationUseCase
from hyprstack.models.errors import (
    InstallationError,
    SessionNotFoundError,
    SessionTerminalError,
    StaleSessionError,
)
from hyprstack.utils.formatting import print_error, print_success, print_warning


def cancel(
    session_id: Annotated[
        str,
        typer.Argument(help="Session ID to cancel."),
    ],
    reason: Annotated[
        str,
        typer.Option(
            "--reason",
            "-r",
            help="Text appended to 'installation cancelled'.",
        ),
    ] = DEFAULT_CANCEL_DETAIL,
) -> None:
    """Cancel an installation session.

    The session is marked failed with a reason starting with
    "installation cancelled" and a history record is written.

    Examples:
        hyprstack cancel 3f2b9c1e-...
        hyprstack cancel 3f2b9c1e-... --reason "to switch GPU driver"
    """
    use_case = CancelInstallationUseCase(get_repository(), get_history_service())
    try:
        session = use_case.execute(session_id, reason)
    except SessionNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except (SessionTerminalError, StaleSessionError) as e:
        print_warning(str(e))
        raise typer.Exit(code=1) from e
    except InstallationError as e:
        print_error(f"Cannot cancel session: {e}")
        raise typer.Exit(code=1) from e

    print_success(f"Session {session.id} cancelled: {session.failure_reason}")
