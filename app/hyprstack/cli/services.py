"""Shared service factories for CLI commands.

Commands build their collaborators through these functions so every
command uses the same storage locations and tests can patch one place.
"""

from dataclasses import dataclass

import typer

from hyprstack.core.history import HistoryRecordingService, HistoryStore
from hyprstack.core.repository import JsonSessionRepository, SessionRepository
from hyprstack.core.settings import InstallerSettings, SettingsError, load_settings
from hyprstack.utils.formatting import print_error


@dataclass(frozen=True, slots=True)
class CliState:
    """Global options, stored as the Typer context object.

    Attributes:
        verbose: Show debug logging and per-session details.
    """

    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    """Global options of the running command; defaults when invoked directly."""
    state = ctx.find_object(CliState)
    return state if state is not None else CliState()


def get_settings() -> InstallerSettings:
    """Load settings, exiting with code 1 when the settings file is invalid."""
    try:
        return load_settings()
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def get_repository() -> SessionRepository:
    """Session repository under the XDG state directory."""
    return JsonSessionRepository()


def get_history_store() -> HistoryStore:
    """History store under the XDG state directory."""
    return HistoryStore()


def get_history_service() -> HistoryRecordingService:
    """History recording service writing to the default store."""
    return HistoryRecordingService(get_history_store())
