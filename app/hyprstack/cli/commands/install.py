"""Install command implementation.

Builds an installation configuration from the requested components,
shows the resolved plan, and runs the session to completion.
"""

from datetime import UTC, datetime, timedelta
from typing import Annotated

import typer

from hyprstack.cli.display import create_plan_table, print_progress_details, print_progress_update
from hyprstack.cli.services import (
    get_history_service,
    get_history_store,
    get_repository,
    get_settings,
    get_state,
)
from hyprstack.core.executor import ExecuteInstallationUseCase
from hyprstack.core.lifecycle import InstallationRequest, StartInstallationUseCase
from hyprstack.core.snapshot import SnapshotCapturer
from hyprstack.models.configuration import InstallationConfiguration
from hyprstack.models.errors import HistoryRecordingError, InstallationError
from hyprstack.models.session import InstallationStatus
from hyprstack.operators.apt import AptPackageManager
from hyprstack.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)


def install(
    ctx: typer.Context,
    components: Annotated[
        list[str],
        typer.Argument(
            help="Components to install, as NAME or NAME=VERSION (e.g. hyprland=0.45.0).",
            show_default=False,
        ),
    ],
    gpu: Annotated[
        str | None,
        typer.Option(
            "--gpu",
            "-g",
            help="GPU vendor (nvidia, amd, intel). Adds the matching driver.",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Simulate package operations without changing the system.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt.",
        ),
    ] = False,
    merge: Annotated[
        bool,
        typer.Option(
            "--merge",
            help="Keep existing component config files instead of backing up and replacing them.",
        ),
    ] = False,
    previous: Annotated[
        str | None,
        typer.Option(
            "--from",
            help="Carry over the components of a previous session.",
        ),
    ] = None,
) -> None:
    """Install Hyprland desktop components.

    Conflicts between the requested components are resolved before
    anything is installed, using the strategies from config.toml or the
    suggested strategy of each conflict.

    Examples:
        hyprstack install hyprland waybar rofi kitty
        hyprstack install hyprland=0.45.0 --gpu nvidia
        hyprstack install waybar --dry-run
    """
    verbose = get_state(ctx).verbose
    settings = get_settings()
    repository = get_repository()

    package_manager = AptPackageManager(dry_run=dry_run, timeout=settings.apt_timeout_seconds)
    if not package_manager.is_available():
        print_error("apt-get is not available on this system.")
        raise typer.Exit(code=1)

    snapshot_capturer = SnapshotCapturer(snapshot_root=settings.effective_snapshot_dir)
    starter = StartInstallationUseCase(
        repository,
        settings=settings,
        snapshot_capturer=snapshot_capturer,
    )
    executor = ExecuteInstallationUseCase(
        repository,
        package_manager,
        get_history_service(),
        snapshot_capturer=snapshot_capturer,
        conflict_strategies=settings.conflict_strategies,
    )

    request = InstallationRequest(
        components=tuple(components),
        gpu_vendor=gpu,
        dry_run=dry_run,
        merge_existing_config=merge,
        previous_session_id=previous,
    )

    try:
        configuration = starter.prepare_configuration(request)
        plan = executor.plan_installation(configuration)
    except (ValueError, InstallationError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except OSError as e:
        print_error(f"Cannot measure disk space: {e}")
        raise typer.Exit(code=1) from e

    _show_plan(configuration, len(plan))

    if not dry_run and not yes:
        confirm = typer.confirm("Proceed with installation?", default=False)
        if not confirm:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    session = starter.create_session(configuration)
    print_info(f"Session {session.id}")

    try:
        progress = executor.execute(session.id, progress_callback=print_progress_update)
    except InstallationError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    console.print()
    if verbose:
        print_progress_details(progress)

    _purge_history(settings.history_retention_days)

    if progress.status == InstallationStatus.COMPLETED:
        suffix = " (dry run)" if dry_run else ""
        print_success(f"Installed {progress.components_installed} component(s){suffix}.")
        return

    print_error(f"Installation failed: {progress.failure_reason}")
    print_info(f"Run 'hyprstack status {session.id}' for details.")
    raise typer.Exit(code=1)


def _show_plan(configuration: InstallationConfiguration, planned: int) -> None:
    """Print the configuration and how many components survive conflict resolution.

    Args:
        configuration: Configuration about to be installed.
        planned: Number of components left after conflict resolution.
    """
    console.print(create_plan_table(configuration))
    skipped = configuration.component_count - planned
    if skipped:
        print_warning(f"{skipped} component(s) skipped by conflict resolution.")
    console.print(
        f"[muted]Disk: {configuration.disk_space.available_gb:.1f} GB available on "
        f"{configuration.disk_space.path}[/]"
    )


def _purge_history(retention_days: int) -> None:
    """Drop history records older than the retention period."""
    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    try:
        get_history_store().purge_older_than(cutoff)
    except HistoryRecordingError as e:
        print_warning(f"Could not purge old history: {e}")
