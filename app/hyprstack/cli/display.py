"""Shared Rich display functions for sessions and history.

Provides reusable table builders and printers used by the install,
status, list and history commands.
"""

from datetime import datetime, timedelta

from rich.table import Table

from hyprstack.models.configuration import InstallationConfiguration
from hyprstack.models.history import InstallationRecord
from hyprstack.models.progress import InstallationProgress, ProgressUpdate
from hyprstack.utils.formatting import console, create_table, format_status


def format_timestamp(value: datetime | None) -> str:
    """Format a timestamp for display (YYYY-MM-DD HH:MM), '-' when missing."""
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def format_duration(value: timedelta) -> str:
    """Format a duration as e.g. '1h 02m', '3m 05s' or '12s'."""
    seconds = int(value.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def create_plan_table(configuration: InstallationConfiguration) -> Table:
    """Create a table listing the components a configuration installs.

    Args:
        configuration: Configuration to display.

    Returns:
        Rich Table with Component, Package, Version and Size columns.
    """
    title = "Installation Plan (Dry Run)" if configuration.dry_run else "Installation Plan"
    table = create_table(title)
    table.add_column("Component", no_wrap=True)
    table.add_column("Package", style="muted")
    table.add_column("Version", style="info")
    table.add_column("Size", justify="right")

    for selection in configuration.components:
        size = selection.estimated_size_bytes
        table.add_row(
            selection.component.value,
            selection.package_name,
            selection.version,
            f"{size / (1024 * 1024):.1f} MB" if size else "-",
        )
    return table


def create_sessions_table(sessions: list[InstallationProgress]) -> Table:
    """Create a table with one row per session."""
    table = create_table("Installation Sessions")
    table.add_column("ID", style="muted", no_wrap=True)
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Components", justify="right")
    table.add_column("Started")
    table.add_column("Completed")

    for progress in sessions:
        table.add_row(
            progress.session_id,
            format_status(progress.status),
            f"{progress.percent_complete}%",
            f"{progress.components_installed}/{progress.components_total}",
            format_timestamp(progress.started_at),
            format_timestamp(progress.completed_at),
        )
    return table


def create_history_table(records: list[InstallationRecord]) -> Table:
    """Create a table with one row per history record."""
    table = create_table("Installation History")
    table.add_column("ID", style="muted", no_wrap=True)
    table.add_column("Recorded")
    table.add_column("Outcome")
    table.add_column("Target")
    table.add_column("Packages", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Failure", overflow="ellipsis")

    for record in records:
        outcome = "[success]success[/]" if record.was_successful else "[error]failed[/]"
        failure = record.failure_details.reason if record.failure_details else ""
        table.add_row(
            record.id[:8],
            format_timestamp(record.recorded_at),
            outcome,
            f"{record.metadata.target_package} {record.metadata.target_version}",
            str(record.package_count),
            format_duration(record.duration),
            f"[muted]{failure}[/]",
        )
    return table


def print_record_details(record: InstallationRecord) -> None:
    """Print every field of one history record as labelled lines."""
    metadata = record.metadata
    context = record.system_context
    outcome = "[success]success[/]" if record.was_successful else "[error]failed[/]"

    console.print(f"[bold_header]Record[/] {record.id}")
    console.print(f"  Session:    {record.session_id}")
    console.print(f"  Outcome:    {outcome}")
    console.print(f"  Target:     {metadata.target_package} {metadata.target_version}")
    console.print(f"  Installed:  {format_timestamp(metadata.installed_at)}")
    console.print(f"  Recorded:   {format_timestamp(record.recorded_at)}")
    console.print(f"  Duration:   {format_duration(record.duration)}")
    console.print(f"  System:     {context.os_version}, kernel {context.kernel_version}")
    console.print(f"  hyprstack:  {context.app_version}")

    console.print(f"  Packages ({record.package_count}):")
    for package in metadata.packages:
        size = f"{package.size_bytes / (1024 * 1024):.1f} MB"
        console.print(f"    - {package.name} {package.version} [muted]({size})[/]")

    if record.failure_details is not None:
        details = record.failure_details
        console.print(f"  Failed in:  {details.phase} at {format_timestamp(details.failed_at)}")
        console.print(f"  Reason:     [error]{details.reason}[/]")


def print_progress_details(progress: InstallationProgress) -> None:
    """Print the status of one session as labelled lines."""
    console.print(f"[bold_header]Session[/] {progress.session_id}")
    console.print(f"  Status:     {format_status(progress.status)} ({progress.current_phase})")
    console.print(f"  Progress:   {progress.percent_complete}%")
    console.print(
        f"  Components: {progress.components_installed}/{progress.components_total} installed"
    )
    console.print(f"  Started:    {format_timestamp(progress.started_at)}")
    console.print(f"  Completed:  {format_timestamp(progress.completed_at)}")
    if progress.failure_reason:
        console.print(f"  Reason:     [error]{progress.failure_reason}[/]")
    elif not progress.is_terminal and progress.estimated_remaining:
        console.print(f"  Remaining:  ~{format_duration(progress.estimated_remaining)}")


def print_progress_update(update: ProgressUpdate) -> None:
    """Print one progress event as a single line."""
    console.print(
        f"[muted][{update.percent_complete:>3}%][/] "
        f"{format_status(update.phase)} {update.message}"
    )
