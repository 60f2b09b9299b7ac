"""History command for viewing past installations.

This module provides the `hyprstack history` command for querying the
records written when installation sessions terminate, and
`hyprstack history show` for the details of one record.
"""

import json
from datetime import datetime, timedelta
from typing import Annotated

import typer

from hyprstack.cli.display import create_history_table, print_record_details
from hyprstack.cli.services import get_history_store
from hyprstack.models.history import InstallationOutcome, InstallationRecord, RecordFilter
from hyprstack.utils.formatting import console, print_error, print_info

DATE_FORMATS = ["%Y-%m-%d"]

app = typer.Typer(
    name="history",
    help="View history of installations.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of records to show.",
        ),
    ] = 20,
    status: Annotated[
        InstallationOutcome | None,
        typer.Option(
            "--status",
            "-s",
            help="Only show records with this outcome.",
            case_sensitive=False,
        ),
    ] = None,
    failed_only: Annotated[
        bool,
        typer.Option(
            "--failed",
            help="Shorthand for --status failed (includes cancellations).",
        ),
    ] = False,
    since: Annotated[
        datetime | None,
        typer.Option(
            "--from",
            formats=DATE_FORMATS,
            help="Only installations started on or after this date (YYYY-MM-DD).",
        ),
    ] = None,
    until: Annotated[
        datetime | None,
        typer.Option(
            "--to",
            formats=DATE_FORMATS,
            help="Only installations started on or before this date (YYYY-MM-DD).",
        ),
    ] = None,
    package: Annotated[
        str | None,
        typer.Option(
            "--package",
            "-p",
            help="Only installations that targeted or installed this package.",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show history of installations.

    Each record shows the outcome, the target component, how many
    packages were installed and, for failures, the reason.

    Examples:
        hyprstack history                         # Show last 20 records
        hyprstack history -n 50 --status success
        hyprstack history --from 2025-10-01 --to 2025-10-31
        hyprstack history --json                  # JSON output for scripting
        hyprstack history show 3f2b9c1e
    """
    if ctx.invoked_subcommand is not None:
        return

    if limit < 1:
        print_error("--limit must be at least 1.")
        raise typer.Exit(code=1)
    if failed_only:
        status = InstallationOutcome.FAILED

    try:
        record_filter = RecordFilter(
            outcome=status,
            # Dates are local calendar days; --to includes the whole day.
            since=since.astimezone() if since else None,
            until=(until + timedelta(days=1, microseconds=-1)).astimezone() if until else None,
            package=package,
        )
    except ValueError as e:
        print_error(f"Invalid date range: {e}")
        raise typer.Exit(code=1) from e

    records = get_history_store().get_history(limit=limit, record_filter=record_filter)

    if not records:
        print_info("No history records found.")
        return

    if json_output:
        _print_json(records)
    else:
        console.print(create_history_table(records))


@app.command("show")
def show(
    record_id: Annotated[
        str,
        typer.Argument(help="Record ID (or a unique prefix of it), or a session ID."),
    ],
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show every detail of one history record.

    Examples:
        hyprstack history show 3f2b9c1e
        hyprstack history show 3f2b9c1e --json
    """
    record = get_history_store().get_by_id(record_id)
    if record is None:
        print_error(f"History record not found: {record_id}")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps(record.to_dict(), indent=2))
        return

    print_record_details(record)


def _print_json(records: list[InstallationRecord]) -> None:
    """Print history as JSON.

    Args:
        records: History records to output.
    """
    output = [record.to_dict() for record in records]
    typer.echo(json.dumps(output, indent=2))
