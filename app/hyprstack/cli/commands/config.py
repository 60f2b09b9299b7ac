"""Settings commands.

Provides commands to create and inspect ~/.config/hyprstack/config.toml.
"""

import json
from typing import Annotated

import typer

from hyprstack.cli.services import get_settings
from hyprstack.core.paths import ensure_config_dir, get_settings_path
from hyprstack.core.settings import (
    InstallerSettings,
    SettingsError,
    save_settings,
    settings_to_dict,
)
from hyprstack.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Create and show installer settings.",
    no_args_is_help=True,
)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing settings file.",
        ),
    ] = False,
) -> None:
    """Write a settings file with default values."""
    path = get_settings_path()
    if path.exists() and not force:
        print_error(f"Settings file already exists: {path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        ensure_config_dir()
        saved = save_settings(InstallerSettings(), path)
    except (RuntimeError, SettingsError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Settings written to {saved}")


@app.command()
def show(
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show the effective settings."""
    settings = get_settings()

    if json_output:
        typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))
        return

    path = get_settings_path()
    source = str(path) if path.exists() else f"{path} (not found, using defaults)"
    console.print(f"[bold_header]Settings[/] [muted]{source}[/]")
    console.print(f"  snapshot_dir:           {settings.effective_snapshot_dir}")
    console.print(f"  history_retention_days: {settings.history_retention_days}")
    console.print(f"  apt_timeout_seconds:    {settings.apt_timeout_seconds}")

    data = settings_to_dict(settings)
    for section in ("conflict_strategies", "package_overrides"):
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        console.print(f"  [info]{section}[/]")
        for key, value in values.items():
            console.print(f"    {key} = {value}")
