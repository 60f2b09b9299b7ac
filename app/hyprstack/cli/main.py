"""Command-line entry point.

Builds the ``hyprstack`` Typer application, wires logging to Rich and
registers the session, history and settings commands.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from hyprstack import __version__
from hyprstack.cli.commands import cancel, config, history, install, list_cmd, status
from hyprstack.cli.services import CliState
from hyprstack.utils.formatting import err_console

app = typer.Typer(
    name="hyprstack",
    help="Install and configure a Hyprland desktop stack.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("install")(install.install)
app.command("status")(status.status)
app.command("cancel")(cancel.cancel)
app.add_typer(list_cmd.app, name="list")
app.add_typer(history.app, name="history")
app.add_typer(config.app, name="config")


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"hyprstack {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich.

    Without ``verbose`` only warnings and errors are shown; package
    commands and phase changes are logged at info/debug level.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Print the hyprstack version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log package commands and phase changes.",
        ),
    ] = False,
) -> None:
    """hyprstack - Install and configure a Hyprland desktop stack.

    Resolves conflicts between the selected components, installs their
    packages, backs up existing configuration and records every
    installation in a local history.
    """
    configure_logging(verbose)
    ctx.obj = CliState(verbose=verbose)


if __name__ == "__main__":
    app()
