"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from hyprstack.models.session import InstallationStatus

THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "#f53263",
        "info": "#0ec1c8",
        "phase": "#0e8ac8",
    }
)

# Shared console instances
console = Console(theme=THEME)
err_console = Console(theme=THEME, stderr=True)

_STATUS_STYLES: dict[InstallationStatus, str] = {
    InstallationStatus.PENDING: "muted",
    InstallationStatus.PREPARATION: "phase",
    InstallationStatus.INSTALLING: "phase",
    InstallationStatus.CONFIGURING: "phase",
    InstallationStatus.VERIFYING: "phase",
    InstallationStatus.COMPLETED: "success",
    InstallationStatus.FAILED: "error",
}


def create_table(title: str) -> Table:
    """Create a pre-configured table with the shared header and border styles."""
    return Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )


def format_status(status: InstallationStatus) -> str:
    """Format a session status with color markup."""
    return f"[{_STATUS_STYLES[status]}]{status.value}[/]"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
