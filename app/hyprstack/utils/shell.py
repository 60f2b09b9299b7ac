"""Shell execution utilities.

Runs package-manager commands with captured output. Commands run under
the C locale because apt and dpkg output is parsed and their error
messages end up in session failure reasons.
"""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Locale forced on every command so output stays parseable.
COMMAND_LOCALE = "C"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one command.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
        args: The command line that produced this result.
    """

    stdout: str
    stderr: str
    returncode: int
    args: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    @property
    def error_message(self) -> str:
        """Last non-empty line of stderr, or the exit code when stderr is empty.

        apt-get prints its actual error (``E: ...``) last, after any
        warnings.
        """
        lines = [line.strip() for line in self.stderr.splitlines() if line.strip()]
        if lines:
            return lines[-1]
        return f"exit code {self.returncode}"


def command_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Build the environment for a command: current env, C locale, then ``extra``."""
    env = dict(os.environ)
    env["LC_ALL"] = COMMAND_LOCALE
    if extra:
        env.update(extra)
    return env


def run_command(
    args: list[str],
    *,
    timeout: float | None = 60.0,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Execute a command and return the result.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for command.
        env: Extra environment variables, applied on top of :func:`command_env`.

    Returns:
        CommandResult with stdout, stderr, returncode and args.

    Raises:
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    logger.debug("Running %s (timeout=%s)", shlex.join(args), timeout)
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
        env=command_env(env),
    )
    if result.returncode != 0:
        logger.debug("%s exited with %d", args[0], result.returncode)
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
        args=tuple(args),
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(name) is not None
