"""APT package manager implementation.

Installs and removes packages using apt-get and queries the dpkg
database for installation status and declared conflicts.
"""

import logging
import subprocess

from hyprstack.core.settings import DEFAULT_APT_TIMEOUT_SECONDS
from hyprstack.models.component import LATEST_VERSION
from hyprstack.models.errors import PackageInstallError
from hyprstack.operators.base import PackageManager
from hyprstack.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)

_INSTALLED_STATUS = "install ok installed"


class AptPackageManager(PackageManager):
    """Package manager for APT/dpkg systems.

    Uses apt-get to install and remove packages. Requires sudo privileges
    for actual execution; dry-run mode simulates with ``apt-get --dry-run``.

    Attributes:
        dry_run: If True, uses apt-get --dry-run to simulate changes.
        timeout: Seconds a single apt-get invocation may take.
    """

    def __init__(
        self,
        dry_run: bool = False,
        timeout: float = DEFAULT_APT_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(dry_run=dry_run)
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if apt-get is available."""
        return command_exists("apt-get")

    def install_package(self, name: str, version: str) -> None:
        """Install a package using apt-get install.

        A version other than ``latest`` is pinned as ``name=version``.

        Raises:
            PackageInstallError: If apt-get is unavailable or fails.
        """
        if not name:
            raise PackageInstallError("Package name cannot be empty")
        target = name if not version or version == LATEST_VERSION else f"{name}={version}"
        self._run_apt("install", target)

    def remove_package(self, name: str) -> None:
        """Remove a package using apt-get remove.

        Raises:
            PackageInstallError: If apt-get is unavailable or fails.
        """
        if not name:
            raise PackageInstallError("Package name cannot be empty")
        self._run_apt("remove", name)

    def is_package_installed(self, name: str) -> bool:
        """Check the dpkg status of a package.

        A package unknown to dpkg is reported as not installed.

        Raises:
            PackageInstallError: If dpkg-query cannot be executed.
        """
        if not name:
            raise PackageInstallError("Package name cannot be empty")
        result = self._query(["dpkg-query", "-W", "-f=${Status}", name])
        if not result.success:
            return False
        return _INSTALLED_STATUS in result.stdout

    def find_conflicts(self, name: str) -> list[str]:
        """List installed packages that ``name`` declares as conflicting.

        Reads the Conflicts field of the candidate package and keeps the
        entries that dpkg reports as installed. A package apt does not know
        has no conflicts.
        """
        result = self._query(["apt-cache", "show", "--no-all-versions", name])
        if not result.success:
            logger.debug("No package metadata for %s: %s", name, result.error_message)
            return []
        declared = parse_conflicts_field(result.stdout)
        return [pkg for pkg in declared if pkg != name and self.is_package_installed(pkg)]

    def _run_apt(self, command: str, target: str) -> None:
        if not self.is_available():
            msg = "APT package manager is not available on this system"
            raise PackageInstallError(msg)

        if self.dry_run:
            args = ["apt-get", command, "-y", "--dry-run", target]
        else:
            args = ["sudo", "apt-get", command, "-y", target]

        logger.info("Executing APT %s for %s (dry_run=%s)", command, target, self.dry_run)

        try:
            result = run_command(args, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            msg = f"apt-get {command} {target} timed out after {self.timeout:.0f}s"
            raise PackageInstallError(msg) from e
        except OSError as e:
            msg = f"Failed to run apt-get {command} {target}: {e}"
            raise PackageInstallError(msg) from e

        if not result.success:
            msg = f"Failed to {command} package {target}: {result.error_message}"
            raise PackageInstallError(msg)

    def _query(self, args: list[str]) -> CommandResult:
        try:
            return run_command(args, timeout=30.0)
        except (subprocess.TimeoutExpired, OSError) as e:
            msg = f"Failed to query package database with {args[0]}: {e}"
            raise PackageInstallError(msg) from e


def parse_conflicts_field(control: str) -> list[str]:
    """Extract package names from the Conflicts field of dpkg control data.

    Version constraints and alternatives are dropped, so
    ``Conflicts: foo (<< 2.0), bar | baz`` yields ``["foo", "bar", "baz"]``.
    Only the first stanza is read.
    """
    names: list[str] = []
    for line in control.splitlines():
        if not line.strip():
            break
        if not line.startswith("Conflicts:"):
            continue
        for entry in line.removeprefix("Conflicts:").split(","):
            for alternative in entry.split("|"):
                pkg = alternative.strip().split(" ")[0].split(":")[0]
                if pkg and pkg not in names:
                    names.append(pkg)
    return names
