"""Abstract base class for package managers.

This module defines the PackageManager interface the installation
orchestrator drives. Implementations wrap a concrete system package
manager.
"""

from abc import ABC, abstractmethod


class PackageManager(ABC):
    """Abstract base class for system package managers.

    Calls block for the duration of the underlying package manager
    operation and are never issued concurrently for one system.

    Attributes:
        dry_run: If True, only simulate changes without executing them.

    Example:
        >>> manager = AptPackageManager(dry_run=True)
        >>> manager.install_package("hyprland", "0.45.0")
        >>> manager.is_package_installed("hyprland")
    """

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize the package manager.

        Args:
            dry_run: If True, only simulate changes without executing them.
        """
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        """Check if the package manager is in dry-run mode."""
        return self._dry_run

    @abstractmethod
    def install_package(self, name: str, version: str) -> None:
        """Install a package at the given version.

        Args:
            name: Package name.
            version: Requested version string.

        Raises:
            PackageInstallError: If the package cannot be installed.
        """

    @abstractmethod
    def is_package_installed(self, name: str) -> bool:
        """Check if a package is installed.

        Raises:
            PackageInstallError: If the package database cannot be queried.
        """

    @abstractmethod
    def remove_package(self, name: str) -> None:
        """Remove an installed package.

        Raises:
            PackageInstallError: If the package cannot be removed.
        """

    @abstractmethod
    def find_conflicts(self, name: str) -> list[str]:
        """List installed packages that conflict with ``name``.

        Read-only query; never changes the system.

        Returns:
            Names of installed packages declared as conflicting.
        """

    def is_available(self) -> bool:
        """Check if this package manager can be used on the system."""
        return True
