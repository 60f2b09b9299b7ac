"""Unit tests for AptPackageManager.

Tests for the APT package manager implementation.
"""

import subprocess
from unittest.mock import patch

import pytest
from hyprstack.models.errors import PackageInstallError
from hyprstack.operators.apt import AptPackageManager, parse_conflicts_field
from hyprstack.utils.shell import CommandResult

OK = CommandResult(stdout="", stderr="", returncode=0)


class TestAptPackageManager:
    """Tests for AptPackageManager class."""

    @pytest.fixture
    def manager(self) -> AptPackageManager:
        """Create AptPackageManager instance."""
        return AptPackageManager(timeout=120)

    @pytest.fixture
    def dry_run_manager(self) -> AptPackageManager:
        """Create AptPackageManager in dry-run mode."""
        return AptPackageManager(dry_run=True)

    def test_is_available_when_apt_exists(self, manager: AptPackageManager) -> None:
        """is_available returns True when apt-get exists."""
        with patch("hyprstack.operators.apt.command_exists", return_value=True):
            assert manager.is_available() is True

    def test_is_available_when_apt_missing(self, manager: AptPackageManager) -> None:
        """is_available returns False when apt-get is missing."""
        with patch("hyprstack.operators.apt.command_exists", return_value=False):
            assert manager.is_available() is False

    def test_install_latest(self, manager: AptPackageManager) -> None:
        """install_package runs sudo apt-get install without a version pin."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch("hyprstack.operators.apt.run_command", return_value=OK) as mock_run,
        ):
            manager.install_package("kitty", "latest")

        mock_run.assert_called_once_with(
            ["sudo", "apt-get", "install", "-y", "kitty"], timeout=120
        )

    def test_install_pins_version(self, manager: AptPackageManager) -> None:
        """A concrete version is pinned as name=version."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch("hyprstack.operators.apt.run_command", return_value=OK) as mock_run,
        ):
            manager.install_package("hyprland", "0.45.0")

        args = mock_run.call_args[0][0]
        assert args[-1] == "hyprland=0.45.0"

    def test_install_dry_run(self, dry_run_manager: AptPackageManager) -> None:
        """Dry-run mode uses --dry-run and does not call sudo."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch("hyprstack.operators.apt.run_command", return_value=OK) as mock_run,
        ):
            dry_run_manager.install_package("waybar", "latest")

        args = mock_run.call_args[0][0]
        assert "--dry-run" in args
        assert "sudo" not in args

    def test_install_failure(self, manager: AptPackageManager) -> None:
        """A non-zero exit raises PackageInstallError with apt's message."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch("hyprstack.operators.apt.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult(
                stdout="", stderr="E: Unable to locate package hyprland", returncode=100
            )
            with pytest.raises(PackageInstallError, match="Unable to locate package"):
                manager.install_package("hyprland", "latest")

    def test_install_failure_without_stderr(self, manager: AptPackageManager) -> None:
        """A silent failure reports the exit code."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch(
                "hyprstack.operators.apt.run_command",
                return_value=CommandResult(stdout="", stderr="", returncode=1),
            ),
            pytest.raises(PackageInstallError, match="exit code 1"),
        ):
            manager.install_package("rofi", "latest")

    def test_install_timeout(self, manager: AptPackageManager) -> None:
        """A timeout raises PackageInstallError."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch(
                "hyprstack.operators.apt.run_command",
                side_effect=subprocess.TimeoutExpired(cmd="apt-get", timeout=120),
            ),
            pytest.raises(PackageInstallError, match="timed out after 120s"),
        ):
            manager.install_package("hyprland", "latest")

    def test_install_raises_when_unavailable(self, manager: AptPackageManager) -> None:
        """install_package raises when APT is unavailable."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=False),
            pytest.raises(PackageInstallError, match="not available"),
        ):
            manager.install_package("hyprland", "latest")

    def test_install_empty_name(self, manager: AptPackageManager) -> None:
        """An empty package name is rejected before running apt-get."""
        with (
            patch("hyprstack.operators.apt.run_command") as mock_run,
            pytest.raises(PackageInstallError, match="cannot be empty"),
        ):
            manager.install_package("", "latest")

        mock_run.assert_not_called()

    def test_remove_success(self, manager: AptPackageManager) -> None:
        """remove_package runs apt-get remove."""
        with (
            patch("hyprstack.operators.apt.command_exists", return_value=True),
            patch("hyprstack.operators.apt.run_command", return_value=OK) as mock_run,
        ):
            manager.remove_package("sway")

        assert mock_run.call_args[0][0] == ["sudo", "apt-get", "remove", "-y", "sway"]


class TestIsPackageInstalled:
    """Tests for AptPackageManager.is_package_installed."""

    def test_installed(self, mock_installed_status: str) -> None:
        """An 'install ok installed' status means installed."""
        with patch(
            "hyprstack.operators.apt.run_command",
            return_value=CommandResult(stdout=mock_installed_status, stderr="", returncode=0),
        ) as mock_run:
            assert AptPackageManager().is_package_installed("hyprland") is True

        assert mock_run.call_args[0][0][:2] == ["dpkg-query", "-W"]

    def test_removed_but_configured(self) -> None:
        """A package with only config files left is not installed."""
        with patch(
            "hyprstack.operators.apt.run_command",
            return_value=CommandResult(
                stdout="deinstall ok config-files", stderr="", returncode=0
            ),
        ):
            assert AptPackageManager().is_package_installed("sway") is False

    def test_unknown_package(self) -> None:
        """A package unknown to dpkg is not installed."""
        with patch(
            "hyprstack.operators.apt.run_command",
            return_value=CommandResult(
                stdout="", stderr="dpkg-query: no packages found", returncode=1
            ),
        ):
            assert AptPackageManager().is_package_installed("nope") is False

    def test_dpkg_missing(self) -> None:
        """A missing dpkg-query raises PackageInstallError."""
        with (
            patch("hyprstack.operators.apt.run_command", side_effect=FileNotFoundError("dpkg")),
            pytest.raises(PackageInstallError, match="dpkg-query"),
        ):
            AptPackageManager().is_package_installed("hyprland")


class TestFindConflicts:
    """Tests for AptPackageManager.find_conflicts."""

    def test_only_installed_conflicts(
        self, mock_apt_cache_show_output: str, mock_installed_status: str
    ) -> None:
        """Declared conflicts are filtered to installed packages."""

        def fake_run(args: list[str], **_: object) -> CommandResult:
            if args[0] == "apt-cache":
                return CommandResult(stdout=mock_apt_cache_show_output, stderr="", returncode=0)
            status = mock_installed_status if args[-1] == "sway" else "unknown ok not-installed"
            return CommandResult(stdout=status, stderr="", returncode=0)

        with patch("hyprstack.operators.apt.run_command", side_effect=fake_run):
            conflicts = AptPackageManager().find_conflicts("hyprland")

        assert conflicts == ["sway"]

    def test_unknown_package_has_no_conflicts(self) -> None:
        """A package apt does not know has no conflicts."""
        with patch(
            "hyprstack.operators.apt.run_command",
            return_value=CommandResult(stdout="", stderr="E: No packages found", returncode=100),
        ):
            assert AptPackageManager().find_conflicts("nope") == []


class TestParseConflictsField:
    """Tests for parse_conflicts_field."""

    def test_first_stanza_only(self, mock_apt_cache_show_output: str) -> None:
        """Only the candidate stanza is read, constraints and alternatives flattened."""
        assert parse_conflicts_field(mock_apt_cache_show_output) == [
            "hyprland-git",
            "sway",
            "sway-git",
            "hyprland",
        ]

    def test_arch_qualifier_dropped(self) -> None:
        """Architecture qualifiers are stripped."""
        assert parse_conflicts_field("Conflicts: libfoo:amd64 (>= 1.0)\n") == ["libfoo"]

    def test_no_conflicts_field(self) -> None:
        """Control data without Conflicts yields nothing."""
        assert parse_conflicts_field("Package: kitty\nVersion: 0.35\n") == []
