"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from hyprstack.models.component import GB, MB, ComponentName, ComponentSelection, PackageInfo
from hyprstack.models.configuration import DiskSpace, InstallationConfiguration
from hyprstack.models.errors import PackageInstallError
from hyprstack.models.snapshot import SystemSnapshot
from hyprstack.operators.base import PackageManager


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every XDG directory at a temporary location."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    return tmp_path


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """Undo the handlers the CLI installs on the root logger."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def disk_space() -> DiskSpace:
    """20 GB free of 100 GB."""
    return DiskSpace(available_bytes=20 * GB, total_bytes=100 * GB)


@pytest.fixture
def hyprland_selection() -> ComponentSelection:
    """Hyprland 0.45.0 with a 15 MB package."""
    return ComponentSelection(
        component=ComponentName.HYPRLAND,
        version="0.45.0",
        package_info=PackageInfo(name="hyprland", version="0.45.0", size_bytes=15 * MB),
    )


@pytest.fixture
def waybar_selection() -> ComponentSelection:
    """Waybar 0.10.4 without package metadata."""
    return ComponentSelection(component=ComponentName.WAYBAR, version="0.10.4")


@pytest.fixture
def single_configuration(
    hyprland_selection: ComponentSelection, disk_space: DiskSpace
) -> InstallationConfiguration:
    """Configuration with Hyprland only."""
    return InstallationConfiguration(components=(hyprland_selection,), disk_space=disk_space)


@pytest.fixture
def two_component_configuration(
    hyprland_selection: ComponentSelection,
    waybar_selection: ComponentSelection,
    disk_space: DiskSpace,
) -> InstallationConfiguration:
    """Configuration with Hyprland and Waybar, in that order."""
    return InstallationConfiguration(
        components=(hyprland_selection, waybar_selection),
        disk_space=disk_space,
    )


@pytest.fixture
def snapshot(tmp_path: Path, disk_space: DiskSpace) -> SystemSnapshot:
    """Snapshot without pre-existing configuration files."""
    return SystemSnapshot(backup_dir=tmp_path / "backup", disk_space=disk_space)


@pytest.fixture
def mock_apt_cache_show_output() -> str:
    """Sample apt-cache show output with a Conflicts field."""
    return """Package: hyprland
Version: 0.45.0-1
Installed-Size: 15360
Depends: libc6 (>= 2.38), libwayland-server0
Conflicts: hyprland-git (<< 0.45.0), sway | sway-git, hyprland
Description: Dynamic tiling Wayland compositor

Package: hyprland
Version: 0.44.1-1
Conflicts: old-package
"""


@pytest.fixture
def mock_installed_status() -> str:
    """dpkg-query status of an installed package."""
    return "install ok installed"


class FakePackageManager(PackageManager):
    """In-memory package manager recording every call."""

    def __init__(self, dry_run: bool = False) -> None:
        super().__init__(dry_run=dry_run)
        self.installed: list[tuple[str, str]] = []
        self.removed: list[str] = []
        self.failures: dict[str, str] = {}
        self.conflicts: dict[str, list[str]] = {}
        self.present: set[str] = set()
        self.on_install: Callable[[str], None] | None = None

    def install_package(self, name: str, version: str) -> None:
        if self.on_install is not None:
            self.on_install(name)
        if name in self.failures:
            raise PackageInstallError(self.failures[name])
        self.installed.append((name, version))
        self.present.add(name)

    def is_package_installed(self, name: str) -> bool:
        return name in self.present

    def remove_package(self, name: str) -> None:
        self.removed.append(name)
        self.present.discard(name)

    def find_conflicts(self, name: str) -> list[str]:
        return [p for p in self.conflicts.get(name, []) if p in self.present]


@pytest.fixture
def package_manager() -> FakePackageManager:
    """Package manager fake that succeeds unless told otherwise."""
    return FakePackageManager()
