"""Component models for the desktop stack.

This module defines the installable components (compositor, status bar,
terminal, launcher, GPU drivers) and the value objects describing what
the user selected and what actually got installed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

MB = 1024 * 1024
GB = 1024 * MB

# Version that installs the candidate instead of pinning.
LATEST_VERSION = "latest"


class ComponentName(str, Enum):
    """Identifier of an installable desktop component.

    Attributes:
        HYPRLAND: Core Wayland compositor.
        HYPRPAPER: Wallpaper utility.
        HYPRLOCK: Screen locker.
        WAYBAR: Status bar.
        ROFI: Application launcher.
        KITTY: Terminal emulator.
        DEFAULT_CONFIG: Default configuration files for the stack.
        AMD_DRIVER: AMD GPU driver.
        NVIDIA_DRIVER: NVIDIA GPU driver.
        INTEL_DRIVER: Intel GPU driver.
    """

    HYPRLAND = "hyprland"
    HYPRPAPER = "hyprpaper"
    HYPRLOCK = "hyprlock"
    WAYBAR = "waybar"
    ROFI = "rofi"
    KITTY = "kitty"
    DEFAULT_CONFIG = "default_config"
    AMD_DRIVER = "amd_driver"
    NVIDIA_DRIVER = "nvidia_driver"
    INTEL_DRIVER = "intel_driver"

    @property
    def is_core(self) -> bool:
        """Check if this is the core compositor."""
        return self == ComponentName.HYPRLAND

    @property
    def is_driver(self) -> bool:
        """Check if this is a GPU driver."""
        return self in _DRIVERS

    @property
    def default_package(self) -> str:
        """Distribution package that provides this component."""
        return _DEFAULT_PACKAGES.get(self, self.value)

    @property
    def config_dir(self) -> str | None:
        """Name of the ~/.config subdirectory this component writes, if any."""
        return _CONFIG_DIRS.get(self)

    @property
    def config_file(self) -> str | None:
        """Path of the main config file, relative to ~/.config, if any."""
        return _CONFIG_FILES.get(self)


_DRIVERS = frozenset(
    {ComponentName.AMD_DRIVER, ComponentName.NVIDIA_DRIVER, ComponentName.INTEL_DRIVER}
)

_DEFAULT_PACKAGES: dict[ComponentName, str] = {
    ComponentName.DEFAULT_CONFIG: "hyprstack-default-config",
    ComponentName.AMD_DRIVER: "xserver-xorg-video-amdgpu",
    ComponentName.NVIDIA_DRIVER: "nvidia-driver",
    ComponentName.INTEL_DRIVER: "xserver-xorg-video-intel",
}

_CONFIG_DIRS: dict[ComponentName, str] = {
    ComponentName.HYPRLAND: "hypr",
    ComponentName.HYPRPAPER: "hypr",
    ComponentName.HYPRLOCK: "hypr",
    ComponentName.DEFAULT_CONFIG: "hypr",
    ComponentName.WAYBAR: "waybar",
    ComponentName.ROFI: "rofi",
    ComponentName.KITTY: "kitty",
}

_CONFIG_FILES: dict[ComponentName, str] = {
    ComponentName.HYPRLAND: "hypr/hyprland.conf",
    ComponentName.HYPRPAPER: "hypr/hyprpaper.conf",
    ComponentName.HYPRLOCK: "hypr/hyprlock.conf",
    ComponentName.DEFAULT_CONFIG: "hypr/hyprland.conf",
    ComponentName.WAYBAR: "waybar/config.jsonc",
    ComponentName.ROFI: "rofi/config.rasi",
    ComponentName.KITTY: "kitty/kitty.conf",
}


@dataclass(frozen=True, slots=True)
class PackageInfo:
    """Metadata about a package to be installed.

    Attributes:
        name: Package name (e.g., 'hyprland').
        version: Package version string.
        size_bytes: Installed size in bytes.
        dependencies: Names of packages this package depends on.
    """

    name: str
    version: str
    size_bytes: int = 0
    dependencies: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        """Validate and normalize package data."""
        object.__setattr__(self, "name", self.name.strip())
        object.__setattr__(self, "version", self.version.strip())
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if not self.version:
            msg = "Package version cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Package size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    @property
    def size_mb(self) -> float:
        """Size in megabytes."""
        return self.size_bytes / MB

    @property
    def has_dependencies(self) -> bool:
        """Check if the package declares dependencies."""
        return len(self.dependencies) > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "name": self.name,
            "version": self.version,
            "size_bytes": self.size_bytes,
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageInfo:
        """Deserialize from dictionary."""
        return cls(
            name=data["name"],
            version=data["version"],
            size_bytes=data.get("size_bytes", 0),
            dependencies=tuple(data.get("dependencies", ())),
        )

    def __str__(self) -> str:
        if self.has_dependencies:
            return (
                f"{self.name} v{self.version} ({self.size_mb:.2f} MB, "
                f"{len(self.dependencies)} dependencies)"
            )
        return f"{self.name} v{self.version} ({self.size_mb:.2f} MB)"


@dataclass(frozen=True, slots=True)
class ComponentSelection:
    """A user's choice to install a specific component.

    Attributes:
        component: Which component to install.
        version: Target version string (never empty).
        package_info: Optional package metadata (size, dependencies).
    """

    component: ComponentName
    version: str
    package_info: PackageInfo | None = None

    def __post_init__(self) -> None:
        """Validate selection data after initialization."""
        object.__setattr__(self, "version", self.version.strip())
        if not self.version:
            msg = f"Version cannot be empty for component {self.component.value}"
            raise ValueError(msg)

    @property
    def package_name(self) -> str:
        """Package to hand to the package manager."""
        if self.package_info is not None:
            return self.package_info.name
        return self.component.default_package

    @property
    def estimated_size_bytes(self) -> int:
        """Estimated installed size, 0 when unknown."""
        if self.package_info is None:
            return 0
        return self.package_info.size_bytes

    @property
    def is_core(self) -> bool:
        """Check if this selects the core compositor."""
        return self.component.is_core

    @property
    def is_driver(self) -> bool:
        """Check if this selects a GPU driver."""
        return self.component.is_driver

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "component": self.component.value,
            "version": self.version,
        }
        if self.package_info is not None:
            result["package_info"] = self.package_info.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComponentSelection:
        """Deserialize from dictionary."""
        package_info = data.get("package_info")
        return cls(
            component=ComponentName(data["component"]),
            version=data["version"],
            package_info=PackageInfo.from_dict(package_info) if package_info else None,
        )

    def __str__(self) -> str:
        if self.package_info is not None:
            return f"{self.component.value} v{self.version} ({self.package_info})"
        return f"{self.component.value} v{self.version}"


@dataclass(frozen=True, slots=True)
class InstalledComponent:
    """A component that was installed during a session.

    Attributes:
        component: Which component was installed.
        version: Installed version string.
        package_info: Package metadata carried over from the selection.
        installed_at: When the package manager reported success.
    """

    component: ComponentName
    version: str
    package_info: PackageInfo | None = None
    installed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Validate installed component data after initialization."""
        object.__setattr__(self, "version", self.version.strip())
        if not self.version:
            msg = f"Version cannot be empty for component {self.component.value}"
            raise ValueError(msg)

    @classmethod
    def from_selection(cls, selection: ComponentSelection) -> InstalledComponent:
        """Create an installed component from the selection that produced it."""
        return cls(
            component=selection.component,
            version=selection.version,
            package_info=selection.package_info,
        )

    @property
    def package_name(self) -> str:
        """Package that was installed."""
        if self.package_info is not None:
            return self.package_info.name
        return self.component.default_package

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "component": self.component.value,
            "version": self.version,
            "installed_at": self.installed_at.isoformat(),
        }
        if self.package_info is not None:
            result["package_info"] = self.package_info.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstalledComponent:
        """Deserialize from dictionary."""
        package_info = data.get("package_info")
        return cls(
            component=ComponentName(data["component"]),
            version=data["version"],
            package_info=PackageInfo.from_dict(package_info) if package_info else None,
            installed_at=datetime.fromisoformat(data["installed_at"]),
        )
