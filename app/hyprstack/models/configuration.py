"""Installation configuration models.

This module defines the validated, immutable description of what to
install: the ordered component selections, optional GPU support, the
disk space budget and the run flags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from hyprstack.models.component import GB, ComponentName, ComponentSelection

_VENDOR_DRIVERS: dict[str, ComponentName] = {
    "amd": ComponentName.AMD_DRIVER,
    "nvidia": ComponentName.NVIDIA_DRIVER,
    "intel": ComponentName.INTEL_DRIVER,
}


@dataclass(frozen=True, slots=True)
class DiskSpace:
    """Disk space on the filesystem that receives the installation.

    Attributes:
        available_bytes: Free bytes on the filesystem.
        total_bytes: Capacity of the filesystem in bytes.
        path: Mount point or directory the figures were measured for.
    """

    available_bytes: int
    total_bytes: int
    path: str = "/"

    def __post_init__(self) -> None:
        """Validate disk space figures after initialization."""
        if self.available_bytes < 0 or self.total_bytes < 0:
            msg = "Disk space values cannot be negative"
            raise ValueError(msg)
        if self.available_bytes > self.total_bytes:
            msg = (
                f"Available space ({self.available_bytes}) cannot exceed "
                f"total space ({self.total_bytes})"
            )
            raise ValueError(msg)
        if not self.path:
            msg = "Disk space path cannot be empty"
            raise ValueError(msg)

    @property
    def used_bytes(self) -> int:
        """Bytes already in use."""
        return self.total_bytes - self.available_bytes

    @property
    def available_gb(self) -> float:
        """Free space in gigabytes."""
        return self.available_bytes / GB

    @property
    def total_gb(self) -> float:
        """Capacity in gigabytes."""
        return self.total_bytes / GB

    def has_room_for(self, size_bytes: int) -> bool:
        """Check whether ``size_bytes`` fit into the available space."""
        return size_bytes <= self.available_bytes

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "available_bytes": self.available_bytes,
            "total_bytes": self.total_bytes,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiskSpace:
        """Deserialize from dictionary."""
        return cls(
            available_bytes=data["available_bytes"],
            total_bytes=data["total_bytes"],
            path=data.get("path", "/"),
        )

    def __str__(self) -> str:
        return f"{self.available_gb:.2f} GB available of {self.total_gb:.2f} GB on {self.path}"


@dataclass(frozen=True, slots=True)
class GPUSupport:
    """GPU-specific installation settings.

    Attributes:
        vendor: Normalized GPU vendor ('amd', 'nvidia', 'intel', ...).
        requires_driver: Whether a driver component must be installed.
        driver_component: The driver component matching the vendor.
    """

    vendor: str
    requires_driver: bool = False
    driver_component: ComponentName | None = None

    def __post_init__(self) -> None:
        """Normalize the vendor and validate the driver choice."""
        vendor = self.vendor.strip().lower()
        object.__setattr__(self, "vendor", vendor)
        if not vendor:
            msg = "GPU vendor cannot be empty"
            raise ValueError(msg)
        if not self.requires_driver:
            return
        if self.driver_component is None or not self.driver_component.is_driver:
            msg = f"GPU vendor '{vendor}' requires a driver component"
            raise ValueError(msg)
        if _VENDOR_DRIVERS.get(vendor) != self.driver_component:
            msg = f"Driver {self.driver_component.value} does not match GPU vendor '{vendor}'"
            raise ValueError(msg)

    @classmethod
    def for_vendor(cls, vendor: str) -> GPUSupport:
        """Build GPU support for a vendor, selecting its driver when one is known."""
        normalized = vendor.strip().lower()
        driver = _VENDOR_DRIVERS.get(normalized)
        return cls(vendor=normalized, requires_driver=driver is not None, driver_component=driver)

    @property
    def requires_proprietary(self) -> bool:
        """Only NVIDIA needs proprietary drivers."""
        return self.vendor == "nvidia"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "vendor": self.vendor,
            "requires_driver": self.requires_driver,
        }
        if self.driver_component is not None:
            result["driver_component"] = self.driver_component.value
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GPUSupport:
        """Deserialize from dictionary."""
        driver = data.get("driver_component")
        return cls(
            vendor=data["vendor"],
            requires_driver=data.get("requires_driver", False),
            driver_component=ComponentName(driver) if driver else None,
        )


@dataclass(frozen=True, slots=True)
class InstallationConfiguration:
    """Complete, validated description of an installation.

    Attributes:
        components: Ordered selections; installation follows this order.
        disk_space: Disk space budget for the installation.
        gpu_support: Optional GPU settings.
        dry_run: Simulate package operations without changing the system.
        merge_existing_config: Keep pre-existing config files in place instead
            of backing them up and replacing them.
    """

    components: tuple[ComponentSelection, ...]
    disk_space: DiskSpace
    gpu_support: GPUSupport | None = None
    dry_run: bool = False
    merge_existing_config: bool = False

    def __post_init__(self) -> None:
        """Validate configuration data after initialization."""
        object.__setattr__(self, "components", tuple(self.components))
        if not self.components:
            msg = "Installation configuration must have at least one component"
            raise ValueError(msg)

    @property
    def component_count(self) -> int:
        """Number of selected components."""
        return len(self.components)

    @property
    def has_core_component(self) -> bool:
        """Check if the core compositor is selected."""
        return any(c.is_core for c in self.components)

    @property
    def has_gpu_support(self) -> bool:
        """Check if GPU settings were provided."""
        return self.gpu_support is not None

    @property
    def total_estimated_size_bytes(self) -> int:
        """Sum of the known package sizes."""
        return sum(c.estimated_size_bytes for c in self.components)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "components": [c.to_dict() for c in self.components],
            "disk_space": self.disk_space.to_dict(),
            "dry_run": self.dry_run,
            "merge_existing_config": self.merge_existing_config,
        }
        if self.gpu_support is not None:
            result["gpu_support"] = self.gpu_support.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallationConfiguration:
        """Deserialize from dictionary."""
        gpu = data.get("gpu_support")
        return cls(
            components=tuple(ComponentSelection.from_dict(c) for c in data["components"]),
            disk_space=DiskSpace.from_dict(data["disk_space"]),
            gpu_support=GPUSupport.from_dict(gpu) if gpu else None,
            dry_run=data.get("dry_run", False),
            merge_existing_config=data.get("merge_existing_config", False),
        )

    def __str__(self) -> str:
        gpu_info = f"GPU: {self.gpu_support.vendor}" if self.gpu_support else "no GPU config"
        return f"Installation: {self.component_count} components, {gpu_info}"
