"""Unit tests for component and configuration models."""

import pytest
from hyprstack.models.component import (
    GB,
    MB,
    ComponentName,
    ComponentSelection,
    InstalledComponent,
    PackageInfo,
)
from hyprstack.models.configuration import DiskSpace, GPUSupport, InstallationConfiguration


class TestComponentName:
    """Tests for ComponentName."""

    def test_core_component(self) -> None:
        """Only Hyprland is the core compositor."""
        assert ComponentName.HYPRLAND.is_core
        assert not ComponentName.WAYBAR.is_core

    def test_drivers(self) -> None:
        """The three GPU drivers are drivers; nothing else is."""
        drivers = {c for c in ComponentName if c.is_driver}
        assert drivers == {
            ComponentName.AMD_DRIVER,
            ComponentName.NVIDIA_DRIVER,
            ComponentName.INTEL_DRIVER,
        }

    def test_default_package(self) -> None:
        """Components map to their distribution package."""
        assert ComponentName.KITTY.default_package == "kitty"
        assert ComponentName.NVIDIA_DRIVER.default_package == "nvidia-driver"

    def test_config_file(self) -> None:
        """Hyprland and the default config write the same file."""
        assert ComponentName.HYPRLAND.config_file == "hypr/hyprland.conf"
        assert ComponentName.DEFAULT_CONFIG.config_file == "hypr/hyprland.conf"
        assert ComponentName.HYPRPAPER.config_file != ComponentName.HYPRLAND.config_file
        assert ComponentName.AMD_DRIVER.config_file is None


class TestPackageInfo:
    """Tests for PackageInfo."""

    def test_valid_package(self) -> None:
        """Fields are stripped and size is reported in MB."""
        info = PackageInfo(name=" hyprland ", version=" 0.45.0", size_bytes=15 * MB)
        assert info.name == "hyprland"
        assert info.version == "0.45.0"
        assert info.size_mb == pytest.approx(15.0)
        assert not info.has_dependencies

    def test_empty_name_rejected(self) -> None:
        """An empty name raises ValueError."""
        with pytest.raises(ValueError, match="name"):
            PackageInfo(name=" ", version="1.0")

    def test_negative_size_rejected(self) -> None:
        """A negative size raises ValueError."""
        with pytest.raises(ValueError, match="negative"):
            PackageInfo(name="kitty", version="1.0", size_bytes=-1)


class TestComponentSelection:
    """Tests for ComponentSelection and InstalledComponent."""

    def test_empty_version_rejected(self) -> None:
        """A blank version raises ValueError."""
        with pytest.raises(ValueError, match="Version"):
            ComponentSelection(component=ComponentName.ROFI, version="  ")

    def test_package_name_defaults_to_component_package(self) -> None:
        """Without package info the default package is used."""
        selection = ComponentSelection(component=ComponentName.NVIDIA_DRIVER, version="550")
        assert selection.package_name == "nvidia-driver"
        assert selection.estimated_size_bytes == 0

    def test_package_info_overrides_package_name(
        self, hyprland_selection: ComponentSelection
    ) -> None:
        """Package info supplies the package name and size."""
        assert hyprland_selection.package_name == "hyprland"
        assert hyprland_selection.estimated_size_bytes == 15 * MB

    def test_installed_component_from_selection(
        self, hyprland_selection: ComponentSelection
    ) -> None:
        """An installed component carries the selection's version and package."""
        installed = InstalledComponent.from_selection(hyprland_selection)
        assert installed.component == ComponentName.HYPRLAND
        assert installed.version == "0.45.0"
        assert installed.package_name == "hyprland"
        assert installed.installed_at.tzinfo is not None


class TestDiskSpace:
    """Tests for DiskSpace."""

    def test_available_cannot_exceed_total(self) -> None:
        """More free than total space raises ValueError."""
        with pytest.raises(ValueError, match="exceed"):
            DiskSpace(available_bytes=2 * GB, total_bytes=1 * GB)

    def test_negative_values_rejected(self) -> None:
        """Negative figures raise ValueError."""
        with pytest.raises(ValueError, match="negative"):
            DiskSpace(available_bytes=-1, total_bytes=1)

    def test_has_room_for(self, disk_space: DiskSpace) -> None:
        """has_room_for compares against the available bytes."""
        assert disk_space.has_room_for(15 * MB)
        assert disk_space.has_room_for(20 * GB)
        assert not disk_space.has_room_for(20 * GB + 1)
        assert disk_space.available_gb == pytest.approx(20.0)


class TestGPUSupport:
    """Tests for GPUSupport."""

    def test_for_known_vendor(self) -> None:
        """Known vendors get their driver."""
        gpu = GPUSupport.for_vendor(" NVIDIA ")
        assert gpu.vendor == "nvidia"
        assert gpu.requires_driver
        assert gpu.driver_component == ComponentName.NVIDIA_DRIVER
        assert gpu.requires_proprietary

    def test_for_unknown_vendor(self) -> None:
        """Unknown vendors need no driver."""
        gpu = GPUSupport.for_vendor("virtio")
        assert not gpu.requires_driver
        assert gpu.driver_component is None

    def test_mismatched_driver_rejected(self) -> None:
        """A driver for another vendor raises ValueError."""
        with pytest.raises(ValueError, match="does not match"):
            GPUSupport(
                vendor="amd",
                requires_driver=True,
                driver_component=ComponentName.NVIDIA_DRIVER,
            )

    def test_required_driver_must_be_given(self) -> None:
        """requires_driver without a driver component raises ValueError."""
        with pytest.raises(ValueError, match="requires a driver"):
            GPUSupport(vendor="amd", requires_driver=True)

    def test_empty_vendor_rejected(self) -> None:
        """A blank vendor raises ValueError."""
        with pytest.raises(ValueError, match="vendor"):
            GPUSupport(vendor=" ")


class TestInstallationConfiguration:
    """Tests for InstallationConfiguration."""

    def test_requires_a_component(self, disk_space: DiskSpace) -> None:
        """An empty component list raises ValueError."""
        with pytest.raises(ValueError, match="at least one component"):
            InstallationConfiguration(components=(), disk_space=disk_space)

    def test_counts_and_size(
        self,
        two_component_configuration: InstallationConfiguration,
    ) -> None:
        """Count and size are derived from the selections."""
        assert two_component_configuration.component_count == 2
        assert two_component_configuration.total_estimated_size_bytes == 15 * MB
        assert two_component_configuration.has_core_component
        assert not two_component_configuration.has_gpu_support

    def test_serialization_round_trip(self, disk_space: DiskSpace) -> None:
        """GPU support and flags survive to_dict/from_dict."""
        configuration = InstallationConfiguration(
            components=(ComponentSelection(component=ComponentName.AMD_DRIVER, version="latest"),),
            disk_space=disk_space,
            gpu_support=GPUSupport.for_vendor("amd"),
            dry_run=True,
            merge_existing_config=True,
        )
        assert InstallationConfiguration.from_dict(configuration.to_dict()) == configuration
