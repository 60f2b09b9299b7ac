"""Installer settings.

This module provides the settings model and I/O functions for hyprstack.
Settings control where configuration backups go, which strategy resolves
each kind of conflict, package name overrides and retention limits.

Settings are stored in ~/.config/hyprstack/config.toml
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hyprstack.core.paths import get_settings_path, get_snapshot_dir
from hyprstack.models.component import ComponentName
from hyprstack.models.conflict import ConflictKind, ResolutionStrategy

DEFAULT_HISTORY_RETENTION_DAYS = 90
DEFAULT_APT_TIMEOUT_SECONDS = 300


class InstallerSettings(BaseModel):
    """Settings for the installer.

    Attributes:
        snapshot_dir: Where configuration backups are written. If None, uses
            the state directory.
        conflict_strategies: Strategy to apply per conflict kind, overriding
            the strategy each conflict suggests.
        package_overrides: Distribution package to install per component.
        history_retention_days: Age after which history records are purged.
        apt_timeout_seconds: Timeout for a single apt-get invocation.
    """

    model_config = ConfigDict(extra="forbid")

    snapshot_dir: Annotated[
        Path | None,
        Field(description="Directory for configuration backups (None = state dir)"),
    ] = None
    conflict_strategies: Annotated[
        dict[ConflictKind, ResolutionStrategy],
        Field(default_factory=dict, description="Resolution strategy per conflict kind"),
    ]
    package_overrides: Annotated[
        dict[ComponentName, str],
        Field(default_factory=dict, description="Package name per component"),
    ]
    history_retention_days: Annotated[
        int,
        Field(ge=1, le=3650, description="History retention in days (1-3650)"),
    ] = DEFAULT_HISTORY_RETENTION_DAYS
    apt_timeout_seconds: Annotated[
        int,
        Field(ge=30, le=3600, description="apt-get timeout in seconds (30-3600)"),
    ] = DEFAULT_APT_TIMEOUT_SECONDS

    @property
    def effective_snapshot_dir(self) -> Path:
        """Configured snapshot directory, or the default under the state dir."""
        if self.snapshot_dir is not None:
            return self.snapshot_dir.expanduser()
        return get_snapshot_dir()

    def strategy_for(self, kind: ConflictKind) -> ResolutionStrategy | None:
        """Configured strategy for a conflict kind, if any."""
        return self.conflict_strategies.get(kind)

    def package_for(self, component: ComponentName) -> str:
        """Package that provides ``component``, honoring overrides."""
        return self.package_overrides.get(component, component.default_package)


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsNotFoundError(SettingsError):
    """Raised when the settings file is not found."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(path: Path | None = None, *, missing_ok: bool = True) -> InstallerSettings:
    """Load installer settings from a TOML file.

    Args:
        path: Path to the settings file. If None, uses the default path.
        missing_ok: Return defaults instead of raising when the file is absent.

    Returns:
        Validated InstallerSettings object.

    Raises:
        SettingsNotFoundError: If the file doesn't exist and missing_ok is False.
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the content doesn't match the schema.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        if missing_ok:
            return InstallerSettings()
        raise SettingsNotFoundError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return InstallerSettings.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise SettingsError(f"Invalid settings content: {e}") from e


def save_settings(settings: InstallerSettings, path: Path | None = None) -> Path:
    """Save installer settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The settings to save.
        path: Path to save to. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path


def settings_to_dict(settings: InstallerSettings) -> dict[str, object]:
    """Convert settings to a dictionary for TOML serialization.

    TOML has no null, so unset optional values are left out.

    Args:
        settings: The settings to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    result: dict[str, object] = {
        "history_retention_days": settings.history_retention_days,
        "apt_timeout_seconds": settings.apt_timeout_seconds,
    }
    if settings.snapshot_dir is not None:
        result["snapshot_dir"] = str(settings.snapshot_dir)
    if settings.conflict_strategies:
        result["conflict_strategies"] = {
            kind.value: strategy.value for kind, strategy in settings.conflict_strategies.items()
        }
    if settings.package_overrides:
        result["package_overrides"] = {
            component.value: package for component, package in settings.package_overrides.items()
        }
    return result
