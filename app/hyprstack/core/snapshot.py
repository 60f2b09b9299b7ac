"""System snapshot capture.

Measures free disk space and records which configuration files the
selected components would touch that already exist.
"""

import logging
import shutil
import uuid
from pathlib import Path

from hyprstack.core.paths import get_snapshot_dir, get_user_config_home
from hyprstack.models.configuration import DiskSpace, InstallationConfiguration
from hyprstack.models.snapshot import SystemSnapshot

logger = logging.getLogger(__name__)


class SnapshotCapturer:
    """Captures a SystemSnapshot right before a session enters Preparation.

    Attributes:
        snapshot_root: Directory under which each snapshot gets a backup dir.
        config_home: Directory holding the users' component config files.
        disk_path: Filesystem to measure free space on.
    """

    def __init__(
        self,
        snapshot_root: Path | None = None,
        config_home: Path | None = None,
        disk_path: Path | None = None,
    ) -> None:
        self.snapshot_root = snapshot_root if snapshot_root is not None else get_snapshot_dir()
        self.config_home = config_home if config_home is not None else get_user_config_home()
        self.disk_path = disk_path if disk_path is not None else Path("/")

    def capture(self, configuration: InstallationConfiguration) -> SystemSnapshot:
        """Capture a snapshot for ``configuration``.

        The backup directory is only named here; it is created when the
        first file is backed up.

        Raises:
            OSError: If disk usage cannot be measured.
        """
        snapshot_id = uuid.uuid4().hex[:12]
        disk_space = self.measure_disk_space()
        existing = self.find_existing_configs(configuration)

        logger.info(
            "Captured snapshot %s: %s, %d existing config file(s)",
            snapshot_id,
            disk_space,
            len(existing),
        )
        return SystemSnapshot(
            backup_dir=self.snapshot_root / snapshot_id,
            disk_space=disk_space,
            existing_config_paths=existing,
            id=snapshot_id,
        )

    def measure_disk_space(self) -> DiskSpace:
        """Measure the filesystem that receives the installation."""
        usage = shutil.disk_usage(self.disk_path)
        return DiskSpace(
            available_bytes=usage.free,
            total_bytes=usage.total,
            path=str(self.disk_path),
        )

    def find_existing_configs(self, configuration: InstallationConfiguration) -> tuple[Path, ...]:
        """Config files of the selected components that already exist, in order."""
        found: list[Path] = []
        for selection in configuration.components:
            config_file = selection.component.config_file
            if config_file is None:
                continue
            path = self.config_home / config_file
            if path not in found and path.exists():
                found.append(path)
        return tuple(found)
