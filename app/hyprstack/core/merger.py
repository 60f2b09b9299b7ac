"""Configuration merging and backup.

Merges a new installation configuration with a previous one, and backs
up or replaces pre-existing configuration files during the Configuring
phase.
"""

import logging
import shutil
from pathlib import Path

from hyprstack.models.component import ComponentName
from hyprstack.models.configuration import InstallationConfiguration

logger = logging.getLogger(__name__)


class ConfigurationMerger:
    """Merges installation configurations and backs up config files."""

    def merge_configurations(
        self,
        existing: InstallationConfiguration,
        new: InstallationConfiguration,
    ) -> InstallationConfiguration:
        """Merge a previous configuration into a new one.

        The new selections come first and win; selections of components
        the new configuration does not mention are appended in their
        previous order. Disk space and run flags come from ``new``; GPU
        support falls back to ``existing`` when ``new`` has none.

        Args:
            existing: Previously used configuration.
            new: Configuration requested now.

        Returns:
            The merged configuration.
        """
        selected: set[ComponentName] = {s.component for s in new.components}
        carried = tuple(s for s in existing.components if s.component not in selected)
        if carried:
            logger.debug(
                "Carrying over %d component(s) from previous configuration: %s",
                len(carried),
                ", ".join(s.component.value for s in carried),
            )
        return InstallationConfiguration(
            components=new.components + carried,
            disk_space=new.disk_space,
            gpu_support=new.gpu_support or existing.gpu_support,
            dry_run=new.dry_run,
            merge_existing_config=new.merge_existing_config,
        )

    def should_backup_existing(self, path: Path) -> bool:
        """Check if ``path`` is an existing regular file worth backing up."""
        return path.is_file()

    def backup_existing(self, path: Path, backup_dir: Path) -> Path:
        """Copy a config file into ``backup_dir``.

        The path relative to the home directory is preserved inside the
        backup directory (e.g., ``~/.config/kitty/kitty.conf`` becomes
        ``<backup_dir>/.config/kitty/kitty.conf``).

        Args:
            path: Absolute path of the file to back up.
            backup_dir: Directory of the snapshot the backup belongs to.

        Returns:
            Path of the backup copy.

        Raises:
            OSError: If the file cannot be copied.
        """
        try:
            relative = path.relative_to(Path.home())
        except ValueError:
            # Not under home: keep the full path structure
            relative = Path(str(path).lstrip("/"))

        dest = backup_dir / relative
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(path), str(dest))
        logger.info("Backed up %s to %s", path, dest)
        return dest

    def replace_existing(self, path: Path, backup_dir: Path) -> Path:
        """Back up a config file, then remove it so the package defaults apply.

        The file is only removed once the copy succeeded.

        Returns:
            Path of the backup copy.

        Raises:
            OSError: If the file cannot be copied or removed.
        """
        dest = self.backup_existing(path, backup_dir)
        path.unlink()
        logger.info("Removed %s (restore from %s)", path, dest)
        return dest
