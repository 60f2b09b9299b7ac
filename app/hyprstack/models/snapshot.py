"""System snapshot model.

A snapshot records the state of the host right before the installation
mutates it, so configuration files can be backed up and merged later.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from hyprstack.models.configuration import DiskSpace


@dataclass(frozen=True, slots=True)
class SystemSnapshot:
    """Point-in-time record of the host before installation.

    Attributes:
        backup_dir: Directory that receives backups of existing config files.
        disk_space: Disk space measured at capture time.
        existing_config_paths: Configuration files that already existed.
        id: Unique identifier (12-character hex string from UUID).
        created_at: When the snapshot was captured.
    """

    backup_dir: Path
    disk_space: DiskSpace
    existing_config_paths: tuple[Path, ...] = ()
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Validate snapshot data after initialization."""
        if not str(self.backup_dir).strip():
            msg = "Snapshot backup directory cannot be empty"
            raise ValueError(msg)
        object.__setattr__(self, "backup_dir", Path(self.backup_dir))
        object.__setattr__(
            self, "existing_config_paths", tuple(Path(p) for p in self.existing_config_paths)
        )

    @property
    def has_existing_config(self) -> bool:
        """Check if any configuration files existed before installation."""
        return len(self.existing_config_paths) > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "backup_dir": str(self.backup_dir),
            "disk_space": self.disk_space.to_dict(),
            "existing_config_paths": [str(p) for p in self.existing_config_paths],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SystemSnapshot:
        """Deserialize from dictionary."""
        return cls(
            backup_dir=Path(data["backup_dir"]),
            disk_space=DiskSpace.from_dict(data["disk_space"]),
            existing_config_paths=tuple(Path(p) for p in data.get("existing_config_paths", [])),
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )
