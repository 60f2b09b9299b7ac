"""Installation history models.

An :class:`InstallationRecord` is the immutable, audit-oriented fact that
remains once a session terminates. Records are stored one per line in a
JSONL file, like the other append-only logs of the tool.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

DEFAULT_PACKAGE_SIZE_BYTES = 1024


class InstallationOutcome(str, Enum):
    """Outcome of a terminated session.

    Cancelled sessions are recorded as FAILED with failure details
    describing the cancellation.
    """

    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class InstalledPackage:
    """Package that ended up on the system.

    Attributes:
        name: Package name.
        version: Installed version.
        size_bytes: Installed size in bytes (positive).
    """

    name: str
    version: str
    size_bytes: int = DEFAULT_PACKAGE_SIZE_BYTES

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name.strip():
            msg = "Installed package name cannot be empty"
            raise ValueError(msg)
        if not self.version.strip():
            msg = f"Installed package version cannot be empty for {self.name}"
            raise ValueError(msg)
        if self.size_bytes <= 0:
            msg = f"Installed package size must be positive, got {self.size_bytes}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version, "size_bytes": self.size_bytes}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstalledPackage:
        return cls(
            name=data["name"],
            version=data["version"],
            size_bytes=data.get("size_bytes", DEFAULT_PACKAGE_SIZE_BYTES),
        )


@dataclass(frozen=True, slots=True)
class FailureDetails:
    """Why and when an installation failed.

    Attributes:
        reason: Failure reason taken from the session.
        failed_at: When the session failed.
        phase: Last phase the session was in before failing.
    """

    reason: str
    failed_at: datetime
    phase: str

    def __post_init__(self) -> None:
        """Validate failure data after initialization."""
        if not self.reason.strip():
            msg = "Failure reason cannot be empty"
            raise ValueError(msg)
        if not self.phase.strip():
            msg = "Failure phase cannot be empty"
            raise ValueError(msg)

    @property
    def is_cancellation(self) -> bool:
        """Check if the failure was an explicit cancellation."""
        return "cancelled" in self.reason.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "failed_at": self.failed_at.isoformat(),
            "phase": self.phase,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FailureDetails:
        return cls(
            reason=data["reason"],
            failed_at=datetime.fromisoformat(data["failed_at"]),
            phase=data["phase"],
        )


@dataclass(frozen=True, slots=True)
class SystemContext:
    """Host information captured when the record is written.

    Attributes:
        os_version: Pretty name from os-release (e.g., 'Ubuntu 24.04 LTS').
        kernel_version: Running kernel release.
        app_version: hyprstack version that performed the installation.
        hostname: Name of the host.
    """

    os_version: str
    kernel_version: str
    app_version: str
    hostname: str = ""

    def __post_init__(self) -> None:
        """Validate context data after initialization."""
        if not self.os_version.strip():
            msg = "OS version cannot be empty"
            raise ValueError(msg)
        if not self.kernel_version.strip():
            msg = "Kernel version cannot be empty"
            raise ValueError(msg)
        if not self.app_version.strip():
            msg = "App version cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "os_version": self.os_version,
            "kernel_version": self.kernel_version,
            "app_version": self.app_version,
            "hostname": self.hostname,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SystemContext:
        return cls(
            os_version=data["os_version"],
            kernel_version=data["kernel_version"],
            app_version=data["app_version"],
            hostname=data.get("hostname", ""),
        )


@dataclass(frozen=True, slots=True)
class InstallationMetadata:
    """What was installed and when.

    Attributes:
        target_package: Package of the first selected component.
        target_version: Version of the first selected component.
        installed_at: When the session started.
        completed_at: When the session terminated.
        packages: Packages installed, in installation order.
    """

    target_package: str
    target_version: str
    installed_at: datetime
    completed_at: datetime
    packages: tuple[InstalledPackage, ...] = ()

    def __post_init__(self) -> None:
        """Validate metadata after initialization."""
        object.__setattr__(self, "packages", tuple(self.packages))
        if not self.target_package.strip():
            msg = "Target package cannot be empty"
            raise ValueError(msg)
        if not self.target_version.strip():
            msg = "Target version cannot be empty"
            raise ValueError(msg)
        if self.completed_at < self.installed_at:
            msg = "Completion time cannot precede installation start"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_package": self.target_package,
            "target_version": self.target_version,
            "installed_at": self.installed_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "packages": [p.to_dict() for p in self.packages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallationMetadata:
        return cls(
            target_package=data["target_package"],
            target_version=data["target_version"],
            installed_at=datetime.fromisoformat(data["installed_at"]),
            completed_at=datetime.fromisoformat(data["completed_at"]),
            packages=tuple(InstalledPackage.from_dict(p) for p in data.get("packages", [])),
        )


@dataclass(frozen=True, slots=True)
class InstallationRecord:
    """Immutable history record of a terminated session.

    Attributes:
        session_id: Session the record was derived from.
        outcome: SUCCESS or FAILED.
        metadata: What was installed and when.
        system_context: Host information.
        failure_details: Required for FAILED, absent for SUCCESS.
        id: Unique identifier (12-character hex string from UUID).
        recorded_at: When the record was created.
    """

    session_id: str
    outcome: InstallationOutcome
    metadata: InstallationMetadata
    system_context: SystemContext
    failure_details: FailureDetails | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    recorded_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Validate outcome-dependent invariants after initialization."""
        if not self.session_id:
            msg = "Record session ID cannot be empty"
            raise ValueError(msg)
        if self.outcome == InstallationOutcome.FAILED and self.failure_details is None:
            msg = "Failed installation record requires failure details"
            raise ValueError(msg)
        if self.outcome == InstallationOutcome.SUCCESS:
            if self.failure_details is not None:
                msg = "Successful installation record cannot carry failure details"
                raise ValueError(msg)
            if not self.metadata.packages:
                msg = "Successful installation record requires at least one package"
                raise ValueError(msg)

    @property
    def was_successful(self) -> bool:
        return self.outcome == InstallationOutcome.SUCCESS

    @property
    def was_failed(self) -> bool:
        return self.outcome == InstallationOutcome.FAILED

    @property
    def has_failure_details(self) -> bool:
        return self.failure_details is not None

    @property
    def package_count(self) -> int:
        return len(self.metadata.packages)

    @property
    def duration(self) -> timedelta:
        return self.metadata.completed_at - self.metadata.installed_at

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "id": self.id,
            "session_id": self.session_id,
            "outcome": self.outcome.value,
            "metadata": self.metadata.to_dict(),
            "system_context": self.system_context.to_dict(),
            "recorded_at": self.recorded_at.isoformat(),
        }
        if self.failure_details is not None:
            result["failure_details"] = self.failure_details.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallationRecord:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If the outcome or a nested value is invalid.
        """
        failure = data.get("failure_details")
        return cls(
            session_id=data["session_id"],
            outcome=InstallationOutcome(data["outcome"]),
            metadata=InstallationMetadata.from_dict(data["metadata"]),
            system_context=SystemContext.from_dict(data["system_context"]),
            failure_details=FailureDetails.from_dict(failure) if failure else None,
            id=data["id"],
            recorded_at=datetime.fromisoformat(data["recorded_at"]),
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line for JSONL storage."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> InstallationRecord:
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If the line is not valid JSON.
            KeyError: If required fields are missing.
        """
        return cls.from_dict(json.loads(line))


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Criteria for querying history; unset fields match every record.

    Attributes:
        outcome: Only records with this outcome.
        since: Only records whose installation started at or after this time.
        until: Only records whose installation started at or before this time.
        package: Only records that installed or targeted this package.
    """

    outcome: InstallationOutcome | None = None
    since: datetime | None = None
    until: datetime | None = None
    package: str | None = None

    def __post_init__(self) -> None:
        """Validate the period after initialization."""
        if self.package is not None:
            object.__setattr__(self, "package", self.package.strip() or None)
        if self.since is not None and self.until is not None and self.until < self.since:
            msg = "End of the period cannot be before its start"
            raise ValueError(msg)

    @property
    def is_empty(self) -> bool:
        return (
            self.outcome is None and self.since is None and self.until is None and not self.package
        )

    def matches(self, record: InstallationRecord) -> bool:
        """Check if ``record`` meets every criterion (bounds are inclusive)."""
        if self.outcome is not None and record.outcome != self.outcome:
            return False
        installed_at = record.metadata.installed_at
        if self.since is not None and installed_at < self.since:
            return False
        if self.until is not None and installed_at > self.until:
            return False
        if self.package:
            names = {p.name for p in record.metadata.packages}
            names.add(record.metadata.target_package)
            if self.package not in names:
                return False
        return True
