"""Installation session aggregate.

This module defines the seven lifecycle states of an installation and the
:class:`InstallationSession` state machine that moves through them. Every
mutator consults :data:`ALLOWED_TRANSITIONS`; a rejected call raises and
leaves the session exactly as it was.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from hyprstack.models.component import InstalledComponent
from hyprstack.models.configuration import InstallationConfiguration
from hyprstack.models.errors import InvalidTransitionError, SessionTerminalError
from hyprstack.models.snapshot import SystemSnapshot

CANCELLED_MARKER = "cancelled"


class InstallationStatus(str, Enum):
    """Lifecycle state of an installation session.

    Attributes:
        PENDING: Created, nothing touched yet.
        PREPARATION: Snapshot captured, checks running.
        INSTALLING: Packages are being installed.
        CONFIGURING: Configuration files are being written.
        VERIFYING: Installed packages are being verified.
        COMPLETED: Finished successfully (terminal).
        FAILED: Failed or cancelled (terminal).
    """

    PENDING = "pending"
    PREPARATION = "preparation"
    INSTALLING = "installing"
    CONFIGURING = "configuring"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if no further transition is possible."""
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: InstallationStatus) -> bool:
        """Check if ``target`` is reachable in one step."""
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: dict[InstallationStatus, frozenset[InstallationStatus]] = {
    InstallationStatus.PENDING: frozenset(
        {InstallationStatus.PREPARATION, InstallationStatus.FAILED}
    ),
    InstallationStatus.PREPARATION: frozenset(
        {InstallationStatus.INSTALLING, InstallationStatus.FAILED}
    ),
    InstallationStatus.INSTALLING: frozenset(
        {InstallationStatus.CONFIGURING, InstallationStatus.FAILED}
    ),
    InstallationStatus.CONFIGURING: frozenset(
        {InstallationStatus.VERIFYING, InstallationStatus.FAILED}
    ),
    InstallationStatus.VERIFYING: frozenset(
        {InstallationStatus.COMPLETED, InstallationStatus.FAILED}
    ),
    InstallationStatus.COMPLETED: frozenset(),
    InstallationStatus.FAILED: frozenset(),
}


class InstallationSession:
    """One attempt to install a configured set of components.

    The session performs no locking of its own. Callers that share a
    session between threads go through a repository, which stores copies.

    Example:
        >>> session = InstallationSession.create(configuration)
        >>> session.start_preparation(snapshot)
        >>> session.start_installing()
        >>> session.add_installed_component(component)
    """

    __slots__ = (
        "_completed_at",
        "_configuration",
        "_failed_phase",
        "_failure_reason",
        "_id",
        "_installed_components",
        "_revision",
        "_snapshot",
        "_started_at",
        "_status",
    )

    def __init__(
        self,
        session_id: str,
        configuration: InstallationConfiguration,
        *,
        status: InstallationStatus = InstallationStatus.PENDING,
        snapshot: SystemSnapshot | None = None,
        installed_components: tuple[InstalledComponent, ...] = (),
        failure_reason: str = "",
        failed_phase: InstallationStatus | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        revision: int = 0,
    ) -> None:
        """Initialize a session.

        Prefer :meth:`create` for new sessions; the keyword arguments exist
        so repositories can rebuild a stored session.

        Args:
            session_id: Unique session identifier.
            configuration: Validated installation configuration.
            status: Current lifecycle state.
            snapshot: System snapshot, present from PREPARATION on.
            installed_components: Components installed so far, in order.
            failure_reason: Reason given to :meth:`fail`.
            failed_phase: State the session was in when it failed.
            started_at: When the session was created.
            completed_at: When the session reached a terminal state.
            revision: Number of times the session was saved.

        Raises:
            ValueError: If the ID is empty or a configuration is missing.
        """
        if not session_id:
            msg = "Session ID cannot be empty"
            raise ValueError(msg)
        if configuration is None:
            msg = "Session requires a configuration"
            raise ValueError(msg)
        self._id = session_id
        self._configuration = configuration
        self._status = status
        self._snapshot = snapshot
        self._installed_components: list[InstalledComponent] = list(installed_components)
        self._failure_reason = failure_reason
        self._failed_phase = failed_phase
        self._started_at = started_at or datetime.now(UTC)
        self._completed_at = completed_at
        self._revision = revision

    @classmethod
    def create(cls, configuration: InstallationConfiguration) -> InstallationSession:
        """Create a new PENDING session with a fresh ID."""
        return cls(str(uuid.uuid4()), configuration)

    # Accessors

    @property
    def id(self) -> str:
        return self._id

    @property
    def configuration(self) -> InstallationConfiguration:
        return self._configuration

    @property
    def status(self) -> InstallationStatus:
        return self._status

    @property
    def snapshot(self) -> SystemSnapshot | None:
        return self._snapshot

    @property
    def installed_components(self) -> tuple[InstalledComponent, ...]:
        """Components installed so far, in installation order (a copy)."""
        return tuple(self._installed_components)

    @property
    def failure_reason(self) -> str:
        return self._failure_reason

    @property
    def failed_phase(self) -> InstallationStatus | None:
        """State the session was in when it failed, None unless FAILED."""
        return self._failed_phase

    @property
    def started_at(self) -> datetime:
        return self._started_at

    @property
    def completed_at(self) -> datetime | None:
        return self._completed_at

    @property
    def revision(self) -> int:
        """Stored revision this copy is based on.

        Repositories reject a save whose revision no longer matches the
        stored one, so an outdated copy cannot overwrite newer progress.
        """
        return self._revision

    def mark_saved(self, revision: int) -> None:
        """Adopt the revision a repository assigned when storing this copy."""
        self._revision = revision

    # Derived state

    @property
    def is_terminal(self) -> bool:
        """Check if the session is COMPLETED or FAILED."""
        return self._status.is_terminal

    @property
    def is_in_progress(self) -> bool:
        """Check if the session has started but not terminated."""
        return self._status != InstallationStatus.PENDING and not self.is_terminal

    @property
    def is_completed(self) -> bool:
        return self._status == InstallationStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self._status == InstallationStatus.FAILED

    @property
    def is_cancelled(self) -> bool:
        """Check if the session failed because it was cancelled."""
        return self.is_failed and CANCELLED_MARKER in self._failure_reason.lower()

    @property
    def duration(self) -> timedelta:
        """Time from start to completion, or to now while still running."""
        end = self._completed_at or datetime.now(UTC)
        return end - self._started_at

    # Transitions

    def start_preparation(self, snapshot: SystemSnapshot | None) -> None:
        """Store the pre-installation snapshot and enter PREPARATION.

        Raises:
            InvalidTransitionError: If the session is not PENDING.
            ValueError: If ``snapshot`` is None.
        """
        self._check_transition(InstallationStatus.PREPARATION)
        if snapshot is None:
            msg = "System snapshot is required to start preparation"
            raise ValueError(msg)
        self._snapshot = snapshot
        self._status = InstallationStatus.PREPARATION

    def start_installing(self) -> None:
        """Enter INSTALLING from PREPARATION."""
        self._check_transition(InstallationStatus.INSTALLING)
        self._status = InstallationStatus.INSTALLING

    def add_installed_component(self, component: InstalledComponent) -> None:
        """Record a component the package manager installed.

        Raises:
            InvalidTransitionError: If the session is not INSTALLING.
        """
        self._check_not_terminal()
        if self._status != InstallationStatus.INSTALLING:
            msg = f"Cannot add installed components while session is {self._status.value}"
            raise InvalidTransitionError(msg)
        self._installed_components.append(component)

    def merge_installed_components(
        self, components: Iterable[InstalledComponent]
    ) -> tuple[InstalledComponent, ...]:
        """Add components a run installed after the session was failed elsewhere.

        A cancellation does not interrupt a package install that is already
        running; the orchestrator reports such packages here so the failed
        session still lists everything that was put on the system.
        Components whose package is already listed are ignored.

        Returns:
            The components that were added.

        Raises:
            InvalidTransitionError: If the session is not FAILED.
        """
        if self._status != InstallationStatus.FAILED:
            msg = f"Cannot merge installed components while session is {self._status.value}"
            raise InvalidTransitionError(msg)
        known = {c.package_name for c in self._installed_components}
        added: list[InstalledComponent] = []
        for component in components:
            if component.package_name not in known:
                known.add(component.package_name)
                added.append(component)
        self._installed_components.extend(added)
        return tuple(added)

    def start_configuring(self) -> None:
        """Enter CONFIGURING from INSTALLING."""
        self._check_transition(InstallationStatus.CONFIGURING)
        self._status = InstallationStatus.CONFIGURING

    def start_verifying(self) -> None:
        """Enter VERIFYING from CONFIGURING."""
        self._check_transition(InstallationStatus.VERIFYING)
        self._status = InstallationStatus.VERIFYING

    def complete(self) -> None:
        """Enter COMPLETED from VERIFYING and stamp the completion time."""
        self._check_transition(InstallationStatus.COMPLETED)
        self._status = InstallationStatus.COMPLETED
        self._completed_at = datetime.now(UTC)

    def fail(self, reason: str) -> None:
        """Enter FAILED from any non-terminal state.

        Cancellation also goes through here, with a reason containing
        "cancelled".

        Raises:
            SessionTerminalError: If the session already terminated.
            ValueError: If ``reason`` is empty.
        """
        self._check_transition(InstallationStatus.FAILED)
        if not reason or not reason.strip():
            msg = "Failure reason cannot be empty"
            raise ValueError(msg)
        self._failed_phase = self._status
        self._status = InstallationStatus.FAILED
        self._failure_reason = reason.strip()
        self._completed_at = datetime.now(UTC)

    def _check_not_terminal(self) -> None:
        if self.is_terminal:
            msg = f"Session {self._id} is already {self._status.value}"
            raise SessionTerminalError(msg)

    def _check_transition(self, target: InstallationStatus) -> None:
        self._check_not_terminal()
        if not self._status.can_transition_to(target):
            msg = f"Invalid transition from {self._status.value} to {target.value}"
            raise InvalidTransitionError(msg)

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self._id,
            "status": self._status.value,
            "configuration": self._configuration.to_dict(),
            "snapshot": self._snapshot.to_dict() if self._snapshot else None,
            "installed_components": [c.to_dict() for c in self._installed_components],
            "failure_reason": self._failure_reason,
            "failed_phase": self._failed_phase.value if self._failed_phase else None,
            "started_at": self._started_at.isoformat(),
            "completed_at": self._completed_at.isoformat() if self._completed_at else None,
            "revision": self._revision,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstallationSession:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If a status or nested value is invalid.
        """
        snapshot = data.get("snapshot")
        completed_at = data.get("completed_at")
        failed_phase = data.get("failed_phase")
        return cls(
            data["id"],
            InstallationConfiguration.from_dict(data["configuration"]),
            status=InstallationStatus(data["status"]),
            snapshot=SystemSnapshot.from_dict(snapshot) if snapshot else None,
            installed_components=tuple(
                InstalledComponent.from_dict(c) for c in data.get("installed_components", [])
            ),
            failure_reason=data.get("failure_reason", ""),
            failed_phase=InstallationStatus(failed_phase) if failed_phase else None,
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            revision=int(data.get("revision", 0)),
        )

    def __repr__(self) -> str:
        return f"InstallationSession(id={self._id!r}, status={self._status.value})"
