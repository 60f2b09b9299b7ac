"""Progress views of an installation session.

Both types are derived data: they are computed from a stored session and
the progress estimator and never feed back into the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from hyprstack.models.session import InstallationStatus


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """Event passed to the progress callback while a session executes.

    Attributes:
        session_id: Session being executed.
        phase: Current lifecycle state.
        percent_complete: Overall progress (0-100).
        phase_percent: Progress within the current phase (0-100).
        message: Human-readable description of the step.
        components_installed: Components installed so far.
        components_total: Components that will be installed.
    """

    session_id: str
    phase: InstallationStatus
    percent_complete: int
    phase_percent: int
    message: str
    components_installed: int = 0
    components_total: int = 0


@dataclass(frozen=True, slots=True)
class InstallationProgress:
    """Read-only status of a session for the status query surface.

    Attributes:
        session_id: Session identifier.
        status: Lifecycle state.
        current_phase: Human-readable phase name.
        percent_complete: Overall progress (0-100).
        components_installed: Components installed so far.
        components_total: Components selected.
        started_at: When the session was created.
        completed_at: When the session terminated, if it did.
        failure_reason: Failure reason, empty unless FAILED.
        estimated_remaining: Advisory time left; zero when unknown.
    """

    session_id: str
    status: InstallationStatus
    current_phase: str
    percent_complete: int
    components_installed: int
    components_total: int
    started_at: datetime
    completed_at: datetime | None = None
    failure_reason: str = ""
    estimated_remaining: timedelta = timedelta(0)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "current_phase": self.current_phase,
            "percent_complete": self.percent_complete,
            "components_installed": self.components_installed,
            "components_total": self.components_total,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "failure_reason": self.failure_reason,
            "estimated_remaining_seconds": int(self.estimated_remaining.total_seconds()),
        }
