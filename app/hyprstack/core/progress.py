"""Progress estimation for installation sessions.

All functions are pure: they read counts and timestamps and never touch
a session. Results are advisory and never gate a transition.
"""

from datetime import timedelta

from hyprstack.models.progress import InstallationProgress
from hyprstack.models.session import InstallationSession, InstallationStatus

# Returned when no estimate is possible yet (nothing completed).
UNKNOWN_REMAINING = timedelta(0)

# Overall percent range (start, end) each phase occupies.
PHASE_RANGES: dict[InstallationStatus, tuple[int, int]] = {
    InstallationStatus.PENDING: (0, 0),
    InstallationStatus.PREPARATION: (0, 25),
    InstallationStatus.INSTALLING: (25, 80),
    InstallationStatus.CONFIGURING: (85, 85),
    InstallationStatus.VERIFYING: (90, 90),
    InstallationStatus.COMPLETED: (100, 100),
}

# Phases where an empty work list means there is nothing left to do.
_DONE_WHEN_EMPTY = frozenset(
    {
        InstallationStatus.CONFIGURING,
        InstallationStatus.VERIFYING,
        InstallationStatus.COMPLETED,
    }
)


class ProgressEstimator:
    """Computes user-facing progress from item counts and elapsed time."""

    def calculate_phase_progress(
        self,
        phase: InstallationStatus,
        total_items: int,
        completed_items: int,
    ) -> int:
        """Percentage of a phase's items that are done.

        Args:
            phase: Phase being measured.
            total_items: Items the phase has to process.
            completed_items: Items processed so far.

        Returns:
            Integer percent in 0..100, rounded down. With no items the
            result is 100 for phases at or past configuring, else 0.
        """
        if total_items <= 0:
            return 100 if phase in _DONE_WHEN_EMPTY else 0
        percent = (max(completed_items, 0) * 100) // total_items
        return min(percent, 100)

    def estimate_remaining_time(
        self,
        phase: InstallationStatus,
        percent_complete: int | float,
        elapsed: timedelta,
    ) -> timedelta:
        """Linear extrapolation of the time left.

        remaining = elapsed * (100 - percent) / percent

        Args:
            phase: Current phase; terminal phases have nothing remaining.
            percent_complete: Overall percent done.
            elapsed: Time spent so far.

        Returns:
            Estimated remaining time, or UNKNOWN_REMAINING when nothing is
            done yet.
        """
        if phase.is_terminal or percent_complete >= 100:
            return timedelta(0)
        if percent_complete <= 0:
            return UNKNOWN_REMAINING
        return elapsed * (100 - percent_complete) / percent_complete

    def overall_progress(
        self,
        status: InstallationStatus,
        total_items: int,
        installed_items: int,
        failed_phase: InstallationStatus | None = None,
        phase_percent: int | None = None,
    ) -> int:
        """Map a session's phase and install count onto 0..100.

        A failed session reports the progress of the phase it failed in.
        Installing progress comes from the install count; other phases use
        ``phase_percent`` when the caller knows it, else their band start.
        """
        if status == InstallationStatus.FAILED:
            status = failed_phase or InstallationStatus.PENDING
        start, end = PHASE_RANGES[status]
        if start == end:
            return start
        if status == InstallationStatus.INSTALLING:
            phase_percent = self.calculate_phase_progress(status, total_items, installed_items)
        else:
            phase_percent = min(max(phase_percent or 0, 0), 100)
        return start + ((end - start) * phase_percent) // 100

    def describe(self, session: InstallationSession) -> InstallationProgress:
        """Build the read-only status view of a stored session."""
        total = session.configuration.component_count
        installed = len(session.installed_components)
        percent = self.overall_progress(
            session.status, total, installed, failed_phase=session.failed_phase
        )
        if session.is_failed and session.failed_phase is not None:
            current_phase = f"failed during {session.failed_phase.value}"
        else:
            current_phase = session.status.value
        return InstallationProgress(
            session_id=session.id,
            status=session.status,
            current_phase=current_phase,
            percent_complete=percent,
            components_installed=installed,
            components_total=total,
            started_at=session.started_at,
            completed_at=session.completed_at,
            failure_reason=session.failure_reason,
            estimated_remaining=self.estimate_remaining_time(
                session.status, percent, session.duration
            ),
        )
