"""Installation orchestration.

ExecuteInstallationUseCase drives a PENDING session through preparation,
installation, configuration and verification, saving the session after
every transition so status readers observe progress, and records history
once the session terminates.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Mapping

from hyprstack.core.conflicts import ConflictResolver
from hyprstack.core.history import HistoryRecordingService
from hyprstack.core.merger import ConfigurationMerger
from hyprstack.core.progress import ProgressEstimator
from hyprstack.core.repository import SessionRepository
from hyprstack.core.snapshot import SnapshotCapturer
from hyprstack.models.component import ComponentSelection, InstalledComponent
from hyprstack.models.configuration import InstallationConfiguration
from hyprstack.models.conflict import ConflictKind, ConflictResolution, ResolutionStrategy
from hyprstack.models.errors import (
    ConflictResolutionError,
    HistoryRecordingError,
    InvalidTransitionError,
    PackageInstallError,
    SessionTerminalError,
    StaleSessionError,
)
from hyprstack.models.progress import InstallationProgress, ProgressUpdate
from hyprstack.models.session import InstallationSession, InstallationStatus
from hyprstack.operators.base import PackageManager

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]


class ExecuteInstallationUseCase:
    """Runs an installation session from PENDING to a terminal state.

    Policy is fail fast with a partial record: the first package that fails
    to install stops the run, and the components installed before it stay
    visible on the failed session.

    Example:
        >>> use_case = ExecuteInstallationUseCase(repository, AptPackageManager(), history)
        >>> progress = use_case.execute(session.id, progress_callback=print)
        >>> progress.status
        <InstallationStatus.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        repository: SessionRepository,
        package_manager: PackageManager,
        history_service: HistoryRecordingService,
        *,
        conflict_resolver: ConflictResolver | None = None,
        snapshot_capturer: SnapshotCapturer | None = None,
        merger: ConfigurationMerger | None = None,
        estimator: ProgressEstimator | None = None,
        conflict_strategies: Mapping[ConflictKind, ResolutionStrategy] | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            repository: Where sessions are loaded from and saved to.
            package_manager: Installs and verifies packages.
            history_service: Records terminated sessions.
            conflict_resolver: Defaults to a resolver using ``package_manager``.
            snapshot_capturer: Defaults to a capturer using XDG paths.
            merger: Backs up pre-existing config files.
            estimator: Computes progress for callbacks and the returned view.
            conflict_strategies: Strategy per conflict kind; kinds without an
                entry use the strategy the conflict suggests.
        """
        self.repository = repository
        self.package_manager = package_manager
        self.history_service = history_service
        self.conflict_resolver = conflict_resolver or ConflictResolver(package_manager)
        self.snapshot_capturer = snapshot_capturer or SnapshotCapturer()
        self.merger = merger or ConfigurationMerger()
        self.estimator = estimator or ProgressEstimator()
        self.conflict_strategies = dict(conflict_strategies or {})

    def execute(
        self,
        session_id: str,
        progress_callback: ProgressCallback | None = None,
    ) -> InstallationProgress:
        """Execute the session with ID ``session_id``.

        Args:
            session_id: ID of a PENDING session.
            progress_callback: Optional callable receiving ProgressUpdate events.

        Returns:
            Status view of the session in its final state.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionTerminalError: If the session already terminated.
            InvalidTransitionError: If the session already started.
            ConflictResolutionError: If a conflict cannot be resolved. The
                session is left PENDING and unsaved.
        """
        session = self.repository.find_by_id(session_id)
        if session.is_terminal:
            msg = f"Session {session.id} is already {session.status.value}"
            raise SessionTerminalError(msg)
        if session.status != InstallationStatus.PENDING:
            msg = f"Session {session.id} is already {session.status.value}"
            raise InvalidTransitionError(msg)

        plan = self.plan_installation(session.configuration)
        run = _SessionRun(session, len(plan), self.estimator, progress_callback)

        try:
            self._run(run, plan)
        except StaleSessionError as e:
            # Terminated by another caller (e.g., cancelled), which recorded history.
            logger.info("Stopping session %s at phase boundary: %s", session.id, e)
            session = self._reconcile_stopped_run(session_id, run.session.installed_components)
            run.session = session
            run.report(0, f"Installation stopped: {session.failure_reason or session.status.value}")
            return self.estimator.describe(session)

        self._record_history(session)
        return self.estimator.describe(session)

    def plan_installation(
        self, configuration: InstallationConfiguration
    ) -> list[ComponentSelection]:
        """Resolve every conflict and return the selections to install, in order.

        Detection and resolution happen before the session is touched.

        Raises:
            ConflictResolutionError: If a conflict cannot be resolved or no
                selection is left to install.
        """
        conflicts = self.conflict_resolver.detect_conflicts(configuration.components)
        resolutions: list[ConflictResolution] = []
        for conflict in conflicts:
            strategy = self.conflict_strategies.get(conflict.kind, conflict.suggested_strategy)
            resolutions.append(self.conflict_resolver.resolve_conflict(conflict, strategy))

        skip: Counter[ComponentSelection] = Counter()
        for resolution in resolutions:
            skip |= Counter(resolution.skipped)

        plan: list[ComponentSelection] = []
        for selection in configuration.components:
            if skip[selection] > 0:
                skip[selection] -= 1
                logger.info("Skipping %s after conflict resolution", selection)
                continue
            plan.append(selection)

        if not plan:
            msg = "No components left to install after conflict resolution"
            raise ConflictResolutionError(msg)
        return plan

    def _run(self, run: _SessionRun, plan: list[ComponentSelection]) -> None:
        session = run.session
        configuration = session.configuration

        # Preparation
        try:
            snapshot = self.snapshot_capturer.capture(configuration)
        except OSError as e:
            self._fail(run, f"failed to capture system snapshot: {e}")
            return
        session.start_preparation(snapshot)
        self._save(session)
        run.report(0, "Captured system snapshot")

        required = sum(s.estimated_size_bytes for s in plan)
        if not snapshot.disk_space.has_room_for(required):
            self._fail(
                run,
                f"insufficient disk space: {required} bytes required, "
                f"{snapshot.disk_space.available_bytes} available on {snapshot.disk_space.path}",
            )
            return
        run.report(100, "Preparation checks passed")

        # Installing
        session.start_installing()
        self._save(session)
        run.report(0, f"Installing {len(plan)} component(s)")
        for selection in plan:
            try:
                self.package_manager.install_package(selection.package_name, selection.version)
            except PackageInstallError as e:
                self._fail(run, str(e))
                return
            session.add_installed_component(InstalledComponent.from_selection(selection))
            self._save(session)
            installed = len(session.installed_components)
            run.report(
                self.estimator.calculate_phase_progress(session.status, len(plan), installed),
                f"Installed {selection}",
            )

        # Configuring
        session.start_configuring()
        self._save(session)
        run.report(0, "Configuring components")
        try:
            message = self._apply_existing_configs(session)
        except OSError as e:
            self._fail(run, f"failed to back up existing configuration: {e}")
            return
        run.report(100, message)

        # Verifying
        session.start_verifying()
        self._save(session)
        run.report(0, "Verifying installed packages")
        failure = self._verify(session)
        if failure:
            self._fail(run, failure)
            return

        session.complete()
        self._save(session)
        run.report(100, "Installation completed")
        logger.info("Session %s completed in %s", session.id, session.duration)

    def _apply_existing_configs(self, session: InstallationSession) -> str:
        """Handle config files that existed before the installation.

        With ``merge_existing_config`` they stay in place untouched, so the
        new packages pick up the user's settings. Otherwise each one is
        backed up into the snapshot and removed, so the packages start from
        their shipped defaults. Dry runs touch nothing.
        """
        snapshot = session.snapshot
        if snapshot is None or session.configuration.dry_run:
            return "Left existing config files untouched"
        paths = [p for p in snapshot.existing_config_paths if self.merger.should_backup_existing(p)]
        if session.configuration.merge_existing_config:
            logger.info("Keeping %d existing config file(s) for merging", len(paths))
            return f"Kept {len(paths)} existing config file(s)"
        for path in paths:
            self.merger.replace_existing(path, snapshot.backup_dir)
        return f"Backed up and replaced {len(paths)} existing config file(s)"

    def _verify(self, session: InstallationSession) -> str | None:
        if session.configuration.dry_run:
            return None
        for component in session.installed_components:
            try:
                installed = self.package_manager.is_package_installed(component.package_name)
            except PackageInstallError as e:
                return str(e)
            if not installed:
                return f"verification failed: {component.package_name} is not installed"
        return None

    def _fail(self, run: _SessionRun, reason: str) -> None:
        session = run.session
        logger.error("Session %s failed during %s: %s", session.id, session.status.value, reason)
        session.fail(reason)
        self._save(session)
        run.report(0, f"Installation failed: {reason}")

    def _save(self, session: InstallationSession) -> None:
        self.repository.save(session)

    def _reconcile_stopped_run(
        self, session_id: str, installed: tuple[InstalledComponent, ...]
    ) -> InstallationSession:
        """Reload a session another caller terminated, keeping this run's installs.

        A package that was installing when the session was cancelled still
        lands on the system. It is merged into the stored session and the
        session's history record is rewritten to include it.
        """
        stored = self.repository.find_by_id(session_id)
        known = {c.package_name for c in stored.installed_components}
        late = tuple(c for c in installed if c.package_name not in known)
        if not stored.is_failed or not late:
            return stored

        stored = self.repository.update(session_id, lambda s: s.merge_installed_components(late))
        logger.warning(
            "Session %s was stopped after installing %s; adding them to its record",
            session_id,
            ", ".join(c.package_name for c in late),
        )
        self._record_history(stored, replace=True)
        return stored

    def _record_history(self, session: InstallationSession, *, replace: bool = False) -> None:
        """Record the terminated session; failures are logged, never raised."""
        try:
            record_id = self.history_service.record_installation(session, replace=replace)
        except HistoryRecordingError as e:
            logger.warning("Failed to record history for session %s: %s", session.id, e)
            return
        logger.debug("Session %s recorded as %s", session.id, record_id)


class _SessionRun:
    """Progress bookkeeping of one execution."""

    def __init__(
        self,
        session: InstallationSession,
        total: int,
        estimator: ProgressEstimator,
        callback: ProgressCallback | None,
    ) -> None:
        self.session = session
        self.total = total
        self.estimator = estimator
        self.callback = callback

    def report(self, phase_percent: int, message: str) -> None:
        if self.callback is None:
            return
        installed = len(self.session.installed_components)
        update = ProgressUpdate(
            session_id=self.session.id,
            phase=self.session.status,
            percent_complete=self.estimator.overall_progress(
                self.session.status,
                self.total,
                installed,
                failed_phase=self.session.failed_phase,
                phase_percent=phase_percent,
            ),
            phase_percent=phase_percent,
            message=message,
            components_installed=installed,
            components_total=self.total,
        )
        try:
            self.callback(update)
        except Exception as e:
            logger.warning("Progress callback failed for session %s: %s", self.session.id, e)
