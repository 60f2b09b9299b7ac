"""Session lifecycle use cases.

Creating a session from a user request, cancelling it, and the read-only
status queries. Execution lives in :mod:`hyprstack.core.executor`.
"""

import logging
from dataclasses import dataclass, field

from hyprstack.core.history import HistoryRecordingService
from hyprstack.core.merger import ConfigurationMerger
from hyprstack.core.progress import ProgressEstimator
from hyprstack.core.repository import SessionRepository
from hyprstack.core.settings import InstallerSettings
from hyprstack.core.snapshot import SnapshotCapturer
from hyprstack.models.component import (
    LATEST_VERSION,
    ComponentName,
    ComponentSelection,
    PackageInfo,
)
from hyprstack.models.configuration import GPUSupport, InstallationConfiguration
from hyprstack.models.errors import HistoryRecordingError, SessionTerminalError
from hyprstack.models.progress import InstallationProgress
from hyprstack.models.session import InstallationSession

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_DETAIL = "by user"


def parse_component_spec(spec: str) -> tuple[ComponentName, str]:
    """Parse ``NAME[=VERSION]`` into a component and version.

    Dashes are accepted in place of underscores (``nvidia-driver``).

    Raises:
        ValueError: If the component is unknown or the version is empty.
    """
    name, sep, version = spec.strip().partition("=")
    key = name.strip().lower().replace("-", "_")
    try:
        component = ComponentName(key)
    except ValueError:
        valid = ", ".join(c.value for c in ComponentName)
        msg = f"Unknown component '{name.strip()}'. Valid components: {valid}"
        raise ValueError(msg) from None
    if sep and not version.strip():
        msg = f"Version cannot be empty for component {component.value}"
        raise ValueError(msg)
    return component, version.strip() or LATEST_VERSION


@dataclass(frozen=True, slots=True)
class InstallationRequest:
    """What the user asked to install.

    Attributes:
        components: Component specs in ``NAME[=VERSION]`` form, in order.
        gpu_vendor: GPU vendor; adds the matching driver when one is known.
        dry_run: Simulate package operations.
        merge_existing_config: Keep pre-existing config files in place instead
            of backing them up and replacing them.
        previous_session_id: Session whose configuration is merged in.
        package_sizes: Known installed size in bytes per component.
    """

    components: tuple[str, ...]
    gpu_vendor: str | None = None
    dry_run: bool = False
    merge_existing_config: bool = False
    previous_session_id: str | None = None
    package_sizes: dict[ComponentName, int] = field(default_factory=dict)


class StartInstallationUseCase:
    """Creates a PENDING session from an InstallationRequest."""

    def __init__(
        self,
        repository: SessionRepository,
        *,
        settings: InstallerSettings | None = None,
        snapshot_capturer: SnapshotCapturer | None = None,
        merger: ConfigurationMerger | None = None,
    ) -> None:
        self.repository = repository
        self.settings = settings or InstallerSettings()
        self.snapshot_capturer = snapshot_capturer or SnapshotCapturer()
        self.merger = merger or ConfigurationMerger()

    def execute(self, request: InstallationRequest) -> InstallationSession:
        """Validate the request, create the session and save it.

        Raises:
            ValueError: If the request is invalid. No session is created.
            SessionNotFoundError: If the previous session does not exist.
            OSError: If disk space cannot be measured.
        """
        return self.create_session(self.prepare_configuration(request))

    def prepare_configuration(self, request: InstallationRequest) -> InstallationConfiguration:
        """Build the configuration and merge in the previous session's, if any.

        Raises:
            ValueError: If the request is invalid.
            SessionNotFoundError: If the previous session does not exist.
        """
        configuration = self.build_configuration(request)
        if request.previous_session_id:
            previous = self.repository.find_by_id(request.previous_session_id)
            configuration = self.merger.merge_configurations(
                previous.configuration, configuration
            )
        return configuration

    def create_session(self, configuration: InstallationConfiguration) -> InstallationSession:
        """Create a PENDING session for ``configuration`` and save it."""
        session = InstallationSession.create(configuration)
        self.repository.save(session)
        logger.info("Created session %s: %s", session.id, configuration)
        return session

    def build_configuration(self, request: InstallationRequest) -> InstallationConfiguration:
        """Turn a request into a validated configuration.

        Raises:
            ValueError: If a component spec or the GPU vendor is invalid, or
                no component was requested.
        """
        selections = [self._selection(spec, request) for spec in request.components]

        gpu_support: GPUSupport | None = None
        if request.gpu_vendor:
            gpu_support = GPUSupport.for_vendor(request.gpu_vendor)
            driver = gpu_support.driver_component
            if driver is not None and all(s.component != driver for s in selections):
                selections.append(self._selection(driver.value, request))

        return InstallationConfiguration(
            components=tuple(selections),
            disk_space=self.snapshot_capturer.measure_disk_space(),
            gpu_support=gpu_support,
            dry_run=request.dry_run,
            merge_existing_config=request.merge_existing_config,
        )

    def _selection(self, spec: str, request: InstallationRequest) -> ComponentSelection:
        component, version = parse_component_spec(spec)
        package = self.settings.package_for(component)
        size = request.package_sizes.get(component, 0)
        package_info = None
        if package != component.default_package or size:
            package_info = PackageInfo(name=package, version=version, size_bytes=size)
        return ComponentSelection(component=component, version=version, package_info=package_info)


class CancelInstallationUseCase:
    """Cancels a session that has not terminated.

    Cancellation is a failure whose reason contains "cancelled". A running
    orchestrator notices it at its next phase boundary.
    """

    def __init__(
        self,
        repository: SessionRepository,
        history_service: HistoryRecordingService | None = None,
    ) -> None:
        self.repository = repository
        self.history_service = history_service

    def execute(self, session_id: str, detail: str = DEFAULT_CANCEL_DETAIL) -> InstallationSession:
        """Cancel the session with ID ``session_id``.

        The session is failed on the latest stored copy. When the
        orchestrator saves progress in between, the copy is reloaded and
        the cancellation applied again, so no installed component is lost.

        Args:
            session_id: Session to cancel.
            detail: Appended to "installation cancelled".

        Returns:
            The cancelled session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            SessionTerminalError: If the session already completed or failed.
            StaleSessionError: If the session kept changing while cancelling.
        """
        reason = f"installation cancelled {detail}".strip()

        def cancel(session: InstallationSession) -> None:
            if session.is_terminal:
                msg = f"Cannot cancel session {session.id}: already {session.status.value}"
                raise SessionTerminalError(msg)
            session.fail(reason)

        session = self.repository.update(session_id, cancel)
        logger.info("Cancelled session %s", session.id)

        if self.history_service is not None:
            try:
                self.history_service.record_installation(session)
            except HistoryRecordingError as e:
                logger.warning("Failed to record history for session %s: %s", session.id, e)
        return session


class GetInstallationStatusUseCase:
    """Read-only status of one session."""

    def __init__(
        self,
        repository: SessionRepository,
        estimator: ProgressEstimator | None = None,
    ) -> None:
        self.repository = repository
        self.estimator = estimator or ProgressEstimator()

    def execute(self, session_id: str) -> InstallationProgress:
        """Describe a stored session.

        Raises:
            SessionNotFoundError: If the session does not exist.
        """
        return self.estimator.describe(self.repository.find_by_id(session_id))


class ListInstallationsUseCase:
    """Read-only status of all sessions, newest first."""

    def __init__(
        self,
        repository: SessionRepository,
        estimator: ProgressEstimator | None = None,
    ) -> None:
        self.repository = repository
        self.estimator = estimator or ProgressEstimator()

    def execute(self, limit: int | None = None) -> list[InstallationProgress]:
        sessions = self.repository.list()
        if limit is not None:
            sessions = sessions[:limit]
        return [self.estimator.describe(s) for s in sessions]
