"""Unit tests for the session lifecycle use cases."""

from pathlib import Path
from unittest.mock import patch

import pytest
from hyprstack.core.history import HistoryRecordingService, HistoryStore
from hyprstack.core.lifecycle import (
    CancelInstallationUseCase,
    GetInstallationStatusUseCase,
    InstallationRequest,
    ListInstallationsUseCase,
    StartInstallationUseCase,
    parse_component_spec,
)
from hyprstack.core.repository import InMemorySessionRepository
from hyprstack.core.settings import InstallerSettings
from hyprstack.core.snapshot import SnapshotCapturer
from hyprstack.models.component import GB, MB, ComponentName, InstalledComponent
from hyprstack.models.configuration import DiskSpace, InstallationConfiguration
from hyprstack.models.errors import (
    SessionNotFoundError,
    SessionTerminalError,
    StaleSessionError,
)
from hyprstack.models.session import InstallationSession, InstallationStatus
from hyprstack.models.snapshot import SystemSnapshot


@pytest.fixture
def repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def capturer(tmp_path: Path) -> SnapshotCapturer:
    capturer = SnapshotCapturer(snapshot_root=tmp_path / "snapshots", config_home=tmp_path)
    capturer.measure_disk_space = lambda: DiskSpace(  # type: ignore[method-assign]
        available_bytes=20 * GB, total_bytes=100 * GB
    )
    return capturer


class TestParseComponentSpec:
    """Tests for parse_component_spec."""

    def test_name_only(self) -> None:
        """A bare name installs the latest version."""
        assert parse_component_spec("waybar") == (ComponentName.WAYBAR, "latest")

    def test_name_and_version(self) -> None:
        """NAME=VERSION pins the version."""
        assert parse_component_spec("hyprland=0.45.0") == (ComponentName.HYPRLAND, "0.45.0")

    def test_dashes_and_case(self) -> None:
        """Dashes and upper case are accepted."""
        assert parse_component_spec("NVIDIA-Driver")[0] == ComponentName.NVIDIA_DRIVER

    def test_unknown_component(self) -> None:
        """Unknown names raise ValueError listing the valid ones."""
        with pytest.raises(ValueError, match="Unknown component 'sway'"):
            parse_component_spec("sway")

    def test_empty_version(self) -> None:
        """A trailing '=' raises ValueError."""
        with pytest.raises(ValueError, match="Version cannot be empty"):
            parse_component_spec("kitty=")


class TestStartInstallation:
    """Tests for StartInstallationUseCase."""

    def test_creates_pending_session(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """A valid request creates and stores a PENDING session."""
        use_case = StartInstallationUseCase(repository, snapshot_capturer=capturer)

        session = use_case.execute(
            InstallationRequest(
                components=("hyprland=0.45.0", "waybar"),
                package_sizes={ComponentName.HYPRLAND: 15 * MB},
            )
        )

        stored = repository.find_by_id(session.id)
        assert stored.status == InstallationStatus.PENDING
        selections = stored.configuration.components
        assert [s.component for s in selections] == [ComponentName.HYPRLAND, ComponentName.WAYBAR]
        assert selections[0].estimated_size_bytes == 15 * MB
        assert selections[1].package_info is None
        assert stored.configuration.disk_space.available_bytes == 20 * GB

    def test_gpu_vendor_adds_driver(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """Selecting a GPU vendor appends its driver once."""
        use_case = StartInstallationUseCase(repository, snapshot_capturer=capturer)

        configuration = use_case.build_configuration(
            InstallationRequest(components=("hyprland",), gpu_vendor="amd")
        )

        assert [s.component for s in configuration.components] == [
            ComponentName.HYPRLAND,
            ComponentName.AMD_DRIVER,
        ]
        assert configuration.gpu_support is not None
        assert configuration.gpu_support.vendor == "amd"

    def test_package_override_from_settings(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """Settings can point a component at another package."""
        settings = InstallerSettings(package_overrides={ComponentName.KITTY: "kitty-nightly"})
        use_case = StartInstallationUseCase(
            repository, settings=settings, snapshot_capturer=capturer
        )

        configuration = use_case.build_configuration(InstallationRequest(components=("kitty",)))

        assert configuration.components[0].package_name == "kitty-nightly"

    def test_invalid_request_creates_nothing(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """An invalid component raises and stores no session."""
        use_case = StartInstallationUseCase(repository, snapshot_capturer=capturer)

        with pytest.raises(ValueError):
            use_case.execute(InstallationRequest(components=("hyprland", "sway")))

        assert repository.list() == []

    def test_empty_request_rejected(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """A request without components raises ValueError."""
        use_case = StartInstallationUseCase(repository, snapshot_capturer=capturer)

        with pytest.raises(ValueError, match="at least one component"):
            use_case.execute(InstallationRequest(components=()))

    def test_merge_with_previous_session(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """Components of a previous session are carried over."""
        use_case = StartInstallationUseCase(repository, snapshot_capturer=capturer)
        previous = use_case.execute(InstallationRequest(components=("hyprland", "rofi")))

        session = use_case.execute(
            InstallationRequest(components=("rofi=1.7.5",), previous_session_id=previous.id)
        )

        components = [(s.component, s.version) for s in session.configuration.components]
        assert components == [
            (ComponentName.ROFI, "1.7.5"),
            (ComponentName.HYPRLAND, "latest"),
        ]

    def test_unknown_previous_session(
        self, repository: InMemorySessionRepository, capturer: SnapshotCapturer
    ) -> None:
        """A missing previous session raises SessionNotFoundError."""
        use_case = StartInstallationUseCase(repository, snapshot_capturer=capturer)

        with pytest.raises(SessionNotFoundError):
            use_case.execute(InstallationRequest(components=("kitty",), previous_session_id="nope"))


class TestCancelInstallation:
    """Tests for CancelInstallationUseCase."""

    def test_cancel_pending_session(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
        tmp_path: Path,
    ) -> None:
        """Cancelling a PENDING session fails it and records history."""
        session = InstallationSession.create(single_configuration)
        repository.save(session)
        store = HistoryStore(state_dir=tmp_path / "history")
        use_case = CancelInstallationUseCase(repository, HistoryRecordingService(store))

        cancelled = use_case.execute(session.id)

        assert cancelled.status == InstallationStatus.FAILED
        assert "cancelled" in cancelled.failure_reason
        assert repository.find_by_id(session.id).is_cancelled

        records = store.get_history()
        assert len(records) == 1
        assert records[0].failure_details is not None
        assert records[0].failure_details.is_cancellation
        assert records[0].failure_details.phase == "pending"

    def test_cancel_with_detail(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
    ) -> None:
        """The detail is appended to the cancellation reason."""
        session = InstallationSession.create(single_configuration)
        repository.save(session)

        cancelled = CancelInstallationUseCase(repository).execute(session.id, "by timeout")

        assert cancelled.failure_reason == "installation cancelled by timeout"

    def test_cancel_terminal_session(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
    ) -> None:
        """Cancelling a FAILED session raises and leaves it unchanged."""
        session = InstallationSession.create(single_configuration)
        session.fail("disk full")
        repository.save(session)
        before = repository.find_by_id(session.id).to_dict()

        with pytest.raises(SessionTerminalError):
            CancelInstallationUseCase(repository).execute(session.id)

        assert repository.find_by_id(session.id).to_dict() == before

    def test_cancel_unknown_session(self, repository: InMemorySessionRepository) -> None:
        """Cancelling an unknown ID raises SessionNotFoundError."""
        with pytest.raises(SessionNotFoundError):
            CancelInstallationUseCase(repository).execute("missing")

    def test_cancel_retries_after_concurrent_progress(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
        snapshot: SystemSnapshot,
        tmp_path: Path,
    ) -> None:
        """Progress saved while cancelling is kept; the cancellation is applied on top."""
        session = InstallationSession.create(single_configuration)
        repository.save(session)
        store = HistoryStore(state_dir=tmp_path / "history")
        find_by_id = repository.find_by_id
        loads: list[InstallationSession] = []

        def load_while_installing(session_id: str) -> InstallationSession:
            loaded = find_by_id(session_id)
            if not loads:
                running = find_by_id(session_id)
                running.start_preparation(snapshot)
                running.start_installing()
                running.add_installed_component(
                    InstalledComponent.from_selection(single_configuration.components[0])
                )
                repository.save(running)
            loads.append(loaded)
            return loaded

        with patch.object(repository, "find_by_id", side_effect=load_while_installing):
            cancelled = CancelInstallationUseCase(
                repository, HistoryRecordingService(store)
            ).execute(session.id)

        assert len(loads) == 2
        stored = repository.find_by_id(session.id)
        assert stored.is_cancelled
        assert stored.failed_phase == InstallationStatus.INSTALLING
        assert [c.package_name for c in stored.installed_components] == ["hyprland"]
        assert cancelled.revision == stored.revision
        assert store.get_history()[0].package_count == 1

    def test_cancel_gives_up_when_session_keeps_changing(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
    ) -> None:
        """A session saved before every cancel attempt raises StaleSessionError."""
        session = InstallationSession.create(single_configuration)
        repository.save(session)
        find_by_id = repository.find_by_id

        def load_then_touch(session_id: str) -> InstallationSession:
            loaded = find_by_id(session_id)
            repository.save(find_by_id(session_id))
            return loaded

        with (
            patch.object(repository, "find_by_id", side_effect=load_then_touch),
            pytest.raises(StaleSessionError, match="gave up"),
        ):
            CancelInstallationUseCase(repository).execute(session.id)

        assert not repository.find_by_id(session.id).is_terminal


class TestStatusQueries:
    """Tests for the read-only use cases."""

    def test_get_status(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
    ) -> None:
        """The status view reflects the stored session."""
        session = InstallationSession.create(single_configuration)
        repository.save(session)

        progress = GetInstallationStatusUseCase(repository).execute(session.id)

        assert progress.session_id == session.id
        assert progress.status == InstallationStatus.PENDING

    def test_get_status_unknown(self, repository: InMemorySessionRepository) -> None:
        """An unknown ID raises SessionNotFoundError."""
        with pytest.raises(SessionNotFoundError):
            GetInstallationStatusUseCase(repository).execute("missing")

    def test_list_with_limit(
        self,
        repository: InMemorySessionRepository,
        single_configuration: InstallationConfiguration,
    ) -> None:
        """list returns at most ``limit`` sessions."""
        for _ in range(3):
            repository.save(InstallationSession.create(single_configuration))

        assert len(ListInstallationsUseCase(repository).execute()) == 3
        assert len(ListInstallationsUseCase(repository).execute(limit=2)) == 2
