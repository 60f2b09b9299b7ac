"""Unit tests for installation history models."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from hyprstack.models.history import (
    FailureDetails,
    InstallationMetadata,
    InstallationOutcome,
    InstallationRecord,
    InstalledPackage,
    RecordFilter,
    SystemContext,
)

STARTED = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
FINISHED = STARTED + timedelta(minutes=3)


@pytest.fixture
def context() -> SystemContext:
    return SystemContext(
        os_version="Ubuntu 24.04 LTS",
        kernel_version="6.8.0-45-generic",
        app_version="0.1.0",
        hostname="workstation",
    )


@pytest.fixture
def metadata() -> InstallationMetadata:
    return InstallationMetadata(
        target_package="hyprland",
        target_version="0.45.0",
        installed_at=STARTED,
        completed_at=FINISHED,
        packages=(InstalledPackage(name="hyprland", version="0.45.0", size_bytes=1024),),
    )


class TestInstalledPackage:
    """Tests for InstalledPackage."""

    def test_size_must_be_positive(self) -> None:
        """Zero size raises ValueError."""
        with pytest.raises(ValueError, match="positive"):
            InstalledPackage(name="kitty", version="0.35", size_bytes=0)

    def test_default_size(self) -> None:
        """Size defaults to 1 KiB."""
        assert InstalledPackage(name="kitty", version="0.35").size_bytes == 1024


class TestInstallationMetadata:
    """Tests for InstallationMetadata."""

    def test_completion_before_start_rejected(self) -> None:
        """completed_at before installed_at raises ValueError."""
        with pytest.raises(ValueError, match="precede"):
            InstallationMetadata(
                target_package="hyprland",
                target_version="0.45.0",
                installed_at=FINISHED,
                completed_at=STARTED,
            )

    def test_empty_target_rejected(self) -> None:
        """A blank target package raises ValueError."""
        with pytest.raises(ValueError, match="Target package"):
            InstallationMetadata(
                target_package="",
                target_version="0.45.0",
                installed_at=STARTED,
                completed_at=FINISHED,
            )


class TestInstallationRecord:
    """Tests for InstallationRecord invariants and serialization."""

    def test_success_record(
        self, metadata: InstallationMetadata, context: SystemContext
    ) -> None:
        """A success record reports its packages and duration."""
        record = InstallationRecord(
            session_id="s-1",
            outcome=InstallationOutcome.SUCCESS,
            metadata=metadata,
            system_context=context,
        )
        assert record.was_successful
        assert not record.was_failed
        assert not record.has_failure_details
        assert record.package_count == 1
        assert record.duration == timedelta(minutes=3)
        assert len(record.id) == 12

    def test_success_requires_packages(self, context: SystemContext) -> None:
        """A success record without packages raises ValueError."""
        empty = InstallationMetadata(
            target_package="hyprland",
            target_version="0.45.0",
            installed_at=STARTED,
            completed_at=FINISHED,
        )
        with pytest.raises(ValueError, match="at least one package"):
            InstallationRecord(
                session_id="s-1",
                outcome=InstallationOutcome.SUCCESS,
                metadata=empty,
                system_context=context,
            )

    def test_success_forbids_failure_details(
        self, metadata: InstallationMetadata, context: SystemContext
    ) -> None:
        """A success record with failure details raises ValueError."""
        with pytest.raises(ValueError, match="cannot carry failure details"):
            InstallationRecord(
                session_id="s-1",
                outcome=InstallationOutcome.SUCCESS,
                metadata=metadata,
                system_context=context,
                failure_details=FailureDetails("boom", FINISHED, "installing"),
            )

    def test_failure_requires_details(
        self, metadata: InstallationMetadata, context: SystemContext
    ) -> None:
        """A failed record without details raises ValueError."""
        with pytest.raises(ValueError, match="requires failure details"):
            InstallationRecord(
                session_id="s-1",
                outcome=InstallationOutcome.FAILED,
                metadata=metadata,
                system_context=context,
            )

    def test_cancellation_details(self) -> None:
        """Failure details recognise a cancellation by its reason."""
        details = FailureDetails("installation cancelled by user", FINISHED, "pending")
        assert details.is_cancellation
        assert not FailureDetails("disk full", FINISHED, "preparation").is_cancellation

    def test_json_line_is_single_line(
        self, metadata: InstallationMetadata, context: SystemContext
    ) -> None:
        """to_json_line produces compact JSON that parses back to the record."""
        record = InstallationRecord(
            session_id="s-2",
            outcome=InstallationOutcome.FAILED,
            metadata=metadata,
            system_context=context,
            failure_details=FailureDetails("Package conflict detected", FINISHED, "installing"),
        )
        line = record.to_json_line()

        assert "\n" not in line
        assert json.loads(line)["failure_details"]["phase"] == "installing"
        assert InstallationRecord.from_json_line(line) == record


class TestRecordFilter:
    """Tests for RecordFilter."""

    @pytest.fixture
    def record(self, metadata: InstallationMetadata, context: SystemContext) -> InstallationRecord:
        return InstallationRecord(
            session_id="s-3",
            outcome=InstallationOutcome.SUCCESS,
            metadata=metadata,
            system_context=context,
        )

    def test_empty_filter_matches_everything(self, record: InstallationRecord) -> None:
        """A filter without criteria is empty and matches any record."""
        record_filter = RecordFilter(package="  ")
        assert record_filter.is_empty
        assert record_filter.package is None
        assert record_filter.matches(record)

    def test_period_end_before_start_rejected(self) -> None:
        """An end before the start raises ValueError."""
        with pytest.raises(ValueError, match="before its start"):
            RecordFilter(since=FINISHED, until=STARTED)

    def test_period_bounds_inclusive(self, record: InstallationRecord) -> None:
        """A record started exactly on a bound is inside the period."""
        assert RecordFilter(since=STARTED, until=STARTED).matches(record)
        assert not RecordFilter(since=STARTED + timedelta(seconds=1)).matches(record)
        assert not RecordFilter(until=STARTED - timedelta(seconds=1)).matches(record)

    def test_outcome(self, record: InstallationRecord) -> None:
        """Only records with the requested outcome match."""
        assert RecordFilter(outcome=InstallationOutcome.SUCCESS).matches(record)
        assert not RecordFilter(outcome=InstallationOutcome.FAILED).matches(record)

    def test_package(self, record: InstallationRecord) -> None:
        """Installed and target package names both match."""
        assert RecordFilter(package="hyprland").matches(record)
        assert not RecordFilter(package="waybar").matches(record)
