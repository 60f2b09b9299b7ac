"""Installation history storage and recording.

This module provides the HistoryStore for persisting installation
records in a JSONL file, and the HistoryRecordingService that derives a
record from a terminated session.
"""

import dataclasses
import json
import logging
import os
import platform
import socket
from datetime import datetime
from pathlib import Path
from tempfile import NamedTemporaryFile

from hyprstack import __version__
from hyprstack.core.paths import HISTORY_FILENAME, get_state_dir
from hyprstack.models.errors import HistoryRecordingError, SessionNotCompleteError
from hyprstack.models.history import (
    DEFAULT_PACKAGE_SIZE_BYTES,
    FailureDetails,
    InstallationMetadata,
    InstallationOutcome,
    InstallationRecord,
    InstalledPackage,
    RecordFilter,
    SystemContext,
)
from hyprstack.models.session import InstallationSession, InstallationStatus

logger = logging.getLogger(__name__)


class HistoryStore:
    """Manages installation history in a JSONL file.

    Storage location: ~/.local/state/hyprstack/history.jsonl

    Each line is a complete JSON object representing an InstallationRecord.
    Writes are appends; purging and replacing a session's record rewrite
    the file atomically.
    """

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize HistoryStore.

        Args:
            state_dir: Optional override for state directory.
                      Default: ~/.local/state/hyprstack
        """
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def history_path(self) -> Path:
        """Path to history.jsonl file."""
        return self._state_dir / HISTORY_FILENAME

    def append(self, record: InstallationRecord) -> None:
        """Append a record to the history file.

        Creates file and parent directories if they don't exist.

        Raises:
            HistoryRecordingError: If the file cannot be written.
        """
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            with self.history_path.open(mode="a", encoding="utf-8") as f:
                f.write(record.to_json_line() + "\n")
                f.flush()
        except OSError as e:
            msg = f"Failed to write history file {self.history_path}: {e}"
            raise HistoryRecordingError(msg) from e

    def get_history(
        self,
        limit: int | None = None,
        record_filter: RecordFilter | None = None,
    ) -> list[InstallationRecord]:
        """Read history records, newest first.

        Corrupt lines are skipped with a warning.

        Args:
            limit: Maximum number of records to return. If None, returns all.
            record_filter: Only return records matching it. The limit
                applies after filtering.

        Returns:
            List of InstallationRecord, newest first.
            Returns empty list if the file doesn't exist.
        """
        records = self._read_records()
        records.reverse()
        if record_filter is not None and not record_filter.is_empty:
            records = [r for r in records if record_filter.matches(r)]
        if limit is not None:
            return records[:limit]
        return records

    def get_by_id(self, record_id: str) -> InstallationRecord | None:
        """Find a record by its ID or the ID of its session.

        A unique prefix of a record ID (as shown by ``hyprstack history``)
        also matches.
        """
        records = self.get_history()
        for record in records:
            if record_id in (record.id, record.session_id):
                return record
        if not record_id:
            return None
        matches = [r for r in records if r.id.startswith(record_id)]
        return matches[0] if len(matches) == 1 else None

    def purge_older_than(self, cutoff: datetime) -> int:
        """Drop records written before ``cutoff``.

        The file is rewritten atomically. Corrupt lines are dropped too.

        Returns:
            Number of records removed.

        Raises:
            HistoryRecordingError: If the file cannot be rewritten.
        """
        if not self.history_path.exists():
            return 0

        records = self._read_records()
        kept = [r for r in records if r.recorded_at >= cutoff]
        removed = len(records) - len(kept)
        if removed == 0:
            return 0

        self._rewrite(kept)
        logger.info("Purged %d history record(s) older than %s", removed, cutoff.isoformat())
        return removed

    def replace_session_record(self, record: InstallationRecord) -> InstallationRecord:
        """Replace the record of ``record.session_id``, or append it if there is none.

        The replacement keeps the ID of the record it replaces, so IDs shown
        to the user earlier stay valid. The file is rewritten atomically.

        Returns:
            The record as stored.

        Raises:
            HistoryRecordingError: If the file cannot be written.
        """
        records = self._read_records()
        for index, existing in enumerate(records):
            if existing.session_id == record.session_id:
                record = dataclasses.replace(record, id=existing.id)
                records[index] = record
                self._rewrite(records)
                logger.info(
                    "Replaced history record %s of session %s", record.id, record.session_id
                )
                return record
        self.append(record)
        return record

    def _rewrite(self, records: list[InstallationRecord]) -> None:
        tmp_path: Path | None = None
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._state_dir,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                for record in records:
                    f.write(record.to_json_line() + "\n")
            os.replace(str(tmp_path), str(self.history_path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            msg = f"Failed to rewrite history file {self.history_path}: {e}"
            raise HistoryRecordingError(msg) from e

    def _read_records(self) -> list[InstallationRecord]:
        if not self.history_path.exists():
            return []

        records: list[InstallationRecord] = []
        with self.history_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(InstallationRecord.from_json_line(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning("Skipping corrupt history line %d: %s", line_num, str(e))
        return records


def capture_system_context() -> SystemContext:
    """Describe the host the installation ran on."""
    try:
        os_release = platform.freedesktop_os_release()
        os_version = os_release.get("PRETTY_NAME") or os_release.get("NAME", "")
    except OSError:
        os_version = ""
    return SystemContext(
        os_version=os_version or platform.system() or "unknown",
        kernel_version=platform.release() or "unknown",
        app_version=__version__,
        hostname=socket.gethostname(),
    )


class HistoryRecordingService:
    """Derives and stores the history record of a terminated session.

    Attributes:
        store: Where records are appended.
    """

    def __init__(self, store: HistoryStore | None = None) -> None:
        self.store = store if store is not None else HistoryStore()

    def record_installation(self, session: InstallationSession, *, replace: bool = False) -> str:
        """Persist an immutable record of ``session``.

        Args:
            session: A COMPLETED or FAILED session.
            replace: Supersede a record already written for the session
                (used when packages installed after a cancellation are
                added to it).

        Returns:
            ID of the stored record.

        Raises:
            SessionNotCompleteError: If the session has not terminated.
            HistoryRecordingError: If the record is invalid or cannot be stored.
        """
        if not session.is_terminal:
            msg = f"Session {session.id} is {session.status.value}, not completed or failed"
            raise SessionNotCompleteError(msg)

        try:
            record = self.build_record(session)
        except ValueError as e:
            msg = f"Cannot build history record for session {session.id}: {e}"
            raise HistoryRecordingError(msg) from e

        if replace:
            record = self.store.replace_session_record(record)
        else:
            self.store.append(record)
        logger.info(
            "Recorded %s installation %s for session %s",
            record.outcome.value,
            record.id,
            session.id,
        )
        return record.id

    def build_record(self, session: InstallationSession) -> InstallationRecord:
        """Derive the record for a terminated session.

        Raises:
            ValueError: If the session cannot form a valid record (e.g., a
                completed session without installed packages).
        """
        completed_at = session.completed_at or session.started_at
        first = session.configuration.components[0]
        metadata = InstallationMetadata(
            target_package=first.package_name,
            target_version=first.version,
            installed_at=session.started_at,
            completed_at=completed_at,
            packages=tuple(
                InstalledPackage(
                    name=c.package_name,
                    version=c.version,
                    size_bytes=(
                        c.package_info.size_bytes
                        if c.package_info is not None and c.package_info.size_bytes > 0
                        else DEFAULT_PACKAGE_SIZE_BYTES
                    ),
                )
                for c in session.installed_components
            ),
        )

        if session.status == InstallationStatus.COMPLETED:
            return InstallationRecord(
                session_id=session.id,
                outcome=InstallationOutcome.SUCCESS,
                metadata=metadata,
                system_context=capture_system_context(),
            )

        return InstallationRecord(
            session_id=session.id,
            outcome=InstallationOutcome.FAILED,
            metadata=metadata,
            system_context=capture_system_context(),
            failure_details=FailureDetails(
                reason=session.failure_reason,
                failed_at=completed_at,
                phase=(session.failed_phase or InstallationStatus.PENDING).value,
            ),
        )

