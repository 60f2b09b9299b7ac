"""Session repositories.

Repositories are the only synchronization point between the orchestrator,
cancellation and status readers. They store serialized copies of
sessions, never the live objects, and guard every access with a lock.
Every save bumps a revision number; a save based on an older revision is
rejected, so concurrent writers never overwrite each other's progress.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from filelock import FileLock, Timeout

from hyprstack.core.paths import get_sessions_dir
from hyprstack.models.errors import InstallationError, SessionNotFoundError, StaleSessionError
from hyprstack.models.session import InstallationSession

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".sessions.lock"
LOCK_TIMEOUT_SECONDS = 10.0
UPDATE_ATTEMPTS = 5


class SessionRepository(ABC):
    """Abstract store of installation sessions.

    A save raises StaleSessionError when another caller saved the session
    since this copy was loaded. This is how a cancellation issued by
    another caller reaches a running orchestrator, and how a canceller
    learns that it worked from outdated progress.

    Example:
        >>> repository = InMemorySessionRepository()
        >>> repository.save(session)
        >>> repository.find_by_id(session.id).status
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def save(self, session: InstallationSession) -> None:
        """Store a copy of ``session`` and advance its revision.

        Raises:
            StaleSessionError: If the stored copy has a different revision
                than ``session``.
        """
        with self._locked():
            stored = self._read(session.id)
            stored_revision = int(stored.get("revision", 0)) if stored is not None else 0
            if stored is not None and stored_revision != session.revision:
                msg = (
                    f"Session {session.id} was saved by another caller "
                    f"(stored revision {stored_revision}, this copy {session.revision}, "
                    f"stored status {stored['status']})"
                )
                raise StaleSessionError(msg)
            data = session.to_dict()
            data["revision"] = stored_revision + 1
            self._write(session.id, data)
        session.mark_saved(data["revision"])
        logger.debug(
            "Saved session %s (%s, revision %d)", session.id, session.status.value, session.revision
        )

    def update(
        self,
        session_id: str,
        change: Callable[[InstallationSession], object],
        attempts: int = UPDATE_ATTEMPTS,
    ) -> InstallationSession:
        """Load a session, apply ``change`` and save it.

        When another caller saves first, the session is reloaded and the
        change applied again to the fresh copy. Exceptions raised by
        ``change`` propagate unchanged.

        Returns:
            The saved session.

        Raises:
            SessionNotFoundError: If no session has this ID.
            StaleSessionError: If every attempt lost the race.
        """
        for attempt in range(1, attempts + 1):
            session = self.find_by_id(session_id)
            change(session)
            try:
                self.save(session)
            except StaleSessionError as e:
                logger.debug(
                    "Retrying update of session %s (attempt %d): %s", session_id, attempt, e
                )
                continue
            return session
        msg = f"Session {session_id} kept changing; gave up after {attempts} attempts"
        raise StaleSessionError(msg)

    def find_by_id(self, session_id: str) -> InstallationSession:
        """Load a fresh copy of a session.

        Raises:
            SessionNotFoundError: If no session has this ID.
        """
        with self._locked():
            data = self._read(session_id)
        if data is None:
            msg = f"Session not found: {session_id}"
            raise SessionNotFoundError(msg)
        return InstallationSession.from_dict(data)

    def list(self) -> list[InstallationSession]:
        """Load copies of all sessions, newest first."""
        with self._locked():
            records = self._read_all()
        sessions = [InstallationSession.from_dict(data) for data in records]
        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            yield

    @abstractmethod
    def _read(self, session_id: str) -> dict[str, Any] | None:
        """Return the stored data for a session, or None. Called with the lock held."""

    @abstractmethod
    def _write(self, session_id: str, data: dict[str, Any]) -> None:
        """Replace the stored data for a session. Called with the lock held."""

    @abstractmethod
    def _read_all(self) -> list[dict[str, Any]]:
        """Return the stored data of every session. Called with the lock held."""


class InMemorySessionRepository(SessionRepository):
    """Repository backed by a dictionary of serialized sessions."""

    def __init__(self) -> None:
        super().__init__()
        self._sessions: dict[str, dict[str, Any]] = {}

    def _read(self, session_id: str) -> dict[str, Any] | None:
        data = self._sessions.get(session_id)
        return json.loads(json.dumps(data)) if data is not None else None

    def _write(self, session_id: str, data: dict[str, Any]) -> None:
        self._sessions[session_id] = json.loads(json.dumps(data))

    def _read_all(self) -> list[dict[str, Any]]:
        return [json.loads(json.dumps(data)) for data in self._sessions.values()]


class JsonSessionRepository(SessionRepository):
    """Repository storing one JSON file per session.

    Storage location: ~/.local/state/hyprstack/sessions/<id>.json

    Files are written atomically through a temporary file and os.replace(),
    so a reader in another process never sees a partial write. A lock file
    in the sessions directory serializes access across processes, e.g.
    ``hyprstack cancel`` racing a running ``hyprstack install``.
    """

    def __init__(self, sessions_dir: Path | None = None) -> None:
        """Initialize the repository.

        Args:
            sessions_dir: Optional override for the sessions directory.
                Default: ~/.local/state/hyprstack/sessions
        """
        super().__init__()
        self._sessions_dir = sessions_dir if sessions_dir is not None else get_sessions_dir()

    @property
    def sessions_dir(self) -> Path:
        return self._sessions_dir

    @property
    def lock_path(self) -> Path:
        return self._sessions_dir / LOCK_FILENAME

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock:
            if not self._sessions_dir.exists():
                # Nothing stored yet; the first write creates the directory.
                yield
                return
            lock = FileLock(self.lock_path, timeout=LOCK_TIMEOUT_SECONDS)
            try:
                lock.acquire()
            except Timeout as e:
                msg = f"Timed out waiting for session lock {self.lock_path}"
                raise InstallationError(msg) from e
            try:
                yield
            finally:
                lock.release()

    def _path_for(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or session_id.startswith("."):
            msg = f"Invalid session ID: {session_id!r}"
            raise SessionNotFoundError(msg)
        return self._sessions_dir / f"{session_id}.json"

    def _read(self, session_id: str) -> dict[str, Any] | None:
        path = self._path_for(session_id)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                data: dict[str, Any] = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            msg = f"Cannot read session file {path}: {e}"
            raise InstallationError(msg) from e
        return data

    def _write(self, session_id: str, data: dict[str, Any]) -> None:
        path = self._path_for(session_id)
        self._sessions_dir.mkdir(parents=True, exist_ok=True)

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._sessions_dir,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump(data, f, indent=2)
            os.replace(str(tmp_path), str(path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            msg = f"Failed to write session file {path}: {e}"
            raise InstallationError(msg) from e

    def _read_all(self) -> list[dict[str, Any]]:
        if not self._sessions_dir.exists():
            return []

        records: list[dict[str, Any]] = []
        for path in sorted(self._sessions_dir.glob("*.json")):
            try:
                with path.open(encoding="utf-8") as f:
                    records.append(json.load(f))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Skipping corrupt session file %s: %s", path, e)
        return records
