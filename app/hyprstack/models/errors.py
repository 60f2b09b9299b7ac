"""Exception hierarchy for the installation domain.

Value objects raise plain ``ValueError`` on invalid input; everything the
orchestration layer can raise derives from :class:`InstallationError`.
"""


class InstallationError(Exception):
    """Base exception for installation errors."""


class InvalidTransitionError(InstallationError):
    """Raised when a session is asked to move along an edge it does not allow."""


class SessionTerminalError(InvalidTransitionError):
    """Raised when a completed or failed session is mutated."""


class SessionNotFoundError(InstallationError):
    """Raised when a repository has no session with the requested ID."""


class StaleSessionError(InstallationError):
    """Raised when a save would overwrite a newer copy of the session."""


class ConflictResolutionError(InstallationError):
    """Raised when a package conflict cannot be resolved."""


class PackageInstallError(InstallationError):
    """Raised by a package manager when a package cannot be installed."""


class HistoryRecordingError(InstallationError):
    """Raised when an installation record cannot be written."""


class SessionNotCompleteError(HistoryRecordingError):
    """Raised when recording history for a session that has not terminated."""
