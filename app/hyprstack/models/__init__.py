"""Data models for hyprstack.

This module exports the core data structures used throughout the application.
"""

from hyprstack.models.component import (
    ComponentName,
    ComponentSelection,
    InstalledComponent,
    PackageInfo,
)
from hyprstack.models.configuration import DiskSpace, GPUSupport, InstallationConfiguration
from hyprstack.models.conflict import (
    ConflictKind,
    ConflictResolution,
    PackageConflict,
    ResolutionStrategy,
)
from hyprstack.models.history import (
    FailureDetails,
    InstallationMetadata,
    InstallationOutcome,
    InstallationRecord,
    InstalledPackage,
    SystemContext,
)
from hyprstack.models.progress import InstallationProgress, ProgressUpdate
from hyprstack.models.session import ALLOWED_TRANSITIONS, InstallationSession, InstallationStatus
from hyprstack.models.snapshot import SystemSnapshot

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ComponentName",
    "ComponentSelection",
    "ConflictKind",
    "ConflictResolution",
    "DiskSpace",
    "FailureDetails",
    "GPUSupport",
    "InstallationConfiguration",
    "InstallationMetadata",
    "InstallationOutcome",
    "InstallationProgress",
    "InstallationRecord",
    "InstallationSession",
    "InstallationStatus",
    "InstalledComponent",
    "InstalledPackage",
    "PackageConflict",
    "PackageInfo",
    "ProgressUpdate",
    "ResolutionStrategy",
    "SystemContext",
    "SystemSnapshot",
]
