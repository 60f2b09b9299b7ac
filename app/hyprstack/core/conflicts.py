"""Conflict detection and resolution.

Detection is a read-only inspection of the selected components (and of
the installed packages, when a package manager is given). Resolution
applies one strategy to one conflict and reports which selections must
not be installed.
"""

import logging
import re
from collections import defaultdict
from collections.abc import Sequence

from hyprstack.models.component import ComponentName, ComponentSelection
from hyprstack.models.conflict import (
    ConflictKind,
    ConflictResolution,
    PackageConflict,
    ResolutionStrategy,
)
from hyprstack.models.errors import ConflictResolutionError, PackageInstallError
from hyprstack.operators.base import PackageManager

logger = logging.getLogger(__name__)


def version_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key for version strings.

    Numeric parts compare numerically; text parts sort after numbers, so
    ``latest`` is newer than any pinned version.
    """
    parts = [p for p in re.split(r"[.\-+~:]", version) if p]
    return tuple((0, int(p)) if p.isdigit() else (1, p) for p in parts)


class ConflictResolver:
    """Detects and resolves conflicts between component selections.

    Attributes:
        package_manager: Optional package manager used to query conflicts
            with installed packages and to remove them.
    """

    def __init__(self, package_manager: PackageManager | None = None) -> None:
        self.package_manager = package_manager

    def detect_conflicts(self, components: Sequence[ComponentSelection]) -> list[PackageConflict]:
        """Inspect selections for conflicts without changing anything.

        Args:
            components: Selections in configuration order.

        Returns:
            Detected conflicts; empty when the selections are compatible.

        Raises:
            ConflictResolutionError: If installed packages cannot be queried.
        """
        conflicts: list[PackageConflict] = []
        conflicts.extend(self._find_duplicates(components))
        conflicts.extend(self._find_exclusive_drivers(components))
        conflicts.extend(self._find_shared_configs(components))
        if self.package_manager is not None:
            conflicts.extend(self._find_installed_conflicts(self.package_manager, components))

        if conflicts:
            logger.info("Detected %d conflict(s)", len(conflicts))
        return conflicts

    def resolve_conflict(
        self,
        conflict: PackageConflict,
        strategy: ResolutionStrategy,
    ) -> ConflictResolution:
        """Apply a resolution strategy to a single conflict.

        Args:
            conflict: The conflict to resolve.
            strategy: Strategy to apply.

        Returns:
            The resolution, naming the selections that must be skipped.

        Raises:
            ConflictResolutionError: If the strategy is ABORT, does not apply
                to this kind of conflict, or fails.
        """
        if strategy == ResolutionStrategy.ABORT:
            msg = f"Installation aborted due to {conflict}"
            raise ConflictResolutionError(msg)
        if not conflict.allows(strategy):
            msg = f"Strategy {strategy.value} cannot resolve {conflict.kind.value} conflicts"
            raise ConflictResolutionError(msg)

        logger.info("Resolving %s with %s", conflict, strategy.value)

        if strategy == ResolutionStrategy.PREFER_NEWER:
            newest = max(conflict.selections, key=lambda s: version_key(s.version))
            skipped = list(conflict.selections)
            skipped.remove(newest)
            return ConflictResolution(conflict, strategy, skipped=tuple(skipped))

        if strategy == ResolutionStrategy.SKIP_COMPONENT:
            if conflict.kind == ConflictKind.INSTALLED_PACKAGE:
                return ConflictResolution(conflict, strategy, skipped=conflict.selections)
            return ConflictResolution(conflict, strategy, skipped=conflict.selections[1:])

        if strategy == ResolutionStrategy.REMOVE_CONFLICTING:
            removed = self._remove_conflicting(conflict)
            return ConflictResolution(conflict, strategy, removed_packages=(removed,))

        # MERGE_CONFIGS keeps every selection; they share the existing file.
        return ConflictResolution(conflict, strategy)

    def _find_duplicates(self, components: Sequence[ComponentSelection]) -> list[PackageConflict]:
        groups: dict[ComponentName, list[ComponentSelection]] = defaultdict(list)
        for selection in components:
            groups[selection.component].append(selection)

        return [
            PackageConflict(
                kind=ConflictKind.DUPLICATE_COMPONENT,
                selections=tuple(group),
                packages=(group[0].package_name,),
                reason=f"{name.value} selected {len(group)} times",
            )
            for name, group in groups.items()
            if len(group) > 1
        ]

    def _find_exclusive_drivers(
        self, components: Sequence[ComponentSelection]
    ) -> list[PackageConflict]:
        drivers: dict[ComponentName, ComponentSelection] = {}
        for selection in components:
            if selection.is_driver:
                drivers.setdefault(selection.component, selection)
        if len(drivers) < 2:
            return []

        selections = tuple(drivers.values())
        return [
            PackageConflict(
                kind=ConflictKind.EXCLUSIVE_COMPONENTS,
                selections=selections,
                packages=tuple(s.package_name for s in selections),
                reason="only one GPU driver can be installed",
            )
        ]

    def _find_shared_configs(
        self, components: Sequence[ComponentSelection]
    ) -> list[PackageConflict]:
        writers: dict[str, dict[ComponentName, ComponentSelection]] = defaultdict(dict)
        for selection in components:
            config_file = selection.component.config_file
            if config_file is not None:
                writers[config_file].setdefault(selection.component, selection)

        conflicts: list[PackageConflict] = []
        for config_file, by_component in writers.items():
            if len(by_component) < 2:
                continue
            selections = tuple(by_component.values())
            conflicts.append(
                PackageConflict(
                    kind=ConflictKind.SHARED_CONFIG,
                    selections=selections,
                    packages=tuple(s.package_name for s in selections),
                    reason=f"components write the same file ~/.config/{config_file}",
                )
            )
        return conflicts

    def _find_installed_conflicts(
        self,
        package_manager: PackageManager,
        components: Sequence[ComponentSelection],
    ) -> list[PackageConflict]:
        conflicts: list[PackageConflict] = []
        seen: set[str] = set()
        for selection in components:
            package = selection.package_name
            if package in seen:
                continue
            seen.add(package)
            try:
                installed = package_manager.find_conflicts(package)
            except PackageInstallError as e:
                msg = f"Failed to check conflicts for {package}: {e}"
                raise ConflictResolutionError(msg) from e
            for other in installed:
                conflicts.append(
                    PackageConflict(
                        kind=ConflictKind.INSTALLED_PACKAGE,
                        selections=(selection,),
                        packages=(package, other),
                        reason=f"{package} conflicts with installed package {other}",
                    )
                )
        return conflicts

    def _remove_conflicting(self, conflict: PackageConflict) -> str:
        package = conflict.conflicting_package
        if self.package_manager is None or package is None:
            msg = f"No package manager available to remove conflicting package for {conflict}"
            raise ConflictResolutionError(msg)
        try:
            self.package_manager.remove_package(package)
        except PackageInstallError as e:
            msg = f"Failed to remove conflicting package {package}: {e}"
            raise ConflictResolutionError(msg) from e
        return package
