"""Package conflict models.

Defines the conflicts the resolver can detect between component
selections, the strategies available to resolve them, and the record of
an applied resolution.
"""

from dataclasses import dataclass, field
from enum import Enum

from hyprstack.models.component import ComponentSelection


class ConflictKind(str, Enum):
    """What collides between the selections.

    Attributes:
        DUPLICATE_COMPONENT: The same component was selected more than once.
        EXCLUSIVE_COMPONENTS: Components that cannot coexist (e.g., two GPU drivers).
        SHARED_CONFIG: Components that write the same configuration file.
        INSTALLED_PACKAGE: A package already on the system conflicts with a selection.
    """

    DUPLICATE_COMPONENT = "duplicate_component"
    EXCLUSIVE_COMPONENTS = "exclusive_components"
    SHARED_CONFIG = "shared_config"
    INSTALLED_PACKAGE = "installed_package"


class ResolutionStrategy(str, Enum):
    """Named policy for resolving a conflict.

    Attributes:
        PREFER_NEWER: Keep the selection with the newest version, skip the rest.
        SKIP_COMPONENT: Skip every selection but the first one; for an installed
            package conflict, skip the selection itself.
        MERGE_CONFIGS: Keep all selections; they share the existing configuration file.
        REMOVE_CONFLICTING: Remove the conflicting installed package.
        ABORT: Refuse to continue.
    """

    PREFER_NEWER = "prefer_newer"
    SKIP_COMPONENT = "skip_component"
    MERGE_CONFIGS = "merge_configs"
    REMOVE_CONFLICTING = "remove_conflicting"
    ABORT = "abort"


# Strategies that make sense for each kind; the first one is the suggestion.
APPLICABLE_STRATEGIES: dict[ConflictKind, tuple[ResolutionStrategy, ...]] = {
    ConflictKind.DUPLICATE_COMPONENT: (
        ResolutionStrategy.PREFER_NEWER,
        ResolutionStrategy.SKIP_COMPONENT,
    ),
    ConflictKind.EXCLUSIVE_COMPONENTS: (ResolutionStrategy.SKIP_COMPONENT,),
    ConflictKind.SHARED_CONFIG: (
        ResolutionStrategy.MERGE_CONFIGS,
        ResolutionStrategy.SKIP_COMPONENT,
    ),
    ConflictKind.INSTALLED_PACKAGE: (
        ResolutionStrategy.REMOVE_CONFLICTING,
        ResolutionStrategy.SKIP_COMPONENT,
    ),
}


@dataclass(frozen=True, slots=True)
class PackageConflict:
    """Incompatibility between component selections or installed packages.

    Attributes:
        kind: What collides.
        selections: Selections involved, in configuration order.
        packages: Package names involved; for INSTALLED_PACKAGE the last one
            is the package already present on the system.
        reason: Human-readable explanation.
    """

    kind: ConflictKind
    selections: tuple[ComponentSelection, ...]
    packages: tuple[str, ...] = ()
    reason: str = "package conflict detected"

    def __post_init__(self) -> None:
        """Validate conflict data after initialization."""
        object.__setattr__(self, "selections", tuple(self.selections))
        object.__setattr__(self, "packages", tuple(self.packages))
        if not self.selections:
            msg = "Package conflict must involve at least one selection"
            raise ValueError(msg)
        if self.kind == ConflictKind.INSTALLED_PACKAGE and len(self.packages) < 2:
            msg = "Installed package conflict must name both packages"
            raise ValueError(msg)
        if not self.reason.strip():
            object.__setattr__(self, "reason", "package conflict detected")

    @property
    def suggested_strategy(self) -> ResolutionStrategy:
        """Strategy proposed for this kind of conflict."""
        return APPLICABLE_STRATEGIES[self.kind][0]

    @property
    def conflicting_package(self) -> str | None:
        """Installed package that collides, for INSTALLED_PACKAGE conflicts."""
        if self.kind == ConflictKind.INSTALLED_PACKAGE:
            return self.packages[-1]
        return None

    def allows(self, strategy: ResolutionStrategy) -> bool:
        """Check whether ``strategy`` can resolve this conflict."""
        return strategy in APPLICABLE_STRATEGIES[self.kind]

    def __str__(self) -> str:
        names = ", ".join(s.component.value for s in self.selections)
        return f"{self.kind.value} conflict between {names}: {self.reason}"


@dataclass(frozen=True, slots=True)
class ConflictResolution:
    """Outcome of applying a strategy to a conflict.

    Attributes:
        conflict: The conflict that was resolved.
        strategy: Strategy that was applied.
        skipped: Selections that must not be installed.
        removed_packages: Installed packages removed to make room.
    """

    conflict: PackageConflict
    strategy: ResolutionStrategy
    skipped: tuple[ComponentSelection, ...] = field(default=())
    removed_packages: tuple[str, ...] = field(default=())
