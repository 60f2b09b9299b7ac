"""Package managers for installing and removing system packages.

This module provides the abstract PackageManager interface and the APT
implementation.
"""

from hyprstack.operators.apt import AptPackageManager
from hyprstack.operators.base import PackageManager

__all__ = ["AptPackageManager", "PackageManager"]
