"""
Runtime dependency configuration.

This package handles:
1. Locating provisioned executables
2. Choosing the archive for the current platform
3. Tracking download plan status
"""

from .config_manager import (
    DependencyConfigManager,
    DownloadPlan,
    DownloadStatus,
    default_archive_name,
)

__all__ = ["DependencyConfigManager", "DownloadPlan", "DownloadStatus", "default_archive_name"]
