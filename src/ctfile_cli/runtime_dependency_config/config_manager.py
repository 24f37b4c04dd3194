"""
Dependency configuration manager.

Works out where a runtime dependency lives on disk and which archive has to
be downloaded to provision it on the current platform.
"""

import os
from typing import Callable, Dict, Optional

from ctfile_cli.ctfile_config import CtfileConfig
from ctfile_cli.runtime_dependency_models import (
    BinaryDependency,
    PlatformKey,
    RuntimeDependenciesConfig,
)

ArchiveNameFormatter = Callable[[str, BinaryDependency, PlatformKey], str]


def default_archive_name(name: str, dependency: BinaryDependency, platform_key: PlatformKey) -> str:
    """``aria2c_linux_amd64.tar.gz`` style names, driven by the dependency's template."""
    return dependency.archive_name_template.format(
        name=name, os=platform_key.os, arch=platform_key.arch
    )


class DownloadStatus:
    """Enumeration of download statuses."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class DownloadPlan:
    """
    A plan to provision a specific dependency.

    Captures all information needed to download the archive and extract the
    executable from it.
    """

    def __init__(
            self,
            dependency_key: str,
            dependency: BinaryDependency,
            url: str,
            archive_name: str,
            binary_name: str,
            destination_path: str,
            status: str = DownloadStatus.PENDING,
    ):
        """
        Initialize a download plan.

        Args:
            dependency_key: Unique key for the dependency
            dependency: The BinaryDependency object
            url: Full URL of the archive
            archive_name: File name of the archive
            binary_name: Name of the executable inside the archive
            destination_path: Where the executable is written
            status: Current download status
        """
        self.dependency_key = dependency_key
        self.dependency = dependency
        self.url = url
        self.archive_name = archive_name
        self.binary_name = binary_name
        self.destination_path = destination_path
        self.status = status
        self.error_message: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"DownloadPlan(key={self.dependency_key}, "
            f"status={self.status}, url={self.url})"
        )


class DependencyConfigManager:
    """
    Resolves runtime dependency metadata against the platform and the
    configuration.
    """

    def __init__(
        self,
        runtime_deps_config: RuntimeDependenciesConfig,
        ctfile_config: CtfileConfig,
        platform_key: PlatformKey,
        install_dir: str,
        archive_name_formatter: ArchiveNameFormatter = default_archive_name,
    ):
        """
        Initialize the dependency config manager.

        Args:
            runtime_deps_config: Loaded runtime dependencies configuration
            ctfile_config: Configuration with base URL overrides
            platform_key: Platform the archive is chosen for
            install_dir: Directory the executables are installed into
            archive_name_formatter: Builds the archive file name
        """
        self.runtime_deps = runtime_deps_config
        self.ctfile_config = ctfile_config
        self.platform_key = platform_key
        self.install_dir = install_dir
        self.archive_name_formatter = archive_name_formatter
        self.download_plans: Dict[str, DownloadPlan] = {}

    def get_dependency(self, dep_key: str) -> BinaryDependency:
        dependency = self.runtime_deps.get_dependency(dep_key)
        if dependency is None:
            raise KeyError(f"Unknown runtime dependency: {dep_key}")
        return dependency

    def get_binary_name(self, dep_key: str) -> str:
        return self.platform_key.executable_name(self.get_dependency(dep_key).binary_name)

    def get_binary_path(self, dep_key: str) -> str:
        """
        Absolute path the executable is expected at.
        """
        return os.path.join(self.install_dir, self.get_binary_name(dep_key))

    def _get_base_url(self, dep_key: str, dep: BinaryDependency) -> str:
        base_url = dep.url
        if dep_key == "aria2c" and self.ctfile_config.aria2c_base_url:
            base_url = self.ctfile_config.aria2c_base_url
        if not base_url.endswith("/"):
            base_url += "/"
        return base_url

    def create_download_plan(self, dep_key: str) -> DownloadPlan:
        """
        Create the download plan for a dependency on the current platform.
        """
        dep = self.get_dependency(dep_key)
        archive_name = self.archive_name_formatter(dep_key, dep, self.platform_key)
        plan = DownloadPlan(
            dependency_key=dep_key,
            dependency=dep,
            url=self._get_base_url(dep_key, dep) + archive_name,
            archive_name=archive_name,
            binary_name=self.get_binary_name(dep_key),
            destination_path=self.get_binary_path(dep_key),
        )
        self.download_plans[dep_key] = plan
        return plan

    def mark_download_completed(
        self, plan: DownloadPlan, success: bool = True, error_message: Optional[str] = None
    ) -> None:
        """
        Mark a download plan as completed or failed.
        """
        plan.status = DownloadStatus.COMPLETED if success else DownloadStatus.FAILED
        plan.error_message = None if success else error_message

    def get_download_plan(self, dep_key: str) -> Optional[DownloadPlan]:
        return self.download_plans.get(dep_key)
