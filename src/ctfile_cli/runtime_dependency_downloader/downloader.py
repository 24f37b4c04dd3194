"""
Binary provisioner implementation.

Downloads a runtime dependency's archive and extracts its executable the
first time it is needed.
"""

import logging
import os
import stat
import tempfile

import requests

from ctfile_cli.ctfile_config import CtfileConfig
from ctfile_cli.ctfile_exceptions import CorruptArchiveError, CtfileException, PermissionDeniedError
from ctfile_cli.ctfile_logger import CtfileLogger
from ctfile_cli.ctfile_utils import FileUtils
from ctfile_cli.runtime_dependency_config.config_manager import (
    DependencyConfigManager,
    DownloadPlan,
    DownloadStatus,
)
from ctfile_cli.runtime_dependency_models import ProvisionedBinary

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
SUPPORTED_ARCHIVE_TYPES = ("tar.gz", "tgz")


class BinaryProvisioner:
    """
    Makes sure a runtime dependency's executable exists in the install
    directory, downloading and unpacking it on first use.

    Nothing is validated once the executable exists: a file at the expected
    path is reused as is on every later run.
    """

    def __init__(
        self,
        config_manager: DependencyConfigManager,
        config: CtfileConfig,
        session: requests.Session,
        logger: CtfileLogger,
        dependency_key: str = "aria2c",
    ):
        """
        Initialize the binary provisioner.

        Args:
            config_manager: Resolves paths and archive URLs for the platform
            config: Supplies the User-Agent, timeout and temp directory
            session: HTTP session used for the archive download
            logger: Logger for progress and error messages
            dependency_key: Key of the dependency in runtime_dependencies.json
        """
        self.config_manager = config_manager
        self.config = config
        self.session = session
        self.logger = logger
        self.dependency_key = dependency_key

    def ensure(self) -> ProvisionedBinary:
        """
        Return the executable, provisioning it if it is missing.

        Raises:
            DownloadFailedError: the archive could not be fetched
            CorruptArchiveError: the archive is unreadable or lacks the executable
            PermissionDeniedError: the executable bit could not be set
        """
        binary_path = self.config_manager.get_binary_path(self.dependency_key)
        if os.path.lexists(binary_path):
            self.logger.log(f"{self.dependency_key} already exists at {binary_path}", logging.INFO)
            return ProvisionedBinary(path=binary_path, exists=True)

        self.logger.log(f"{self.dependency_key} not found, downloading...", logging.INFO)
        plan = self.config_manager.create_download_plan(self.dependency_key)
        try:
            self.download_dependency(plan)
        except CtfileException as e:
            self.config_manager.mark_download_completed(plan, success=False, error_message=e.message)
            self.logger.log(f"Failed to provision {plan.dependency_key}: {e.message}", logging.ERROR)
            raise

        self.config_manager.mark_download_completed(plan, success=True)
        self.logger.log(f"{plan.dependency_key} installed to {plan.destination_path}", logging.INFO)
        return ProvisionedBinary(path=plan.destination_path, exists=True)

    def download_dependency(self, plan: DownloadPlan) -> None:
        """
        Execute a download plan: fetch the archive to a temporary file, pull
        the executable out of it, then mark it executable.
        """
        if plan.dependency.archive_type not in SUPPORTED_ARCHIVE_TYPES:
            raise CorruptArchiveError(
                f"Unsupported archive type {plan.dependency.archive_type!r} for {plan.dependency_key}"
            )
        plan.status = DownloadStatus.IN_PROGRESS
        fd, archive_path = tempfile.mkstemp(
            prefix=f"{plan.dependency_key}_", suffix=f"_{plan.archive_name}", dir=self.config.temp_dir
        )
        os.close(fd)
        try:
            FileUtils.download_file(
                self.logger,
                self.session,
                plan.url,
                archive_path,
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.timeout,
            )
            self.logger.log("Download finished, extracting...", logging.INFO)
            with open(archive_path, "rb") as archive:
                FileUtils.extract_single_file_from_tar_gz(
                    archive, plan.binary_name, plan.destination_path
                )
        finally:
            os.remove(archive_path)

        if not self.config_manager.platform_key.is_windows:
            self._make_executable(plan.destination_path)

    def _make_executable(self, path: str) -> None:
        try:
            mode = os.stat(path).st_mode
            os.chmod(path, mode | EXECUTE_BITS)
        except OSError as e:
            raise PermissionDeniedError(f"Unable to make {path} executable: {e}") from e


def ensure_binary(
    config_manager: DependencyConfigManager,
    config: CtfileConfig,
    session: requests.Session,
    logger: CtfileLogger,
    dependency_key: str = "aria2c",
) -> ProvisionedBinary:
    """
    Functional entry point: provision ``dependency_key`` with the given
    collaborators and return its location.
    """
    return BinaryProvisioner(config_manager, config, session, logger, dependency_key).ensure()
