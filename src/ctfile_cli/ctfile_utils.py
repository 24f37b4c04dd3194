"""
Platform discovery, file download and archive extraction helpers.
"""

import logging
import os
import platform
import posixpath
import shutil
import sys
import tarfile
import zlib
from typing import BinaryIO, Dict, List, Optional

import requests

from ctfile_cli.ctfile_exceptions import CorruptArchiveError, ArchiveEntryNotFoundError, DownloadFailedError
from ctfile_cli.ctfile_logger import CtfileLogger
from ctfile_cli.runtime_dependency_models import PlatformKey

DEFAULT_DIR_MODE = 0o755
DOWNLOAD_CHUNK_SIZE = 64 * 1024

# platform.machine() values -> Go architecture names used by release archives
_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


class PlatformUtils:
    """
    Detects the running platform.
    """

    @staticmethod
    def get_platform_key(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformKey:
        """
        Returns the PlatformKey of the running interpreter.

        ``system`` and ``machine`` default to ``platform.system()`` and
        ``platform.machine()``; unknown values are passed through lowercased.
        """
        system = (system if system is not None else platform.system()).lower()
        machine = (machine if machine is not None else platform.machine()).lower()
        return PlatformKey(os=system, arch=_ARCH_ALIASES.get(machine, machine))

    @staticmethod
    def get_program_directory() -> str:
        """
        Returns the directory containing the running program: the bundled
        executable for frozen builds, otherwise the launched script.
        """
        if getattr(sys, "frozen", False):
            return os.path.dirname(os.path.abspath(sys.executable))
        if sys.argv and sys.argv[0]:
            return os.path.dirname(os.path.abspath(sys.argv[0]))
        return os.getcwd()


class FileUtils:
    """
    Utility functions for downloading files and unpacking tar.gz archives.
    """

    @staticmethod
    def download_file(
        logger: CtfileLogger,
        session: requests.Session,
        url: str,
        target_path: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Downloads the file from the given URL to the given path.

        Raises:
            DownloadFailedError: on a transport error or a status other than 200
        """
        logger.log(f"Downloading {url} to {target_path}", logging.DEBUG)
        try:
            response = session.get(url, headers=headers, stream=True, timeout=timeout)
        except requests.RequestException as e:
            raise DownloadFailedError(f"Error downloading {url}: {e}") from e

        try:
            if response.status_code != 200:
                raise DownloadFailedError(
                    f"Error downloading {url}: unexpected status code {response.status_code}"
                )
            with open(target_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as e:
            raise DownloadFailedError(f"Error downloading {url}: {e}") from e
        finally:
            response.close()

    @staticmethod
    def extract_single_file_from_tar_gz(
        fileobj: BinaryIO, entry_name: str, destination: str
    ) -> tarfile.TarInfo:
        """
        Copies the first regular file named ``entry_name`` out of a gzip
        compressed tar stream to ``destination``, keeping its permission bits.

        The stream is read sequentially and reading stops at the match. The
        bytes are written to ``<destination>.part`` first and renamed onto
        ``destination`` once complete, so a failure never leaves a truncated
        file at ``destination``.

        Args:
            fileobj: Readable binary stream holding the tar.gz data
            entry_name: Base name of the entry to extract
            destination: Full path of the file to create

        Returns:
            The TarInfo of the extracted entry

        Raises:
            ArchiveEntryNotFoundError: no regular file named ``entry_name``
            CorruptArchiveError: the gzip or tar framing is invalid
        """
        FileUtils.ensure_parent_directory(destination)
        partial_path = destination + ".part"
        try:
            with tarfile.open(fileobj=fileobj, mode="r|gz") as tar:
                for member in tar:
                    if not member.isreg() or posixpath.basename(member.name) != entry_name:
                        continue
                    source = tar.extractfile(member)
                    with open(partial_path, "wb") as target:
                        shutil.copyfileobj(source, target)
                    os.chmod(partial_path, member.mode & 0o777)
                    os.replace(partial_path, destination)
                    return member
        except (tarfile.TarError, EOFError, zlib.error) as e:
            raise CorruptArchiveError(f"Unable to read archive: {e}") from e
        finally:
            if os.path.exists(partial_path):
                os.remove(partial_path)

        raise ArchiveEntryNotFoundError(f"{entry_name} not found in archive")

    @staticmethod
    def extract_tar_gz(fileobj: BinaryIO, destination_root: str) -> List[str]:
        """
        Recreates every directory and regular file of a gzip compressed tar
        stream under ``destination_root``. Other entry types are skipped.

        Returns:
            The paths created, in archive order

        Raises:
            CorruptArchiveError: invalid framing, or an entry pointing outside
                ``destination_root``
        """
        root = os.path.abspath(destination_root)
        os.makedirs(root, mode=DEFAULT_DIR_MODE, exist_ok=True)
        extracted = []
        try:
            with tarfile.open(fileobj=fileobj, mode="r|gz") as tar:
                for member in tar:
                    if not (member.isdir() or member.isreg()):
                        continue
                    target = FileUtils._resolve_member_path(root, member.name)
                    if member.isdir():
                        os.makedirs(target, mode=DEFAULT_DIR_MODE, exist_ok=True)
                    else:
                        FileUtils.ensure_parent_directory(target)
                        with tar.extractfile(member) as source, open(target, "wb") as out:
                            shutil.copyfileobj(source, out)
                        os.chmod(target, member.mode & 0o777)
                    extracted.append(target)
        except (tarfile.TarError, EOFError, zlib.error) as e:
            raise CorruptArchiveError(f"Unable to read archive: {e}") from e
        return extracted

    @staticmethod
    def ensure_parent_directory(path: str) -> None:
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, mode=DEFAULT_DIR_MODE, exist_ok=True)

    @staticmethod
    def _resolve_member_path(root: str, name: str) -> str:
        target = os.path.normpath(os.path.join(root, name))
        if os.path.isabs(name) or os.path.commonpath([root, target]) != root:
            raise CorruptArchiveError(f"Archive entry {name} points outside {root}")
        return target
