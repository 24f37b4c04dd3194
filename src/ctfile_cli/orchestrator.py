"""
Runs the whole pipeline: provision aria2c, resolve the link, hand the
download to aria2c.
"""

import logging
import subprocess
from typing import Callable, List

from ctfile_cli.ctfile_config import CtfileConfig
from ctfile_cli.ctfile_exceptions import SubprocessFailedError
from ctfile_cli.ctfile_logger import CtfileLogger
from ctfile_cli.ctfile_types import ResolvedLink
from ctfile_cli.link_resolver import LinkResolver
from ctfile_cli.runtime_dependency_downloader import BinaryProvisioner

CommandRunner = Callable[[List[str]], subprocess.CompletedProcess]


def _run_inheriting_terminal(cmd: List[str]) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, check=False)


class CtfileDownloader:
    """
    Downloads one ctfile link. Every stage raises on failure and nothing is
    retried.
    """

    def __init__(
        self,
        config: CtfileConfig,
        provisioner: BinaryProvisioner,
        resolver: LinkResolver,
        logger: CtfileLogger,
        runner: CommandRunner = _run_inheriting_terminal,
    ):
        self.config = config
        self.provisioner = provisioner
        self.resolver = resolver
        self.logger = logger
        self.runner = runner

    def build_command(self, aria2c_path: str, link: ResolvedLink) -> List[str]:
        return [
            aria2c_path,
            "-o",
            link.filename,
            "-V",
            f"-x{self.config.connections}",
            f"-s{self.config.splits}",
            f"--header=User-Agent: {self.config.user_agent}",
            link.download_url,
        ]

    def run(self, raw_link: str) -> ResolvedLink:
        """
        Download ``raw_link`` into the working directory.

        The link is validated before anything touches the network.

        Raises:
            CtfileException: any stage failed
        """
        link_id = self.resolver.parse_link(raw_link)
        binary = self.provisioner.ensure()
        link = self.resolver.resolve_id(link_id)

        cmd = self.build_command(binary.path, link)
        self.logger.log(f"Running {' '.join(cmd)}", logging.DEBUG)
        try:
            result = self.runner(cmd)
        except OSError as e:
            raise SubprocessFailedError(f"Unable to start {binary.path}: {e}") from e

        if result.returncode != 0:
            raise SubprocessFailedError(
                f"aria2c exited with status {result.returncode}", returncode=result.returncode
            )
        self.logger.log(f"Saved {link.filename}", logging.INFO)
        return link
