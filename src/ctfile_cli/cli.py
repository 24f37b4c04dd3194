"""
Command line entry point: ``ctfile [--api URL] [-v] ctfile://<xtlink>``.

Exit codes: 0 on success, 1 on usage errors, 2 on any other failure.
"""

import argparse
import logging
import sys
from typing import List, Optional

import requests

from ctfile_cli.ctfile_config import DEFAULT_API_URL, LINK_SCHEME, CtfileConfig
from ctfile_cli.ctfile_exceptions import BadInputError, CtfileException
from ctfile_cli.ctfile_logger import CtfileLogger, configure_logging
from ctfile_cli.ctfile_utils import PlatformUtils
from ctfile_cli.link_resolver import LinkResolver
from ctfile_cli.orchestrator import CtfileDownloader
from ctfile_cli.runtime_dependency_config import DependencyConfigManager
from ctfile_cli.runtime_dependency_downloader import BinaryProvisioner
from ctfile_cli.runtime_dependency_models import (
    PlatformKey,
    RuntimeDependenciesConfig,
    load_runtime_dependencies,
)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 2


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="ctfile",
        description="Download a ctfile link with aria2c, fetching aria2c on first use.",
    )
    parser.add_argument("link", nargs="?", help=f"link to download, {LINK_SCHEME}<xtlink>")
    parser.add_argument(
        "--api",
        dest="api_url",
        default=None,
        help=f"API server URL (default: {DEFAULT_API_URL})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def build_session(config: CtfileConfig) -> requests.Session:
    """
    HTTP session shared by the provisioner and the resolver, following at
    most ``config.max_redirects`` redirects per request.
    """
    session = requests.Session()
    session.max_redirects = config.max_redirects
    return session


def build_downloader(
    config: CtfileConfig,
    session: requests.Session,
    logger: CtfileLogger,
    platform_key: Optional[PlatformKey] = None,
    runtime_deps: Optional[RuntimeDependenciesConfig] = None,
    **downloader_kwargs,
) -> CtfileDownloader:
    """
    Wire the provisioner, the resolver and the downloader together.
    """
    config_manager = DependencyConfigManager(
        runtime_deps_config=runtime_deps or load_runtime_dependencies(),
        ctfile_config=config,
        platform_key=platform_key or PlatformUtils.get_platform_key(),
        install_dir=config.install_dir or PlatformUtils.get_program_directory(),
    )
    provisioner = BinaryProvisioner(config_manager, config, session, logger)
    resolver = LinkResolver(config, session, logger)
    return CtfileDownloader(config, provisioner, resolver, logger, **downloader_kwargs)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    logger = CtfileLogger()

    if not args.link:
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    config = CtfileConfig.from_dict({"api_url": args.api_url})
    with build_session(config) as session:
        downloader = build_downloader(config, session, logger)
        try:
            downloader.run(args.link)
        except BadInputError as e:
            logger.log(e.message, logging.ERROR)
            return EXIT_USAGE
        except CtfileException as e:
            logger.log(e.message, logging.ERROR)
            return EXIT_FAILURE
        except OSError as e:
            logger.log(str(e), logging.ERROR)
            return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
