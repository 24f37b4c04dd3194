"""
ctfile_cli downloads ctfile links with aria2c, provisioning aria2c on first use.
"""

from ctfile_cli.ctfile_config import CtfileConfig
from ctfile_cli.ctfile_exceptions import CtfileException
from ctfile_cli.link_resolver import LinkResolver
from ctfile_cli.orchestrator import CtfileDownloader
from ctfile_cli.runtime_dependency_downloader import BinaryProvisioner

__all__ = ["BinaryProvisioner", "CtfileConfig", "CtfileDownloader", "CtfileException", "LinkResolver"]
