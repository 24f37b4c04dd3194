"""
Pydantic data models for runtime_dependencies.json.

A runtime dependency is an external executable that ctfile_cli downloads
on first use, shipped upstream as one archive per platform.
"""

import json
import os
from pathlib import PurePath
from typing import Dict, Optional

from pydantic import BaseModel, Field

RUNTIME_DEPENDENCIES_PATH = str(
    PurePath(os.path.dirname(os.path.dirname(__file__)), "runtime_dependencies.json")
)


class PlatformKey(BaseModel):
    """
    Operating system and CPU architecture, using Go-style names
    (``linux``/``darwin``/``windows``, ``amd64``/``arm64``/``386``/``arm``)
    because that is how the upstream release archives are named.
    """

    os: str
    arch: str

    class Config:
        frozen = True

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def executable_name(self, name: str) -> str:
        """Return ``name`` with the platform's executable suffix."""
        return f"{name}.exe" if self.is_windows else name

    def __str__(self) -> str:
        return f"{self.os}_{self.arch}"


class BinaryDependency(BaseModel):
    """
    A downloadable executable.

    ``url`` is the base location; the archive name is appended to it.
    """

    url: str = Field(..., description="Base URL the archive name is appended to")
    archive_type: str = Field("tar.gz", alias="archiveType", description="Archive type")
    binary_name: str = Field(..., alias="binaryName", description="Executable name without suffix")
    archive_name_template: str = Field(
        "{name}_{os}_{arch}.tar.gz",
        alias="archiveNameTemplate",
        description="Format string receiving name, os and arch",
    )
    description: Optional[str] = Field(None, alias="_description", description="Description")

    class Config:
        populate_by_name = True


class RuntimeDependenciesConfig(BaseModel):
    """
    Complete runtime dependencies configuration.

    Structure:
    {
      "_description": "...",
      "dependencies": {
        "aria2c": {"url": "...", "archiveType": "tar.gz", "binaryName": "aria2c", ...}
      }
    }
    """

    description: Optional[str] = Field(None, alias="_description")
    dependencies: Dict[str, BinaryDependency] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    def get_dependency(self, name: str) -> Optional[BinaryDependency]:
        return self.dependencies.get(name)


class ProvisionedBinary(BaseModel):
    """On-disk location of a runtime dependency."""

    path: str
    exists: bool


def load_runtime_dependencies(path: Optional[str] = None) -> RuntimeDependenciesConfig:
    """
    Load runtime_dependencies.json into a RuntimeDependenciesConfig.

    Args:
        path: Alternative JSON file; the packaged one is used by default
    """
    with open(path or RUNTIME_DEPENDENCIES_PATH, "r") as f:
        runtime_deps_data = json.load(f)
    return RuntimeDependenciesConfig(**runtime_deps_data)
