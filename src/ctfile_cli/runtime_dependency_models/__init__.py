"""
Runtime dependency models.

This package provides Pydantic data models describing the external
binaries ctfile_cli provisions and the platform they are built for.
"""

from .runtime_dependencies import (
    BinaryDependency,
    PlatformKey,
    ProvisionedBinary,
    RuntimeDependenciesConfig,
    load_runtime_dependencies,
)

__all__ = [
    "BinaryDependency",
    "PlatformKey",
    "ProvisionedBinary",
    "RuntimeDependenciesConfig",
    "load_runtime_dependencies",
]
