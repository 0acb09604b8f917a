"""Adapters — bindings to the registry, install cache, project files and processes.

Public re-exports for convenient access.
"""

from toolpin.adapters.base import Installer, ProjectSpecSource, RegistryClient, Runner
from toolpin.adapters.mock import (
    MockInstaller,
    MockProjectSpecSource,
    MockRegistryClient,
    MockRunner,
)

__all__ = [
    "Installer",
    "MockInstaller",
    "MockProjectSpecSource",
    "MockRegistryClient",
    "MockRunner",
    "ProjectSpecSource",
    "RegistryClient",
    "Runner",
]
