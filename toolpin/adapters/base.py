"""
Adapter base — the contracts between the engine and the outside world.

The engine never touches the network, the install folder, project
files or child processes directly; it goes through these interfaces.
Failures propagate unmodified to the engine's caller, which performs
no retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from toolpin.core.models.definition import RangeSpec, RegistrySpec
from toolpin.core.models.descriptor import Descriptor, Locator
from toolpin.core.models.install import InstallInfo, PreparedPackageManager
from toolpin.core.models.project_spec import ProjectSpecResult


class RegistryClient(ABC):
    """Reads version lists, dist-tags and latest releases from a registry."""

    @abstractmethod
    def fetch_available_versions(self, registry: RegistrySpec) -> list[str]:
        """All published versions."""

    @abstractmethod
    def fetch_available_tags(self, registry: RegistrySpec) -> dict[str, str]:
        """Dist-tag → exact version."""

    @abstractmethod
    def fetch_latest_stable_version(self, source: RegistrySpec) -> str:
        """The current stable release (may carry a ``+hash`` suffix)."""


class Installer(ABC):
    """Owns the install cache folder."""

    @abstractmethod
    def find_installed_version(self, install_root: Path, descriptor: Descriptor) -> str | None:
        """Highest installed version satisfying ``descriptor.range``, if any."""

    @abstractmethod
    def install_version(self, install_root: Path, locator: Locator, spec: RangeSpec) -> InstallInfo:
        """Make sure ``locator`` is on disk and return its verified hash."""


class Runner(ABC):
    """Runs an installed tool binary."""

    @abstractmethod
    def run_version(
        self,
        prepared: PreparedPackageManager,
        binary_name: str,
        args: list[str],
        cwd: Path,
    ) -> int:
        """Execute with stdio passthrough; returns the exit code."""


class ProjectSpecSource(ABC):
    """Finds and edits a project's tool pin."""

    @abstractmethod
    def load_project_spec(self, cwd: Path) -> ProjectSpecResult:
        """Walk up from ``cwd`` and report NoProject, NoSpec or Found."""

    @abstractmethod
    def write_project_spec(self, directory: Path, prepared: PreparedPackageManager) -> None:
        """Pin ``prepared.locator`` into the project file in ``directory``."""
