"""
Mock adapters — in-memory test doubles for every collaborator.

Each fake records its calls so tests can assert that a code path did
(or did not) touch the registry, the install cache or the project file.
"""

from __future__ import annotations

from pathlib import Path

from toolpin.adapters.base import Installer, ProjectSpecSource, RegistryClient, Runner
from toolpin.core.domain import semver
from toolpin.core.models.definition import RangeSpec, RegistrySpec
from toolpin.core.models.descriptor import Descriptor, Locator
from toolpin.core.models.install import InstallInfo, PreparedPackageManager
from toolpin.core.models.project_spec import NoProject, ProjectSpecResult


def registry_key(registry: RegistrySpec) -> str:
    """Identify a registry by its package name or URL."""
    return registry.package or registry.url or registry.type


class MockRegistryClient(RegistryClient):
    """Registry serving canned version lists, tags and latest versions."""

    def __init__(
        self,
        versions: dict[str, list[str]] | None = None,
        tags: dict[str, dict[str, str]] | None = None,
        latest: dict[str, str] | None = None,
    ):
        self._versions = versions or {}
        self._tags = tags or {}
        self._latest = latest or {}
        self._call_log: list[tuple[str, str]] = []

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """(operation, registry key) for every request received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def fetch_available_versions(self, registry: RegistrySpec) -> list[str]:
        key = registry_key(registry)
        self._call_log.append(("versions", key))
        return list(self._versions.get(key, []))

    def fetch_available_tags(self, registry: RegistrySpec) -> dict[str, str]:
        key = registry_key(registry)
        self._call_log.append(("tags", key))
        return dict(self._tags.get(key, {}))

    def fetch_latest_stable_version(self, source: RegistrySpec) -> str:
        key = registry_key(source)
        self._call_log.append(("latest", key))
        if key not in self._latest:
            raise LookupError(f"No latest version configured for {key}")
        return self._latest[key]


class MockInstaller(Installer):
    """Install cache held in memory.

    ``installed`` maps tool name → versions considered present on disk.
    Installing always succeeds and reports ``hash_value``.
    """

    def __init__(
        self,
        installed: dict[str, list[str]] | None = None,
        hash_value: str = "sha512.deadbeef",
    ):
        self._installed = {name: list(v) for name, v in (installed or {}).items()}
        self._hash = hash_value
        self.lookups: list[Descriptor] = []
        self.installs: list[tuple[Locator, RangeSpec]] = []

    def find_installed_version(self, install_root: Path, descriptor: Descriptor) -> str | None:
        self.lookups.append(descriptor)
        candidates = [
            v for v in self._installed.get(descriptor.name, [])
            if semver.satisfies_with_prereleases(v, descriptor.range)
        ]
        ordered = semver.sort_descending(candidates)
        return ordered[0] if ordered else None

    def install_version(self, install_root: Path, locator: Locator, spec: RangeSpec) -> InstallInfo:
        self.installs.append((locator, spec))
        version = semver.strip_build(locator.reference)
        self._installed.setdefault(locator.name, []).append(version)
        bin_map = spec.bin if isinstance(spec.bin, dict) else {n: n for n in spec.bin_names}
        return InstallInfo(
            location=str(install_root / locator.name / version),
            hash=self._hash,
            bin=bin_map,
        )


class MockRunner(Runner):
    """Records invocations instead of spawning processes."""

    def __init__(self, exit_code: int = 0):
        self._exit_code = exit_code
        self.calls: list[tuple[Locator, str, list[str]]] = []

    def run_version(
        self,
        prepared: PreparedPackageManager,
        binary_name: str,
        args: list[str],
        cwd: Path,
    ) -> int:
        self.calls.append((prepared.locator, binary_name, list(args)))
        return self._exit_code


class MockProjectSpecSource(ProjectSpecSource):
    """Returns a fixed lookup result and captures pin writes."""

    def __init__(self, result: ProjectSpecResult | None = None):
        self.result = result or NoProject()
        self.load_count = 0
        self.writes: list[tuple[Path, Locator]] = []
        self.fail_writes = False

    def load_project_spec(self, cwd: Path) -> ProjectSpecResult:
        self.load_count += 1
        return self.result

    def write_project_spec(self, directory: Path, prepared: PreparedPackageManager) -> None:
        if self.fail_writes:
            raise PermissionError(f"{directory} is read-only")
        self.writes.append((directory, prepared.locator))
