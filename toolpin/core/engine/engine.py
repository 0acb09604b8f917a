"""
Engine — from "run binary X with args Y in directory Z" to a running tool.

This is the top-level orchestrator: it picks a default version, consults
the project pin, resolves the final descriptor, installs it and hands
off to the runner. Every step is an ordinary blocking call; the only
concurrency is the registry fan-out inside the resolver.
"""

from __future__ import annotations

import logging
from pathlib import Path

from toolpin.adapters.base import Installer, ProjectSpecSource, RegistryClient, Runner
from toolpin.core.config.settings import Settings
from toolpin.core.engine.activation import Activator, activate_in
from toolpin.core.engine.project_spec import ProjectSpecLocator, resolution_failed
from toolpin.core.engine.resolver import DescriptorResolver
from toolpin.core.models.definition import DefinitionTable, RangeSpec
from toolpin.core.models.descriptor import Descriptor, Locator, PackageManagerRequest
from toolpin.core.models.install import PreparedPackageManager
from toolpin.core.persistence.last_known_good import LastKnownGoodStore

logger = logging.getLogger(__name__)


class Engine:
    """Wires the resolver, activator and project spec locator together.

    Args:
        definitions: The loaded definition table.
        settings: Behavior flags and locations.
        registry: Registry client.
        installer: Install cache owner.
        runner: Process runner.
        project_specs: Project pin loader/writer.
        store: Last-known-good store (default: the one under ``settings.home``).
    """

    def __init__(
        self,
        definitions: DefinitionTable,
        settings: Settings,
        registry: RegistryClient,
        installer: Installer,
        runner: Runner,
        project_specs: ProjectSpecSource,
        store: LastKnownGoodStore | None = None,
    ):
        self.definitions = definitions
        self.settings = settings
        self.store = store or LastKnownGoodStore(settings.last_known_good_path)
        self._registry = registry
        self._runner = runner

        self.resolver = DescriptorResolver(definitions, settings, registry, installer)
        self.activator = Activator(self.resolver, installer, self.store, settings)
        self.project_specs = ProjectSpecLocator(settings, project_specs, self.resolver, self.activator)

    # ── Lookups ──────────────────────────────────────────────────

    def package_manager_for(self, binary_name: str) -> str | None:
        """The supported tool that ships ``binary_name``, if any."""
        for name in self.definitions.names():
            if binary_name in self.definitions.definitions[name].binary_names():
                return name
        return None

    def binaries_for(self, name: str) -> set[str]:
        return self.resolver.definition_for(name).binary_names()

    def spec_for(self, locator: Locator) -> RangeSpec:
        return self.resolver.spec_for(locator)

    # ── Versions ─────────────────────────────────────────────────

    def default_version(self, name: str) -> str:
        """The version to use when nothing else decides.

        A last-known-good entry always wins. Otherwise the static default
        is used when latest-fetching is disabled; else the latest stable
        release is fetched and recorded (best effort).
        """
        definition = self.resolver.definition_for(name)

        entries = self.store.load()
        known = entries.get(name)
        if known:
            return known

        if not self.settings.default_to_latest:
            return definition.default

        reference = self._registry.fetch_latest_stable_version(definition.fetch_latest_from)

        try:
            activate_in(entries, self.store, Locator(name=name, reference=reference))
        except Exception as e:
            logger.debug("Could not record %s@%s as last known good: %s", name, reference, e)

        return reference

    def default_descriptors(self) -> list[Descriptor]:
        return [
            Descriptor(name=name, range=self.default_version(name))
            for name in self.definitions.names()
        ]

    # ── Operations ───────────────────────────────────────────────

    def resolve_descriptor(
        self,
        descriptor: Descriptor,
        allow_tags: bool = False,
        use_cache: bool = True,
    ) -> Locator | None:
        return self.resolver.resolve(descriptor, allow_tags=allow_tags, use_cache=use_cache)

    def ensure_package_manager(self, locator: Locator) -> PreparedPackageManager:
        return self.activator.ensure_package_manager(locator)

    def activate_package_manager(self, locator: Locator) -> bool:
        return self.activator.activate(locator)

    def find_project_spec(self, cwd: Path, locator: Locator, transparent: bool = False) -> Descriptor:
        return self.project_specs.find_project_spec(cwd, locator, transparent=transparent)

    def is_transparent_command(self, name: str, binary_name: str, args: list[str]) -> bool:
        return self.resolver.definition_for(name).transparent.matches(binary_name, args)

    def prepare_request(
        self,
        request: PackageManagerRequest,
        cwd: Path,
        args: list[str],
    ) -> PreparedPackageManager:
        """Resolve and install whatever ``request`` should run in ``cwd``.

        Raises:
            ResolutionFailed: No published version satisfies the final range.
        """
        # No reference yet: only meaningful if the project decides
        fallback = Locator(name=request.binary_name, reference="")

        is_transparent = False
        if request.package_manager is not None:
            name = request.package_manager
            definition = self.resolver.definition_for(name)
            default = request.binary_version or self.default_version(name)

            # Commands matching a transparent pattern may run outside a
            # project pinned to this tool, with their own default
            is_transparent = self.is_transparent_command(name, request.binary_name, args)
            reference = default
            if is_transparent and definition.transparent.default is not None:
                reference = definition.transparent.default

            fallback = Locator(name=name, reference=reference)

        descriptor = self.find_project_spec(cwd, fallback, transparent=is_transparent)

        if request.binary_version:
            descriptor = descriptor.model_copy(update={"range": request.binary_version})

        resolved = self.resolve_descriptor(descriptor, allow_tags=True)
        if resolved is None:
            raise resolution_failed(descriptor)

        return self.ensure_package_manager(resolved)

    def execute_request(
        self,
        request: PackageManagerRequest,
        cwd: Path,
        args: list[str],
    ) -> int:
        """Resolve, install and run ``request``; returns the tool's exit code."""
        prepared = self.prepare_request(request, cwd, args)
        logger.debug("Running %s %s via %s", request.binary_name, " ".join(args), prepared.locator)
        return self._runner.run_version(prepared, request.binary_name, args, cwd)
