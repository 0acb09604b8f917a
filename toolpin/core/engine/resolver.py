"""
Descriptor resolver — turns a requested range into a concrete version.

Resolution order, cheapest first:
    1. Custom URL references resolve to themselves.
    2. Dist-tags are replaced by the version they point at.
    3. A compatible version already in the install cache wins.
    4. Exact versions are returned as-is.
    5. Otherwise every declared range's registry is queried in
       parallel and the highest satisfying version is picked.

Steps 3 and 4 never touch the network.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from toolpin.adapters.base import Installer, RegistryClient
from toolpin.core.config.settings import Settings
from toolpin.core.domain import semver
from toolpin.core.errors import (
    AssertionFailure,
    IllegalCustomURL,
    TagNotFound,
    TagsNotAllowed,
    UnsupportedPackageManager,
)
from toolpin.core.models.definition import Definition, DefinitionTable, RangeSpec, RegistrySpec
from toolpin.core.models.descriptor import Descriptor, Locator, is_supported_package_manager

logger = logging.getLogger(__name__)


def unsupported(name: str) -> UnsupportedPackageManager:
    return UnsupportedPackageManager(f"This package manager ({name}) isn't supported by this toolpin build")


class DescriptorResolver:
    """Resolves Descriptors to Locators against the definition table."""

    def __init__(
        self,
        definitions: DefinitionTable,
        settings: Settings,
        registry: RegistryClient,
        installer: Installer,
    ):
        self._definitions = definitions
        self._settings = settings
        self._registry = registry
        self._installer = installer

    def definition_for(self, name: str) -> Definition:
        definition = self._definitions.get(name)
        if definition is None:
            raise unsupported(name)
        return definition

    def resolve(
        self,
        descriptor: Descriptor,
        allow_tags: bool = False,
        use_cache: bool = True,
    ) -> Locator | None:
        """Resolve ``descriptor`` to a Locator.

        Args:
            descriptor: The request.
            allow_tags: Accept dist-tags such as ``latest``.
            use_cache: Let an installed compatible version short-circuit.

        Returns:
            The Locator, or None when no published version satisfies the range.

        Raises:
            IllegalCustomURL: URL range for a known tool without the override.
            UnsupportedPackageManager: No definition for ``descriptor.name``.
            TagsNotAllowed: A tag was given and ``allow_tags`` is False.
            TagNotFound: The tag isn't listed by the registry.
        """
        if descriptor.is_custom:
            if not self._settings.allow_unsafe_custom_urls and is_supported_package_manager(descriptor.name):
                raise IllegalCustomURL(
                    "Illegal use of URL for known package manager. Instead, select a specific "
                    "version, or set TOOLPIN_ENABLE_UNSAFE_CUSTOM_URLS=1 in your environment "
                    f"({descriptor})"
                )
            return Locator(name=descriptor.name, reference=descriptor.range)

        definition = self.definition_for(descriptor.name)

        working = descriptor
        if not semver.is_valid_version(descriptor.range) and not semver.is_valid_range(descriptor.range):
            if not allow_tags:
                raise TagsNotAllowed("Package managers can't be referenced via tags in this context")
            working = self._resolve_tag(definition, descriptor)

        if use_cache:
            cached = self._installer.find_installed_version(self._settings.install_root, working)
            if cached is not None:
                logger.debug("Using cached %s@%s for %s", working.name, cached, working.range)
                return Locator(name=working.name, reference=cached)

        if semver.is_valid_version(working.range):
            return Locator(name=working.name, reference=working.range)

        candidates = self._fetch_candidates(definition, working.range)
        if not candidates:
            logger.debug("No %s version satisfies %s", working.name, working.range)
            return None

        logger.debug("Resolved %s to %s@%s", descriptor, working.name, candidates[0])
        return Locator(name=working.name, reference=candidates[0])

    def spec_for(self, locator: Locator) -> RangeSpec:
        """The range spec governing an already-resolved locator.

        Custom locators get a spec synthesized from their URL; ``bin`` is
        left for the caller to fill in.

        Raises:
            UnsupportedPackageManager: No definition for the locator's tool.
            AssertionFailure: The reference matches none of the declared ranges.
        """
        if locator.is_custom:
            url = locator.reference
            return RangeSpec(
                url=url,
                bin=None,
                registry=RegistrySpec(type="url", url=url, fields={"tags": "", "versions": ""}),
            )

        definition = self.definition_for(locator.name)
        ranges = list(reversed(definition.range_keys))
        for range_ in ranges:
            if semver.satisfies_with_prereleases(locator.reference, range_):
                return definition.ranges[range_]

        raise AssertionFailure(
            f"Assertion failed: Specified resolution ({locator.reference}) "
            f"isn't supported by any of {', '.join(ranges)}"
        )

    # ── Internals ────────────────────────────────────────────────

    def _resolve_tag(self, definition: Definition, descriptor: Descriptor) -> Descriptor:
        # Tags only come from the newest registry entry
        spec = definition.ranges[definition.tag_range]
        tags = self._registry.fetch_available_tags(spec.registry)
        if descriptor.range not in tags:
            raise TagNotFound(f"Tag not found ({descriptor.range})")

        version = tags[descriptor.range]
        logger.debug("Tag %s resolved to %s@%s", descriptor, descriptor.name, version)
        return Descriptor(name=descriptor.name, range=version)

    def _fetch_candidates(self, definition: Definition, range_: str) -> list[str]:
        """Query every declared range's registry and merge the matches."""
        specs = list(definition.ranges.values())
        logger.debug("Querying %d registries for %s", len(specs), range_)

        def matching(spec: RangeSpec) -> list[str]:
            versions = self._registry.fetch_available_versions(spec.registry)
            return [v for v in versions if semver.satisfies_with_prereleases(v, range_)]

        with ThreadPoolExecutor(max_workers=len(specs)) as pool:
            results = list(pool.map(matching, specs))

        merged = {version for result in results for version in result}
        return semver.sort_descending(merged)
