"""
Activation — install a resolved tool and remember it as last known good.
"""

from __future__ import annotations

import logging

from toolpin.adapters.base import Installer
from toolpin.core.config.settings import Settings
from toolpin.core.engine.resolver import DescriptorResolver
from toolpin.core.models.descriptor import Locator
from toolpin.core.models.install import PreparedPackageManager
from toolpin.core.persistence.last_known_good import LastKnownGoodStore

logger = logging.getLogger(__name__)


def activate_in(entries: dict[str, str], store: LastKnownGoodStore, locator: Locator) -> bool:
    """Record ``locator`` in an already-loaded snapshot and persist it.

    Returns:
        True if the store was written, False if it already held this reference.
    """
    if entries.get(locator.name) == locator.reference:
        logger.debug("%s is already Last Known Good version", locator)
        return False

    entries[locator.name] = locator.reference
    logger.debug("Setting %s as Last Known Good version", locator)
    store.save(entries)
    return True


class Activator:
    """Installs locators and is the single writer of the last-known-good store."""

    def __init__(
        self,
        resolver: DescriptorResolver,
        installer: Installer,
        store: LastKnownGoodStore,
        settings: Settings,
    ):
        self._resolver = resolver
        self._installer = installer
        self._store = store
        self._settings = settings

    def ensure_package_manager(self, locator: Locator) -> PreparedPackageManager:
        """Install ``locator`` if needed and pin its reference to the verified hash."""
        spec = self._resolver.spec_for(locator)
        info = self._installer.install_version(self._settings.install_root, locator, spec)

        no_hash_reference = locator.reference.split("+", 1)[0]
        fixed = Locator(name=locator.name, reference=f"{no_hash_reference}+{info.hash}")

        return PreparedPackageManager(locator=fixed, spec=spec, info=info)

    def activate(self, locator: Locator) -> bool:
        """Make ``locator`` the last known good version of its tool.

        A no-op when the store already holds this exact reference.
        """
        return activate_in(self._store.load(), self._store, locator)
