"""
HTTP registry client — version lists and dist-tags over JSON.

Two registry flavors:
    - ``npm``: ``<registry>/<package>`` packument; versions are the keys
      of ``versions``, tags are ``dist-tags``.
    - ``url``: an arbitrary JSON document; ``fields.versions`` and
      ``fields.tags`` name the keys holding the version list and the
      tag map.

Network errors propagate as ``urllib.error.URLError``.
"""

from __future__ import annotations

import json
import logging
import urllib.request
from typing import Any

from toolpin import __version__
from toolpin.adapters.base import RegistryClient
from toolpin.core.config.settings import DEFAULT_NPM_REGISTRY
from toolpin.core.models.definition import RegistrySpec

logger = logging.getLogger(__name__)

_ACCEPT_NPM = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8"


class HttpRegistryClient(RegistryClient):
    """Fetch registry metadata with ``urllib.request``."""

    def __init__(self, npm_registry: str = DEFAULT_NPM_REGISTRY, timeout: int = 30):
        self._npm_registry = npm_registry.rstrip("/")
        self._timeout = timeout

    def fetch_available_versions(self, registry: RegistrySpec) -> list[str]:
        if registry.type == "npm":
            data = self._packument(registry)
            return list((data.get("versions") or {}).keys())

        data = self._fetch_json(self._url_of(registry))
        field = registry.fields.get("versions", "versions")
        versions = data.get(field) or []
        if isinstance(versions, dict):
            return list(versions.keys())
        return [v for v in versions if isinstance(v, str)]

    def fetch_available_tags(self, registry: RegistrySpec) -> dict[str, str]:
        if registry.type == "npm":
            data = self._packument(registry)
            return dict(data.get("dist-tags") or {})

        data = self._fetch_json(self._url_of(registry))
        field = registry.fields.get("tags", "tags")
        tags = data.get(field) or {}
        return {k: v for k, v in tags.items() if isinstance(v, str)}

    def fetch_latest_stable_version(self, source: RegistrySpec) -> str:
        tags = self.fetch_available_tags(source)
        if "latest" in tags:
            return tags["latest"]
        if "stable" in tags:
            return tags["stable"]
        raise LookupError(f"No latest version advertised by {self._describe(source)}")

    # ── Internals ────────────────────────────────────────────────

    def _packument(self, registry: RegistrySpec) -> dict[str, Any]:
        if not registry.package:
            raise ValueError("npm registry spec without a package name")
        return self._fetch_json(f"{self._npm_registry}/{registry.package}", accept=_ACCEPT_NPM)

    def _url_of(self, registry: RegistrySpec) -> str:
        if not registry.url:
            raise ValueError(f"{registry.type} registry spec without a url")
        return registry.url

    def _describe(self, registry: RegistrySpec) -> str:
        return registry.package or registry.url or registry.type

    def _fetch_json(self, url: str, accept: str = "application/json") -> dict[str, Any]:
        logger.debug("GET %s", url)
        req = urllib.request.Request(
            url,
            headers={"User-Agent": f"toolpin/{__version__}", "Accept": accept},
        )
        with urllib.request.urlopen(req, timeout=self._timeout) as resp:
            data = json.loads(resp.read().decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {url}")
        return data
