"""
Runtime settings — every environment switch toolpin honors, read once.

Built by the CLI entry point via ``Settings.from_env()`` and handed to
the Engine. Nothing below the entry point reads ``os.environ``.

Disable-style switches are only off for the literal ``"0"``; the unsafe
custom-URL switch is only on for the literal ``"1"``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel

DEFAULT_NPM_REGISTRY = "https://registry.npmjs.org"
LAST_KNOWN_GOOD_FILE = "lastKnownGood.json"


def _default_home(environ: Mapping[str, str]) -> Path:
    cache_home = environ.get("XDG_CACHE_HOME")
    if cache_home:
        return Path(cache_home) / "toolpin"
    return Path.home() / ".cache" / "toolpin"


class Settings(BaseModel):
    """Resolved configuration switches."""

    # ── Behavior flags ───────────────────────────────────────────
    enable_project_spec: bool = True
    strict: bool = True
    enable_auto_pin: bool = True
    default_to_latest: bool = True
    allow_unsafe_custom_urls: bool = False

    # ── Locations ────────────────────────────────────────────────
    home: Path = Path.home() / ".cache" / "toolpin"
    install_folder: Path | None = None
    npm_registry: str = DEFAULT_NPM_REGISTRY
    definitions_path: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables (default: ``os.environ``)."""
        env = os.environ if environ is None else environ

        home = Path(env["TOOLPIN_HOME"]) if env.get("TOOLPIN_HOME") else _default_home(env)
        install_folder = env.get("TOOLPIN_INSTALL_FOLDER")
        definitions = env.get("TOOLPIN_DEFINITIONS")

        return cls(
            enable_project_spec=env.get("TOOLPIN_ENABLE_PROJECT_SPEC") != "0",
            strict=env.get("TOOLPIN_ENABLE_STRICT") != "0",
            enable_auto_pin=env.get("TOOLPIN_ENABLE_AUTO_PIN") != "0",
            default_to_latest=env.get("TOOLPIN_DEFAULT_TO_LATEST") != "0",
            allow_unsafe_custom_urls=env.get("TOOLPIN_ENABLE_UNSAFE_CUSTOM_URLS") == "1",
            home=home,
            install_folder=Path(install_folder) if install_folder else None,
            npm_registry=(env.get("TOOLPIN_NPM_REGISTRY") or DEFAULT_NPM_REGISTRY).rstrip("/"),
            definitions_path=Path(definitions) if definitions else None,
        )

    @property
    def install_root(self) -> Path:
        """Where installed tool versions live."""
        return self.install_folder or self.home / "v1"

    @property
    def last_known_good_path(self) -> Path:
        return self.home / LAST_KNOWN_GOOD_FILE
