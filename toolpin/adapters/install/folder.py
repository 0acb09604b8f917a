"""
Install folder — the on-disk cache of downloaded tool versions.

Layout::

    <install_root>/<name>/<version>/
        .toolpin.json        marker: locator, hash, bin map
        ...                  extracted package contents

A version directory without a marker is an interrupted install and is
ignored (and overwritten on the next install).
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import shutil
import tarfile
import tempfile
import urllib.request
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from toolpin import __version__
from toolpin.adapters.base import Installer
from toolpin.core.domain import semver
from toolpin.core.errors import IntegrityError
from toolpin.core.models.definition import RangeSpec
from toolpin.core.models.descriptor import Descriptor, Locator
from toolpin.core.models.install import InstallInfo

logger = logging.getLogger(__name__)

MARKER_FILE = ".toolpin.json"
DEFAULT_HASH_ALGORITHM = "sha512"
_CHUNK = 64 * 1024

_PINNED_URL = re.compile(r"^(?P<url>.+)\+(?P<algo>[a-z0-9]+)\.(?P<digest>[0-9a-f]+)$")


def split_hash(reference: str) -> tuple[str, str | None]:
    """Split ``1.2.3+sha512.abc`` into ``("sha512", "abc")``."""
    if "+" not in reference:
        return DEFAULT_HASH_ALGORITHM, None
    build = reference.split("+", 1)[1]
    algo, _, digest = build.partition(".")
    if not digest:
        return DEFAULT_HASH_ALGORITHM, None
    return algo, digest


def split_url_hash(reference: str) -> tuple[str, str, str | None]:
    """Split ``https://…/tool.js+sha512.abc`` into (url, algo, digest)."""
    m = _PINNED_URL.match(reference)
    if m is None:
        return reference, DEFAULT_HASH_ALGORITHM, None
    return m.group("url"), m.group("algo"), m.group("digest")


def version_folder(install_root: Path, locator: Locator) -> Path:
    """Directory holding ``locator``; custom URLs are keyed by their digest."""
    if locator.is_custom:
        url = split_url_hash(locator.reference)[0]
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        return install_root / locator.name / f"url-{digest}"
    return install_root / locator.name / semver.strip_build(locator.reference)


class InstallFolder(Installer):
    """Downloads, verifies and extracts tool versions into the cache."""

    def __init__(self, timeout: int = 120):
        self._timeout = timeout

    def find_installed_version(self, install_root: Path, descriptor: Descriptor) -> str | None:
        if descriptor.is_custom:
            return None

        tool_dir = install_root / descriptor.name
        if not tool_dir.is_dir():
            return None

        candidates = [
            entry.name
            for entry in tool_dir.iterdir()
            if (entry / MARKER_FILE).is_file()
            and semver.satisfies_with_prereleases(entry.name, descriptor.range)
        ]
        ordered = semver.sort_descending(candidates)
        return ordered[0] if ordered else None

    def install_version(self, install_root: Path, locator: Locator, spec: RangeSpec) -> InstallInfo:
        target = version_folder(install_root, locator)
        existing = self._read_marker(target)
        if existing is not None:
            logger.debug("%s already installed in %s", locator, target)
            return existing

        if locator.is_custom:
            url, algo, expected = split_url_hash(locator.reference)
        else:
            url = spec.url.replace("{}", semver.strip_build(locator.reference))
            algo, expected = split_hash(locator.reference)

        logger.info("Installing %s from %s", locator, url)
        target.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(dir=target.parent, prefix=".install_") as tmp:
            tmp_dir = Path(tmp)
            filename = PurePosixPath(urlparse(url).path).name or "download"
            download = tmp_dir / filename
            digest = self._download(url, download, algo)

            if expected is not None and digest != expected:
                raise IntegrityError(
                    f"Mismatch hashes for {locator.name}@{semver.strip_build(locator.reference)}. "
                    f"Expected {expected}, got {digest}"
                )

            staging = tmp_dir / "package"
            staging.mkdir()
            if filename.endswith((".tgz", ".tar.gz")):
                _extract_package(download, staging)
            else:
                shutil.copy2(download, staging / filename)

            info = InstallInfo(
                location=str(target),
                hash=f"{algo}.{digest}",
                bin=_bin_map(spec, filename),
            )
            marker = {"locator": locator.model_dump(), **info.model_dump()}
            (staging / MARKER_FILE).write_text(json.dumps(marker, indent=2) + "\n", encoding="utf-8")

            if target.exists():
                shutil.rmtree(target)
            staging.rename(target)

        return info

    def clean(self, install_root: Path) -> None:
        """Remove every installed version."""
        logger.info("Removing install cache %s", install_root)
        shutil.rmtree(install_root, ignore_errors=True)

    # ── Internals ────────────────────────────────────────────────

    def _read_marker(self, target: Path) -> InstallInfo | None:
        marker = target / MARKER_FILE
        if not marker.is_file():
            return None
        try:
            data = json.loads(marker.read_text(encoding="utf-8"))
            return InstallInfo.model_validate(data)
        except Exception as e:
            logger.warning("Corrupt install marker %s: %s. Reinstalling", marker, e)
            return None

    def _download(self, url: str, dest: Path, algo: str) -> str:
        hasher = hashlib.new(algo)
        req = urllib.request.Request(url, headers={"User-Agent": f"toolpin/{__version__}"})
        with urllib.request.urlopen(req, timeout=self._timeout) as resp, open(dest, "wb") as f:
            while True:
                chunk = resp.read(_CHUNK)
                if not chunk:
                    break
                hasher.update(chunk)
                f.write(chunk)
        return hasher.hexdigest()


def _extract_package(archive: Path, dest: Path) -> None:
    """Extract an npm tarball, dropping its leading ``package/`` directory."""
    with tarfile.open(archive, "r:gz") as tf:
        for member in tf.getmembers():
            parts = PurePosixPath(member.name).parts
            if len(parts) < 2 or ".." in parts:
                continue
            member.name = str(PurePosixPath(*parts[1:]))
            tf.extract(member, dest, filter="data")


def _bin_map(spec: RangeSpec, filename: str) -> dict[str, str]:
    if isinstance(spec.bin, dict):
        return dict(spec.bin)
    # Single-file distributions: every binary name runs the file itself
    return {name: f"./{filename}" for name in spec.bin_names}
