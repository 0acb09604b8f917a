"""
package.json project specs — the ``packageManager`` field.

Manifests are searched upward from the working directory (directories
inside ``node_modules`` are skipped so a dependency's manifest never
counts). The first one with a ``packageManager`` field holds the
project's pin: ``"pnpm@8.6.0+sha512.…"``. When none has one, the
topmost manifest is where a pin gets written.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Iterator

from toolpin.adapters.base import ProjectSpecSource
from toolpin.core.errors import InvalidProjectSpec
from toolpin.core.models.descriptor import parse_spec
from toolpin.core.models.install import PreparedPackageManager
from toolpin.core.models.project_spec import Found, NoProject, NoSpec, ProjectSpecResult

logger = logging.getLogger(__name__)

MANIFEST_FILE = "package.json"
PIN_FIELD = "packageManager"


def iter_manifests(start_dir: Path) -> Iterator[Path]:
    """Yield every package.json from ``start_dir`` up to the filesystem root.

    Args:
        start_dir: Directory to start searching from.

    Yields:
        Manifest paths, nearest first.
    """
    current = start_dir.resolve()

    while True:
        if "node_modules" not in current.parts:
            candidate = current / MANIFEST_FILE
            if candidate.is_file():
                yield candidate
        parent = current.parent
        if parent == current:
            return  # filesystem root
        current = parent


def _detect_indent(raw: str) -> int | str:
    m = re.search(r"^([ \t]+)\"", raw, re.MULTILINE)
    if m is None:
        return 2
    indent = m.group(1)
    return indent if "\t" in indent else len(indent)


class PackageJsonSpecSource(ProjectSpecSource):
    """Reads and writes ``packageManager`` in package.json."""

    def __init__(self, allow_unsafe_custom_urls: bool = False):
        self._allow_unsafe_custom_urls = allow_unsafe_custom_urls

    def load_project_spec(self, cwd: Path) -> ProjectSpecResult:
        # Workspace packages usually inherit the pin of an enclosing root
        manifest = None
        raw = None
        for manifest in iter_manifests(cwd):
            raw = self._read(manifest).get(PIN_FIELD)
            if raw is not None:
                break

        if manifest is None:
            return NoProject()
        if raw is None:
            return NoSpec(target=str(manifest))

        spec = parse_spec(
            raw,
            str(manifest),
            allow_unsafe_custom_urls=self._allow_unsafe_custom_urls,
        )
        logger.debug("Project %s pins %s", manifest, spec)
        return Found(spec=spec, target=str(manifest))

    def write_project_spec(self, directory: Path, prepared: PreparedPackageManager) -> None:
        manifest = directory / MANIFEST_FILE
        raw = manifest.read_text(encoding="utf-8") if manifest.is_file() else "{}\n"

        data = json.loads(raw) if raw.strip() else {}
        data[PIN_FIELD] = str(prepared.locator)

        content = json.dumps(data, indent=_detect_indent(raw), ensure_ascii=False)
        if raw.endswith("\n") or not raw:
            content += "\n"
        manifest.write_text(content, encoding="utf-8")
        logger.debug("Pinned %s in %s", prepared.locator, manifest)

    def _read(self, manifest: Path) -> dict:
        try:
            data = json.loads(manifest.read_text(encoding="utf-8"))
        except ValueError as e:
            raise InvalidProjectSpec(f"Invalid JSON in {manifest}: {e}") from e
        if not isinstance(data, dict):
            raise InvalidProjectSpec(f"Expected a JSON object in {manifest}")
        return data
