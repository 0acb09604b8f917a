"""
Subprocess runner — execute an installed tool with stdio passthrough.

JavaScript entry points run under ``node``; anything else is executed
directly. The child inherits stdin/stdout/stderr, so interactive tools
behave as if invoked without the shim.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from toolpin.adapters.base import Runner
from toolpin.adapters.install.folder import MARKER_FILE
from toolpin.core.errors import ToolpinError
from toolpin.core.models.install import PreparedPackageManager

logger = logging.getLogger(__name__)

_JS_SUFFIXES = (".js", ".cjs", ".mjs")


class SubprocessRunner(Runner):
    """Run binaries with ``subprocess.run``.

    Args:
        node: Node.js executable used for JavaScript entry points
            (default: ``node`` from PATH).
    """

    def __init__(self, node: str | None = None):
        self._node = node

    def run_version(
        self,
        prepared: PreparedPackageManager,
        binary_name: str,
        args: list[str],
        cwd: Path,
    ) -> int:
        entry = self.entry_point(prepared, binary_name)
        command = [*self._interpreter(entry), str(entry), *args]

        logger.debug("Executing: %s (cwd=%s)", command, cwd)
        try:
            result = subprocess.run(command, cwd=cwd)
        except KeyboardInterrupt:
            return 130
        return result.returncode

    def entry_point(self, prepared: PreparedPackageManager, binary_name: str) -> Path:
        """Absolute path of ``binary_name`` inside the install location."""
        location = Path(prepared.location)
        relative = prepared.info.bin.get(binary_name)
        if relative is not None:
            return (location / relative).resolve()

        if not prepared.info.bin:
            # Custom URL installs carry no bin map: the single downloaded file is the binary
            files = [p for p in location.iterdir() if p.is_file() and p.name != MARKER_FILE]
            if len(files) == 1:
                return files[0]

        raise ToolpinError(f"Binary {binary_name} isn't provided by {prepared.locator}")

    def _interpreter(self, entry: Path) -> list[str]:
        if entry.suffix not in _JS_SUFFIXES:
            return []
        node = self._node or shutil.which("node")
        if node is None:
            raise ToolpinError("Node.js is required to run this tool but wasn't found on PATH")
        return [node]
