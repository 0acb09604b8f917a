"""
Last-Known-Good store — tool name → last successfully activated version.

Stored as pretty-printed JSON in <home>/lastKnownGood.json. The file is
read and rewritten as a whole snapshot with no inter-process locking;
concurrent writers race and the last one wins. The store is an
acceleration cache: a lost update costs one extra registry lookup.

Writes are atomic (write to temp file, then rename) so a crash never
leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class LastKnownGoodStore:
    """Whole-file JSON store of last-known-good versions."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, str]:
        """Read the store.

        A missing file, unparseable content, or a non-object document all
        yield an empty store. Non-string values are dropped. Any other
        read error propagates.
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.debug("Ignoring corrupt last-known-good file %s: %s", self._path, e)
            return {}

        if not isinstance(data, dict):
            return {}

        return {key: value for key, value in data.items() if isinstance(value, str)}

    def save(self, entries: dict[str, str]) -> None:
        """Persist the whole store (atomic write).

        Args:
            entries: The complete mapping to write.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(entries, indent=2) + "\n"

        _fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=".lkg_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            tmp.replace(self._path)
            logger.debug("Last-known-good saved to %s", self._path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
