"""
Definition loader — reads definitions.yml into a DefinitionTable.

The table is loaded once at startup and passed by reference to the
Engine. It reads YAML, validates against Pydantic schemas, and returns
a frozen, typed table.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from toolpin.core.errors import DefinitionsError
from toolpin.core.models.definition import DefinitionTable

logger = logging.getLogger(__name__)

# Packaged default table
DEFINITIONS_FILE = Path(__file__).resolve().parent.parent / "data" / "definitions.yml"


def load_definitions(path: Path | None = None) -> DefinitionTable:
    """Load and validate the definition table.

    Args:
        path: Explicit path to a definitions file. If None, uses the
            packaged ``definitions.yml``.

    Returns:
        Validated DefinitionTable.

    Raises:
        DefinitionsError: If the file is missing or invalid.
    """
    if path is None:
        path = DEFINITIONS_FILE

    if not path.is_file():
        raise DefinitionsError(f"Definitions file not found: {path}")

    logger.debug("Loading definitions from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DefinitionsError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise DefinitionsError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise DefinitionsError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may wrap everything under a "definitions" key or be flat
    table_data = data if "definitions" in data else {"definitions": data}

    try:
        table = DefinitionTable.model_validate(table_data)
    except Exception as e:
        raise DefinitionsError(f"Invalid definitions in {path}: {e}") from e

    logger.debug("Loaded %d tool definitions", len(table.definitions))
    return table
