"""
Definition model — what toolpin knows about each supported tool.

Loaded once from definitions.yml and frozen. Each tool declares an
ordered set of version ranges (e.g. ``<2.0.0`` and ``>=2.0.0``), each
bound to its own download URL, binaries and registry; a static default
version; where to look up the latest stable release; and the
"transparent" commands allowed to run outside a pinned project.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from toolpin.core.domain import semver


class RegistrySpec(BaseModel):
    """Where version lists and dist-tags come from.

    ``type`` is ``npm`` (``package`` names the registry package) or
    ``url`` (``url`` points at a JSON document; ``fields`` names the keys
    holding the tag map and the version list).
    """

    model_config = ConfigDict(frozen=True)

    type: str = "npm"
    package: str | None = None
    url: str | None = None
    fields: dict[str, str] = Field(default_factory=dict)


class RangeSpec(BaseModel):
    """Install/registry metadata for one range of a tool's versions."""

    model_config = ConfigDict(frozen=True)

    url: str                             # download URL, ``{}`` = version
    bin: list[str] | dict[str, str] | None = None
    registry: RegistrySpec
    name: str | None = None              # package name inside the archive

    @property
    def bin_names(self) -> list[str]:
        """Binary names provided by this range."""
        if self.bin is None:
            return []
        if isinstance(self.bin, dict):
            return list(self.bin.keys())
        return list(self.bin)


class TransparentRules(BaseModel):
    """Commands tolerated outside a project pinned to this tool."""

    model_config = ConfigDict(frozen=True)

    default: str | None = None
    commands: list[list[str]] = Field(default_factory=list)

    def matches(self, binary_name: str, args: list[str]) -> bool:
        """Whether ``binary_name args…`` starts with a declared pattern.

        The first segment of a pattern is the binary name; the rest must
        equal the leading positional arguments.
        """
        for pattern in self.commands:
            if not pattern or pattern[0] != binary_name:
                continue
            prefix = pattern[1:]
            if len(args) >= len(prefix) and all(
                segment == args[i] for i, segment in enumerate(prefix)
            ):
                return True
        return False


class Definition(BaseModel):
    """Everything declared for one supported tool."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    default: str
    fetch_latest_from: RegistrySpec = Field(alias="fetchLatestFrom")
    transparent: TransparentRules = Field(default_factory=TransparentRules)
    ranges: dict[str, RangeSpec]

    @field_validator("ranges")
    @classmethod
    def _check_ranges(cls, ranges: dict[str, RangeSpec]) -> dict[str, RangeSpec]:
        if not ranges:
            raise ValueError("at least one range is required")
        for key in ranges:
            if not semver.is_valid_range(key):
                raise ValueError(f"invalid range key: {key!r}")
        return ranges

    @property
    def range_keys(self) -> list[str]:
        """Range keys in declaration order."""
        return list(self.ranges.keys())

    @property
    def tag_range(self) -> str:
        """The last declared range; dist-tags are resolved from its registry."""
        return self.range_keys[-1]

    def binary_names(self) -> set[str]:
        names: set[str] = set()
        for spec in self.ranges.values():
            names.update(spec.bin_names)
        return names


class DefinitionTable(BaseModel):
    """The full, immutable table of supported tools."""

    model_config = ConfigDict(frozen=True)

    definitions: dict[str, Definition]

    def get(self, name: str) -> Definition | None:
        return self.definitions.get(name)

    def names(self) -> list[str]:
        return list(self.definitions.keys())
