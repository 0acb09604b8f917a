"""
Descriptor and Locator — requested versus resolved tool references.

A Descriptor is a request (``pnpm@^8``, ``yarn@latest``). A Locator is
the answer: an exact version, optionally suffixed with a verified
content hash (``8.6.0+sha512.abc…``), or a raw URL for custom tools.
Both are transient; only a Locator's reference string is ever persisted.
"""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel

from toolpin.core.domain import semver
from toolpin.core.errors import IllegalCustomURL, InvalidProjectSpec, UnsupportedPackageManager

SUPPORTED_PACKAGE_MANAGERS: tuple[str, ...] = ("npm", "pnpm", "yarn")


def is_supported_package_manager(name: str) -> bool:
    return name in SUPPORTED_PACKAGE_MANAGERS


def is_url(value: str | None) -> bool:
    """Whether ``value`` is an absolute URL (``scheme://…``)."""
    if not value or "://" not in value:
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


class Descriptor(BaseModel):
    """A request for a tool by name and range, tag, exact version or URL."""

    name: str
    range: str

    @property
    def is_custom(self) -> bool:
        """Custom tools are referenced by a literal URL."""
        return is_url(self.range)

    def __str__(self) -> str:
        return f"{self.name}@{self.range}"


class Locator(BaseModel):
    """A fully resolved tool reference: exact version (maybe hashed) or URL."""

    name: str
    reference: str

    @property
    def is_custom(self) -> bool:
        return is_url(self.reference)

    def to_descriptor(self) -> Descriptor:
        # A locator is a valid descriptor, not the other way around
        return Descriptor(name=self.name, range=self.reference)

    def __str__(self) -> str:
        return f"{self.name}@{self.reference}"


class PackageManagerRequest(BaseModel):
    """What the shim was invoked as.

    ``package_manager`` is None when the binary isn't owned by any
    supported tool; ``binary_version`` is an explicit ``bin@version``
    override from the command line.
    """

    package_manager: str | None = None
    binary_name: str
    binary_version: str | None = None


def parse_spec(
    raw: object,
    source: str,
    enforce_exact_version: bool = True,
    allow_unsafe_custom_urls: bool = False,
) -> Descriptor:
    """Parse a ``name@range`` pin as found in a project file.

    Args:
        raw: The raw field value.
        source: Where it came from (used in error messages).
        enforce_exact_version: Require an exact version (or URL).
        allow_unsafe_custom_urls: Permit URLs for known tool names.

    Returns:
        The parsed Descriptor.

    Raises:
        InvalidProjectSpec: Malformed value or missing/inexact version.
        UnsupportedPackageManager: Unknown tool name with a non-URL range.
        IllegalCustomURL: URL range for a known tool without the override.
    """
    if not isinstance(raw, str):
        raise InvalidProjectSpec(
            f"Invalid package manager specification in {source}; expected a string"
        )

    at = raw.find("@", 1)
    if at == -1 or at == len(raw) - 1:
        if enforce_exact_version:
            raise InvalidProjectSpec(f'No version specified for {raw} in "packageManager" of {source}')
        name = raw if at == -1 else raw[:-1]
        if not is_supported_package_manager(name):
            raise UnsupportedPackageManager(f"Unsupported package manager specification ({name})")
        return Descriptor(name=name, range="*")

    name, range_ = raw[:at], raw[at + 1:]

    if not is_url(range_):
        if enforce_exact_version and not semver.is_valid_version(range_):
            raise InvalidProjectSpec(
                f"Invalid package manager specification in {source} ({raw}); expected a semver version"
            )
        if not is_supported_package_manager(name):
            raise UnsupportedPackageManager(f"Unsupported package manager specification ({raw})")
    elif is_supported_package_manager(name) and not allow_unsafe_custom_urls:
        raise IllegalCustomURL(
            "Illegal use of URL for known package manager. Instead, select a specific "
            f"version, or set TOOLPIN_ENABLE_UNSAFE_CUSTOM_URLS=1 in your environment ({raw})"
        )

    return Descriptor(name=name, range=range_)
