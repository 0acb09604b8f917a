"""
Domain models — Pydantic types for toolpin.

All models are re-exported here for convenient access:

    from toolpin.core.models import Descriptor, Locator, Definition, DefinitionTable
"""

from toolpin.core.models.definition import (
    Definition,
    DefinitionTable,
    RangeSpec,
    RegistrySpec,
    TransparentRules,
)
from toolpin.core.models.descriptor import (
    SUPPORTED_PACKAGE_MANAGERS,
    Descriptor,
    Locator,
    PackageManagerRequest,
    is_supported_package_manager,
    parse_spec,
)
from toolpin.core.models.install import InstallInfo, PreparedPackageManager
from toolpin.core.models.project_spec import Found, NoProject, NoSpec, ProjectSpecResult

__all__ = [
    # definition.py
    "Definition",
    "DefinitionTable",
    # descriptor.py
    "Descriptor",
    "Found",
    # install.py
    "InstallInfo",
    "Locator",
    # project_spec.py
    "NoProject",
    "NoSpec",
    "PackageManagerRequest",
    "PreparedPackageManager",
    "ProjectSpecResult",
    "RangeSpec",
    "RegistrySpec",
    "SUPPORTED_PACKAGE_MANAGERS",
    "TransparentRules",
    "is_supported_package_manager",
    "parse_spec",
]
