"""
Install results — what the installer reports back to the engine.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from toolpin.core.models.definition import RangeSpec
from toolpin.core.models.descriptor import Locator


class InstallInfo(BaseModel):
    """An installed tool version on disk.

    ``hash`` is ``<algo>.<hexdigest>`` of the downloaded artifact.
    ``bin`` maps binary names to paths relative to ``location``.
    """

    location: str
    hash: str
    bin: dict[str, str] = Field(default_factory=dict)


class PreparedPackageManager(BaseModel):
    """An installed tool, its hash-pinned locator and governing range spec."""

    locator: Locator
    spec: RangeSpec
    info: InstallInfo

    @property
    def location(self) -> str:
        return self.info.location

    @property
    def hash(self) -> str:
        return self.info.hash
