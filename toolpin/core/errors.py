"""
Error taxonomy.

Everything under ToolpinError is user-facing: the CLI prints the
message and exits 1. AssertionFailure is a bug-class error and is
deliberately kept outside that tree so it surfaces with a traceback.
"""

from __future__ import annotations


class ToolpinError(Exception):
    """Base class for user-facing errors."""


class UnsupportedPackageManager(ToolpinError):
    """The requested tool has no definition."""


class IllegalCustomURL(ToolpinError):
    """A URL range was used for a name that collides with a known tool."""


class TagsNotAllowed(ToolpinError):
    """A dist-tag was used where only versions or ranges are accepted."""


class TagNotFound(ToolpinError):
    """The requested dist-tag isn't listed by the registry."""


class ResolutionFailed(ToolpinError):
    """No available version satisfies the requested range."""


class ProjectPackageManagerMismatch(ToolpinError):
    """The project pins a different tool than the one requested."""

    def __init__(self, message: str, project_file: str | None = None):
        super().__init__(message)
        self.project_file = project_file


class InvalidProjectSpec(ToolpinError):
    """A project's ``packageManager`` value can't be parsed."""


class IntegrityError(ToolpinError):
    """Downloaded content doesn't match the pinned hash."""


class DefinitionsError(ToolpinError):
    """The definition table is missing or invalid."""


class AssertionFailure(Exception):
    """A resolved reference matches none of the tool's declared ranges."""
