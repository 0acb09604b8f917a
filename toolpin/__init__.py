"""toolpin — pinned, verified package manager versions for every project."""

__version__ = "0.1.0"
