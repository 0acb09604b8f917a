"""Resolution engine: resolver, activator, project spec locator and dispatcher."""

from toolpin.core.engine.engine import Engine

__all__ = ["Engine"]
