"""HTTP API route handlers."""

from . import commands, editor, graph, settings, system

__all__ = ["commands", "editor", "graph", "settings", "system"]
