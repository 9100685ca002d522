"""CLI commands."""

from .export import export
from .formats import formats
from .inspect import info, validate

__all__ = [
    "export",
    "formats",
    "info",
    "validate",
]
