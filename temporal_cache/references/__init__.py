"""Content-to-page reference resolution."""

from .resolver import ReferenceResolver

__all__ = ["ReferenceResolver"]
