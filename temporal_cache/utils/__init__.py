"""
Utility modules for temporal cache components.

Provides common utilities for:
- Structured logging
- Error handling
"""

from .logging import setup_logging, add_scope
from .errors import (
    TemporalCacheError,
    ValidationError,
    ConfigurationError,
    TransitionProcessingError,
    ReferenceResolutionError,
    StorageError,
)

__all__ = [
    "setup_logging",
    "add_scope",
    "TemporalCacheError",
    "ValidationError",
    "ConfigurationError",
    "TransitionProcessingError",
    "ReferenceResolutionError",
    "StorageError",
]
