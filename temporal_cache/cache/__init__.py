"""Request-scoped caches."""

from .transition_cache import TransitionCache

__all__ = ["TransitionCache"]
