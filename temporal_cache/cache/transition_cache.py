"""Request-scoped memoization of next-transition lookups."""

from typing import Dict, Optional, Tuple


CacheKey = Tuple[int, int, int]


class TransitionCache:
    """
    Memoizes next-transition lookups for a single request.

    Keys are the exact ``(reference_time, workspace_id, language_id)``
    triple. A stored ``None`` means "computed, no upcoming transition"
    and is distinct from a missing key.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Optional[int]] = {}

    def has(self, reference_time: int, workspace_id: int, language_id: int) -> bool:
        """Check whether a lookup was already memoized."""
        return (reference_time, workspace_id, language_id) in self._entries

    def get(self, reference_time: int, workspace_id: int, language_id: int) -> Optional[int]:
        """Get a memoized lookup, or None when absent."""
        return self._entries.get((reference_time, workspace_id, language_id))

    def set(
        self,
        reference_time: int,
        workspace_id: int,
        language_id: int,
        next_transition: Optional[int],
    ) -> None:
        """Memoize a lookup result, including None."""
        self._entries[(reference_time, workspace_id, language_id)] = next_transition

    def clear(self) -> None:
        """Drop every memoized lookup."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        return {"entries": len(self._entries)}
