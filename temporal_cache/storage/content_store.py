"""
Content store contract and transition detection.

The store is an external collaborator. This module defines the
interfaces the core consumes and the ``TransitionDetector`` that
combines per-collection minimum queries into a single next-transition
answer, memoized per request.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone, tzinfo
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set, Tuple

import structlog

from ..cache.transition_cache import TransitionCache
from ..framework.metrics import InvalidationMetrics
from ..registry import MonitorRegistry
from ..schemas.models import TemporalContent, TransitionEvent, TransitionType


TEMPORAL_FIELDS = ("start_time", "end_time")


class ContentStore(Protocol):
    """Persistent store of temporal records."""

    async def find_all(self, workspace_id: int = 0, language_id: int = -1) -> List[TemporalContent]:
        """Every temporal record across registered collections (language -1 = all)."""
        ...

    async def find_transitions_in_range(
        self,
        start: int,
        end: int,
        workspace_id: int = 0,
        language_id: int = 0,
    ) -> List[TransitionEvent]:
        """Transitions with ``start <= timestamp <= end``, chronologically sorted."""
        ...

    async def find_min_transition(
        self,
        collection: str,
        field: str,
        reference_time: int,
        workspace_id: int,
        language_id: int,
    ) -> Optional[int]:
        """Smallest ``field`` value strictly greater than ``reference_time``, as one aggregate query."""
        ...

    async def find_by_id(self, record_id: int, collection: str, workspace_id: int = 0) -> Optional[TemporalContent]:
        ...

    async def find_by_page_id(self, page_id: int, workspace_id: int = 0, language_id: int = 0) -> List[TemporalContent]:
        ...

    async def update_temporal_fields(self, content: TemporalContent, values: Mapping[str, int]) -> None:
        """Persist new ``start_time``/``end_time`` values for one record."""
        ...


class ReferenceIndex(Protocol):
    """Derived graph of which records reference which others."""

    async def find_parent_page(self, content_id: int) -> Optional[int]:
        ...

    async def find_references(self, content_id: int, language_id: int) -> List[Tuple[str, int]]:
        """``(collection, record_id)`` of every record referencing the element."""
        ...

    async def find_mount_points(self, page_ids: Iterable[int]) -> List[int]:
        ...

    async def find_shortcuts(self, page_ids: Iterable[int]) -> List[int]:
        ...

    async def find_content_on_page(self, page_id: int, language_id: int) -> List[int]:
        ...


class CacheInvalidator(Protocol):
    """External page cache that supports tag-based flushing."""

    async def flush_by_tags(self, tags: Set[str]) -> None:
        ...


def transitions_from_contents(
    contents: Iterable[TemporalContent],
    start: int,
    end: int,
    workspace_id: int = 0,
    language_id: int = 0,
) -> List[TransitionEvent]:
    """Build sorted transition events from already loaded records."""
    events = []
    for content in contents:
        if content.start_time is not None and start <= content.start_time <= end:
            events.append(TransitionEvent(
                content=content,
                timestamp=content.start_time,
                transition_type=TransitionType.START,
                workspace_id=workspace_id,
                language_id=language_id,
            ))
        if content.end_time is not None and start <= content.end_time <= end:
            events.append(TransitionEvent(
                content=content,
                timestamp=content.end_time,
                transition_type=TransitionType.END,
                workspace_id=workspace_id,
                language_id=language_id,
            ))

    events.sort(key=lambda event: event.timestamp)
    return events


class TransitionDetector:
    """Finds upcoming transitions across every monitored collection."""

    def __init__(
        self,
        store: ContentStore,
        registry: MonitorRegistry,
        metrics: Optional[InvalidationMetrics] = None,
        tz: tzinfo = timezone.utc,
    ):
        self.store = store
        self.registry = registry
        self.metrics = metrics
        self.tz = tz
        self.logger = structlog.get_logger("transition-detector")

    async def next_transition(
        self,
        reference_time: int,
        workspace_id: int = 0,
        language_id: int = 0,
        cache: Optional[TransitionCache] = None,
    ) -> Optional[int]:
        """
        Get the next transition after ``reference_time``.

        Runs one minimum query per (collection, field) pair and keeps the
        smallest non-null answer. The result, including None, is memoized
        in ``cache`` under the exact lookup triple.
        """
        if cache is not None and cache.has(reference_time, workspace_id, language_id):
            if self.metrics:
                self.metrics.record_lookup(cached=True)
            return cache.get(reference_time, workspace_id, language_id)

        candidates = []
        for collection in self.registry.all_collections():
            for field in TEMPORAL_FIELDS:
                value = await self.store.find_min_transition(
                    collection,
                    field,
                    reference_time,
                    workspace_id,
                    language_id,
                )
                if value is not None:
                    candidates.append(value)

        next_transition = min(candidates) if candidates else None

        if cache is not None:
            cache.set(reference_time, workspace_id, language_id, next_transition)
        if self.metrics:
            self.metrics.record_lookup(cached=False)

        self.logger.debug(
            "Next transition computed",
            reference_time=reference_time,
            workspace_id=workspace_id,
            language_id=language_id,
            next_transition=next_transition,
        )
        return next_transition

    async def next_transition_from_scan(
        self,
        reference_time: int,
        workspace_id: int = 0,
        language_id: int = 0,
    ) -> Optional[int]:
        """Bulk-scan equivalent of ``next_transition``; loads every record."""
        contents = await self.store.find_all(workspace_id, language_id)
        upcoming = [
            ts for ts in (content.next_transition(reference_time) for content in contents)
            if ts is not None
        ]
        return min(upcoming) if upcoming else None

    async def transitions_in_range_from_scan(
        self,
        start: int,
        end: int,
        workspace_id: int = 0,
        language_id: int = 0,
    ) -> List[TransitionEvent]:
        contents = await self.store.find_all(workspace_id, language_id)
        return transitions_from_contents(contents, start, end, workspace_id, language_id)

    async def count_transitions_per_day(
        self,
        start: int,
        end: int,
        workspace_id: int = 0,
    ) -> Dict[str, int]:
        """Map of ``YYYY-MM-DD`` to the number of transitions on that day."""
        transitions = await self.store.find_transitions_in_range(start, end, workspace_id)
        counts = Counter(
            datetime.fromtimestamp(event.timestamp, tz=self.tz).strftime("%Y-%m-%d")
            for event in transitions
        )
        return dict(counts)

    async def statistics(self, workspace_id: int = 0) -> Dict[str, int]:
        """Overview counts of temporal records."""
        contents = await self.store.find_all(workspace_id)
        stats = {
            "total": len(contents),
            "pages": 0,
            "content": 0,
            "with_start": 0,
            "with_end": 0,
            "with_both": 0,
        }

        for content in contents:
            if content.is_page:
                stats["pages"] += 1
            else:
                stats["content"] += 1

            has_start = content.start_time is not None
            has_end = content.end_time is not None
            if has_start and has_end:
                stats["with_both"] += 1
            elif has_start:
                stats["with_start"] += 1
            elif has_end:
                stats["with_end"] += 1

        return stats
