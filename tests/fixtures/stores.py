"""In-memory collaborators for unit tests."""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple
import dataclasses

from temporal_cache.registry import MonitorRegistry
from temporal_cache.schemas.models import PAGES, CONTENT_ELEMENTS, TemporalContent, TransitionEvent
from temporal_cache.storage.content_store import TEMPORAL_FIELDS, transitions_from_contents


# 2024-01-01 00:00:00 UTC
DAY_START = 1704067200
HOUR = 3600
MINUTE = 60


def at(hours: int, minutes: int = 0, day: int = 0) -> int:
    """Epoch seconds for a time of day, ``day`` days after DAY_START."""
    return DAY_START + day * 86400 + hours * HOUR + minutes * MINUTE


def make_page(id: int, start_time: Optional[int] = None, end_time: Optional[int] = None, **kwargs) -> TemporalContent:
    values = dict(
        id=id,
        collection_name=PAGES,
        title=f"Page {id}",
        parent_id=0,
        start_time=start_time,
        end_time=end_time,
        language_id=0,
        workspace_id=0,
    )
    values.update(kwargs)
    return TemporalContent(**values)


def make_content(
    id: int,
    parent_id: int,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
    **kwargs,
) -> TemporalContent:
    values = dict(
        id=id,
        collection_name=CONTENT_ELEMENTS,
        title=f"Content {id}",
        parent_id=parent_id,
        start_time=start_time,
        end_time=end_time,
        language_id=0,
        workspace_id=0,
    )
    values.update(kwargs)
    return TemporalContent(**values)


class InMemoryContentStore:
    """Content store over a list of records."""

    def __init__(self, contents: Iterable[TemporalContent], registry: MonitorRegistry):
        self.contents: List[TemporalContent] = list(contents)
        self.registry = registry
        self.min_transition_calls: List[Tuple[str, str, int, int, int]] = []
        self.updates: List[Tuple[TemporalContent, Dict[str, int]]] = []
        self.fail_updates_for: Set[int] = set()

    def _matches(self, content: TemporalContent, workspace_id: int, language_id: int) -> bool:
        if content.deleted or not content.has_temporal_fields():
            return False
        if not self.registry.is_registered(content.collection_name):
            return False
        if content.workspace_id != workspace_id:
            return False
        return language_id < 0 or content.language_id == language_id

    async def find_all(self, workspace_id: int = 0, language_id: int = -1) -> List[TemporalContent]:
        return [c for c in self.contents if self._matches(c, workspace_id, language_id)]

    async def find_transitions_in_range(
        self,
        start: int,
        end: int,
        workspace_id: int = 0,
        language_id: int = 0,
    ) -> List[TransitionEvent]:
        contents = await self.find_all(workspace_id, language_id)
        return transitions_from_contents(contents, start, end, workspace_id, language_id)

    async def find_min_transition(
        self,
        collection: str,
        field: str,
        reference_time: int,
        workspace_id: int,
        language_id: int,
    ) -> Optional[int]:
        self.min_transition_calls.append((collection, field, reference_time, workspace_id, language_id))
        if field not in TEMPORAL_FIELDS:
            return None
        values = [
            getattr(c, field)
            for c in self.contents
            if c.collection_name == collection
            and self._matches(c, workspace_id, language_id)
            and getattr(c, field) is not None
            and getattr(c, field) > reference_time
        ]
        return min(values) if values else None

    async def find_by_id(self, record_id: int, collection: str, workspace_id: int = 0) -> Optional[TemporalContent]:
        for content in self.contents:
            if content.id == record_id and content.collection_name == collection:
                return content
        return None

    async def find_by_page_id(self, page_id: int, workspace_id: int = 0, language_id: int = 0) -> List[TemporalContent]:
        return [
            c for c in self.contents
            if c.is_content_element and c.parent_id == page_id and self._matches(c, workspace_id, language_id)
        ]

    async def update_temporal_fields(self, content: TemporalContent, values: Mapping[str, int]) -> None:
        if content.id in self.fail_updates_for:
            raise RuntimeError(f"update failed for {content.id}")
        self.updates.append((content, dict(values)))
        self.contents = [
            dataclasses.replace(c, **values) if c == content else c
            for c in self.contents
        ]


class InMemoryReferenceIndex:
    """Reference index over plain dictionaries."""

    def __init__(
        self,
        parents: Optional[Dict[int, int]] = None,
        references: Optional[Dict[int, List[Tuple[str, int]]]] = None,
        mount_points: Optional[Dict[int, List[int]]] = None,
        shortcuts: Optional[Dict[int, List[int]]] = None,
        content_on_page: Optional[Dict[int, List[int]]] = None,
    ):
        self.parents = parents or {}
        self.references = references or {}
        self.mount_points = mount_points or {}
        self.shortcuts = shortcuts or {}
        self.content_on_page = content_on_page or {}
        self.shortcut_queries: List[List[int]] = []

    async def find_parent_page(self, content_id: int) -> Optional[int]:
        return self.parents.get(content_id)

    async def find_references(self, content_id: int, language_id: int) -> List[Tuple[str, int]]:
        return list(self.references.get(content_id, []))

    async def find_mount_points(self, page_ids: Iterable[int]) -> List[int]:
        return [mp for page_id in page_ids for mp in self.mount_points.get(page_id, [])]

    async def find_shortcuts(self, page_ids: Iterable[int]) -> List[int]:
        page_ids = list(page_ids)
        self.shortcut_queries.append(page_ids)
        return [sc for page_id in page_ids for sc in self.shortcuts.get(page_id, [])]

    async def find_content_on_page(self, page_id: int, language_id: int) -> List[int]:
        return list(self.content_on_page.get(page_id, []))


class FailingReferenceIndex(InMemoryReferenceIndex):
    """Reference index whose cross-reference lookup always fails."""

    async def find_references(self, content_id: int, language_id: int) -> List[Tuple[str, int]]:
        raise ConnectionError("reference index unavailable")


class RecordingInvalidator:
    """Cache invalidator that records flushed tag sets."""

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.flushed: List[Set[str]] = []
        self.fail_on = fail_on or set()

    async def flush_by_tags(self, tags: Set[str]) -> None:
        if self.fail_on & set(tags):
            raise RuntimeError(f"flush failed for {sorted(tags)}")
        self.flushed.append(set(tags))

    @property
    def all_tags(self) -> Set[str]:
        return set().union(*self.flushed) if self.flushed else set()


class StubRedisClient:
    """Minimal async Redis client used for unit tests."""

    def __init__(self):
        self.values: Dict[str, Any] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.is_connected = False

    async def connect(self) -> None:
        self.is_connected = True

    async def close(self) -> None:
        self.is_connected = False

    async def get(self, key: str) -> Optional[Any]:
        return self.values.get(key)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self.values[key] = value

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self.values.pop(key, None) is not None or self.sets.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def sadd(self, key: str, *values: str) -> None:
        self.sets.setdefault(key, set()).update(values)

    async def smembers(self, key: str) -> Set[str]:
        return set(self.sets.get(key, set()))
