"""
PostgreSQL-backed content store and reference index.

Each registered collection maps to a table of the same name with
``start_time``/``end_time`` epoch-second columns (0 or NULL = unset),
``workspace_id`` and, where listed in the registry, ``language_id``.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from ..registry import MonitorRegistry
from ..schemas.models import PAGES, CONTENT_ELEMENTS, TemporalContent, TransitionEvent
from ..utils.errors import StorageError, ValidationError
from .content_store import TEMPORAL_FIELDS, transitions_from_contents
from .postgres import PostgresClient, quote_identifier


REFERENCE_TABLE = "reference_index"
MOUNT_POINT_PAGE_TYPE = 7
SHORTCUT_PAGE_TYPES = (3, 4)


def _title_field(collection: str, fields: Sequence[str]) -> str:
    if collection == CONTENT_ELEMENTS and "header" in fields:
        return "header"
    for candidate in ("title", "name"):
        if candidate in fields:
            return candidate
    return "id"


def _timestamp(value: Any) -> Optional[int]:
    if value is None:
        return None
    value = int(value)
    return value if value > 0 else None


class _Where:
    """Accumulates WHERE conditions with numbered asyncpg placeholders."""

    def __init__(self):
        self.conditions: List[str] = []
        self.args: List[Any] = []

    def add(self, condition: str, *values: Any) -> None:
        placeholders = [f"${len(self.args) + i + 1}" for i in range(len(values))]
        self.conditions.append(condition.format(*placeholders))
        self.args.extend(values)

    def workspace(self, workspace_id: int) -> None:
        if workspace_id == 0:
            self.add("(workspace_id = 0 OR workspace_id IS NULL)")
        else:
            self.add("workspace_id = {}", workspace_id)

    def sql(self) -> str:
        return " AND ".join(self.conditions) if self.conditions else "TRUE"


class PostgresContentStore:
    """Content store over the registered collection tables."""

    def __init__(self, client: PostgresClient, registry: MonitorRegistry):
        self.client = client
        self.registry = registry
        self.logger = structlog.get_logger("postgres-content-store")

    async def find_all(self, workspace_id: int = 0, language_id: int = -1) -> List[TemporalContent]:
        contents: List[TemporalContent] = []
        for collection, fields in self.registry.all_collections().items():
            contents.extend(
                await self._find_temporal_records(collection, fields, workspace_id, language_id)
            )
        return contents

    async def _find_temporal_records(
        self,
        collection: str,
        fields: Sequence[str],
        workspace_id: int,
        language_id: int,
    ) -> List[TemporalContent]:
        where = _Where()
        where.add("(start_time > 0 OR end_time > 0)")
        if "deleted" in fields:
            where.add("deleted = {}", False)
        where.workspace(workspace_id)
        if language_id >= 0 and "language_id" in fields:
            where.add("language_id = {}", language_id)

        columns = ", ".join(quote_identifier(field) for field in fields)
        query = f"SELECT {columns} FROM {quote_identifier(collection)} WHERE {where.sql()}"
        rows = await self.client.execute(query, *where.args)

        return [self._to_content(collection, fields, row, workspace_id) for row in rows]

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
        if field not in TEMPORAL_FIELDS or not self.registry.is_registered(collection):
            return None

        fields = self.registry.get_fields(collection)
        where = _Where()
        where.add(f"{quote_identifier(field)} > {{}}", reference_time)
        if "deleted" in fields:
            where.add("deleted = {}", False)
        where.workspace(workspace_id)
        if language_id >= 0 and "language_id" in fields:
            where.add("language_id = {}", language_id)

        query = (
            f"SELECT MIN({quote_identifier(field)}) AS min_transition "
            f"FROM {quote_identifier(collection)} WHERE {where.sql()}"
        )
        result = await self.client.execute_scalar(query, *where.args)
        return int(result) if result is not None else None

    async def find_by_id(self, record_id: int, collection: str, workspace_id: int = 0) -> Optional[TemporalContent]:
        fields = self.registry.get_fields(collection)
        if fields is None:
            return None

        where = _Where()
        where.add("id = {}", record_id)
        if "deleted" in fields:
            where.add("deleted = {}", False)
        where.workspace(workspace_id)

        columns = ", ".join(quote_identifier(field) for field in fields)
        row = await self.client.execute_one(
            f"SELECT {columns} FROM {quote_identifier(collection)} WHERE {where.sql()}",
            *where.args,
        )
        if row is None:
            return None
        return self._to_content(collection, fields, row, workspace_id)

    async def find_by_page_id(self, page_id: int, workspace_id: int = 0, language_id: int = 0) -> List[TemporalContent]:
        fields = self.registry.get_fields(CONTENT_ELEMENTS)

        where = _Where()
        where.add("parent_id = {}", page_id)
        where.add("(start_time > 0 OR end_time > 0)")
        where.add("deleted = {}", False)
        where.add("language_id = {}", language_id)
        where.workspace(workspace_id)

        columns = ", ".join(quote_identifier(field) for field in fields)
        rows = await self.client.execute(
            f"SELECT {columns} FROM {quote_identifier(CONTENT_ELEMENTS)} WHERE {where.sql()}",
            *where.args,
        )
        return [self._to_content(CONTENT_ELEMENTS, fields, row, workspace_id) for row in rows]

    async def update_temporal_fields(self, content: TemporalContent, values: Mapping[str, int]) -> None:
        unknown = set(values) - set(TEMPORAL_FIELDS)
        if unknown:
            raise ValidationError(
                "Only start_time and end_time can be updated",
                field="values",
                value=sorted(unknown),
            )
        if not values:
            return

        try:
            await self.client.update(
                content.collection_name,
                dict(values),
                f"id = ${len(values) + 1}",
                content.id,
            )
        except Exception as e:
            raise StorageError(
                f"Failed to update temporal fields: {e}",
                operation="update_temporal_fields",
                table=content.collection_name,
            ) from e
        self.logger.info(
            "Temporal fields updated",
            collection=content.collection_name,
            content_id=content.id,
            values=dict(values),
        )

    @staticmethod
    def _to_content(
        collection: str,
        fields: Sequence[str],
        row: Mapping[str, Any],
        workspace_id: int,
    ) -> TemporalContent:
        title = row.get(_title_field(collection, fields))
        return TemporalContent(
            id=int(row["id"]),
            collection_name=collection,
            title=str(title) if title is not None else "",
            parent_id=int(row.get("parent_id") or 0),
            start_time=_timestamp(row.get("start_time")),
            end_time=_timestamp(row.get("end_time")),
            language_id=int(row.get("language_id") or 0),
            workspace_id=workspace_id,
            hidden=bool(row.get("hidden") or False),
            deleted=bool(row.get("deleted") or False),
        )


class PostgresReferenceIndex:
    """Reference index over ``reference_index`` and the page tree."""

    def __init__(self, client: PostgresClient):
        self.client = client
        self.logger = structlog.get_logger("postgres-reference-index")

    async def find_parent_page(self, content_id: int) -> Optional[int]:
        row = await self.client.execute_one(
            f"SELECT parent_id FROM {quote_identifier(CONTENT_ELEMENTS)} "
            "WHERE id = $1 AND deleted = FALSE",
            content_id,
        )
        if row is None:
            return None
        return int(row["parent_id"])

    async def find_references(self, content_id: int, language_id: int) -> List[Tuple[str, int]]:
        rows = await self.client.execute(
            f"SELECT table_name, record_id FROM {quote_identifier(REFERENCE_TABLE)} "
            "WHERE ref_table = $1 AND ref_id = $2 AND language_id = $3",
            CONTENT_ELEMENTS,
            content_id,
            language_id,
        )
        return [(row["table_name"], int(row["record_id"])) for row in rows]

    async def find_mount_points(self, page_ids: Iterable[int]) -> List[int]:
        ids = list(page_ids)
        if not ids:
            return []
        rows = await self.client.execute(
            f"SELECT id FROM {quote_identifier(PAGES)} "
            "WHERE page_type = $1 AND mount_page_id = ANY($2::int[]) "
            "AND hidden = FALSE AND deleted = FALSE",
            MOUNT_POINT_PAGE_TYPE,
            ids,
        )
        return [int(row["id"]) for row in rows]

    async def find_shortcuts(self, page_ids: Iterable[int]) -> List[int]:
        ids = list(page_ids)
        if not ids:
            return []
        rows = await self.client.execute(
            f"SELECT id FROM {quote_identifier(PAGES)} "
            "WHERE page_type = ANY($1::int[]) AND shortcut_page_id = ANY($2::int[]) "
            "AND hidden = FALSE AND deleted = FALSE",
            list(SHORTCUT_PAGE_TYPES),
            ids,
        )
        return [int(row["id"]) for row in rows]

    async def find_content_on_page(self, page_id: int, language_id: int) -> List[int]:
        rows = await self.client.execute(
            f"SELECT id FROM {quote_identifier(CONTENT_ELEMENTS)} "
            "WHERE parent_id = $1 AND language_id = $2 AND deleted = FALSE",
            page_id,
            language_id,
        )
        return [int(row["id"]) for row in rows]
