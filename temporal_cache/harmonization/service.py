"""Applies harmonized timestamps to stored content."""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import structlog

from ..schemas.models import TemporalContent
from ..storage.content_store import TEMPORAL_FIELDS, CacheInvalidator, ContentStore
from .engine import HarmonizationEngine


GLOBAL_PAGE_TAG = "pages"


class HarmonizationService:
    """
    Harmonizes records and writes the results through the content store.

    Records are updated one at a time; a failure on one record does not
    roll back or stop the others.
    """

    def __init__(
        self,
        engine: HarmonizationEngine,
        store: ContentStore,
        invalidator: Optional[CacheInvalidator] = None,
    ):
        self.engine = engine
        self.store = store
        self.invalidator = invalidator
        self.logger = structlog.get_logger("harmonization-service")

    def plan_changes(self, content: TemporalContent) -> Dict[str, Dict[str, int]]:
        """Fields whose harmonized value differs from the stored one."""
        changes = {}
        for field in TEMPORAL_FIELDS:
            current = getattr(content, field)
            if current is None:
                continue
            harmonized = self.engine.harmonize(current)
            if harmonized != current:
                changes[field] = {"old": current, "new": harmonized}
        return changes

    def round_on_save(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Field values of a record about to be saved, with its start and
        end timestamps harmonized when auto-round is enabled.

        Unset timestamps (None or 0) and other fields pass through.
        """
        rounded = dict(values)
        if not self.engine.auto_round:
            return rounded

        for field in TEMPORAL_FIELDS:
            value = rounded.get(field)
            if value:
                rounded[field] = self.engine.harmonize(int(value))
        return rounded

    async def harmonize_content(self, content: TemporalContent, dry_run: bool = False) -> Dict[str, Any]:
        """
        Harmonize one record.

        Returns ``{"success": bool, "content_id": int, "changes": {...}}``
        with an ``error`` entry on failure. Never raises.
        """
        result: Dict[str, Any] = {"success": True, "content_id": content.id, "changes": {}}
        if not self.engine.enabled:
            return result

        try:
            changes = self.plan_changes(content)
            result["changes"] = changes

            if changes and not dry_run:
                await self.store.update_temporal_fields(
                    content,
                    {field: change["new"] for field, change in changes.items()},
                )
        except Exception as e:
            self.logger.error(
                "Harmonization failed",
                collection=content.collection_name,
                content_id=content.id,
                error=str(e),
            )
            result["success"] = False
            result["error"] = str(e)

        return result

    async def harmonize_many(self, contents: Sequence[TemporalContent], dry_run: bool = False) -> Dict[str, Any]:
        """
        Harmonize a batch of records.

        When anything was written the global page tag is flushed, since
        shifted transitions change what every cached page may show.
        """
        results: List[Dict[str, Any]] = []
        for content in contents:
            results.append(await self.harmonize_content(content, dry_run))

        changed = [r for r in results if r["success"] and r["changes"]]
        failed = [r for r in results if not r["success"]]

        timestamps = [
            value
            for content in contents
            for value in (content.start_time, content.end_time)
            if value is not None
        ]

        summary = {
            "dry_run": dry_run,
            "total": len(results),
            "updated": 0 if dry_run else len(changed),
            "would_update": len(changed),
            "failed": len(failed),
            "results": results,
            "impact": self.engine.calculate_impact(timestamps),
        }

        if changed and not dry_run and self.invalidator is not None:
            try:
                await self.invalidator.flush_by_tags({GLOBAL_PAGE_TAG})
            except Exception as e:
                self.logger.error("Cache flush after harmonization failed", error=str(e))
                summary["flush_failed"] = True
                summary["flush_error"] = str(e)

        self.logger.info(
            "Harmonization batch completed",
            dry_run=dry_run,
            total=summary["total"],
            updated=summary["updated"],
            failed=summary["failed"],
        )
        return summary
