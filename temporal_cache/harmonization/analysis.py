"""Harmonization analysis for dashboards and reports."""

from typing import Any, Dict, List, Sequence

from ..schemas.models import TemporalContent
from ..storage.content_store import TEMPORAL_FIELDS
from .engine import HarmonizationEngine


HIGH_PRIORITY_SHIFT = 3600
MEDIUM_PRIORITY_SHIFT = 900


def _crosses(original: int, harmonized: int, now: int) -> bool:
    return (original <= now) != (harmonized <= now)


class HarmonizationAnalysis:
    """Read-only view of what harmonization would change."""

    def __init__(self, engine: HarmonizationEngine):
        self.engine = engine

    def _shifts(self, content: TemporalContent) -> Dict[str, Dict[str, int]]:
        shifts = {}
        for field in TEMPORAL_FIELDS:
            current = getattr(content, field)
            if current is None:
                continue
            harmonized = self.engine.harmonize(current)
            if harmonized != current:
                shifts[field] = {
                    "current": current,
                    "suggested": harmonized,
                    "diff": harmonized - current,
                }
        return shifts

    def is_harmonizable(self, content: TemporalContent) -> bool:
        if not self.engine.enabled:
            return False
        return bool(self._shifts(content))

    def suggestion(self, content: TemporalContent) -> Dict[str, Any]:
        suggestions = self._shifts(content)
        return {
            "content": content,
            "suggestions": suggestions,
            "has_changes": bool(suggestions),
        }

    def analyze_candidates(self, contents: Sequence[TemporalContent]) -> Dict[str, Any]:
        """Aggregate shift figures over ``contents``."""
        analysis = {
            "harmonizable_count": 0,
            "total_count": len(contents),
            "average_shift_seconds": 0.0,
            "start_time_changes": 0,
            "end_time_changes": 0,
            "harmonizable_items": {},
        }
        if not self.engine.enabled:
            return analysis

        total_shift = 0
        shift_count = 0
        for content in contents:
            shifts = self._shifts(content)
            if not shifts:
                continue

            analysis["harmonizable_items"][content.id] = content
            for field, shift in shifts.items():
                analysis[f"{field}_changes"] += 1
                total_shift += abs(shift["diff"])
                shift_count += 1

        analysis["harmonizable_count"] = len(analysis["harmonizable_items"])
        if shift_count:
            analysis["average_shift_seconds"] = total_shift / shift_count
        return analysis

    def filter_harmonizable(self, contents: Sequence[TemporalContent]) -> List[TemporalContent]:
        if not self.engine.enabled:
            return []
        return [content for content in contents if self.is_harmonizable(content)]

    def impact(self, content: TemporalContent, now: int) -> Dict[str, Any]:
        """
        Impact of harmonizing one record.

        ``affects_visibility`` is set when a shifted boundary moves across
        ``now``. Priority is high for visibility flips or shifts over an
        hour, medium over fifteen minutes, otherwise low.
        """
        max_shift = 0
        affects_visibility = False

        for field in TEMPORAL_FIELDS:
            current = getattr(content, field)
            if current is None:
                continue
            harmonized = self.engine.harmonize(current)
            max_shift = max(max_shift, abs(harmonized - current))
            if _crosses(current, harmonized, now):
                affects_visibility = True

        if affects_visibility or max_shift > HIGH_PRIORITY_SHIFT:
            priority = "high"
        elif max_shift > MEDIUM_PRIORITY_SHIFT:
            priority = "medium"
        else:
            priority = "low"

        return {
            "max_shift_seconds": max_shift,
            "affects_visibility": affects_visibility,
            "priority": priority,
        }
