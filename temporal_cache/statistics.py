"""Dashboard statistics over temporal content."""

from datetime import datetime, time, timezone, tzinfo
from typing import Any, Dict, List, Optional

from .framework.config import TemporalCacheConfig
from .harmonization.engine import HarmonizationEngine
from .storage.content_store import ContentStore, TransitionDetector


DAY = 86400
STATISTICS_WINDOW_DAYS = 30


class TemporalCacheStatistics:
    """Aggregate figures for reports and dashboards."""

    def __init__(
        self,
        store: ContentStore,
        detector: TransitionDetector,
        engine: HarmonizationEngine,
        config: TemporalCacheConfig,
        tz: tzinfo = timezone.utc,
    ):
        self.store = store
        self.detector = detector
        self.engine = engine
        self.config = config
        self.tz = tz

    def _day_key(self, timestamp: int) -> str:
        return datetime.fromtimestamp(timestamp, tz=self.tz).strftime("%Y-%m-%d")

    def _midnight(self, timestamp: int) -> int:
        day = datetime.fromtimestamp(timestamp, tz=self.tz).date()
        return int(datetime.combine(day, time(0, 0), tzinfo=self.tz).timestamp())

    async def calculate(self, now: int, workspace_id: int = 0, language_id: int = -1) -> Dict[str, int]:
        contents = await self.store.find_all(workspace_id, language_id)
        window_end = now + DAY * STATISTICS_WINDOW_DAYS
        transitions = await self.store.find_transitions_in_range(now, window_end, workspace_id, language_id)

        harmonizable = 0
        if self.engine.enabled:
            harmonizable = sum(
                1 for content in contents
                if content.start_time is not None
                and self.engine.harmonize(content.start_time) != content.start_time
            )

        per_day = await self.detector.count_transitions_per_day(
            self._midnight(now),
            self._midnight(window_end),
            workspace_id,
        )

        return {
            "total": len(contents),
            "pages": sum(1 for content in contents if content.is_page),
            "content": sum(1 for content in contents if content.is_content_element),
            "active": sum(1 for content in contents if content.is_visible(now)),
            "future": sum(
                1 for content in contents
                if content.start_time is not None and content.start_time > now
            ),
            "transitions_next_30_days": len(transitions),
            "transition_days": len(per_day),
            "harmonizable_candidates": harmonizable,
        }

    async def timeline(
        self,
        now: int,
        days_ahead: int = 7,
        workspace_id: int = 0,
        language_id: int = 0,
    ) -> List[Dict[str, Any]]:
        """Upcoming transitions grouped by day, in date order."""
        transitions = await self.store.find_transitions_in_range(
            now, now + DAY * days_ahead, workspace_id, language_id
        )

        days: Dict[str, Dict[str, Any]] = {}
        for event in transitions:
            key = self._day_key(event.timestamp)
            if key not in days:
                days[key] = {
                    "date": key,
                    "timestamp": self._midnight(event.timestamp),
                    "transitions": [],
                }
            days[key]["transitions"].append(event)

        return [days[key] for key in sorted(days)]

    def configuration_summary(self) -> Dict[str, Any]:
        return {
            "scoping_strategy": self.config.scoping_strategy,
            "timing_strategy": self.config.timing_strategy,
            "harmonization_enabled": self.config.harmonization.enabled,
            "harmonization_slots": self.engine.formatted_slots(),
            "harmonization_auto_round": self.config.harmonization.auto_round,
            "use_reference_index": self.config.scoping.use_reference_index,
            "debug_logging": self.config.debug_logging,
        }

    async def average_transitions_per_day(self, start: int, end: int, workspace_id: int = 0) -> float:
        per_day = await self.detector.count_transitions_per_day(start, end, workspace_id)
        if not per_day:
            return 0.0
        return sum(per_day.values()) / len(per_day)

    async def peak_transition_day(self, start: int, end: int, workspace_id: int = 0) -> Optional[Dict[str, Any]]:
        """Busiest day in the range; the earliest wins on equal counts."""
        per_day = await self.detector.count_transitions_per_day(start, end, workspace_id)
        if not per_day:
            return None
        date = max(sorted(per_day), key=lambda day: per_day[day])
        return {"date": date, "count": per_day[date]}
