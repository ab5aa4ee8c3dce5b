"""
Timestamp harmonization.

Snaps start/end timestamps to a small set of configured daily slots so
that many records share the same transition instant, reducing the
number of distinct invalidations.
"""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Union

import structlog

from ..framework.config import HarmonizationConfig


SLOT_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_slot(value: str) -> Optional[int]:
    """Parse ``HH:MM`` into seconds since midnight; None when malformed."""
    match = SLOT_PATTERN.match(value.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return hours * 3600 + minutes * 60


def format_slot(slot_seconds: int) -> str:
    """Format seconds since midnight as ``HH:MM``."""
    return f"{slot_seconds // 3600:02d}:{(slot_seconds % 3600) // 60:02d}"


class HarmonizationEngine:
    """
    Maps timestamps onto configured time slots.

    Malformed slot entries are dropped silently; with no valid slots, or
    when harmonization is disabled, ``harmonize`` is the identity.
    Time of day is taken in ``tz``.
    """

    def __init__(self, config: HarmonizationConfig, tz: tzinfo = timezone.utc):
        self.config = config
        self.tz = tz
        self.logger = structlog.get_logger("harmonization-engine")
        self._slots = sorted(
            seconds for seconds in (parse_slot(raw) for raw in config.slots)
            if seconds is not None
        )

        dropped = len(config.slots) - len(self._slots)
        if dropped:
            self.logger.debug("Ignored malformed harmonization slots", dropped=dropped)

    @property
    def slots(self) -> List[int]:
        return list(self._slots)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def tolerance(self) -> int:
        return self.config.tolerance

    @property
    def auto_round(self) -> bool:
        return self.config.enabled and self.config.auto_round

    def _local(self, timestamp: int) -> datetime:
        return datetime.fromtimestamp(timestamp, tz=self.tz)

    def _time_of_day(self, timestamp: int) -> int:
        moment = self._local(timestamp)
        return moment.hour * 3600 + moment.minute * 60 + moment.second

    def _slot_instant(self, day: date, slot: int) -> int:
        local = datetime.combine(day, time(slot // 3600, slot % 3600 // 60), tzinfo=self.tz)
        return int(local.timestamp())

    def _exact_slot_instant(self, day: date, slot: int) -> Optional[int]:
        """Instant of ``slot`` on ``day``; None when that local time is skipped or repeated."""
        local = datetime.combine(day, time(slot // 3600, slot % 3600 // 60), tzinfo=self.tz)
        if local.replace(fold=1).utcoffset() != local.utcoffset():
            return None

        instant = int(local.timestamp())
        if self._time_of_day(instant) != slot:
            return None
        return instant

    def nearest_slot(self, time_of_day: int) -> Optional[int]:
        """
        Slot closest to ``time_of_day``.

        Linear scan in ascending order; on equal distance the earlier slot
        is kept.
        """
        if not self._slots:
            return None

        nearest = self._slots[0]
        min_distance = abs(time_of_day - nearest)
        for slot in self._slots:
            distance = abs(time_of_day - slot)
            if distance < min_distance:
                min_distance = distance
                nearest = slot

        return nearest

    def harmonize(self, timestamp: int) -> int:
        """Shift ``timestamp`` onto its nearest slot when within tolerance."""
        if not self.enabled or not self._slots:
            return timestamp

        time_of_day = self._time_of_day(timestamp)
        nearest = self.nearest_slot(time_of_day)

        if abs(time_of_day - nearest) > self.tolerance:
            return timestamp

        target = self._exact_slot_instant(self._local(timestamp).date(), nearest)
        return timestamp if target is None else target

    def next_slot(self, timestamp: int) -> Optional[int]:
        """First slot instant strictly after ``timestamp``'s time of day."""
        if not self._slots:
            return None

        moment = self._local(timestamp)
        time_of_day = self._time_of_day(timestamp)
        for slot in self._slots:
            if slot > time_of_day:
                return self._slot_instant(moment.date(), slot)

        return self._slot_instant(moment.date() + timedelta(days=1), self._slots[0])

    def previous_slot(self, timestamp: int) -> Optional[int]:
        """Last slot instant strictly before ``timestamp``'s time of day."""
        if not self._slots:
            return None

        moment = self._local(timestamp)
        time_of_day = self._time_of_day(timestamp)
        for slot in reversed(self._slots):
            if slot < time_of_day:
                return self._slot_instant(moment.date(), slot)

        return self._slot_instant(moment.date() - timedelta(days=1), self._slots[-1])

    def slots_in_range(self, start: int, end: int) -> List[int]:
        """Every slot instant within ``[start, end]``, ascending."""
        if not self._slots:
            return []

        instants = []
        day = self._local(start).date()
        last_day = self._local(end).date()
        while day <= last_day:
            for slot in self._slots:
                instant = self._slot_instant(day, slot)
                if start <= instant <= end:
                    instants.append(instant)
            day += timedelta(days=1)

        return instants

    def is_on_slot_boundary(self, timestamp: int) -> bool:
        if not self._slots:
            return False
        return self._time_of_day(timestamp) in self._slots

    def calculate_impact(self, timestamps: Iterable[int]) -> Dict[str, Union[int, float]]:
        """Distinct transition instants before and after harmonization."""
        originals = set(timestamps)
        if not originals:
            return {"original": 0, "harmonized": 0, "reduction": 0.0}

        harmonized = {self.harmonize(ts) for ts in originals}
        reduction = (len(originals) - len(harmonized)) / len(originals) * 100

        return {
            "original": len(originals),
            "harmonized": len(harmonized),
            "reduction": round(reduction, 1),
        }

    def format_slot(self, slot_seconds: int) -> str:
        return format_slot(slot_seconds)

    def formatted_slots(self) -> List[str]:
        return [format_slot(slot) for slot in self._slots]
