"""Push-path transition scheduling."""

from .scheduler import LastRunStore, MemoryLastRunStore, SchedulerRunResult, TransitionScheduler

__all__ = ["LastRunStore", "MemoryLastRunStore", "SchedulerRunResult", "TransitionScheduler"]
