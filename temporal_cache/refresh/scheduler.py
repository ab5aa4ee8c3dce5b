"""Periodic processing of transitions for push-based invalidation."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import structlog

from ..framework.config import TemporalCacheConfig
from ..invalidation.timing import Clock, TimingStrategy, system_clock
from ..storage.content_store import ContentStore


class LastRunStore(Protocol):
    """Persists when the scheduler last completed a run."""

    async def get_last_run(self) -> Optional[int]:
        ...

    async def set_last_run(self, timestamp: int) -> None:
        ...


class MemoryLastRunStore:
    """Process-local last run timestamp."""

    def __init__(self, timestamp: Optional[int] = None):
        self.timestamp = timestamp

    async def get_last_run(self) -> Optional[int]:
        return self.timestamp

    async def set_last_run(self, timestamp: int) -> None:
        self.timestamp = timestamp


@dataclass
class SchedulerRunResult:
    """Outcome of one scheduler run."""
    found: int = 0
    processed: int = 0
    errors: int = 0
    success: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.found,
            "processed": self.processed,
            "errors": self.errors,
            "success": self.success,
        }


def _format_time(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class TransitionScheduler:
    """
    Feeds transitions since the last run to the timing strategy.

    Events are processed one at a time; a failing event is counted and
    logged and the rest of the batch still runs.
    """

    def __init__(
        self,
        store: ContentStore,
        timing_strategy: TimingStrategy,
        last_run_store: LastRunStore,
        config: TemporalCacheConfig,
        clock: Clock = system_clock,
    ):
        self.store = store
        self.timing_strategy = timing_strategy
        self.last_run_store = last_run_store
        self.config = config
        self.clock = clock
        self.logger = structlog.get_logger("transition-scheduler")
        self.is_running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def interval(self) -> int:
        return self.config.timing.scheduler_interval

    async def run_once(self) -> SchedulerRunResult:
        """Process every transition in ``[last_run, now]``."""
        result = SchedulerRunResult()
        try:
            last_run = await self.last_run_store.get_last_run() or 0
            now = self.clock()

            self.logger.debug(
                "Scheduler run started",
                last_run=_format_time(last_run) if last_run else "never",
                current_time=_format_time(now),
                timing_strategy=self.timing_strategy.name,
            )

            transitions = await self.store.find_transitions_in_range(last_run, now)
            result.found = len(transitions)

            for event in transitions:
                try:
                    await self.timing_strategy.process_transition(event)
                    result.processed += 1
                except Exception as e:
                    result.errors += 1
                    self.logger.error(
                        "Failed to process transition",
                        content_id=event.content.id,
                        collection=event.content.collection_name,
                        error=str(e),
                    )

            await self.last_run_store.set_last_run(now)
            result.success = result.errors == 0 or result.processed > 0

            self.logger.info("Scheduler run completed", **result.to_dict())
        except Exception as e:
            self.logger.error("Scheduler run failed", error=str(e), exc_info=True)
            result.success = False

        return result

    async def start(self) -> None:
        """Run ``run_once`` every ``scheduler_interval`` seconds."""
        if self.is_running:
            self.logger.warning("Transition scheduler already running")
            return

        self.is_running = True

        async def run_periodic():
            while self.is_running:
                await self.run_once()
                await asyncio.sleep(self.interval)

        self._task = asyncio.create_task(run_periodic())
        self.logger.info("Transition scheduler started", interval=self.interval)

    async def stop(self) -> None:
        self.is_running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self.logger.info("Transition scheduler stopped")

    async def describe(self) -> str:
        """One-line status for admin listings."""
        last_run = await self.last_run_store.get_last_run()
        info = [f"Timing Strategy: {self.timing_strategy.name}"]
        info.append(f"Last Run: {_format_time(last_run)}" if last_run else "Last Run: Never")
        return " | ".join(info)
