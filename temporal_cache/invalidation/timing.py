"""
Timing strategies: when cached pages are invalidated.

``dynamic`` limits the cache lifetime to the next transition (pull),
``scheduler`` flushes tags when a transition is processed (push) and
``hybrid`` picks one of the two per content type.
"""

import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from ..framework.config import TemporalCacheConfig
from ..framework.metrics import InvalidationMetrics
from ..schemas.models import RenderContext, TransitionEvent
from ..storage.content_store import CacheInvalidator, TransitionDetector
from ..utils.errors import ConfigurationError, TransitionProcessingError
from ..utils.logging import add_scope
from .scoping import ScopingStrategy


Clock = Callable[[], int]

MIN_LIFETIME = 60


def system_clock() -> int:
    return int(time.time())


class TimingStrategy(ABC):
    """Pull-side lifetime and push-side transition handling."""

    name: str = ""

    def handles_content_type(self, content_type: str) -> bool:
        return True

    @abstractmethod
    async def process_transition(self, event: TransitionEvent) -> None:
        ...

    @abstractmethod
    async def get_cache_lifetime(self, context: Optional[RenderContext] = None) -> Optional[int]:
        ...


class DynamicTimingStrategy(TimingStrategy):
    """
    Caches pages until the next transition.

    Transitions need no processing: caches simply expire.
    """

    name = "dynamic"

    def __init__(
        self,
        detector: TransitionDetector,
        config: TemporalCacheConfig,
        clock: Clock = system_clock,
        metrics: Optional[InvalidationMetrics] = None,
    ):
        self.detector = detector
        self.config = config
        self.clock = clock
        self.metrics = metrics

    async def process_transition(self, event: TransitionEvent) -> None:
        return None

    async def get_cache_lifetime(self, context: Optional[RenderContext] = None) -> Optional[int]:
        context = context or RenderContext()
        now = self.clock()
        max_lifetime = self.config.default_max_lifetime

        next_transition = await self.detector.next_transition(
            now,
            context.workspace_id,
            context.language_id,
            context.transition_cache,
        )

        if next_transition is None:
            lifetime = max_lifetime
        elif next_transition - now <= 0:
            lifetime = MIN_LIFETIME
        else:
            lifetime = min(next_transition - now, max_lifetime)

        if self.metrics:
            self.metrics.record_lifetime(self.name, lifetime)
        return lifetime


class SchedulerTimingStrategy(TimingStrategy):
    """
    Caches pages indefinitely and flushes them as transitions happen.

    Failures while resolving or flushing tags are logged and counted but
    never raised, so a batch run keeps going.
    """

    name = "scheduler"

    def __init__(
        self,
        scoping: ScopingStrategy,
        invalidator: CacheInvalidator,
        metrics: Optional[InvalidationMetrics] = None,
        debug_logging: bool = False,
    ):
        self.scoping = scoping
        self.invalidator = invalidator
        self.metrics = metrics
        self.debug_logging = debug_logging
        self.logger = structlog.get_logger("scheduler-timing")

    async def process_transition(self, event: TransitionEvent) -> None:
        context = RenderContext(workspace_id=event.workspace_id, language_id=event.language_id)
        logger = add_scope(self.logger, event.workspace_id, event.language_id)
        try:
            tags = await self.scoping.get_tags(event.content, context)
            await self.invalidator.flush_by_tags(tags)
        except Exception as e:
            error = TransitionProcessingError(
                f"Failed to process transition: {e}",
                content_id=event.content.id,
                collection=event.content.collection_name,
                transition_type=event.transition_type.value,
            )
            logger.error(
                "Failed to process temporal transition",
                transition=event.log_message(),
                **error.to_dict(),
            )
            if self.metrics:
                self.metrics.record_transition(self.name, success=False)
            return

        if self.metrics:
            self.metrics.record_transition(self.name, success=True)
            self.metrics.record_tags_flushed(self.scoping.name, len(tags))
        if self.debug_logging:
            logger.info(
                "Processed temporal transition",
                transition=event.log_message(),
                flushed_tags=sorted(tags),
                scoping=self.scoping.name,
            )

    async def get_cache_lifetime(self, context: Optional[RenderContext] = None) -> Optional[int]:
        return None


class HybridTimingStrategy(TimingStrategy):
    """
    Chooses ``dynamic`` or ``scheduler`` per content type.

    Lifetimes always follow the ``page`` rule, since the content types
    on a page are not known while it renders.
    """

    name = "hybrid"

    def __init__(
        self,
        dynamic: DynamicTimingStrategy,
        scheduler: SchedulerTimingStrategy,
        config: TemporalCacheConfig,
    ):
        self.dynamic = dynamic
        self.scheduler = scheduler
        self._rules = dict(config.timing.hybrid_rules)

    @property
    def rules(self) -> Dict[str, str]:
        return dict(self._rules)

    def strategy_name_for(self, content_type: str) -> str:
        return self._rules.get(content_type, DynamicTimingStrategy.name)

    def _strategy_for(self, content_type: str) -> TimingStrategy:
        if self.strategy_name_for(content_type) == SchedulerTimingStrategy.name:
            return self.scheduler
        return self.dynamic

    async def process_transition(self, event: TransitionEvent) -> None:
        await self._strategy_for(event.content.content_type).process_transition(event)

    async def get_cache_lifetime(self, context: Optional[RenderContext] = None) -> Optional[int]:
        return await self._strategy_for("page").get_cache_lifetime(context)


class TimingStrategyFactory(TimingStrategy):
    """
    Selects the configured timing strategy and delegates to it.

    Falls back to the first strategy when no name matches.
    """

    def __init__(self, strategies: Sequence[TimingStrategy], config: TemporalCacheConfig):
        self.strategies: List[TimingStrategy] = list(strategies)
        self.config = config
        self.logger = structlog.get_logger("timing-strategy-factory")
        self.active = self._select()

    def _select(self) -> TimingStrategy:
        configured = self.config.timing_strategy
        for strategy in self.strategies:
            if strategy.name == configured:
                return strategy

        if not self.strategies:
            raise ConfigurationError(
                "No timing strategies registered",
                config_key="timing.strategy",
                config_value=configured,
            )

        fallback = self.strategies[0]
        self.logger.warning(
            "Unknown timing strategy, using fallback",
            configured=configured,
            fallback=fallback.name,
        )
        return fallback

    @property
    def name(self) -> str:
        return self.active.name

    def handles_content_type(self, content_type: str) -> bool:
        return self.active.handles_content_type(content_type)

    async def process_transition(self, event: TransitionEvent) -> None:
        await self.active.process_transition(event)

    async def get_cache_lifetime(self, context: Optional[RenderContext] = None) -> Optional[int]:
        return await self.active.get_cache_lifetime(context)


def build_timing_strategy(
    config: TemporalCacheConfig,
    detector: TransitionDetector,
    scoping: ScopingStrategy,
    invalidator: CacheInvalidator,
    clock: Clock = system_clock,
    metrics: Optional[InvalidationMetrics] = None,
) -> TimingStrategyFactory:
    """Wire the three timing strategies and select the configured one."""
    dynamic = DynamicTimingStrategy(detector, config, clock, metrics)
    scheduler = SchedulerTimingStrategy(scoping, invalidator, metrics, config.debug_logging)
    hybrid = HybridTimingStrategy(dynamic, scheduler, config)
    return TimingStrategyFactory([dynamic, scheduler, hybrid], config)
