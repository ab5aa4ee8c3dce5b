"""Page cache lifetime for the render pipeline."""

from typing import Optional

import structlog

from .framework.config import DEFAULT_MAX_LIFETIME, TemporalCacheConfig
from .invalidation.scoping import ScopingStrategy
from .invalidation.timing import TimingStrategy
from .schemas.models import RenderContext
from .utils.logging import add_scope


class CacheLifetimeListener:
    """
    Computes the lifetime of a page cache entry before it is stored.

    The timing strategy's lifetime is capped by the render context's
    ``cache_period`` when positive, otherwise by the configured maximum.
    Strategy failures are logged and yield None so rendering proceeds
    with the page cache's own default.
    """

    def __init__(
        self,
        config: TemporalCacheConfig,
        scoping_strategy: ScopingStrategy,
        timing_strategy: TimingStrategy,
    ):
        self.config = config
        self.scoping_strategy = scoping_strategy
        self.timing_strategy = timing_strategy
        self.logger = structlog.get_logger("cache-lifetime-listener")

    def max_lifetime(self, context: RenderContext) -> int:
        if context.cache_period is not None and int(context.cache_period) > 0:
            return int(context.cache_period)
        if self.config.default_max_lifetime > 0:
            return self.config.default_max_lifetime
        return DEFAULT_MAX_LIFETIME

    async def compute(self, context: RenderContext) -> Optional[int]:
        logger = add_scope(self.logger, context.workspace_id, context.language_id)
        try:
            lifetime = await self.timing_strategy.get_cache_lifetime(context)
            if lifetime is None:
                return None

            max_lifetime = self.max_lifetime(context)
            capped = min(lifetime, max_lifetime)

            if self.config.debug_logging:
                logger.debug(
                    "Temporal cache lifetime set",
                    lifetime=capped,
                    uncapped_lifetime=lifetime,
                    max_lifetime=max_lifetime,
                    cache_period=context.cache_period,
                    timing_strategy=self.timing_strategy.name,
                    scoping_strategy=self.scoping_strategy.name,
                )
            return capped
        except Exception as e:
            logger.error(
                "Temporal cache lifetime calculation failed",
                error=str(e),
                timing_strategy=self.timing_strategy.name,
                exc_info=True,
            )
            return None
