"""
Temporal cache service wiring.

Builds the PostgreSQL and Redis clients and every invalidation component
from one ``TemporalCacheConfig``, and owns their startup and shutdown.
"""

from typing import Optional

import structlog

from .framework.config import TemporalCacheConfig
from .framework.metrics import InvalidationMetrics
from .harmonization.engine import HarmonizationEngine
from .harmonization.service import HarmonizationService
from .invalidation.scoping import create_scoping_strategy
from .invalidation.timing import build_timing_strategy
from .lifetime import CacheLifetimeListener
from .references.resolver import ReferenceResolver
from .refresh.scheduler import TransitionScheduler
from .registry import MonitorRegistry
from .statistics import TemporalCacheStatistics
from .storage.content_store import TransitionDetector
from .storage.postgres import PostgresClient
from .storage.postgres_store import PostgresContentStore, PostgresReferenceIndex
from .storage.redis import RedisClient, RedisLastRunStore, RedisTagInvalidator
from .utils.logging import setup_logging


PUSH_TIMING_STRATEGIES = ("scheduler", "hybrid")


class TemporalCacheService:
    """
    Temporal cache invalidation for one site.

    Components are built on construction; no connection is opened until
    ``startup``. The transition scheduler only runs for timing strategies
    that push invalidations.
    """

    def __init__(
        self,
        config: Optional[TemporalCacheConfig] = None,
        metrics: Optional[InvalidationMetrics] = None,
    ):
        self.config = config or TemporalCacheConfig.from_env()
        self.logger = structlog.get_logger("temporal-cache-service")
        self.metrics = metrics or InvalidationMetrics()
        tz = self.config.advanced.tzinfo()

        # Storage
        self.postgres = PostgresClient(self.config.database.postgres_dsn)
        self.redis = RedisClient(self.config.database.redis_url)
        self.registry = MonitorRegistry()
        self.store = PostgresContentStore(self.postgres, self.registry)
        self.reference_index = PostgresReferenceIndex(self.postgres)
        self.invalidator = RedisTagInvalidator(self.redis)

        # Invalidation
        self.detector = TransitionDetector(self.store, self.registry, self.metrics, tz)
        self.resolver = ReferenceResolver(self.reference_index)
        self.scoping = create_scoping_strategy(self.config, self.resolver)
        self.timing = build_timing_strategy(
            self.config, self.detector, self.scoping, self.invalidator, metrics=self.metrics
        )
        self.lifetime_listener = CacheLifetimeListener(self.config, self.scoping, self.timing)
        self.scheduler = TransitionScheduler(
            self.store, self.timing, RedisLastRunStore(self.redis), self.config
        )

        # Harmonization and reporting
        self.engine = HarmonizationEngine(self.config.harmonization, tz)
        self.harmonization = HarmonizationService(self.engine, self.store, self.invalidator)
        self.statistics = TemporalCacheStatistics(
            self.store, self.detector, self.engine, self.config, tz
        )

    @property
    def runs_scheduler(self) -> bool:
        return self.config.timing_strategy in PUSH_TIMING_STRATEGIES

    async def startup(self) -> None:
        """Configure logging, connect the clients and start the scheduler."""
        setup_logging(
            self.config.service_name,
            self.config.observability.log_level,
            self.config.observability.log_format,
            self.config.environment,
        )
        self.logger.info("Starting temporal cache", **self.statistics.configuration_summary())

        await self.postgres.connect()
        await self.redis.connect()

        if self.runs_scheduler:
            await self.scheduler.start()

        self.logger.info("Temporal cache started", scheduler_running=self.scheduler.is_running)

    async def shutdown(self) -> None:
        self.logger.info("Shutting down temporal cache")

        await self.scheduler.stop()
        await self.redis.disconnect()
        await self.postgres.disconnect()

        self.logger.info("Temporal cache shutdown complete")
