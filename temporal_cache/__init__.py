"""
Temporal cache invalidation.

Keeps cached pages consistent with content that appears and disappears
on a schedule: timing strategies decide when caches expire or are
flushed, scoping strategies decide which pages, and harmonization
reduces how many distinct transition instants exist.
"""

from .cache import TransitionCache
from .framework.config import TemporalCacheConfig
from .framework.metrics import InvalidationMetrics
from .harmonization import HarmonizationAnalysis, HarmonizationEngine, HarmonizationService
from .invalidation import build_timing_strategy, create_scoping_strategy
from .lifetime import CacheLifetimeListener
from .references import ReferenceResolver
from .refresh import MemoryLastRunStore, TransitionScheduler
from .registry import MonitorRegistry
from .schemas.models import RenderContext, TemporalContent, TransitionEvent, TransitionType
from .service import TemporalCacheService
from .statistics import TemporalCacheStatistics
from .storage.content_store import TransitionDetector

__version__ = "1.0.0"

__all__ = [
    "TransitionCache",
    "TemporalCacheConfig",
    "InvalidationMetrics",
    "HarmonizationAnalysis",
    "HarmonizationEngine",
    "HarmonizationService",
    "build_timing_strategy",
    "create_scoping_strategy",
    "CacheLifetimeListener",
    "ReferenceResolver",
    "MemoryLastRunStore",
    "TransitionScheduler",
    "MonitorRegistry",
    "RenderContext",
    "TemporalContent",
    "TransitionEvent",
    "TransitionType",
    "TemporalCacheService",
    "TemporalCacheStatistics",
    "TransitionDetector",
]
