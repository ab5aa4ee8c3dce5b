"""Scoping and timing strategies for page cache invalidation."""

from .scoping import (
    ScopingStrategy,
    GlobalScopingStrategy,
    PerPageScopingStrategy,
    PerContentScopingStrategy,
    create_scoping_strategy,
)
from .timing import (
    Clock,
    TimingStrategy,
    DynamicTimingStrategy,
    SchedulerTimingStrategy,
    HybridTimingStrategy,
    TimingStrategyFactory,
    build_timing_strategy,
    system_clock,
)

__all__ = [
    "ScopingStrategy",
    "GlobalScopingStrategy",
    "PerPageScopingStrategy",
    "PerContentScopingStrategy",
    "create_scoping_strategy",
    "Clock",
    "TimingStrategy",
    "DynamicTimingStrategy",
    "SchedulerTimingStrategy",
    "HybridTimingStrategy",
    "TimingStrategyFactory",
    "build_timing_strategy",
    "system_clock",
]
