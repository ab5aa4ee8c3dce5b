"""Configuration and metrics."""

from .config import (
    TemporalCacheConfig,
    ScopingConfig,
    TimingConfig,
    HarmonizationConfig,
    AdvancedConfig,
    DatabaseConfig,
    ObservabilityConfig,
)
from .metrics import InvalidationMetrics

__all__ = [
    "TemporalCacheConfig",
    "ScopingConfig",
    "TimingConfig",
    "HarmonizationConfig",
    "AdvancedConfig",
    "DatabaseConfig",
    "ObservabilityConfig",
    "InvalidationMetrics",
]
