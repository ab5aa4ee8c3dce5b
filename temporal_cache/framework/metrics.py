"""Prometheus metrics for cache invalidation."""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest


class InvalidationMetrics:
    """Invalidation metrics for monitoring."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.transitions_processed_total = Counter(
            'temporal_transitions_processed_total',
            'Total transition events processed',
            ['strategy', 'result'],
            registry=self.registry
        )

        self.cache_tags_flushed_total = Counter(
            'temporal_cache_tags_flushed_total',
            'Total cache tags flushed',
            ['scoping'],
            registry=self.registry
        )

        self.cache_lifetime_seconds = Histogram(
            'temporal_cache_lifetime_seconds',
            'Computed page cache lifetime',
            ['strategy'],
            buckets=(60, 300, 900, 3600, 21600, 43200, 86400, float("inf")),
            registry=self.registry
        )

        self.next_transition_lookups_total = Counter(
            'temporal_next_transition_lookups_total',
            'Next transition lookups by memoization result',
            ['result'],
            registry=self.registry
        )

    def record_transition(self, strategy: str, success: bool) -> None:
        """Record a processed transition event."""
        self.transitions_processed_total.labels(
            strategy=strategy,
            result="success" if success else "error"
        ).inc()

    def record_tags_flushed(self, scoping: str, count: int) -> None:
        """Record flushed cache tags."""
        if count > 0:
            self.cache_tags_flushed_total.labels(scoping=scoping).inc(count)

    def record_lifetime(self, strategy: str, lifetime: int) -> None:
        """Record a computed cache lifetime."""
        self.cache_lifetime_seconds.labels(strategy=strategy).observe(lifetime)

    def record_lookup(self, cached: bool) -> None:
        """Record a next transition lookup."""
        self.next_transition_lookups_total.labels(result="hit" if cached else "miss").inc()

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus exposition format."""
        return generate_latest(self.registry)
