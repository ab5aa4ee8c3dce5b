"""
Configuration management for temporal cache invalidation.

Provides typed configuration classes with environment variable
injection. Harmonization values degrade to defaults instead of
failing when malformed.
"""

import os
from dataclasses import dataclass, field
from typing import List, Dict, Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..utils.errors import ConfigurationError


DEFAULT_SLOTS = "00:00,06:00,12:00,18:00"
DEFAULT_TOLERANCE = 3600
DEFAULT_MAX_LIFETIME = 86400
MIN_SCHEDULER_INTERVAL = 60
DEFAULT_POSTGRES_DSN = "postgresql://localhost:5432/content"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


def _split_slots(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",")]


@dataclass
class ScopingConfig:
    """Scoping strategy configuration."""
    strategy: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_SCOPING_STRATEGY", "global"))
    use_reference_index: bool = field(default_factory=lambda: _env_bool("TEMPORAL_CACHE_USE_REFERENCE_INDEX", "true"))


@dataclass
class TimingConfig:
    """Timing strategy configuration."""
    strategy: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_TIMING_STRATEGY", "dynamic"))
    scheduler_interval: int = field(default_factory=lambda: _env_int("TEMPORAL_CACHE_SCHEDULER_INTERVAL", MIN_SCHEDULER_INTERVAL))
    hybrid_rules: Dict[str, str] = field(default_factory=lambda: {
        "page": os.getenv("TEMPORAL_CACHE_HYBRID_PAGES", "dynamic"),
        "content": os.getenv("TEMPORAL_CACHE_HYBRID_CONTENT", "scheduler"),
    })

    def __post_init__(self):
        self.scheduler_interval = max(MIN_SCHEDULER_INTERVAL, self.scheduler_interval)


@dataclass
class HarmonizationConfig:
    """Timestamp harmonization configuration."""
    enabled: bool = field(default_factory=lambda: _env_bool("TEMPORAL_CACHE_HARMONIZATION_ENABLED", "false"))
    slots: List[str] = field(default_factory=lambda: _split_slots(os.getenv("TEMPORAL_CACHE_HARMONIZATION_SLOTS", DEFAULT_SLOTS)))
    tolerance: int = field(default_factory=lambda: _env_int("TEMPORAL_CACHE_HARMONIZATION_TOLERANCE", DEFAULT_TOLERANCE))
    auto_round: bool = field(default_factory=lambda: _env_bool("TEMPORAL_CACHE_HARMONIZATION_AUTO_ROUND", "false"))


@dataclass
class AdvancedConfig:
    """Advanced settings."""
    default_max_lifetime: int = field(default_factory=lambda: _env_int("TEMPORAL_CACHE_DEFAULT_MAX_LIFETIME", DEFAULT_MAX_LIFETIME))
    debug_logging: bool = field(default_factory=lambda: _env_bool("TEMPORAL_CACHE_DEBUG_LOGGING", "false"))
    timezone: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_TIMEZONE", "UTC"))

    def tzinfo(self) -> ZoneInfo:
        """Timezone used for time-of-day and per-day calculations."""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigurationError(
                f"Unknown timezone: {self.timezone}",
                config_key="advanced.timezone",
                config_value=self.timezone,
            ) from None


@dataclass
class DatabaseConfig:
    """Database configuration."""
    postgres_dsn: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_POSTGRES_DSN", DEFAULT_POSTGRES_DSN))
    redis_url: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_REDIS_URL", DEFAULT_REDIS_URL))


@dataclass
class ObservabilityConfig:
    """Observability configuration."""
    log_level: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_LOG_LEVEL", "info"))
    log_format: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_LOG_FORMAT", "json"))


@dataclass
class TemporalCacheConfig:
    """Top-level temporal cache configuration."""
    service_name: str = "temporal-cache"
    environment: str = field(default_factory=lambda: os.getenv("TEMPORAL_CACHE_ENV", "local"))

    scoping: ScopingConfig = field(default_factory=ScopingConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    harmonization: HarmonizationConfig = field(default_factory=HarmonizationConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.service_name:
            raise ConfigurationError("service_name is required", config_key="service_name")

        if self.environment not in ["local", "dev", "test", "staging", "prod"]:
            raise ConfigurationError(
                f"Invalid environment: {self.environment}",
                config_key="environment",
                config_value=self.environment,
            )

    @classmethod
    def from_env(cls, service_name: str = "temporal-cache") -> "TemporalCacheConfig":
        """Create configuration from environment variables."""
        return cls(service_name=service_name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], service_name: str = "temporal-cache") -> "TemporalCacheConfig":
        """
        Create configuration from a nested mapping.

        Missing sections and keys use the built-in defaults rather than
        the environment, so the result is independent of the process env.
        """
        scoping = data.get("scoping") or {}
        timing = data.get("timing") or {}
        hybrid = timing.get("hybrid") or {}
        harmonization = data.get("harmonization") or {}
        advanced = data.get("advanced") or {}
        database = data.get("database") or {}
        observability = data.get("observability") or {}

        slots = harmonization.get("slots", DEFAULT_SLOTS)
        if isinstance(slots, str):
            slots = _split_slots(slots)

        return cls(
            service_name=service_name,
            environment=data.get("environment", "local"),
            scoping=ScopingConfig(
                strategy=str(scoping.get("strategy", "global")),
                use_reference_index=_as_bool(scoping.get("use_reference_index", True)),
            ),
            timing=TimingConfig(
                strategy=str(timing.get("strategy", "dynamic")),
                scheduler_interval=_as_int(timing.get("scheduler_interval"), MIN_SCHEDULER_INTERVAL),
                hybrid_rules={
                    "page": str(hybrid.get("page", hybrid.get("pages", "dynamic"))),
                    "content": str(hybrid.get("content", "scheduler")),
                },
            ),
            harmonization=HarmonizationConfig(
                enabled=_as_bool(harmonization.get("enabled", False)),
                slots=list(slots),
                tolerance=_as_int(harmonization.get("tolerance"), DEFAULT_TOLERANCE),
                auto_round=_as_bool(harmonization.get("auto_round", False)),
            ),
            advanced=AdvancedConfig(
                default_max_lifetime=_as_int(advanced.get("default_max_lifetime"), DEFAULT_MAX_LIFETIME),
                debug_logging=_as_bool(advanced.get("debug_logging", False)),
                timezone=str(advanced.get("timezone", "UTC")),
            ),
            database=DatabaseConfig(
                postgres_dsn=str(database.get("postgres_dsn", DEFAULT_POSTGRES_DSN)),
                redis_url=str(database.get("redis_url", DEFAULT_REDIS_URL)),
            ),
            observability=ObservabilityConfig(
                log_level=str(observability.get("log_level", "info")),
                log_format=str(observability.get("log_format", "json")),
            ),
        )

    # Convenience accessors used by strategies and services

    @property
    def scoping_strategy(self) -> str:
        return self.scoping.strategy

    @property
    def timing_strategy(self) -> str:
        return self.timing.strategy

    @property
    def default_max_lifetime(self) -> int:
        return self.advanced.default_max_lifetime

    @property
    def debug_logging(self) -> bool:
        return self.advanced.debug_logging

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "service_name": self.service_name,
            "environment": self.environment,
            "scoping": {
                "strategy": self.scoping.strategy,
                "use_reference_index": self.scoping.use_reference_index,
            },
            "timing": {
                "strategy": self.timing.strategy,
                "scheduler_interval": self.timing.scheduler_interval,
                "hybrid": dict(self.timing.hybrid_rules),
            },
            "harmonization": {
                "enabled": self.harmonization.enabled,
                "slots": list(self.harmonization.slots),
                "tolerance": self.harmonization.tolerance,
                "auto_round": self.harmonization.auto_round,
            },
            "advanced": {
                "default_max_lifetime": self.advanced.default_max_lifetime,
                "debug_logging": self.advanced.debug_logging,
                "timezone": self.advanced.timezone,
            },
            "observability": {
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        }
