"""Content store contract and storage backends."""

from .content_store import (
    TEMPORAL_FIELDS,
    CacheInvalidator,
    ContentStore,
    ReferenceIndex,
    TransitionDetector,
    transitions_from_contents,
)
from .postgres import PostgresClient, PostgresConfig
from .postgres_store import PostgresContentStore, PostgresReferenceIndex
from .redis import RedisClient, RedisConfig, RedisLastRunStore, RedisTagInvalidator

__all__ = [
    "TEMPORAL_FIELDS",
    "CacheInvalidator",
    "ContentStore",
    "ReferenceIndex",
    "TransitionDetector",
    "transitions_from_contents",
    "PostgresClient",
    "PostgresConfig",
    "PostgresContentStore",
    "PostgresReferenceIndex",
    "RedisClient",
    "RedisConfig",
    "RedisLastRunStore",
    "RedisTagInvalidator",
]
