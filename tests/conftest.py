"""Pytest configuration and fixtures."""

import pytest

from temporal_cache.framework.metrics import InvalidationMetrics
from temporal_cache.registry import MonitorRegistry
from temporal_cache.storage.content_store import TransitionDetector
from tests.fixtures.config import build_config
from tests.fixtures.stores import (
    InMemoryContentStore,
    InMemoryReferenceIndex,
    RecordingInvalidator,
    StubRedisClient,
    at,
    make_content,
    make_page,
)


@pytest.fixture
def config():
    return build_config()


@pytest.fixture
def harmonization_config():
    return build_config(harmonization={
        "enabled": True,
        "slots": "00:00,06:00,12:00,18:00",
        "tolerance": 3600,
    })


@pytest.fixture
def registry():
    return MonitorRegistry()


@pytest.fixture
def metrics():
    return InvalidationMetrics()


@pytest.fixture
def sample_contents():
    """Pages and content elements around 2024-01-01."""
    return [
        make_page(1, start_time=at(11, 13)),
        make_page(2, end_time=at(18, 30)),
        make_page(3, start_time=at(8), end_time=at(20, day=1)),
        make_content(10, parent_id=1, start_time=at(11, 27)),
        make_content(11, parent_id=1, start_time=at(11, 42), end_time=at(23)),
        make_content(12, parent_id=2, end_time=at(9, day=2)),
        make_content(13, parent_id=2, start_time=at(6, 30), deleted=True),
        make_content(14, parent_id=3, start_time=at(7), language_id=1),
    ]


@pytest.fixture
def store(sample_contents, registry):
    return InMemoryContentStore(sample_contents, registry)


@pytest.fixture
def detector(store, registry, metrics):
    return TransitionDetector(store, registry, metrics)


@pytest.fixture
def reference_index():
    return InMemoryReferenceIndex(
        parents={10: 1, 11: 1, 12: 2, 20: 5},
        references={
            10: [("pages", 4), ("content-elements", 20)],
        },
        mount_points={4: [7]},
        shortcuts={7: [8], 1: [9]},
        content_on_page={1: [10, 11]},
    )


@pytest.fixture
def invalidator():
    return RecordingInvalidator()


@pytest.fixture
def stub_redis():
    return StubRedisClient()
