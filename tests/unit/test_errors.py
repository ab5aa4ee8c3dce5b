"""Unit tests for error types and logging helpers."""

import json
import logging

import pytest
import structlog

from temporal_cache.utils.errors import (
    ConfigurationError,
    ReferenceResolutionError,
    StorageError,
    TemporalCacheError,
    TransitionProcessingError,
    ValidationError,
    create_error_context,
)
from temporal_cache.utils.logging import add_scope, setup_logging


class TestErrors:
    """Test the error hierarchy."""

    def test_all_errors_share_base(self):
        for error in (
            ValidationError("bad"),
            ConfigurationError("bad"),
            TransitionProcessingError("bad"),
            ReferenceResolutionError("bad"),
            StorageError("bad"),
        ):
            assert isinstance(error, TemporalCacheError)

    def test_to_dict_without_context(self):
        error = ValidationError("Collection name cannot be empty", field="name")

        assert error.to_dict() == {
            "error_code": "VALIDATION_ERROR",
            "message": "Collection name cannot be empty",
            "details": {"field": "name"},
        }

    def test_to_dict_with_context(self):
        context = create_error_context("reference-resolver", "find_pages_with_content", language_id=1)
        error = ReferenceResolutionError("lookup failed", content_id=10, step="parent", context=context)

        result = error.to_dict()

        assert result["error_code"] == "REFERENCE_RESOLUTION_ERROR"
        assert result["details"] == {"content_id": 10, "step": "parent"}
        assert result["context"]["component"] == "reference-resolver"
        assert result["context"]["language_id"] == 1
        assert result["context"]["metadata"] == {}

    def test_transition_processing_details(self):
        error = TransitionProcessingError(
            "flush failed",
            content_id=0,
            collection="pages",
            transition_type="end",
        )

        assert error.details == {"content_id": 0, "collection": "pages", "transition_type": "end"}

    def test_storage_details(self):
        error = StorageError("write failed", operation="update_temporal_fields", table="pages")

        assert error.error_code == "STORAGE_ERROR"
        assert error.details == {"operation": "update_temporal_fields", "table": "pages"}


class TestLogging:
    """Test logging helpers."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        level = root.level
        yield
        structlog.reset_defaults()
        root.setLevel(level)

    def test_entries_carry_service_and_scope(self, caplog):
        setup_logging("temporal-cache", log_level="debug", format_type="json", environment="test")

        logger = add_scope(structlog.get_logger("scheduler"), workspace_id=1, language_id=2)
        logger.debug("scoped message")

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["event"] == "scoped message"
        assert entry["level"] == "debug"
        assert entry["service"] == "temporal-cache"
        assert entry["environment"] == "test"
        assert entry["workspace_id"] == 1
        assert entry["language_id"] == 2

    def test_level_filters_entries(self, caplog):
        setup_logging("temporal-cache", log_level="WARNING", format_type="console")

        structlog.get_logger("scheduler").info("hidden")

        assert not [record for record in caplog.records if "hidden" in record.getMessage()]

    @pytest.mark.parametrize("level, format_type, key", [
        ("verbose", "json", "observability.log_level"),
        ("info", "xml", "observability.log_format"),
    ])
    def test_unknown_settings_fail(self, level, format_type, key):
        with pytest.raises(ConfigurationError) as exc_info:
            setup_logging("temporal-cache", log_level=level, format_type=format_type)

        assert exc_info.value.details["config_key"] == key
