"""
Custom error classes for temporal cache invalidation.

Provides structured error handling with error codes,
context information, and proper exception chaining.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Error context information."""
    component: str
    operation: str
    workspace_id: Optional[int] = None
    language_id: Optional[int] = None
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class TemporalCacheError(Exception):
    """Base exception for temporal cache errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        result = {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

        if self.context:
            result["context"] = {
                "component": self.context.component,
                "operation": self.context.operation,
                "workspace_id": self.context.workspace_id,
                "language_id": self.context.language_id,
                "correlation_id": self.context.correlation_id,
                "metadata": self.context.metadata,
            }

        return result


class ValidationError(TemporalCacheError):
    """Error raised when a value or registration fails validation."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            context=context,
            details=details or {}
        )
        self.field = field
        self.value = value

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = str(value)


class ConfigurationError(TemporalCacheError):
    """Error raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            context=context,
            details=details or {}
        )
        self.config_key = config_key
        self.config_value = config_value

        if config_key:
            self.details["config_key"] = config_key
        if config_value is not None:
            self.details["config_value"] = str(config_value)


class TransitionProcessingError(TemporalCacheError):
    """Error raised while processing a single transition event."""

    def __init__(
        self,
        message: str,
        content_id: Optional[int] = None,
        collection: Optional[str] = None,
        transition_type: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="TRANSITION_PROCESSING_ERROR",
            context=context,
            details=details or {}
        )
        self.content_id = content_id
        self.collection = collection
        self.transition_type = transition_type

        if content_id is not None:
            self.details["content_id"] = content_id
        if collection:
            self.details["collection"] = collection
        if transition_type:
            self.details["transition_type"] = transition_type


class ReferenceResolutionError(TemporalCacheError):
    """Error raised when content-to-page references cannot be resolved."""

    def __init__(
        self,
        message: str,
        content_id: Optional[int] = None,
        step: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="REFERENCE_RESOLUTION_ERROR",
            context=context,
            details=details or {}
        )
        self.content_id = content_id
        self.step = step

        if content_id is not None:
            self.details["content_id"] = content_id
        if step:
            self.details["step"] = step


class StorageError(TemporalCacheError):
    """Error raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="STORAGE_ERROR",
            context=context,
            details=details or {}
        )
        self.operation = operation
        self.table = table

        if operation:
            self.details["operation"] = operation
        if table:
            self.details["table"] = table


def create_error_context(
    component: str,
    operation: str,
    workspace_id: Optional[int] = None,
    language_id: Optional[int] = None,
    correlation_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> ErrorContext:
    """Create error context."""
    return ErrorContext(
        component=component,
        operation=operation,
        workspace_id=workspace_id,
        language_id=language_id,
        correlation_id=correlation_id,
        metadata=metadata or {}
    )
