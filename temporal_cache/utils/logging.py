"""
Structured logging for temporal cache components.

``setup_logging`` routes structlog through the standard library and
stamps every entry with the service and environment. ``add_scope``
binds the content variant (workspace and language) a log entry is about.
"""

import logging
import sys
from typing import Any, Callable, Dict

import structlog
from structlog.stdlib import LoggerFactory

from .errors import ConfigurationError


LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
LOG_FORMATS = ("json", "console")


def _service_fields(service_name: str, environment: str) -> Callable[..., Dict[str, Any]]:
    def add_service(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service


def setup_logging(
    service_name: str,
    log_level: str = "info",
    format_type: str = "json",
    environment: str = "local",
) -> None:
    """
    Configure structlog for the service.

    Args:
        service_name: Added to every entry as ``service``
        log_level: One of debug, info, warning, error, critical
        format_type: ``json`` for log shipping, ``console`` for local runs
        environment: Added to every entry as ``environment``

    Raises:
        ConfigurationError: For an unknown level or format
    """
    level = log_level.lower()
    if level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level: {log_level}",
            config_key="observability.log_level",
            config_value=log_level,
        )
    if format_type not in LOG_FORMATS:
        raise ConfigurationError(
            f"Unknown log format: {format_type}",
            config_key="observability.log_format",
            config_value=format_type,
        )

    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    logging.getLogger().setLevel(numeric_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if format_type == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            _service_fields(service_name, environment),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def add_scope(logger: Any, workspace_id: int, language_id: int) -> Any:
    """Bind workspace and language to a logger."""
    return logger.bind(workspace_id=workspace_id, language_id=language_id)
