"""Data models for temporal content and transitions."""

from .models import (
    PAGES,
    CONTENT_ELEMENTS,
    TransitionType,
    TemporalContent,
    TransitionEvent,
    RenderContext,
)

__all__ = [
    "PAGES",
    "CONTENT_ELEMENTS",
    "TransitionType",
    "TemporalContent",
    "TransitionEvent",
    "RenderContext",
]
