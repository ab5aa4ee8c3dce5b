"""
Data models for temporal cache invalidation.

Defines the immutable records that flow between the content store,
the strategies, and the harmonization engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Union
from enum import Enum

from ..cache.transition_cache import TransitionCache
from ..utils.errors import ValidationError


PAGES = "pages"
CONTENT_ELEMENTS = "content-elements"


class TransitionType(str, Enum):
    """Visibility boundary crossed by a transition."""
    START = "start"
    END = "end"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TemporalContent:
    """A record visible only within an optional [start_time, end_time) window."""
    id: int
    collection_name: str
    title: str
    parent_id: int
    start_time: Optional[int]
    end_time: Optional[int]
    language_id: int
    workspace_id: int
    hidden: bool = False
    deleted: bool = False

    def has_temporal_fields(self) -> bool:
        """Check if either boundary is set."""
        return self.start_time is not None or self.end_time is not None

    def is_visible(self, now: int) -> bool:
        """Check if the record is visible at ``now``."""
        if self.hidden or self.deleted:
            return False
        if self.start_time is not None and self.start_time > now:
            return False
        if self.end_time is not None and self.end_time <= now:
            return False
        return True

    def next_transition(self, now: int) -> Optional[int]:
        """Get the earliest boundary strictly after ``now``."""
        upcoming = [
            ts for ts in (self.start_time, self.end_time)
            if ts is not None and ts > now
        ]
        return min(upcoming) if upcoming else None

    def transition_type(self, timestamp: int) -> Optional[str]:
        """Get which boundary ``timestamp`` falls on, if any."""
        if self.start_time == timestamp:
            return TransitionType.START.value
        if self.end_time == timestamp:
            return TransitionType.END.value
        return None

    @property
    def is_page(self) -> bool:
        return self.collection_name == PAGES

    @property
    def is_content_element(self) -> bool:
        return self.collection_name == CONTENT_ELEMENTS

    @property
    def content_type(self) -> str:
        """Coarse type used by per-type timing rules."""
        return "page" if self.is_page else "content"

    @property
    def page_id(self) -> int:
        """Page on which this record is rendered directly."""
        return self.id if self.is_page else self.parent_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "collection_name": self.collection_name,
            "title": self.title,
            "parent_id": self.parent_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "language_id": self.language_id,
            "workspace_id": self.workspace_id,
            "hidden": self.hidden,
            "deleted": self.deleted,
        }


@dataclass(frozen=True)
class TransitionEvent:
    """One start/end boundary crossing of a TemporalContent record."""
    content: TemporalContent
    timestamp: int
    transition_type: Union[TransitionType, str]
    workspace_id: int = 0
    language_id: int = 0

    def __post_init__(self):
        try:
            normalized = TransitionType(self.transition_type)
        except ValueError:
            raise ValidationError(
                'transition_type must be "start", "end", or "unknown"',
                field="transition_type",
                value=self.transition_type,
            ) from None
        object.__setattr__(self, "transition_type", normalized)

    @property
    def is_start(self) -> bool:
        return self.transition_type is TransitionType.START

    @property
    def is_end(self) -> bool:
        return self.transition_type is TransitionType.END

    def log_message(self) -> str:
        """Human-readable description for logs."""
        moment = datetime.fromtimestamp(self.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        return (
            f"Transition: {self.content.collection_name} #{self.content.id} "
            f"({self.content.title}) - {self.transition_type.value} at {moment} "
            f"(workspace={self.workspace_id}, language={self.language_id})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "content": self.content.to_dict(),
            "timestamp": self.timestamp,
            "transition_type": self.transition_type.value,
            "workspace_id": self.workspace_id,
            "language_id": self.language_id,
        }


@dataclass
class RenderContext:
    """
    Per-request rendering context.

    Carries the content variant being rendered and the request-scoped
    transition cache. A new context is created for every request and is
    never shared between requests.
    """
    workspace_id: int = 0
    language_id: int = 0
    cache_period: Optional[int] = None
    transition_cache: TransitionCache = field(default_factory=TransitionCache)
