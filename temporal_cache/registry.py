"""Registry of record collections scanned for temporal content."""

from typing import Dict, List, Optional, Sequence

import structlog

from .schemas.models import PAGES, CONTENT_ELEMENTS
from .utils.errors import ValidationError


REQUIRED_FIELDS = ("id", "start_time", "end_time")

DEFAULT_COLLECTIONS: Dict[str, List[str]] = {
    PAGES: ["id", "title", "parent_id", "start_time", "end_time", "hidden", "deleted", "language_id"],
    CONTENT_ELEMENTS: ["id", "parent_id", "header", "start_time", "end_time", "hidden", "deleted", "language_id"],
}

DEFAULT_CUSTOM_FIELDS = ["id", "parent_id", "title", "start_time", "end_time", "hidden", "deleted", "language_id"]


class MonitorRegistry:
    """
    Collections monitored for start/end transitions.

    The two default collections are always present. Custom collections
    are added with ``register`` and must be unregistered before they
    can be registered again.
    """

    def __init__(self):
        self._custom: Dict[str, List[str]] = {}
        self.logger = structlog.get_logger("monitor-registry")

    def register(self, name: str, fields: Optional[Sequence[str]] = None) -> None:
        """Register a custom collection and the fields to load from it."""
        if not name:
            raise ValidationError("Collection name cannot be empty", field="name")

        if name in DEFAULT_COLLECTIONS:
            raise ValidationError(
                f'Collection "{name}" is monitored by default and cannot be re-registered',
                field="name",
                value=name,
            )

        if name in self._custom:
            raise ValidationError(
                f'Collection "{name}" is already registered; unregister it first',
                field="name",
                value=name,
            )

        field_list = list(fields) if fields else list(DEFAULT_CUSTOM_FIELDS)
        for required in REQUIRED_FIELDS:
            if required not in field_list:
                raise ValidationError(
                    f'Collection "{name}" must include required field: {required}',
                    field="fields",
                    value=required,
                )

        self._custom[name] = field_list
        self.logger.info("Collection registered", collection=name, fields=field_list)

    def unregister(self, name: str) -> None:
        """Remove a custom collection. Unknown and default names are ignored."""
        if self._custom.pop(name, None) is not None:
            self.logger.info("Collection unregistered", collection=name)

    def is_registered(self, name: str) -> bool:
        return name in DEFAULT_COLLECTIONS or name in self._custom

    def all_collections(self) -> Dict[str, List[str]]:
        """Default collections first, then custom ones in registration order."""
        collections = {name: list(fields) for name, fields in DEFAULT_COLLECTIONS.items()}
        collections.update({name: list(fields) for name, fields in self._custom.items()})
        return collections

    def custom_collections(self) -> Dict[str, List[str]]:
        return {name: list(fields) for name, fields in self._custom.items()}

    def get_fields(self, name: str) -> Optional[List[str]]:
        """Field list of a collection, or None if it is not registered."""
        if name in DEFAULT_COLLECTIONS:
            return list(DEFAULT_COLLECTIONS[name])
        fields = self._custom.get(name)
        return list(fields) if fields is not None else None

    def clear_custom(self) -> None:
        """Remove every custom collection; defaults are unaffected."""
        self._custom.clear()

    @property
    def custom_count(self) -> int:
        return len(self._custom)

    @property
    def total_count(self) -> int:
        return len(DEFAULT_COLLECTIONS) + len(self._custom)
