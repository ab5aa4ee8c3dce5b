"""
Scoping strategies: which cache tags a content change invalidates.

Tags follow the page cache conventions: ``pages`` covers every cached
page, ``pageId_<id>`` a single page.
"""

from abc import ABC, abstractmethod
from typing import Optional, Set

import structlog

from ..framework.config import TemporalCacheConfig
from ..references.resolver import ReferenceResolver
from ..schemas.models import RenderContext, TemporalContent
from ..utils.errors import ConfigurationError


GLOBAL_TAG = "pages"


def page_tag(page_id: int) -> str:
    return f"pageId_{page_id}"


class ScopingStrategy(ABC):
    """Decides the cache tags to flush for a changed record."""

    name: str = ""

    @abstractmethod
    async def get_tags(self, content: TemporalContent, context: Optional[RenderContext] = None) -> Set[str]:
        ...


class GlobalScopingStrategy(ScopingStrategy):
    """Flushes the whole page cache on any transition."""

    name = "global"

    async def get_tags(self, content: TemporalContent, context: Optional[RenderContext] = None) -> Set[str]:
        return {GLOBAL_TAG}


class PerPageScopingStrategy(ScopingStrategy):
    """Flushes only the page the record lives on."""

    name = "per-page"

    async def get_tags(self, content: TemporalContent, context: Optional[RenderContext] = None) -> Set[str]:
        return {page_tag(content.page_id)}


class PerContentScopingStrategy(ScopingStrategy):
    """
    Flushes every page displaying a content element.

    Pages scope like ``per-page``. For content elements the reference
    resolver is consulted; when it is disabled, finds nothing, or fails,
    the element's own page is used.
    """

    name = "per-content"

    def __init__(self, resolver: Optional[ReferenceResolver], use_reference_index: bool = True):
        self.resolver = resolver
        self.use_reference_index = use_reference_index and resolver is not None
        self.logger = structlog.get_logger("per-content-scoping")

    async def get_tags(self, content: TemporalContent, context: Optional[RenderContext] = None) -> Set[str]:
        fallback = {page_tag(content.page_id)}
        if content.is_page or not self.use_reference_index:
            return fallback

        try:
            page_ids = await self.resolver.find_pages_with_content(content.id, content.language_id)
        except Exception as e:
            self.logger.warning(
                "Reference resolution failed, falling back to parent page",
                content_id=content.id,
                parent_id=content.parent_id,
                error=str(e),
            )
            return fallback

        if not page_ids:
            return fallback
        return {page_tag(page_id) for page_id in page_ids}


def create_scoping_strategy(
    config: TemporalCacheConfig,
    resolver: Optional[ReferenceResolver] = None,
) -> ScopingStrategy:
    """Build the scoping strategy named in configuration."""
    name = config.scoping_strategy
    if name == GlobalScopingStrategy.name:
        return GlobalScopingStrategy()
    if name == PerPageScopingStrategy.name:
        return PerPageScopingStrategy()
    if name == PerContentScopingStrategy.name:
        return PerContentScopingStrategy(resolver, config.scoping.use_reference_index)

    raise ConfigurationError(
        f"Unknown scoping strategy: {name}",
        config_key="scoping.strategy",
        config_value=name,
    )
