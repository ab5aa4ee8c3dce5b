"""
Resolution of the pages on which a content element is displayed.

Resolution is bounded: references from other content elements are
followed one hop to that element's page, and chains of references are
not chased further.
"""

from typing import Iterable, List, Optional

import structlog

from ..schemas.models import PAGES, CONTENT_ELEMENTS
from ..storage.content_store import ReferenceIndex
from ..utils.errors import ReferenceResolutionError, create_error_context


class ReferenceResolver:
    """Finds every page displaying a content element."""

    def __init__(self, index: ReferenceIndex):
        self.index = index
        self.logger = structlog.get_logger("reference-resolver")

    async def find_pages_with_content(self, content_id: int, language_id: int = 0) -> List[int]:
        """
        Pages displaying ``content_id``.

        Collects the parent page, pages referencing the element directly
        or through another element's parent page, then mount points and
        shortcuts targeting any page collected so far. Returns a sorted,
        deduplicated list without zero ids.
        """
        page_ids: List[int] = []

        parent = await self._step("parent", content_id, self.index.find_parent_page(content_id))
        if parent is not None:
            page_ids.append(parent)

        references = await self._step(
            "references", content_id, self.index.find_references(content_id, language_id)
        )
        for collection, record_id in references:
            if collection == PAGES:
                page_ids.append(record_id)
            elif collection == CONTENT_ELEMENTS:
                referencing_parent = await self._step(
                    "references", content_id, self.index.find_parent_page(record_id)
                )
                if referencing_parent is not None:
                    page_ids.append(referencing_parent)

        page_ids.extend(await self._mount_points(content_id, page_ids))
        page_ids.extend(await self._shortcuts(content_id, page_ids))

        pages = sorted({page_id for page_id in page_ids if page_id})
        self.logger.debug("Resolved pages for content", content_id=content_id, pages=pages)
        return pages

    async def has_indirect_references(self, page_id: int) -> bool:
        """Check if any mount point or shortcut targets ``page_id``."""
        if await self._mount_points(None, [page_id]):
            return True
        return bool(await self._shortcuts(None, [page_id]))

    async def content_elements_on_page(self, page_id: int, language_id: int = 0) -> List[int]:
        return await self._step(
            "content_on_page", None, self.index.find_content_on_page(page_id, language_id)
        )

    async def _mount_points(self, content_id: Optional[int], page_ids: Iterable[int]) -> List[int]:
        page_ids = list(page_ids)
        if not page_ids:
            return []
        return await self._step("mount_points", content_id, self.index.find_mount_points(page_ids))

    async def _shortcuts(self, content_id: Optional[int], page_ids: Iterable[int]) -> List[int]:
        page_ids = list(page_ids)
        if not page_ids:
            return []
        return await self._step("shortcuts", content_id, self.index.find_shortcuts(page_ids))

    async def _step(self, step: str, content_id: Optional[int], awaitable):
        try:
            return await awaitable
        except ReferenceResolutionError:
            raise
        except Exception as e:
            raise ReferenceResolutionError(
                f"Reference lookup failed at step '{step}': {e}",
                content_id=content_id,
                step=step,
                context=create_error_context("reference-resolver", "find_pages_with_content"),
            ) from e
