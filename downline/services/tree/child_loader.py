"""
Paginated child loading.

Lists a parent's direct children newest first with keyset cursors. Pages are
not snapshot-isolated: children registered between calls may shift or be
skipped, which is accepted because the ordering key is creation time.
"""

from dataclasses import dataclass, field
from typing import Any

from downline.config.constants import CHILD_PAGE_SIZE
from downline.models.node import UserNode
from downline.repositories.record_store import PageCursor, RecordStore


@dataclass
class ChildPage:
    """One page of direct children."""

    items: list[UserNode] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    def to_response(self) -> dict[str, Any]:
        """Wire shape used by the children endpoint."""
        items = []
        for node in self.items:
            item = node.to_display()
            item["phone"] = node.phone
            items.append(item)
        return {
            "items": items,
            "nextCursor": self.next_cursor,
            "hasMore": self.has_more,
        }


class ChildLoader:
    """Loads direct children page by page."""

    def __init__(self, store: RecordStore, page_size: int = CHILD_PAGE_SIZE) -> None:
        """
        Initialize loader.

        Args:
            store: Record store
            page_size: Fixed number of children per page
        """
        self.store = store
        self.page_size = page_size

    async def get_children(
        self, parent_id: str, cursor: str | None = None
    ) -> ChildPage:
        """
        Get one page of `parent_id`'s children.

        `has_more` is true when the page is full; the following page may
        still turn out empty.

        Args:
            parent_id: Parent node id
            cursor: Opaque cursor from the previous page, None for the first

        Returns:
            ChildPage

        Raises:
            InvalidCursorError: If the cursor cannot be decoded
        """
        after = PageCursor.decode(cursor) if cursor else None
        nodes = await self.store.find_children_page(parent_id, after, self.page_size)

        next_cursor = PageCursor.after(nodes[-1]).encode() if nodes else None
        return ChildPage(
            items=nodes,
            next_cursor=next_cursor,
            has_more=len(nodes) == self.page_size,
        )
