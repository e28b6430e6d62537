"""
Search resolution.

Matches a free-text query against referral code, email and name prefix, then
rebuilds each hit's root-relative upline path.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from downline.config.constants import (
    PREFIX_SCAN_SUFFIX,
    SEARCH_MIN_QUERY_LENGTH,
    SEARCH_NAME_LIMIT,
    SEARCH_PATH_HOP_LIMIT,
)
from downline.models.node import UserNode
from downline.repositories.record_store import RecordStore
from downline.services.tree.ancestry import climb_ancestors
from downline.utils.validation import (
    meaningful_length,
    normalize_email,
    normalize_name_key,
    normalize_referral_code,
)


@dataclass
class SearchHit:
    """A matched node and its ancestor path, root first."""

    node: UserNode
    path: list[str] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """Wire shape of one search result."""
        return {"user": self.node.to_search_hit(), "path": self.path}


class SearchResolver:
    """Finds nodes by identity fields and resolves their paths."""

    def __init__(
        self,
        store: RecordStore,
        hop_limit: int = SEARCH_PATH_HOP_LIMIT,
        name_limit: int = SEARCH_NAME_LIMIT,
        min_query_length: int = SEARCH_MIN_QUERY_LENGTH,
    ) -> None:
        """
        Initialize resolver.

        Args:
            store: Record store
            hop_limit: Max ancestors collected per hit
            name_limit: Max results of the name prefix scan
            min_query_length: Shorter queries return nothing
        """
        self.store = store
        self.hop_limit = hop_limit
        self.name_limit = name_limit
        self.min_query_length = min_query_length

    async def search(self, requester_id: str, query: str | None) -> list[SearchHit]:
        """
        Search nodes and attach their paths.

        Results are the union of code, email and name matches in that order,
        deduplicated by id (first match wins). Each path climbs from the hit
        towards the root and stops once the requester is reached.

        Args:
            requester_id: Caller id
            query: Free-text query

        Returns:
            Search hits
        """
        query = (query or "").strip()
        if meaningful_length(query) < self.min_query_length:
            return []

        matches = await self._match(query)
        paths = await asyncio.gather(
            *(
                climb_ancestors(self.store, node, self.hop_limit, stop_at=requester_id)
                for node in matches
            )
        )

        hits = [
            SearchHit(node=node, path=list(reversed(ancestors)))
            for node, ancestors in zip(matches, paths)
        ]

        logger.debug(
            "Search resolved",
            extra={"requester_id": requester_id, "hits": len(hits)},
        )
        return hits

    async def _match(self, query: str) -> list[UserNode]:
        """Run the three matchers and union their results."""
        code = normalize_referral_code(query)
        email = normalize_email(query)
        name_key = normalize_name_key(query)

        by_code, by_email, by_name = await asyncio.gather(
            self._find_exact("referral_code", code),
            self._find_exact("email", email if "@" in email else ""),
            self.store.find_range(
                "normalized_name",
                name_key,
                name_key + PREFIX_SCAN_SUFFIX,
                self.name_limit,
            ),
        )

        seen: set[str] = set()
        matches: list[UserNode] = []
        for node in [*by_code, *by_email, *by_name]:
            if node.id in seen:
                continue
            seen.add(node.id)
            matches.append(node)
        return matches

    async def _find_exact(self, field_name: str, value: str) -> list[UserNode]:
        """Exact match, skipped for empty values."""
        if not value:
            return []
        return await self.store.find_equal(field_name, value)
