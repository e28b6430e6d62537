"""
Downline service.

Facade over the tree engine used by the API layer. Every call recomputes its
result from the store; nothing is cached between requests.
"""

from typing import Any

from loguru import logger

from downline.config.constants import (
    ANCESTRY_HOP_LIMIT,
    CHILD_PAGE_SIZE,
    DIRECT_REFERRAL_GOAL,
    MAX_TRACKED_LEVEL,
    MEMBERSHIP_FAN_IN,
    SEARCH_PATH_HOP_LIMIT,
    STORE_MAX_CONCURRENCY,
)
from downline.repositories.record_store import RecordStore
from downline.services.tree import (
    AncestryVerifier,
    ChildLoader,
    DownlineStatistics,
    LevelAggregator,
    ReferralAudit,
    RegistrationService,
    SearchResolver,
    TreeMaterializer,
)
from downline.utils.exceptions import AuthorizationError


class DownlineService:
    """Downline tree operations for authenticated callers."""

    def __init__(
        self,
        store: RecordStore,
        fan_in: int = MEMBERSHIP_FAN_IN,
        max_level: int = MAX_TRACKED_LEVEL,
        page_size: int = CHILD_PAGE_SIZE,
        ancestry_hop_limit: int = ANCESTRY_HOP_LIMIT,
        search_hop_limit: int = SEARCH_PATH_HOP_LIMIT,
        max_concurrency: int = STORE_MAX_CONCURRENCY,
    ) -> None:
        """
        Initialize service.

        Args:
            store: Record store
            fan_in: Max ids per membership query
            max_level: Deepest level reported separately / max subtree depth
            page_size: Children page size
            ancestry_hop_limit: Hop ceiling of ancestry checks
            search_hop_limit: Hop ceiling of search paths
            max_concurrency: Max store calls in flight per traversal level
        """
        self.store = store
        self.verifier = AncestryVerifier(store, hop_limit=ancestry_hop_limit)
        self.aggregator = LevelAggregator(
            store,
            fan_in=fan_in,
            max_level=max_level,
            max_concurrency=max_concurrency,
        )
        self.materializer = TreeMaterializer(
            store,
            self.verifier,
            fan_in=fan_in,
            max_depth=max_level,
            max_concurrency=max_concurrency,
        )
        self.child_loader = ChildLoader(store, page_size=page_size)
        self.search_resolver = SearchResolver(store, hop_limit=search_hop_limit)
        self.registration = RegistrationService(store)
        self.statistics = DownlineStatistics(store, self.aggregator)

    @classmethod
    def from_settings(cls, store: RecordStore, settings: Any) -> "DownlineService":
        """Build service with limits taken from settings."""
        return cls(
            store,
            fan_in=settings.membership_fan_in,
            max_level=settings.max_tracked_level,
            page_size=settings.child_page_size,
            max_concurrency=settings.store_max_concurrency,
        )

    async def level_counts(self, caller_id: str) -> dict[str, Any]:
        """Per-level counts of the caller's downline."""
        counts = await self.aggregator.count_levels(caller_id)
        return counts.to_response()

    async def subtree(
        self, caller_id: str, target_id: str | None = None, depth: Any = None
    ) -> dict[str, Any]:
        """Subtree of the caller or one of its descendants."""
        subtree = await self.materializer.get_subtree(caller_id, target_id, depth)
        return subtree.to_response()

    async def search(self, caller_id: str, query: str | None) -> dict[str, Any]:
        """Search nodes and return their paths."""
        hits = await self.search_resolver.search(caller_id, query)
        return {"results": [hit.to_response() for hit in hits]}

    async def children(
        self, caller_id: str, parent_id: str | None = None, cursor: str | None = None
    ) -> dict[str, Any]:
        """
        One page of direct children.

        The parent must be the caller or one of its descendants.
        """
        parent_id = parent_id or caller_id
        if not await self.verifier.is_ancestor(caller_id, parent_id):
            raise AuthorizationError(
                f"{caller_id} may not list children of {parent_id}"
            )
        page = await self.child_loader.get_children(parent_id, cursor)
        return page.to_response()

    async def stats(
        self, caller_id: str, goal: int = DIRECT_REFERRAL_GOAL
    ) -> dict[str, Any]:
        """Dashboard figures: downline total and direct-referral progress."""
        total = await self.statistics.total_downlines(caller_id)
        progress = await self.statistics.direct_progress(caller_id, goal=goal)
        return {
            "totalDownlines": total,
            "directProgress": progress.to_response(),
        }

    async def sponsor(self, referral_code: str | None) -> dict[str, Any]:
        """Public sponsor lookup by referral code."""
        sponsor = await self.registration.find_sponsor(referral_code)
        return {
            "id": sponsor.id,
            "name": sponsor.name,
            "referralId": sponsor.referral_code,
        }

    async def register(
        self,
        caller_id: str,
        name: str,
        email: str,
        phone: str,
        sponsor_code: str,
    ) -> dict[str, Any]:
        """Register the caller under a sponsor."""
        node = await self.registration.register(
            caller_id, name, email, phone, sponsor_code
        )
        logger.info(
            "Registration completed",
            extra={"node_id": node.id, "upline": node.upline},
        )
        return {
            "id": node.id,
            "referralId": node.referral_code,
            "upline": node.upline,
        }

    async def audit_referrals(self, node_id: str) -> ReferralAudit:
        """Check a node's referral list against its actual children."""
        return await self.statistics.audit_referrals(node_id)
