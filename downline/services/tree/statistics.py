"""
Downline statistics.

Dashboard figures built on top of the level aggregator, plus an audit of the
advisory referral list against the authoritative upline pointers.
"""

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from downline.config.constants import DIRECT_REFERRAL_GOAL
from downline.repositories.record_store import RecordStore
from downline.services.tree.level_aggregator import LevelAggregator
from downline.utils.exceptions import NodeNotFoundError


@dataclass
class DirectProgress:
    """Progress towards the direct-referral goal."""

    count: int
    goal: int

    @property
    def completed(self) -> bool:
        """Goal reached."""
        return self.count >= self.goal

    def to_response(self) -> dict[str, Any]:
        return {"count": self.count, "goal": self.goal, "completed": self.completed}


@dataclass
class ReferralAudit:
    """Differences between a node's referral list and its actual children."""

    node_id: str
    missing_from_list: list[str] = field(default_factory=list)
    stale_in_list: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.missing_from_list and not self.stale_in_list


class DownlineStatistics:
    """Dashboard statistics for a node."""

    def __init__(self, store: RecordStore, aggregator: LevelAggregator) -> None:
        """
        Initialize statistics.

        Args:
            store: Record store
            aggregator: Level aggregator
        """
        self.store = store
        self.aggregator = aggregator

    async def total_downlines(self, node_id: str) -> int:
        """Total downline size, overflow included."""
        counts = await self.aggregator.count_levels(node_id)
        return counts.total

    async def direct_progress(
        self, node_id: str, goal: int = DIRECT_REFERRAL_GOAL
    ) -> DirectProgress:
        """
        Count direct referrals up to `goal`.

        Reads at most `goal` children.
        """
        children = await self.store.find_in("upline", [node_id], limit=goal)
        return DirectProgress(count=min(len(children), goal), goal=goal)

    async def audit_referrals(self, node_id: str) -> ReferralAudit:
        """
        Compare the advisory referral list with children found via upline.

        Args:
            node_id: Node to audit

        Returns:
            ReferralAudit

        Raises:
            NodeNotFoundError: If the node does not exist
        """
        node = await self.store.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Node {node_id} not found")

        children = await self.store.find_in("upline", [node_id])
        actual = {child.id for child in children}
        listed = set(node.referrals)

        audit = ReferralAudit(
            node_id=node_id,
            missing_from_list=sorted(actual - listed),
            stale_in_list=sorted(listed - actual),
        )
        if not audit.consistent:
            logger.warning(
                "Referral list diverges from upline pointers",
                extra={
                    "node_id": node_id,
                    "missing_from_list": audit.missing_from_list,
                    "stale_in_list": audit.stale_in_list,
                },
            )
        return audit
