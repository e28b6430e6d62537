"""
Ancestry verification.

Walks the upline chain iteratively with a hop ceiling and a visited guard,
so malformed data (cycles, dangling uplines) can never loop forever.
"""

import warnings

from loguru import logger

from downline.config.constants import ANCESTRY_HOP_LIMIT
from downline.models.node import UserNode
from downline.repositories.record_store import RecordStore
from downline.utils.exceptions import MalformedGraphWarning


def report_malformed(message: str, **context: object) -> None:
    """Log a non-fatal upline chain problem and emit MalformedGraphWarning."""
    logger.warning(message, extra=context)
    warnings.warn(f"{message} {context}", MalformedGraphWarning, stacklevel=3)


async def climb_ancestors(
    store: RecordStore,
    node: UserNode,
    hop_limit: int,
    stop_at: str | None = None,
) -> list[str]:
    """
    Collect ancestor ids of `node`, nearest first.

    Stops after `hop_limit` ancestors, after reaching `stop_at` (included),
    at a root, or at a dangling upline (the missing id is not included).

    Args:
        store: Record store
        node: Starting node (not included in the result)
        hop_limit: Max number of ancestors to collect
        stop_at: Id at which to stop climbing

    Returns:
        Ancestor ids, parent first
    """
    ancestors: list[str] = []
    visited = {node.id}
    current = node

    while current.upline and len(ancestors) < hop_limit:
        if current.upline in visited:
            report_malformed(
                "Upline cycle detected",
                node_id=node.id,
                repeated_id=current.upline,
            )
            # Drop the part of the loop above the repeated node
            if current.upline in ancestors:
                del ancestors[ancestors.index(current.upline) + 1:]
            break

        parent = await store.get(current.upline)
        if parent is None:
            report_malformed(
                "Dangling upline reference",
                node_id=node.id,
                missing_id=current.upline,
            )
            break

        ancestors.append(parent.id)
        visited.add(parent.id)
        current = parent

        if parent.id == stop_at:
            break

    return ancestors


class AncestryVerifier:
    """Answers whether one node lies on another node's upline chain."""

    def __init__(
        self, store: RecordStore, hop_limit: int = ANCESTRY_HOP_LIMIT
    ) -> None:
        """
        Initialize verifier.

        Args:
            store: Record store
            hop_limit: Max upline hops before giving up
        """
        self.store = store
        self.hop_limit = hop_limit

    async def is_ancestor(self, candidate_id: str, target_id: str) -> bool:
        """
        Check whether `candidate_id` is `target_id` or one of its ancestors.

        A node may always view itself. Cycles, dangling uplines and the hop
        ceiling all end the walk with False.

        Args:
            candidate_id: Possible ancestor (usually the caller)
            target_id: Node whose chain is walked

        Returns:
            True if candidate is the target or above it
        """
        if candidate_id == target_id:
            return True

        cursor: str | None = target_id
        visited: set[str] = set()
        hops = 0

        while cursor and hops < self.hop_limit:
            if cursor in visited:
                report_malformed(
                    "Upline cycle detected during ancestry check",
                    target_id=target_id,
                    repeated_id=cursor,
                )
                return False
            visited.add(cursor)

            node = await self.store.get(cursor)
            if node is None:
                report_malformed(
                    "Dangling upline reference during ancestry check",
                    target_id=target_id,
                    missing_id=cursor,
                )
                return False

            if node.upline == candidate_id:
                return True

            cursor = node.upline
            hops += 1

        if cursor:
            report_malformed(
                "Ancestry check reached hop ceiling",
                target_id=target_id,
                hop_limit=self.hop_limit,
            )
        return False
