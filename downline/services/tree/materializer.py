"""
Subtree materialisation.

Same breadth-first expansion as the level aggregator, but returns display
records for every node of a depth-bounded subtree. Viewing another node's
subtree is allowed only to its ancestors.
"""

from dataclasses import dataclass, field
from functools import partial
from typing import Any

from loguru import logger

from downline.config.constants import (
    MAX_TRACKED_LEVEL,
    MEMBERSHIP_FAN_IN,
    STORE_MAX_CONCURRENCY,
)
from downline.models.node import UserNode
from downline.repositories.record_store import RecordStore
from downline.services.tree.ancestry import AncestryVerifier
from downline.utils.batching import chunked, gather_bounded
from downline.utils.exceptions import AuthorizationError


def clamp_depth(depth: Any, max_depth: int = MAX_TRACKED_LEVEL) -> int:
    """
    Clamp requested depth to [1, max_depth].

    Missing or unparseable values mean "as deep as allowed".

    Args:
        depth: Requested depth (int, numeric string or None)
        max_depth: Upper bound

    Returns:
        Depth within bounds
    """
    if depth is None or depth == "":
        return max_depth
    try:
        value = int(depth)
    except (TypeError, ValueError):
        return max_depth
    return max(1, min(value, max_depth))


@dataclass
class SubtreeLevel:
    """Nodes found at one level below the subtree root."""

    level: int
    nodes: list[UserNode] = field(default_factory=list)


@dataclass
class Subtree:
    """Depth-bounded subtree of display records."""

    root_id: str
    depth: int
    total: int = 0
    levels: list[SubtreeLevel] = field(default_factory=list)

    def to_response(self) -> dict[str, Any]:
        """Wire shape used by the tree endpoint."""
        return {
            "rootUid": self.root_id,
            "depth": self.depth,
            "total": self.total,
            "levels": [
                {
                    "level": entry.level,
                    "users": [node.to_display() for node in entry.nodes],
                }
                for entry in self.levels
            ],
        }


class TreeMaterializer:
    """Loads a subtree level by level."""

    def __init__(
        self,
        store: RecordStore,
        verifier: AncestryVerifier,
        fan_in: int = MEMBERSHIP_FAN_IN,
        max_depth: int = MAX_TRACKED_LEVEL,
        max_concurrency: int = STORE_MAX_CONCURRENCY,
    ) -> None:
        """
        Initialize materializer.

        Args:
            store: Record store
            verifier: Ancestry verifier used for the view policy
            fan_in: Max ids per membership query
            max_depth: Upper bound of the requested depth
            max_concurrency: Max store calls in flight per level
        """
        self.store = store
        self.verifier = verifier
        self.fan_in = fan_in
        self.max_depth = max_depth
        self.max_concurrency = max_concurrency

    async def get_subtree(
        self, requester_id: str, target_id: str | None = None, depth: Any = None
    ) -> Subtree:
        """
        Get subtree of `target_id` down to `depth` levels.

        Args:
            requester_id: Caller id
            target_id: Subtree root (defaults to the caller)
            depth: Requested depth, clamped to [1, max_depth]

        Returns:
            Subtree with one entry per populated level

        Raises:
            AuthorizationError: If caller is neither the target nor its ancestor
        """
        target_id = target_id or requester_id
        depth = clamp_depth(depth, self.max_depth)

        if target_id != requester_id:
            allowed = await self.verifier.is_ancestor(requester_id, target_id)
            if not allowed:
                logger.warning(
                    "Subtree access denied",
                    extra={"requester_id": requester_id, "target_id": target_id},
                )
                raise AuthorizationError(
                    f"{requester_id} may not view subtree of {target_id}"
                )

        subtree = Subtree(root_id=target_id, depth=depth)
        frontier = [target_id]
        visited = {target_id}

        for level in range(1, depth + 1):
            nodes = await self._fetch_level(frontier, visited)
            if not nodes:
                break

            subtree.levels.append(SubtreeLevel(level=level, nodes=nodes))
            subtree.total += len(nodes)
            frontier = [node.id for node in nodes]

        logger.debug(
            "Subtree materialized",
            extra={
                "target_id": target_id,
                "depth": depth,
                "levels": len(subtree.levels),
                "total": subtree.total,
            },
        )
        return subtree

    async def _fetch_level(
        self, frontier: list[str], visited: set[str]
    ) -> list[UserNode]:
        """Fetch children of the frontier, skipping already seen nodes."""
        results = await gather_bounded(
            (
                partial(self.store.find_in, "upline", batch)
                for batch in chunked(frontier, self.fan_in)
            ),
            self.max_concurrency,
        )

        nodes: list[UserNode] = []
        for batch_nodes in results:
            for node in batch_nodes:
                if node.id in visited:
                    continue
                visited.add(node.id)
                nodes.append(node)
        return nodes
