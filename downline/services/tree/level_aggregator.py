"""
Level aggregation.

Breadth-first expansion over the upline pointers producing exact per-level
population counts. Levels deeper than the tracked maximum are folded into a
single overflow bucket.
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
from downline.repositories.record_store import RecordStore
from downline.utils.batching import chunked, gather_bounded


@dataclass
class LevelCounts:
    """Per-level downline population."""

    per_level: dict[int, int] = field(default_factory=dict)
    overflow: int = 0
    total: int = 0

    def to_response(self) -> dict[str, Any]:
        """Wire shape: string level keys, `sixPlus` overflow."""
        return {
            "levels": {str(level): count for level, count in sorted(self.per_level.items())},
            "sixPlus": self.overflow,
            "total": self.total,
        }


class LevelAggregator:
    """Counts a node's downline level by level."""

    def __init__(
        self,
        store: RecordStore,
        fan_in: int = MEMBERSHIP_FAN_IN,
        max_level: int = MAX_TRACKED_LEVEL,
        max_concurrency: int = STORE_MAX_CONCURRENCY,
    ) -> None:
        """
        Initialize aggregator.

        Args:
            store: Record store
            fan_in: Max ids per membership query
            max_level: Deepest level reported separately
            max_concurrency: Max store calls in flight per level
        """
        self.store = store
        self.fan_in = fan_in
        self.max_level = max_level
        self.max_concurrency = max_concurrency

    async def count_levels(self, root_id: str) -> LevelCounts:
        """
        Count descendants of `root_id` per level.

        Each level's batches run concurrently, at most `max_concurrency` store
        calls at a time; the next frontier is built only after all of them
        finish. The walk is not depth-capped: the visited guard ends it on
        cyclic data, so deep chains are counted in full. Any store failure
        propagates and no partial result is returned.

        Args:
            root_id: Node whose downline is counted

        Returns:
            LevelCounts with levels 1..max_level always present
        """
        counts = LevelCounts(
            per_level={level: 0 for level in range(1, self.max_level + 1)}
        )
        frontier = [root_id]
        visited = {root_id}
        level = 1

        while frontier:
            level_count, next_frontier = await self._expand(frontier)
            if not level_count:
                break

            counts.total += level_count
            if level <= self.max_level:
                counts.per_level[level] = level_count
            else:
                counts.overflow += level_count

            frontier = [node_id for node_id in next_frontier if node_id not in visited]
            visited.update(frontier)
            level += 1

        logger.debug(
            "Downline levels counted",
            extra={
                "root_id": root_id,
                "levels": level - 1,
                "total": counts.total,
                "overflow": counts.overflow,
            },
        )
        return counts

    async def _expand(self, frontier: list[str]) -> tuple[int, list[str]]:
        """Count and collect the children of every frontier node."""
        calls = []
        for batch in chunked(frontier, self.fan_in):
            calls.append(partial(self.store.count_in, "upline", batch))
            calls.append(partial(self.store.find_in, "upline", batch))

        results = await gather_bounded(calls, self.max_concurrency)

        # Results alternate: count of a batch, then its children
        level_count = sum(results[0::2])
        next_frontier = [child.id for children in results[1::2] for child in children]
        return level_count, next_frontier
