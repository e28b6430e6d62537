"""
User repository.

Data access layer for User model.
"""

from collections.abc import Sequence
from datetime import datetime

from loguru import logger
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from downline.models.user import User
from downline.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def find_in(
        self, field: str, values: Sequence[str], limit: int | None = None
    ) -> list[User]:
        """
        Find users whose column is one of the given values.

        Args:
            field: Column name
            values: Accepted values
            limit: Max number of results

        Returns:
            Matching users
        """
        if not values:
            return []

        stmt = select(User).where(getattr(User, field).in_(list(values)))
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_in(self, field: str, values: Sequence[str]) -> int:
        """
        Count users whose column is one of the given values.

        Args:
            field: Column name
            values: Accepted values

        Returns:
            Number of matching users
        """
        if not values:
            return 0

        stmt = select(func.count(User.id)).where(
            getattr(User, field).in_(list(values))
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def find_range(
        self, field: str, start: str, end: str, limit: int
    ) -> list[User]:
        """
        Ordered range scan: start <= column < end.

        Args:
            field: Column name
            start: Inclusive lower bound
            end: Exclusive upper bound
            limit: Max number of results

        Returns:
            Users ordered by the column ascending
        """
        column = getattr(User, field)
        stmt = (
            select(User)
            .where(column >= start, column < end)
            .order_by(column.asc(), User.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_children_page(
        self,
        parent_id: str,
        after_created_at: datetime | None,
        after_id: str | None,
        limit: int,
    ) -> list[User]:
        """
        Get direct children, newest first, keyset-paginated.

        Args:
            parent_id: Upline id
            after_created_at: created_at of the previous page's last item
            after_id: id of the previous page's last item
            limit: Page size

        Returns:
            Up to `limit` children
        """
        stmt = select(User).where(User.upline == parent_id)

        if after_created_at is not None:
            stmt = stmt.where(
                or_(
                    User.created_at < after_created_at,
                    and_(
                        User.created_at == after_created_at,
                        User.id < after_id,
                    ),
                )
            )

        stmt = stmt.order_by(User.created_at.desc(), User.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def append_referral(self, parent_id: str, child_id: str) -> User | None:
        """
        Append child id to the parent's referral list (set semantics).

        Locks the parent row so concurrent registrations under the same
        sponsor do not lose appends.

        Args:
            parent_id: Sponsor id
            child_id: New child id

        Returns:
            Updated parent or None if parent not found
        """
        parent = await self._load(parent_id, for_update=True)
        if not parent:
            return None

        current = list(parent.referrals or [])
        if child_id in current:
            logger.debug(
                "Referral already listed",
                extra={"parent_id": parent_id, "child_id": child_id},
            )
            return parent

        # Reassign so the JSON column is marked dirty
        parent.referrals = [*current, child_id]
        await self.session.flush()
        return parent
