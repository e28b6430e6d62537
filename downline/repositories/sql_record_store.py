"""
SQL record store.

Record store implementation on top of async SQLAlchemy. Each call opens a
short-lived session from the factory, so batches of the same traversal level
can run concurrently without sharing a session.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from downline.config.constants import STORE_MAX_CONCURRENCY
from downline.models.node import UserNode
from downline.repositories.record_store import (
    AppendReferral,
    CreateNode,
    PageCursor,
    WriteOp,
    check_field,
)
from downline.repositories.user_repository import UserRepository
from downline.utils.exceptions import (
    NodeNotFoundError,
    RegistrationError,
    StoreUnavailableError,
)


class SqlRecordStore:
    """Record store backed by a SQL database."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_concurrency: int = STORE_MAX_CONCURRENCY,
    ) -> None:
        """
        Initialize store.

        Args:
            session_factory: SQLAlchemy async session maker
            max_concurrency: Max sessions open at once; keep it within the
                engine pool so checkouts do not time out
        """
        self.session_factory = session_factory
        self.max_concurrency = max_concurrency
        self._limiter = asyncio.Semaphore(max_concurrency)

    @asynccontextmanager
    async def _repository(self, operation: str) -> AsyncIterator[UserRepository]:
        """Open a session (bounded by the limiter) and translate driver failures."""
        try:
            async with self._limiter, self.session_factory() as session:
                yield UserRepository(session)
        except (SQLAlchemyError, OSError, TimeoutError) as e:
            logger.error(
                "Store call failed",
                extra={
                    "operation": operation,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            raise StoreUnavailableError(f"Store call failed: {operation}") from e

    async def get(self, node_id: str) -> UserNode | None:
        """Point lookup by id."""
        async with self._repository("get") as repo:
            user = await repo.get_by_id(node_id)
            return user.to_node() if user else None

    async def find_equal(
        self, field: str, value: str, limit: int | None = None
    ) -> list[UserNode]:
        """Nodes whose `field` equals `value`."""
        check_field(field)
        async with self._repository("find_equal") as repo:
            users = await repo.find_by(limit=limit, **{field: value})
            return [user.to_node() for user in users]

    async def find_in(
        self, field: str, values: Sequence[str], limit: int | None = None
    ) -> list[UserNode]:
        """Membership query."""
        check_field(field)
        async with self._repository("find_in") as repo:
            users = await repo.find_in(field, values, limit=limit)
            return [user.to_node() for user in users]

    async def count_in(self, field: str, values: Sequence[str]) -> int:
        """Count of the membership query."""
        check_field(field)
        async with self._repository("count_in") as repo:
            return await repo.count_in(field, values)

    async def find_range(
        self, field: str, start: str, end: str, limit: int
    ) -> list[UserNode]:
        """Ordered range scan."""
        check_field(field)
        async with self._repository("find_range") as repo:
            users = await repo.find_range(field, start, end, limit)
            return [user.to_node() for user in users]

    async def find_children_page(
        self, parent_id: str, after: PageCursor | None, limit: int
    ) -> list[UserNode]:
        """Children newest first, after the cursor."""
        async with self._repository("find_children_page") as repo:
            users = await repo.find_children_page(
                parent_id,
                after.created_at if after else None,
                after.id if after else None,
                limit,
            )
            return [user.to_node() for user in users]

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """
        Apply write ops in one transaction.

        Raises:
            NodeNotFoundError: If an appended-to parent does not exist
            RegistrationError: If a unique constraint is violated
            StoreUnavailableError: On any other store failure
        """
        async with self._repository("commit") as repo:
            try:
                async with repo.session.begin():
                    for op in ops:
                        await self._apply(repo, op)
            except IntegrityError as e:
                raise RegistrationError("Node or referral code already exists") from e

    async def _apply(self, repo: UserRepository, op: WriteOp) -> None:
        """Apply a single write op inside an open transaction."""
        if isinstance(op, CreateNode):
            node = op.node
            await repo.create(
                id=node.id,
                upline=node.upline,
                referral_code=node.referral_code,
                name=node.name,
                normalized_name=node.normalized_name,
                email=node.email,
                phone=node.phone,
                created_at=node.created_at,
                referrals=list(node.referrals),
            )
        elif isinstance(op, AppendReferral):
            parent = await repo.append_referral(op.parent_id, op.child_id)
            if parent is None:
                raise NodeNotFoundError(f"Parent {op.parent_id} not found")
        else:
            raise TypeError(f"Unsupported write op: {op!r}")

