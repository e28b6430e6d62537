"""
Record store adapter.

Describes the small set of document-store capabilities the traversal engine
relies on: point lookup, equality and membership filters, ordered range
scans, counting and atomic multi-document writes. Engine code talks only to
this protocol; the SQL implementation lives in `sql_record_store`.
"""

import base64
import binascii
import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from downline.models.node import UserNode
from downline.utils.datetime_utils import ensure_utc
from downline.utils.exceptions import InvalidCursorError

# Fields that may be used in equality / membership / range filters
QUERYABLE_FIELDS = frozenset(
    {"id", "upline", "referral_code", "email", "normalized_name", "phone"}
)


@dataclass(frozen=True, slots=True)
class PageCursor:
    """Position of the last item of a children page."""

    created_at: datetime
    id: str

    @classmethod
    def after(cls, node: UserNode) -> "PageCursor":
        """Cursor pointing just past the given node."""
        if node.created_at is None:
            raise ValueError(f"Node {node.id} has no created_at")
        return cls(created_at=ensure_utc(node.created_at), id=node.id)

    def encode(self) -> str:
        """Encode as an opaque urlsafe token."""
        raw = json.dumps(
            {"t": ensure_utc(self.created_at).isoformat(), "i": self.id},
            separators=(",", ":"),
        )
        return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")

    @classmethod
    def decode(cls, token: str) -> "PageCursor":
        """
        Decode an opaque token produced by `encode`.

        Raises:
            InvalidCursorError: If the token is malformed
        """
        try:
            padded = token + "=" * (-len(token) % 4)
            data = json.loads(base64.urlsafe_b64decode(padded.encode()))
            return cls(
                created_at=ensure_utc(datetime.fromisoformat(data["t"])),
                id=str(data["i"]),
            )
        except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            raise InvalidCursorError(f"Malformed cursor: {token!r}") from e


@dataclass(frozen=True, slots=True)
class CreateNode:
    """Write op: insert a new node."""

    node: UserNode


@dataclass(frozen=True, slots=True)
class AppendReferral:
    """Write op: append a child id to a parent's advisory referral list."""

    parent_id: str
    child_id: str


WriteOp = CreateNode | AppendReferral


@runtime_checkable
class RecordStore(Protocol):
    """Capabilities of the underlying document store."""

    async def get(self, node_id: str) -> UserNode | None:
        """Point lookup by id."""
        ...

    async def find_equal(
        self, field: str, value: str, limit: int | None = None
    ) -> list[UserNode]:
        """Nodes whose `field` equals `value`."""
        ...

    async def find_in(
        self, field: str, values: Sequence[str], limit: int | None = None
    ) -> list[UserNode]:
        """Nodes whose `field` is one of `values` (membership query)."""
        ...

    async def count_in(self, field: str, values: Sequence[str]) -> int:
        """Number of nodes matched by the membership query."""
        ...

    async def find_range(
        self, field: str, start: str, end: str, limit: int
    ) -> list[UserNode]:
        """Nodes with start <= field < end, ordered by field ascending."""
        ...

    async def find_children_page(
        self, parent_id: str, after: PageCursor | None, limit: int
    ) -> list[UserNode]:
        """
        Children of `parent_id` ordered newest first (created_at, id desc),
        starting strictly after `after`.
        """
        ...

    async def commit(self, ops: Sequence[WriteOp]) -> None:
        """Apply all write ops atomically, or none of them."""
        ...


def check_field(field: str) -> str:
    """
    Ensure a filter field is one the store supports.

    Raises:
        ValueError: If the field is not queryable
    """
    if field not in QUERYABLE_FIELDS:
        raise ValueError(f"Field {field!r} is not queryable")
    return field
