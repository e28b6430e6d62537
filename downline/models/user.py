"""
User model.

Represents a registered participant of the referral tree.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from downline.models.base import Base
from downline.models.node import UserNode
from downline.utils.datetime_utils import utc_now


class User(Base):
    """User model - one node of the referral tree."""

    __tablename__ = "users"
    __table_args__ = (
        # Paginated child listing: upline == ? ORDER BY created_at DESC, id DESC
        Index("ix_users_upline_created_at", "upline", "created_at"),
    )

    # Opaque id assigned by the identity provider
    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Direct parent; NULL only for program roots. Never updated.
    upline: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True
    )

    referral_code: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True, index=True
    )

    # Identity / contact
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    normalized_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default="", index=True
    )
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, default="", index=True
    )
    phone: Mapped[str] = mapped_column(
        String(50), nullable=False, default="", index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    # Advisory child list, append-only. Traversal reads `upline` instead.
    referrals: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )

    def to_node(self) -> UserNode:
        """Convert ORM row to a store-agnostic node record."""
        return UserNode(
            id=self.id,
            upline=self.upline,
            referral_code=self.referral_code,
            name=self.name,
            normalized_name=self.normalized_name,
            email=self.email,
            phone=self.phone,
            created_at=self.created_at,
            referrals=list(self.referrals or []),
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id!r}, upline={self.upline!r}, "
            f"referral_code={self.referral_code!r})>"
        )
