"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from downline.models.base import Base
from downline.models.node import UserNode
from downline.models.user import User

__all__ = [
    "Base",
    "User",
    "UserNode",
]
