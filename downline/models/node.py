"""
Store-agnostic node record.

Every Record Store implementation returns `UserNode` instances, so the
traversal engine never depends on a particular persistence layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from downline.utils.datetime_utils import to_wire


@dataclass(slots=True)
class UserNode:
    """One participant of the referral tree."""

    id: str
    upline: str | None
    referral_code: str
    name: str = ""
    normalized_name: str = ""
    email: str = ""
    phone: str = ""
    created_at: datetime | None = None
    referrals: list[str] = field(default_factory=list)

    def to_display(self) -> dict[str, Any]:
        """
        Project to the display record used by tree and children listings.

        Returns:
            Dict with wire-format keys
        """
        return {
            "id": self.id,
            "uid": self.id,
            "name": self.name,
            "email": self.email,
            "referralId": self.referral_code,
            "createdAt": to_wire(self.created_at),
        }

    def to_search_hit(self) -> dict[str, Any]:
        """Project to the record returned by search."""
        data = self.to_display()
        data["phone"] = self.phone
        data["upline"] = self.upline
        return data
