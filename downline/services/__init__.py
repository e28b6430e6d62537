"""
Services package.

Business logic of the downline tree service.
"""

from downline.services.downline_service import DownlineService
from downline.services.identity import (
    IdentityResolver,
    TokenIdentityResolver,
    bearer_token,
)


__all__ = [
    "DownlineService",
    "IdentityResolver",
    "TokenIdentityResolver",
    "bearer_token",
]
