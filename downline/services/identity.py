"""
Caller identity resolution.

Turns a bearer credential into the caller's node id. Tokens are Fernet
tokens carrying the node id, bounded by a TTL.
"""

from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from downline.utils.exceptions import AuthenticationError


class IdentityResolver(Protocol):
    """Resolves a bearer credential to a node id."""

    async def resolve(self, token: str | None) -> str:
        """Return caller id or raise AuthenticationError."""
        ...


class TokenIdentityResolver:
    """Fernet-token identity resolver."""

    def __init__(self, secret: str, ttl_seconds: int) -> None:
        """
        Initialize resolver.

        Args:
            secret: Base64-encoded Fernet key
            ttl_seconds: Token lifetime
        """
        self.fernet = Fernet(secret.encode())
        self.ttl_seconds = ttl_seconds

    def issue(self, node_id: str) -> str:
        """
        Issue a bearer token for a node.

        Args:
            node_id: Node id

        Returns:
            Token string
        """
        return self.fernet.encrypt(node_id.encode()).decode()

    async def resolve(self, token: str | None) -> str:
        """
        Resolve bearer token to node id.

        Args:
            token: Token without the "Bearer " prefix

        Returns:
            Node id

        Raises:
            AuthenticationError: If token is missing, invalid or expired
        """
        if not token:
            raise AuthenticationError("Missing token")

        try:
            node_id = self.fernet.decrypt(token.encode(), ttl=self.ttl_seconds).decode()
        except (InvalidToken, UnicodeError) as e:
            logger.info("Rejected bearer token")
            raise AuthenticationError("Invalid token") from e

        if not node_id:
            raise AuthenticationError("Invalid token")
        return node_id


def bearer_token(authorization: str | None) -> str | None:
    """Extract token from an Authorization header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None
