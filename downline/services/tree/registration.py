"""
Node registration.

Creates a node under a sponsor and appends it to the sponsor's referral list
in one atomic commit.
"""

from collections.abc import Callable
from datetime import datetime

from loguru import logger

from downline.models.node import UserNode
from downline.repositories.record_store import (
    AppendReferral,
    CreateNode,
    RecordStore,
)
from downline.services.tree.referral_codes import ReferralCodeGenerator
from downline.utils.datetime_utils import utc_now
from downline.utils.exceptions import NodeNotFoundError, RegistrationError
from downline.utils.validation import (
    normalize_email,
    normalize_name,
    normalize_name_key,
    normalize_phone,
    normalize_referral_code,
    validate_email,
)


class RegistrationService:
    """Registers new nodes and resolves sponsors."""

    def __init__(
        self,
        store: RecordStore,
        code_generator: ReferralCodeGenerator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize registration service.

        Args:
            store: Record store
            code_generator: Referral code generator
            clock: Time source for created_at
        """
        self.store = store
        self.code_generator = code_generator or ReferralCodeGenerator(store)
        self.clock = clock

    async def find_sponsor(self, referral_code: str | None) -> UserNode:
        """
        Find sponsor by referral code.

        Args:
            referral_code: Code in any case

        Returns:
            Sponsor node

        Raises:
            NodeNotFoundError: If no node has this code
        """
        code = normalize_referral_code(referral_code)
        if not code:
            raise NodeNotFoundError("Referral code is empty")

        matches = await self.store.find_equal("referral_code", code, limit=1)
        if not matches:
            raise NodeNotFoundError(f"No sponsor with referral code {code}")
        return matches[0]

    async def register(
        self,
        node_id: str,
        name: str,
        email: str,
        phone: str,
        sponsor_code: str,
    ) -> UserNode:
        """
        Register a node under the sponsor identified by `sponsor_code`.

        Args:
            node_id: Id of the new node (caller identity)
            name: Display name
            email: Email address
            phone: Phone number
            sponsor_code: Sponsor's referral code

        Returns:
            Created node

        Raises:
            RegistrationError: If input is invalid or identity is taken
            NodeNotFoundError: If the sponsor does not exist
        """
        sponsor = await self.find_sponsor(sponsor_code)
        if sponsor.id == node_id:
            raise RegistrationError("A node cannot sponsor itself")

        node = await self._build_node(node_id, name, email, phone, upline=sponsor.id)
        await self.store.commit([
            CreateNode(node=node),
            AppendReferral(parent_id=sponsor.id, child_id=node.id),
        ])

        logger.info(
            "Node registered",
            extra={
                "node_id": node.id,
                "upline": sponsor.id,
                "referral_code": node.referral_code,
            },
        )
        return node

    async def create_root(
        self, node_id: str, name: str, email: str, phone: str = ""
    ) -> UserNode:
        """
        Create a program root (a node without upline).

        Args:
            node_id: Id of the root
            name: Display name
            email: Email address
            phone: Phone number

        Returns:
            Created root node
        """
        node = await self._build_node(node_id, name, email, phone, upline=None)
        await self.store.commit([CreateNode(node=node)])

        logger.info(
            "Root node created",
            extra={"node_id": node.id, "referral_code": node.referral_code},
        )
        return node

    async def _build_node(
        self,
        node_id: str,
        name: str,
        email: str,
        phone: str,
        upline: str | None,
    ) -> UserNode:
        """Validate identity fields and assemble a new node."""
        node_id = (node_id or "").strip()
        if not node_id:
            raise RegistrationError("Node id is required")

        display_name = normalize_name(name)
        if not display_name:
            raise RegistrationError("Name is required")

        email_norm = normalize_email(email)
        if not validate_email(email_norm):
            raise RegistrationError("Invalid email address")

        phone_norm = normalize_phone(phone)

        if await self.store.get(node_id) is not None:
            raise RegistrationError("Node is already registered")
        if await self.store.find_equal("email", email_norm, limit=1):
            raise RegistrationError("Email is already registered")
        if phone_norm and await self.store.find_equal("phone", phone_norm, limit=1):
            raise RegistrationError("Phone is already registered")

        referral_code = await self.code_generator.generate(node_id)

        return UserNode(
            id=node_id,
            upline=upline,
            referral_code=referral_code,
            name=display_name,
            normalized_name=normalize_name_key(display_name),
            email=email_norm,
            phone=phone_norm,
            created_at=self.clock(),
            referrals=[],
        )
