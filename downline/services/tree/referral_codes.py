"""
Referral code generation.

Deterministic candidate from the node id first, then a few random ones, then
a timestamp fallback.
"""

import re
import secrets
import string
from collections.abc import Callable
from datetime import datetime

from loguru import logger

from downline.config.constants import (
    REFERRAL_CODE_BODY_LENGTH,
    REFERRAL_CODE_PREFIX,
    REFERRAL_CODE_RANDOM_ATTEMPTS,
)
from downline.repositories.record_store import RecordStore
from downline.utils.datetime_utils import utc_now

BASE36_ALPHABET = string.digits + string.ascii_uppercase
NON_ALNUM_PATTERN = re.compile(r"[^A-Za-z0-9]")


def code_from_id(node_id: str) -> str:
    """Deterministic candidate: prefix + first characters of the id."""
    body = NON_ALNUM_PATTERN.sub("", node_id)[:REFERRAL_CODE_BODY_LENGTH]
    return REFERRAL_CODE_PREFIX + body.upper()


def random_code() -> str:
    """Random candidate: prefix + base36 characters."""
    body = "".join(
        secrets.choice(BASE36_ALPHABET) for _ in range(REFERRAL_CODE_BODY_LENGTH)
    )
    return REFERRAL_CODE_PREFIX + body


def timestamp_code(now: datetime) -> str:
    """Fallback candidate: prefix + last digits of epoch milliseconds."""
    millis = str(int(now.timestamp() * 1000))
    return REFERRAL_CODE_PREFIX + millis[-REFERRAL_CODE_BODY_LENGTH:]


class ReferralCodeGenerator:
    """Generates referral codes not yet used by any node."""

    def __init__(
        self,
        store: RecordStore,
        attempts: int = REFERRAL_CODE_RANDOM_ATTEMPTS,
        random_source: Callable[[], str] = random_code,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize generator.

        Args:
            store: Record store used for uniqueness lookups
            attempts: Random candidates tried after the deterministic one
            random_source: Random candidate factory
            clock: Time source for the fallback code
        """
        self.store = store
        self.attempts = attempts
        self.random_source = random_source
        self.clock = clock

    async def exists(self, code: str) -> bool:
        """Check if a code is already taken."""
        return bool(await self.store.find_equal("referral_code", code, limit=1))

    async def generate(self, node_id: str) -> str:
        """
        Generate a referral code for a new node.

        The timestamp fallback is not checked for uniqueness; the store's
        unique constraint rejects the rare collision at commit time.

        Args:
            node_id: Id of the node being created

        Returns:
            Referral code
        """
        candidate = code_from_id(node_id)
        if not await self.exists(candidate):
            return candidate

        for _ in range(self.attempts):
            candidate = self.random_source()
            if not await self.exists(candidate):
                return candidate

        fallback = timestamp_code(self.clock())
        logger.warning(
            "Referral code candidates exhausted, using timestamp fallback",
            extra={"node_id": node_id, "code": fallback},
        )
        return fallback
