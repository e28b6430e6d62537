"""
Validation and normalisation utilities.

Identity fields are stored normalised so that search can use exact and
prefix matches.
"""

import re

PHONE_STRIP_PATTERN = re.compile(r"[^\d+]")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
REFERRAL_CODE_STRIP_PATTERN = re.compile(r"[^A-Za-z0-9]")


def normalize_name(name: str | None) -> str:
    """Collapse whitespace in a display name."""
    return " ".join((name or "").split())


def normalize_name_key(name: str | None) -> str:
    """Lowercased name used for prefix search."""
    return normalize_name(name).lower()


def normalize_email(email: str | None) -> str:
    """Lowercase and trim an email address."""
    return (email or "").strip().lower()


def normalize_phone(phone: str | None) -> str:
    """Keep digits and a leading plus sign."""
    cleaned = PHONE_STRIP_PATTERN.sub("", phone or "")
    if cleaned.startswith("+"):
        return "+" + cleaned[1:].replace("+", "")
    return cleaned.replace("+", "")


def normalize_referral_code(code: str | None) -> str:
    """Strip non-alphanumerics and uppercase a referral code."""
    return REFERRAL_CODE_STRIP_PATTERN.sub("", code or "").upper()


def validate_email(email: str) -> bool:
    """
    Check email format.

    Args:
        email: Normalised email

    Returns:
        True if email looks valid
    """
    return bool(email) and bool(EMAIL_PATTERN.match(email))


def meaningful_length(query: str | None) -> int:
    """Count characters that are not whitespace."""
    return len("".join((query or "").split()))
