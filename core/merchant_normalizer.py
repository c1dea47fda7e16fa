"""
merchant_normalizer.py
-----------------------
Turns raw merchant labels and free-text descriptions into grouping keys.

Two outputs:
    - A display name: the raw merchant, or a merchant derived from the
      description by stripping payment-rail noise.
    - A normalized key: lowercase, alphanumeric only, at most 20 characters.

The key is lossy. Two merchants whose names share the same first 20
alphanumeric characters collide into one group ("Acme Insurance Company
Auto" and "Acme Insurance Company Home"). Callers and tests rely on this
behavior, so it is kept as is.
"""

import re
from typing import Optional


MERCHANT_KEY_LENGTH = 20
MIN_MERCHANT_LENGTH = 3

# Applied once each, in this order, to the previous result.
DESCRIPTION_NOISE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"^(pos|debit|credit|ach|wire|transfer|payment|purchase)\s+", re.IGNORECASE),
    re.compile(r"\s+(pos|debit|credit)$", re.IGNORECASE),
    re.compile(r"\s+\d{4,}$"),
    re.compile(r"\s+[A-Z]{2}\s*$"),   # State-code-like suffix, upper case only
)

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def extract_merchant_from_description(description: Optional[str]) -> Optional[str]:
    """
    Derive a merchant name from a transaction description.

    Example:
        "POS SPOTIFY USA 123456" -> "SPOTIFY USA"

    Each strip runs once, so "NETFLIX.COM 8884567 CA" keeps its digits: the
    digit strip runs before the state-code strip removes " CA".

    Returns:
        The cleaned name, or None if fewer than 3 characters remain.
    """
    if not description:
        return None

    cleaned = description
    for pattern in DESCRIPTION_NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned, count=1)

    cleaned = cleaned.strip()
    return cleaned if len(cleaned) >= MIN_MERCHANT_LENGTH else None


def resolve_merchant(merchant: Optional[str], description: Optional[str]) -> Optional[str]:
    """Explicit merchant label when present, otherwise derived from the description."""
    return merchant or extract_merchant_from_description(description)


def normalize_merchant(merchant: str) -> str:
    """Grouping key for a merchant name. See module docstring for collisions."""
    return _NON_ALPHANUMERIC.sub("", merchant.lower())[:MERCHANT_KEY_LENGTH]
