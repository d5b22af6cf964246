"""
Deterministic member identifiers for the Mailchimp API.

Mailchimp addresses list members by the MD5 hex digest of the lowercased
email address (the "subscriber hash"), so the same person always maps to
the same member resource regardless of how the address was typed.
"""

from __future__ import annotations

import hashlib

__all__ = [
    "normalize_email",
    "subscriber_hash",
]


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def subscriber_hash(email: str | None) -> str:
    """Deterministically hash a single email address into a member id."""
    normalized = normalize_email(email)
    return hashlib.md5(normalized.encode("utf-8"), usedforsecurity=False).hexdigest()
