"""
Identifier generation.
"""

import hashlib
import uuid


def stable_id(*parts: str) -> str:
    """
    Generate stable ID derived from inputs (no randomness).

    Used for file names derived from chain and owner ids.

    Args:
        *parts: String parts to combine into ID

    Returns:
        SHA-256 hash as hex string
    """
    raw = "|".join(parts).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def new_id() -> str:
    """Random record identifier (UUID4 hex string)."""
    return uuid.uuid4().hex
