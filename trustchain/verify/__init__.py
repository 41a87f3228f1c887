"""
Verification of chain integrity.
"""

from .verifier import (
    verify_chain,
    VerificationResult,
    Verified,
    EmptyChain,
    BrokenLink,
    HashMismatch,
)

__all__ = [
    "verify_chain",
    "VerificationResult",
    "Verified",
    "EmptyChain",
    "BrokenLink",
    "HashMismatch",
]
