"""
Signed chain-head attestations (Ed25519).
"""

from .signer import SigningKey, VerifyingKey, ensure_keypair
from .head import HeadAttestation, AttestationResult, attest_head, verify_attestation

__all__ = [
    "SigningKey",
    "VerifyingKey",
    "ensure_keypair",
    "HeadAttestation",
    "AttestationResult",
    "attest_head",
    "verify_attestation",
]
