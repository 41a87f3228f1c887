"""
Signed chain-head attestations.

Verification from genesis cannot tell a truncated chain from a short one.
An attestation pins (chain_length, head_hash) under an Ed25519 signature so
that later removal of tail elements is detectable.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.canonical import format_timestamp
from ..core.clock import SystemClock
from ..core.hasher import genesis_hash
from ..store.base import ChainStore
from .signer import SigningKey, VerifyingKey

ATTESTATION_VERSION = 1


@dataclass(frozen=True)
class HeadAttestation:
    """
    Signed receipt of a chain head.

    Fields:
        version: Format version (currently 1)
        chain_id: Attested chain
        chain_length: Sequence of the head element (0 for an empty chain)
        head_hash: Hash of the head element (genesis hash when empty)
        genesis_hash: Genesis hash of the chain
        attested_at: ISO-8601 UTC timestamp
        pubkey_id: Identifier of the signing key
        signature: Base64 Ed25519 signature over signing_payload()
    """
    version: int
    chain_id: str
    chain_length: int
    head_hash: str
    genesis_hash: str
    attested_at: str
    pubkey_id: str
    signature: str = ""

    def signing_payload(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "chain_id": self.chain_id,
            "chain_length": self.chain_length,
            "head_hash": self.head_hash,
            "genesis_hash": self.genesis_hash,
            "attested_at": self.attested_at,
            "pubkey_id": self.pubkey_id,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.signing_payload()
        data["signature"] = self.signature
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HeadAttestation":
        return cls(
            version=data["version"],
            chain_id=data["chain_id"],
            chain_length=data["chain_length"],
            head_hash=data["head_hash"],
            genesis_hash=data["genesis_hash"],
            attested_at=data["attested_at"],
            pubkey_id=data["pubkey_id"],
            signature=data.get("signature", ""),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "HeadAttestation":
        return cls.from_dict(json.loads(json_str))


@dataclass
class AttestationResult:
    valid: bool
    signature_valid: bool = False
    head_present: Optional[bool] = None
    error: Optional[str] = None


def attest_head(
    store: ChainStore,
    chain_id: str,
    signing_key: SigningKey,
    clock=None,
) -> HeadAttestation:
    """Sign the current head of a chain."""
    clock = clock or SystemClock()
    tail = store.get_tail(chain_id)
    genesis = genesis_hash(chain_id)

    unsigned = HeadAttestation(
        version=ATTESTATION_VERSION,
        chain_id=chain_id,
        chain_length=tail.sequence if tail else 0,
        head_hash=tail.hash if tail else genesis,
        genesis_hash=genesis,
        attested_at=format_timestamp(clock.now()),
        pubkey_id=signing_key.get_pubkey_id(),
    )
    signature = signing_key.sign_base64(unsigned.signing_payload())
    return HeadAttestation(**{**unsigned.signing_payload(), "signature": signature})


def verify_attestation(
    attestation: HeadAttestation,
    verifying_key: VerifyingKey,
    store: Optional[ChainStore] = None,
) -> AttestationResult:
    """
    Check an attestation's signature and, given a store, that the attested
    head is still present in the chain.
    """
    expected_pubkey_id = verifying_key.get_pubkey_id()
    if attestation.pubkey_id != expected_pubkey_id:
        return AttestationResult(
            valid=False,
            error=f"Public key ID mismatch: expected {expected_pubkey_id}, got {attestation.pubkey_id}",
        )

    if not verifying_key.verify_base64(attestation.signing_payload(), attestation.signature):
        return AttestationResult(valid=False, error="Invalid signature")

    if attestation.genesis_hash != genesis_hash(attestation.chain_id):
        return AttestationResult(
            valid=False, signature_valid=True, error="Genesis hash does not match chain id"
        )

    if store is None:
        return AttestationResult(valid=True, signature_valid=True)

    if attestation.chain_length == 0:
        return AttestationResult(valid=True, signature_valid=True, head_present=True)

    element = store.get_element(attestation.chain_id, attestation.chain_length)
    if element is None:
        return AttestationResult(
            valid=False,
            signature_valid=True,
            head_present=False,
            error=f"Element {attestation.chain_length} missing from chain (truncated?)",
        )
    if element.hash != attestation.head_hash:
        return AttestationResult(
            valid=False,
            signature_valid=True,
            head_present=False,
            error=f"Head hash mismatch at sequence {attestation.chain_length}",
        )

    return AttestationResult(valid=True, signature_valid=True, head_present=True)
