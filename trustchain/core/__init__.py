"""
Core primitives for trusted memory chains.

This module provides:
- ChainElement: Immutable hash-linked record
- Hasher: content_hash, link_hash, genesis_hash
- Canonical: Deterministic serialization
- Clock: Injectable time sources
- Owner/TrustPolicy: Explicit account policy
- Errors: Exception taxonomy
"""

from .elements import ChainElement
from .hasher import content_bytes, content_hash, link_hash, genesis_hash, GENESIS_PREFIX
from .canonical import (
    canonicalize,
    canonical_json_bytes,
    canonical_json_str,
    format_timestamp,
    parse_timestamp,
)
from .clock import SystemClock, ManualClock
from .ids import stable_id, new_id
from .policy import Owner, TrustPolicy, entry_chain_id, agent_chain_id
from .errors import (
    TrustChainError,
    HumanAuthorizationRequired,
    NoChainedEntries,
    NoActiveCheckpoint,
    CheckpointAlreadyActive,
    InvalidCheckpointSequence,
    Immutable,
    StorageConflict,
    AppendFailed,
    HashComputationFailed,
    StoreError,
    CorruptElement,
)

__all__ = [
    "ChainElement",
    "content_bytes",
    "content_hash",
    "link_hash",
    "genesis_hash",
    "GENESIS_PREFIX",
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "format_timestamp",
    "parse_timestamp",
    "SystemClock",
    "ManualClock",
    "stable_id",
    "new_id",
    "Owner",
    "TrustPolicy",
    "entry_chain_id",
    "agent_chain_id",
    "TrustChainError",
    "HumanAuthorizationRequired",
    "NoChainedEntries",
    "NoActiveCheckpoint",
    "CheckpointAlreadyActive",
    "InvalidCheckpointSequence",
    "Immutable",
    "StorageConflict",
    "AppendFailed",
    "HashComputationFailed",
    "StoreError",
    "CorruptElement",
]
