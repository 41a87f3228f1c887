"""
Content and link hashing.

Implements tamper-evident linking: each element's hash covers its own
position, its content digest, and the hash of its predecessor.
"""

import hashlib
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Optional

from .canonical import canonical_json_bytes, format_timestamp
from .errors import HashComputationFailed

GENESIS_PREFIX = "genesis:trustchain:v1:"

LINK_FIELDS = (
    "sequence",
    "previous_hash",
    "chain_id",
    "content_hash",
    "source_hash",
    "canonical_timestamp",
)


def content_bytes(content: Any) -> bytes:
    """
    Serialize a content source to the bytes that get hashed.

    - bytes: as-is
    - str: UTF-8
    - None: empty bytes
    - mapping (e.g. {"title": ..., "content": ..., "metadata": ...}):
      canonical JSON

    Raises:
        HashComputationFailed: If content has an unsupported type or
            cannot be serialized
    """
    if content is None:
        return b""
    if isinstance(content, bytes):
        return content
    if isinstance(content, str):
        return content.encode("utf-8")
    if isinstance(content, Mapping):
        try:
            return canonical_json_bytes(dict(content))
        except (TypeError, ValueError) as ex:
            raise HashComputationFailed(f"content is not serializable: {ex}") from ex
    raise HashComputationFailed(f"unsupported content type: {type(content).__name__}")


def content_hash(content: Any) -> str:
    """
    SHA-256 of the content bytes, independent of chain position.

    Returns:
        Lowercase hex digest (64 chars)
    """
    return hashlib.sha256(content_bytes(content)).hexdigest()


def link_payload(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the canonical link object from exactly the LINK_FIELDS.

    Raises:
        HashComputationFailed: On missing or unexpected keys
    """
    missing = [k for k in LINK_FIELDS if k not in fields]
    extra = [k for k in fields if k not in LINK_FIELDS]
    if missing or extra:
        raise HashComputationFailed(
            f"link fields mismatch: missing={missing} unexpected={extra}"
        )

    ts = fields["canonical_timestamp"]
    if isinstance(ts, datetime):
        ts = format_timestamp(ts)

    return {
        "sequence": int(fields["sequence"]),
        "previous_hash": fields["previous_hash"],
        "chain_id": fields["chain_id"],
        "content_hash": fields["content_hash"],
        "source_hash": fields["source_hash"],
        "canonical_timestamp": ts,
    }


def link_hash(fields: Dict[str, Any]) -> str:
    """
    Compute the chain link hash.

    Hash input: canonical_json({sequence, previous_hash, chain_id,
    content_hash, source_hash, canonical_timestamp})

    Returns:
        Lowercase hex digest (64 chars)
    """
    try:
        data = canonical_json_bytes(link_payload(fields))
    except (TypeError, ValueError) as ex:
        raise HashComputationFailed(f"link fields are not serializable: {ex}") from ex
    return hashlib.sha256(data).hexdigest()


def genesis_hash(chain_id: str) -> str:
    """
    Deterministic stand-in for element 0 of a chain.

    Recomputed on demand from the chain id; never persisted.
    """
    return hashlib.sha256(f"{GENESIS_PREFIX}{chain_id}".encode("utf-8")).hexdigest()


def element_link_fields(
    sequence: int,
    previous_hash: str,
    chain_id: str,
    content_hash: str,
    source_hash: Optional[str],
    canonical_timestamp: datetime,
) -> Dict[str, Any]:
    return {
        "sequence": sequence,
        "previous_hash": previous_hash,
        "chain_id": chain_id,
        "content_hash": content_hash,
        "source_hash": source_hash,
        "canonical_timestamp": canonical_timestamp,
    }
