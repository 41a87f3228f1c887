"""
Chain element model.

Elements are immutable once created: every field that contributes to
`hash` is write-once.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .canonical import format_timestamp, parse_timestamp
from .hasher import element_link_fields


@dataclass(frozen=True)
class ChainElement:
    """
    One hash-linked record.

    Fields:
        chain_id: Chain this element belongs to
        sequence: 1-based position, gapless and unique per chain
        previous_hash: Hash of element sequence-1, or the genesis hash
        content_hash: SHA-256 of the content bytes
        source_hash: Hash of an upstream record (provenance, not a link)
        canonical_timestamp: Instant used in the hash computation
        hash: Link hash over the fields above
        element_id: Caller record id (not hashed)
        meta: Caller attribution (not hashed)
    """
    chain_id: str
    sequence: int
    previous_hash: str
    content_hash: str
    source_hash: Optional[str]
    canonical_timestamp: datetime
    hash: str
    element_id: str
    meta: Dict[str, Any] = field(default_factory=dict)

    def link_fields(self) -> Dict[str, Any]:
        """Fields that go into the link hash, as stored."""
        return element_link_fields(
            sequence=self.sequence,
            previous_hash=self.previous_hash,
            chain_id=self.chain_id,
            content_hash=self.content_hash,
            source_hash=self.source_hash,
            canonical_timestamp=self.canonical_timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "sequence": self.sequence,
            "previous_hash": self.previous_hash,
            "content_hash": self.content_hash,
            "source_hash": self.source_hash,
            "canonical_timestamp": format_timestamp(self.canonical_timestamp),
            "hash": self.hash,
            "element_id": self.element_id,
            "meta": self.meta,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChainElement":
        sequence = data["sequence"]
        if isinstance(sequence, bool) or not isinstance(sequence, int):
            raise TypeError(f"sequence must be an integer, got {sequence!r}")
        return cls(
            chain_id=data["chain_id"],
            sequence=sequence,
            previous_hash=data["previous_hash"],
            content_hash=data["content_hash"],
            source_hash=data.get("source_hash"),
            canonical_timestamp=parse_timestamp(data["canonical_timestamp"]),
            hash=data["hash"],
            element_id=data["element_id"],
            meta=data.get("meta", {}),
        )
