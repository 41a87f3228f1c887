"""
Checkpoint model for rollback visibility gates.

A checkpoint hides chain elements beyond `after_sequence` without deleting
them. Checkpoints are never deleted, only deactivated.
"""

import json
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.canonical import format_timestamp, parse_timestamp

CHECKPOINT_TYPES = ("rollback", "snapshot", "recovery")
CREATORS = ("human", "system")


@dataclass
class Checkpoint:
    """
    Visibility gate record.

    Fields:
        checkpoint_id: Unique identifier
        owner_id: Owner whose chain is gated
        chain_id: Chain the gate applies to
        checkpoint_type: "rollback", "snapshot" or "recovery"
        after_sequence: Elements with sequence > after_sequence are hidden
        created_by: "human" or "system"
        authorized_by: Who authorized it (must be "human" for rollbacks)
        active: Whether the gate is currently applied
        reason: Human-readable reason
        created_at: Creation instant
        deactivated_at: When the gate was lifted (None while active)
    """
    checkpoint_id: str
    owner_id: str
    chain_id: str
    checkpoint_type: str
    after_sequence: int
    created_by: str
    authorized_by: Optional[str]
    created_at: datetime
    active: bool = True
    reason: Optional[str] = None
    deactivated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.checkpoint_type not in CHECKPOINT_TYPES:
            raise ValueError(f"invalid checkpoint_type: {self.checkpoint_type}")
        if self.created_by not in CREATORS:
            raise ValueError(f"invalid created_by: {self.created_by}")

    def deactivated(self, at: datetime) -> "Checkpoint":
        """Return a copy with the gate lifted."""
        return replace(self, active=False, deactivated_at=at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checkpoint_id": self.checkpoint_id,
            "owner_id": self.owner_id,
            "chain_id": self.chain_id,
            "checkpoint_type": self.checkpoint_type,
            "after_sequence": self.after_sequence,
            "created_by": self.created_by,
            "authorized_by": self.authorized_by,
            "active": self.active,
            "reason": self.reason,
            "created_at": format_timestamp(self.created_at),
            "deactivated_at": (
                format_timestamp(self.deactivated_at) if self.deactivated_at else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Checkpoint":
        deactivated_at = data.get("deactivated_at")
        return cls(
            checkpoint_id=data["checkpoint_id"],
            owner_id=data["owner_id"],
            chain_id=data["chain_id"],
            checkpoint_type=data["checkpoint_type"],
            after_sequence=data["after_sequence"],
            created_by=data["created_by"],
            authorized_by=data.get("authorized_by"),
            active=data.get("active", True),
            reason=data.get("reason"),
            created_at=parse_timestamp(data["created_at"]),
            deactivated_at=parse_timestamp(deactivated_at) if deactivated_at else None,
        )

    def to_json(self) -> str:
        """Serialize to JSON string (for file storage)."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "Checkpoint":
        return cls.from_dict(json.loads(json_str))
