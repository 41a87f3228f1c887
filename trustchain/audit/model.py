"""
Audit entry model.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.canonical import format_timestamp, parse_timestamp

ACTIONS = (
    "create",
    "read",
    "attempted_edit",
    "attempted_delete",
    "verify",
    "rollback_created",
    "recovery",
)
OUTCOMES = ("success", "denied", "failed")


@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable record of a guarded operation or checkpoint transition.

    Fields:
        audit_id: Unique identifier
        owner_id: Owner the operation concerned
        element_id: Target record, if any
        action: One of ACTIONS
        actor: Who performed the action (default "system")
        outcome: One of OUTCOMES
        details: Free-form context
        timestamp: When it was recorded
    """
    audit_id: str
    owner_id: str
    action: str
    outcome: str
    timestamp: datetime
    element_id: Optional[str] = None
    actor: str = "system"
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.action not in ACTIONS:
            raise ValueError(f"invalid audit action: {self.action}")
        if self.outcome not in OUTCOMES:
            raise ValueError(f"invalid audit outcome: {self.outcome}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audit_id": self.audit_id,
            "owner_id": self.owner_id,
            "element_id": self.element_id,
            "action": self.action,
            "actor": self.actor,
            "outcome": self.outcome,
            "details": self.details,
            "timestamp": format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            audit_id=data["audit_id"],
            owner_id=data["owner_id"],
            element_id=data.get("element_id"),
            action=data["action"],
            actor=data.get("actor", "system"),
            outcome=data["outcome"],
            details=data.get("details", {}),
            timestamp=parse_timestamp(data["timestamp"]),
        )
