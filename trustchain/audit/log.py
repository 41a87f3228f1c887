"""
Append-only audit log.

record() is a pure append: write failures propagate to the caller, since an
unaudited denial is indistinguishable from a bypass.
"""

from typing import Any, Dict, List, Optional

from ..config import DEFAULT_AUDIT_QUERY_LIMIT, MAX_AUDIT_QUERY_LIMIT
from ..core.clock import SystemClock
from ..core.ids import new_id
from ..store.base import AuditStore
from .model import AuditEntry


class AuditLog:

    def __init__(
        self,
        store: AuditStore,
        clock=None,
        default_limit: int = DEFAULT_AUDIT_QUERY_LIMIT,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.default_limit = default_limit

    def record(
        self,
        owner_id: str,
        action: str,
        outcome: str,
        element_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        actor: str = "system",
    ) -> AuditEntry:
        """
        Append one audit entry.

        Raises:
            ValueError: On an unknown action or outcome (nothing written)
            StoreError: If the write fails
        """
        entry = AuditEntry(
            audit_id=new_id(),
            owner_id=owner_id,
            element_id=element_id,
            action=action,
            actor=actor,
            outcome=outcome,
            details=dict(details or {}),
            timestamp=self.clock.now(),
        )
        self.store.insert(entry)
        return entry

    def query(
        self,
        owner_id: str,
        action: Optional[str] = None,
        outcome: Optional[str] = None,
        element_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEntry]:
        """Entries for an owner, newest first. limit is capped at 1000."""
        limit = self.default_limit if limit is None else limit
        limit = max(1, min(limit, MAX_AUDIT_QUERY_LIMIT))
        return self.store.query(
            owner_id,
            action=action,
            outcome=outcome,
            element_id=element_id,
            limit=limit,
        )
