"""
Mutation guard for trusted memory records.

Under TrustPolicy.TRUSTED every edit or delete is denied, and the denial is
written to the audit log before Immutable is raised. If that audit write
fails, its error propagates instead: an unaudited denial must not look like
a successful guard call.
"""

import logging
from enum import Enum
from typing import Optional

from . import metrics
from .audit.log import AuditLog
from .core.errors import Immutable
from .core.policy import TrustPolicy

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    EDIT = "edit"
    DELETE = "delete"


_AUDIT_ACTIONS = {
    MutationKind.EDIT: "attempted_edit",
    MutationKind.DELETE: "attempted_delete",
}

_METHOD_KINDS = {
    "PUT": MutationKind.EDIT,
    "PATCH": MutationKind.EDIT,
    "DELETE": MutationKind.DELETE,
}


def kind_for_method(method: str) -> Optional[MutationKind]:
    """Map an HTTP verb to the mutation it performs, None if not guarded."""
    return _METHOD_KINDS.get(method.upper())


class Guard:

    def __init__(self, audit: AuditLog) -> None:
        self.audit = audit

    def guard_mutation(
        self,
        owner_id: str,
        policy: TrustPolicy,
        element_id: str,
        kind: MutationKind,
        details: Optional[dict] = None,
    ) -> None:
        """
        Deny edits and deletes of trusted memory records.

        Returns None when the policy is STANDARD (pass-through).
        Plain strings are coerced, so an unknown policy raises ValueError.

        Raises:
            Immutable: Under TrustPolicy.TRUSTED, after the denial is audited
        """
        policy = TrustPolicy(policy)
        if policy is not TrustPolicy.TRUSTED:
            return

        kind = MutationKind(kind)
        reason = (
            "Trusted memory mode prevents edits"
            if kind is MutationKind.EDIT
            else "Trusted memory mode prevents deletions"
        )
        self.audit.record(
            owner_id,
            _AUDIT_ACTIONS[kind],
            "denied",
            element_id=element_id,
            details={"reason": reason, **(details or {})},
        )
        metrics.track_denial(kind.value)
        logger.warning(
            "Mutation denied on trusted memory",
            extra={"trace_id": owner_id, "element_id": element_id, "kind": kind.value},
        )
        raise Immutable(element_id, kind.value)
