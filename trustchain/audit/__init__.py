"""
Immutable audit trail of guarded operations and checkpoint transitions.
"""

from .model import AuditEntry, ACTIONS, OUTCOMES
from .log import AuditLog

__all__ = ["AuditEntry", "ACTIONS", "OUTCOMES", "AuditLog"]
