"""
Tests for the audit log.
"""

import tempfile

import pytest

from trustchain.audit import AuditLog
from trustchain.core.clock import ManualClock
from trustchain.store import FileAuditStore, MemoryAuditStore


def _record_mix(audit):
    audit.record("42", "create", "success", element_id="e1")
    audit.record("42", "attempted_edit", "denied", element_id="e1")
    audit.record("42", "verify", "success")
    audit.record("42", "attempted_delete", "denied", element_id="e2")
    audit.record("43", "create", "success", element_id="x1")


def test_query_newest_first():
    audit = AuditLog(MemoryAuditStore(), clock=ManualClock())
    _record_mix(audit)

    actions = [e.action for e in audit.query("42")]
    assert actions == ["attempted_delete", "verify", "attempted_edit", "create"]


def test_query_filters():
    audit = AuditLog(MemoryAuditStore(), clock=ManualClock())
    _record_mix(audit)

    denied = audit.query("42", outcome="denied")
    assert [e.element_id for e in denied] == ["e2", "e1"]

    assert len(audit.query("42", action="create")) == 1
    assert [e.action for e in audit.query("42", element_id="e1")] == ["attempted_edit", "create"]
    assert [e.owner_id for e in audit.query("43")] == ["43"]


def test_query_limit_is_clamped():
    audit = AuditLog(MemoryAuditStore(), clock=ManualClock(), default_limit=2)
    for _ in range(5):
        audit.record("42", "read", "success")

    assert len(audit.query("42")) == 2
    assert len(audit.query("42", limit=4)) == 4
    assert len(audit.query("42", limit=0)) == 1
    assert len(audit.query("42", limit=100000)) == 5


def test_invalid_action_writes_nothing():
    audit = AuditLog(MemoryAuditStore(), clock=ManualClock())

    with pytest.raises(ValueError):
        audit.record("42", "rewrite_history", "success")
    with pytest.raises(ValueError):
        audit.record("42", "create", "maybe")

    assert audit.query("42") == []


def test_file_audit_store_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit = AuditLog(FileAuditStore(tmpdir), clock=ManualClock())
        _record_mix(audit)

        reopened = AuditLog(FileAuditStore(tmpdir))
        entries = reopened.query("42")
        assert [e.action for e in entries] == ["attempted_delete", "verify", "attempted_edit", "create"]
        assert entries[0].timestamp > entries[-1].timestamp
        assert reopened.query("42", outcome="denied", limit=1)[0].element_id == "e2"
