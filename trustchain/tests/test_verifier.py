"""
Tests for chain verification.

Critical: verification must detect any tampering, and report it as data.
"""

import json
import os
import tempfile
from dataclasses import replace
from datetime import timedelta

import pytest

from trustchain.chain import ChainEngine
from trustchain.core.clock import ManualClock
from trustchain.core.errors import CorruptElement, StoreError
from trustchain.core.hasher import content_hash, link_hash
from trustchain.store import FileChainStore, MemoryChainStore
from trustchain.verify import BrokenLink, EmptyChain, HashMismatch, Verified, verify_chain


def _build(store, n=5, chain_id="42"):
    engine = ChainEngine(store, clock=ManualClock())
    return [engine.append(chain_id, f"content {i}") for i in range(n)]


def _tamper(store, chain_key, seq, /, **changes):
    """Overwrite one stored element in place (bypassing append-only)."""
    chain = store._chains[chain_key]
    chain[seq] = replace(chain[seq], **changes)


def test_empty_chain():
    result = verify_chain(MemoryChainStore(), "42")
    assert isinstance(result, EmptyChain)
    assert result.valid


def test_fresh_chain_verifies():
    store = MemoryChainStore()
    elements = _build(store, n=10)

    result = verify_chain(store, "42")
    assert isinstance(result, Verified)
    assert result.checked == 10
    assert result.head_hash == elements[-1].hash
    assert result.to_dict()["result"] == "verified"


def test_tampered_content_hash():
    store = MemoryChainStore()
    _build(store)
    _tamper(store, "42", 3, content_hash=content_hash("forged"))

    result = verify_chain(store, "42")
    assert isinstance(result, HashMismatch)
    assert result.sequence == 3
    assert result.checked == 2
    assert not result.valid


def test_tampered_timestamp():
    store = MemoryChainStore()
    elements = _build(store)
    _tamper(store, "42", 2, canonical_timestamp=elements[1].canonical_timestamp + timedelta(seconds=5))

    result = verify_chain(store, "42")
    assert isinstance(result, HashMismatch)
    assert result.sequence == 2


def test_tampered_previous_hash():
    store = MemoryChainStore()
    _build(store)
    _tamper(store, "42", 4, previous_hash="0" * 64)

    result = verify_chain(store, "42")
    assert isinstance(result, BrokenLink)
    assert result.sequence == 4
    assert result.actual_previous == "0" * 64


def test_tampered_sequence():
    store = MemoryChainStore()
    _build(store)
    _tamper(store, "42", 2, sequence=7)

    result = verify_chain(store, "42")
    assert not result.valid
    assert isinstance(result, HashMismatch)
    assert result.sequence == 7
    assert result.checked == 1


def test_tampered_chain_id():
    store = MemoryChainStore()
    _build(store)
    _tamper(store, "42", 1, chain_id="43")

    result = verify_chain(store, "42")
    assert isinstance(result, HashMismatch)
    assert result.sequence == 1


def test_recomputed_hash_breaks_next_link():
    """A forger who also recomputes the hash is caught at the next element."""
    store = MemoryChainStore()
    _build(store)

    forged = replace(store._chains["42"][2], content_hash=content_hash("forged"))
    _tamper(store, "42", 2, content_hash=forged.content_hash, hash=link_hash(forged.link_fields()))

    result = verify_chain(store, "42")
    assert isinstance(result, BrokenLink)
    assert result.sequence == 3


def test_deleted_element():
    store = MemoryChainStore()
    _build(store)
    del store._chains["42"][3]

    result = verify_chain(store, "42")
    assert isinstance(result, BrokenLink)
    assert result.sequence == 4


@pytest.mark.parametrize("field", ["content_hash", "previous_hash", "hash"])
def test_file_store_tamper_detected(field):
    """Editing the JSONL file directly must fail verification."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        _build(store, n=3)

        path = store.path_for("42")
        with open(path, "r") as f:
            lines = f.readlines()

        rec = json.loads(lines[1])
        rec[field] = "f" * 64
        lines[1] = json.dumps(rec) + "\n"
        with open(path, "w") as f:
            f.writelines(lines)

        result = verify_chain(FileChainStore(tmpdir), "42")
        assert not result.valid
        assert result.sequence == 2


def test_file_store_round_trip_verifies():
    with tempfile.TemporaryDirectory() as tmpdir:
        _build(FileChainStore(tmpdir), n=4)
        assert os.path.exists(os.path.join(tmpdir, "chains"))

        result = verify_chain(FileChainStore(tmpdir), "42")
        assert isinstance(result, Verified)
        assert result.checked == 4


def _rewrite_line(path, index, **changes):
    with open(path, "r") as f:
        lines = f.readlines()
    rec = json.loads(lines[index])
    rec.update(changes)
    lines[index] = json.dumps(rec) + "\n"
    with open(path, "w") as f:
        f.writelines(lines)


@pytest.mark.parametrize(
    "changes",
    [
        {"canonical_timestamp": "tampered"},
        {"sequence": "2"},
        {"sequence": None},
    ],
)
def test_unparsable_file_element_is_a_finding(changes):
    """A record that no longer parses is reported at its position, not raised."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        _build(store, n=3)
        _rewrite_line(store.path_for("42"), 1, **changes)

        result = verify_chain(FileChainStore(tmpdir), "42")
        assert isinstance(result, HashMismatch)
        assert not result.valid
        assert result.sequence == 2
        assert result.checked == 1
        assert result.to_dict()["result"] == "hash_mismatch"


def test_unparsable_line_after_earlier_tamper():
    """An earlier tampered record is reported before a later unreadable one."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        _build(store, n=3)
        path = store.path_for("42")
        _rewrite_line(path, 0, content_hash="f" * 64)

        with open(path, "r") as f:
            lines = f.readlines()
        lines[2] = "{not json\n"
        with open(path, "w") as f:
            f.writelines(lines)

        result = verify_chain(FileChainStore(tmpdir), "42")
        assert isinstance(result, HashMismatch)
        assert result.sequence == 1
        assert result.checked == 0


def test_unparsable_line_raises_store_error_on_read():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        _build(store, n=2)
        _rewrite_line(store.path_for("42"), 1, canonical_timestamp="tampered")

        with pytest.raises(CorruptElement) as excinfo:
            store.list_elements("42")
        assert excinfo.value.position == 2
        assert isinstance(excinfo.value, StoreError)
        assert [el.sequence for el in excinfo.value.preceding] == [1]
