"""
Tests for the file-backed chain store.
"""

import json
import os
import tempfile
import threading

import pytest

from trustchain.chain import ChainEngine
from trustchain.core.clock import SystemClock
from trustchain.core.errors import StorageConflict, StoreError
from trustchain.store import FileChainStore
from trustchain.verify import Verified, verify_chain


def test_jsonl_one_element_per_line():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        engine = ChainEngine(store)
        engine.append_batch("42", ["a", "b", "c"])

        with open(store.path_for("42"), "r") as f:
            records = [json.loads(line) for line in f if line.strip()]

        assert [r["sequence"] for r in records] == [1, 2, 3]
        assert records[0]["canonical_timestamp"].endswith("Z")


def test_chain_ids_map_to_separate_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        assert store.path_for("42") != store.path_for("user:42:agent:reader")
        assert "/" not in os.path.basename(store.path_for("a/b"))


def test_duplicate_sequence_conflicts():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        el = ChainEngine(store).append("42", "a")

        with pytest.raises(StorageConflict):
            store.insert(el)
        assert len(store.list_elements("42")) == 1


def test_sequence_gap_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        engine = ChainEngine(store)
        el = engine.prepare("42", "a")

        with pytest.raises(StoreError):
            store.insert(engine.prepare("42", "b", tail=el))
        assert store.get_tail("42") is None


def test_get_element_and_count_after():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        elements = ChainEngine(store).append_batch("42", ["a", "b", "c", "d"])

        assert store.get_element("42", 3) == elements[2]
        assert store.get_element("42", 9) is None
        assert store.count_after("42", 1) == 3
        assert [el.sequence for el in store.list_elements("42", max_sequence=2)] == [1, 2]


def test_concurrent_appenders_stay_linked():
    """
    Several engines sharing one directory must never fork the chain.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        errors = []

        def writer(n):
            engine = ChainEngine(FileChainStore(tmpdir), clock=SystemClock(), max_retries=50)
            try:
                for i in range(5):
                    engine.append("42", f"writer {n} item {i}")
            except Exception as ex:  # surfaced via the errors list
                errors.append(ex)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        result = verify_chain(FileChainStore(tmpdir), "42")
        assert isinstance(result, Verified)
        assert result.checked == 20
