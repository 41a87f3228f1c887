"""
Tests for the chain engine.

Goal: linkage holds across appends, and a sequence collision is retried
from a fresh tail rather than written twice.
"""

import pytest

from trustchain.chain import ChainEngine
from trustchain.core.clock import ManualClock
from trustchain.core.errors import AppendFailed, HashComputationFailed, StorageConflict
from trustchain.core.hasher import content_hash, genesis_hash
from trustchain.store import MemoryChainStore


def _engine(max_retries=3):
    store = MemoryChainStore()
    return ChainEngine(store, clock=ManualClock(), max_retries=max_retries), store


def test_first_element_links_to_genesis():
    engine, _ = _engine()
    el = engine.append("42", "a")

    assert el.sequence == 1
    assert el.previous_hash == genesis_hash("42")
    assert el.content_hash == content_hash("a")


def test_chain_linkage():
    """Each element chains to the previous element's hash."""
    engine, store = _engine()
    for content in ["a", "b", "c", "d", "e"]:
        engine.append("42", content)

    elements = store.list_elements("42")
    assert [el.sequence for el in elements] == [1, 2, 3, 4, 5]
    assert elements[0].previous_hash == genesis_hash("42")
    for prev, curr in zip(elements, elements[1:]):
        assert curr.previous_hash == prev.hash


def test_chains_are_independent():
    engine, _ = _engine()
    a = engine.append("42", "x")
    b = engine.append("user:42:agent:reader", "x")

    assert a.sequence == b.sequence == 1
    assert a.content_hash == b.content_hash
    assert a.hash != b.hash


def test_element_id_and_meta_pass_through():
    engine, _ = _engine()
    el = engine.append("42", "a", element_id="entry-1", meta={"source_agent_id": "reader"})
    assert el.element_id == "entry-1"
    assert el.meta == {"source_agent_id": "reader"}


def test_generated_element_ids_are_unique():
    engine, _ = _engine()
    ids = {engine.append("42", "a").element_id for _ in range(5)}
    assert len(ids) == 5


def test_append_batch_shares_timestamp():
    engine, store = _engine()
    engine.append("42", "first")
    elements = engine.append_batch("42", ["a", "b", "c"], source_hash="s" * 64)

    assert [el.sequence for el in elements] == [2, 3, 4]
    assert len({el.canonical_timestamp for el in elements}) == 1
    assert all(el.source_hash == "s" * 64 for el in elements)
    assert elements[0].previous_hash == store.get_element("42", 1).hash
    assert elements[1].previous_hash == elements[0].hash


def test_append_batch_empty():
    engine, store = _engine()
    assert engine.append_batch("42", []) == []
    assert store.get_tail("42") is None


def test_append_batch_element_ids_length_mismatch():
    engine, _ = _engine()
    with pytest.raises(ValueError):
        engine.append_batch("42", ["a", "b"], element_ids=["only-one"])


def test_prepare_does_not_write():
    engine, store = _engine()
    el = engine.prepare("42", "a")
    assert el.sequence == 1
    assert store.get_tail("42") is None


def test_conflict_is_retried_from_fresh_tail():
    """
    Simulate a second writer that wins the race for sequence 1.
    """
    engine, store = _engine()
    calls = []

    def racing_persist(element):
        calls.append(element.sequence)
        if len(calls) == 1:
            # Competing writer commits sequence 1 first
            store.insert(engine.prepare("42", "other writer"))
        store.insert(element)

    el = engine.append("42", "mine", persist=racing_persist)

    assert calls == [1, 2]
    assert el.sequence == 2
    elements = store.list_elements("42")
    assert len(elements) == 2
    assert elements[1].previous_hash == elements[0].hash


def test_append_failed_after_retries():
    engine, store = _engine(max_retries=3)
    attempts = []

    def always_conflicts(element):
        attempts.append(element)
        raise StorageConflict(element.chain_id, element.sequence)

    with pytest.raises(AppendFailed) as exc_info:
        engine.append("42", "a", persist=always_conflicts)

    assert len(attempts) == 3
    assert isinstance(exc_info.value.__cause__, StorageConflict)
    assert store.get_tail("42") is None


def test_hash_failure_writes_nothing():
    engine, store = _engine()
    engine.append("42", "a")

    with pytest.raises(HashComputationFailed):
        engine.append_batch("42", ["b", object(), "c"])

    assert [el.sequence for el in store.list_elements("42")] == [1]


def test_store_rejects_duplicate_sequence():
    engine, store = _engine()
    el = engine.append("42", "a")
    with pytest.raises(StorageConflict):
        store.insert(el)


def test_max_retries_must_be_positive():
    with pytest.raises(ValueError):
        ChainEngine(MemoryChainStore(), max_retries=0)
