"""
Tests for signed chain-head attestations.

Goal: signatures hold, and tail truncation after attesting is detected.
"""

import os
import stat
import tempfile

from trustchain.attest import (
    HeadAttestation,
    SigningKey,
    VerifyingKey,
    attest_head,
    ensure_keypair,
    verify_attestation,
)
from trustchain.chain import ChainEngine
from trustchain.core.clock import ManualClock
from trustchain.core.hasher import genesis_hash
from trustchain.store import FileChainStore, MemoryChainStore


def _chain(store, n=3):
    engine = ChainEngine(store, clock=ManualClock())
    return [engine.append("42", f"c{i}") for i in range(n)]


def test_attest_and_verify():
    store = MemoryChainStore()
    elements = _chain(store)
    key = SigningKey.generate()

    att = attest_head(store, "42", key, clock=ManualClock())

    assert att.chain_length == 3
    assert att.head_hash == elements[-1].hash
    assert att.genesis_hash == genesis_hash("42")
    assert att.pubkey_id == key.get_pubkey_id()

    result = verify_attestation(att, VerifyingKey.from_signing_key(key), store=store)
    assert result.valid
    assert result.signature_valid
    assert result.head_present


def test_empty_chain_attests_genesis():
    store = MemoryChainStore()
    key = SigningKey.generate()

    att = attest_head(store, "42", key)
    assert att.chain_length == 0
    assert att.head_hash == genesis_hash("42")
    assert verify_attestation(att, VerifyingKey.from_signing_key(key), store=store).valid


def test_tampered_attestation_fails_signature():
    store = MemoryChainStore()
    _chain(store)
    key = SigningKey.generate()
    att = attest_head(store, "42", key)

    forged = HeadAttestation.from_dict({**att.to_dict(), "chain_length": 2})
    result = verify_attestation(forged, VerifyingKey.from_signing_key(key))

    assert not result.valid
    assert not result.signature_valid
    assert result.error == "Invalid signature"


def test_garbage_signature_fails():
    store = MemoryChainStore()
    key = SigningKey.generate()
    att = attest_head(store, "42", key)

    forged = HeadAttestation.from_dict({**att.to_dict(), "signature": "not base64!!"})
    assert not verify_attestation(forged, VerifyingKey.from_signing_key(key)).valid


def test_wrong_key_rejected():
    store = MemoryChainStore()
    att = attest_head(store, "42", SigningKey.generate())

    result = verify_attestation(att, VerifyingKey.from_signing_key(SigningKey.generate()))
    assert not result.valid
    assert "Public key ID mismatch" in result.error


def test_truncation_detected():
    """Removing tail elements after attesting is caught by the store check."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileChainStore(tmpdir)
        _chain(store, n=4)
        key = SigningKey.generate()
        att = attest_head(store, "42", key)

        path = store.path_for("42")
        with open(path, "r") as f:
            lines = f.readlines()
        with open(path, "w") as f:
            f.writelines(lines[:2])

        result = verify_attestation(att, VerifyingKey.from_signing_key(key), store=FileChainStore(tmpdir))
        assert not result.valid
        assert result.signature_valid
        assert result.head_present is False


def test_attestation_json_round_trip():
    store = MemoryChainStore()
    _chain(store)
    key = SigningKey.generate()
    att = attest_head(store, "42", key)

    loaded = HeadAttestation.from_json(att.to_json())
    assert loaded == att
    assert verify_attestation(loaded, VerifyingKey.from_signing_key(key), store=store).valid


def test_ensure_keypair_creates_files_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        key_path = os.path.join(tmpdir, "keys", "head_ed25519")

        priv, pub = ensure_keypair(key_path)
        assert priv == key_path
        assert pub == key_path + ".pub"
        assert stat.S_IMODE(os.stat(priv).st_mode) == 0o600

        first_id = SigningKey.load_from_file(priv).get_pubkey_id()
        ensure_keypair(key_path)
        assert SigningKey.load_from_file(priv).get_pubkey_id() == first_id
        assert VerifyingKey.load_from_file(pub).get_pubkey_id() == first_id
