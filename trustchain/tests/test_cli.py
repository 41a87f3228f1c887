"""
Tests for the trustctl command line.
"""

import json
import os
import tempfile

from typer.testing import CliRunner

from trustchain.store import FileChainStore
from trustctl.main import app

runner = CliRunner()
ENV = {"TRUSTCHAIN_LOG_LEVEL": "ERROR", "TRUSTCHAIN_METRICS_ENABLED": "false"}


def _invoke(*args):
    return runner.invoke(app, list(args), env=ENV)


def _json(result):
    return json.loads(result.stdout)


def test_append_and_tail():
    with tempfile.TemporaryDirectory() as tmpdir:
        for content in ["a", "b", "c"]:
            result = _invoke("chain", "append", content, "--owner", "42", "--root", tmpdir, "--json")
            assert result.exit_code == 0, result.output

        result = _invoke("chain", "tail", "--owner", "42", "--root", tmpdir, "--lines", "2", "--json")
        assert result.exit_code == 0
        data = _json(result)
        assert data["count"] == 2
        assert [el["sequence"] for el in data["elements"]] == [2, 3]


def test_verify_exit_codes():
    with tempfile.TemporaryDirectory() as tmpdir:
        for content in ["a", "b", "c"]:
            _invoke("chain", "append", content, "--owner", "42", "--root", tmpdir)

        result = _invoke("chain", "verify", "--owner", "42", "--root", tmpdir, "--json")
        assert result.exit_code == 0
        assert _json(result)["result"] == "verified"

        path = FileChainStore(tmpdir).path_for("42")
        with open(path, "r") as f:
            lines = f.readlines()
        rec = json.loads(lines[0])
        rec["content_hash"] = "0" * 64
        lines[0] = json.dumps(rec) + "\n"
        with open(path, "w") as f:
            f.writelines(lines)

        result = _invoke("chain", "verify", "--owner", "42", "--root", tmpdir, "--json")
        assert result.exit_code == 1
        data = _json(result)
        assert data["result"] == "hash_mismatch"
        assert data["sequence"] == 1


def test_verify_reports_unparsable_element():
    with tempfile.TemporaryDirectory() as tmpdir:
        for content in ["a", "b", "c"]:
            _invoke("chain", "append", content, "--owner", "42", "--root", tmpdir)

        path = FileChainStore(tmpdir).path_for("42")
        with open(path, "r") as f:
            lines = f.readlines()
        rec = json.loads(lines[1])
        rec["canonical_timestamp"] = "tampered"
        lines[1] = json.dumps(rec) + "\n"
        with open(path, "w") as f:
            f.writelines(lines)

        result = _invoke("chain", "verify", "--owner", "42", "--root", tmpdir, "--json")
        assert result.exit_code == 1
        data = _json(result)
        assert data["result"] == "hash_mismatch"
        assert data["sequence"] == 2


def test_verify_empty_chain():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke("chain", "verify", "--chain", "nobody", "--root", tmpdir, "--json")
        assert result.exit_code == 0
        assert _json(result)["result"] == "empty_chain"


def test_rollback_requires_human():
    with tempfile.TemporaryDirectory() as tmpdir:
        _invoke("chain", "append", "a", "--owner", "42", "--root", tmpdir)

        result = _invoke(
            "checkpoint", "rollback", "--owner", "42", "--authorized-by", "agent",
            "--root", tmpdir, "--json",
        )
        assert result.exit_code == 2
        data = _json(result)
        assert data["success"] is False
        assert data["error_type"] == "HumanAuthorizationRequired"


def test_authorized_by_is_required():
    with tempfile.TemporaryDirectory() as tmpdir:
        _invoke("chain", "append", "a", "--owner", "42", "--root", tmpdir)

        for command in ["rollback", "recover"]:
            result = _invoke("checkpoint", command, "--owner", "42", "--root", tmpdir)
            assert result.exit_code == 2

        result = _invoke("checkpoint", "list", "--owner", "42", "--all", "--root", tmpdir, "--json")
        assert _json(result)["checkpoints"] == []


def test_rollback_recover_cycle():
    with tempfile.TemporaryDirectory() as tmpdir:
        for content in ["a", "b", "c"]:
            _invoke("chain", "append", content, "--owner", "42", "--root", tmpdir)

        result = _invoke(
            "checkpoint", "rollback", "--owner", "42", "--authorized-by", "human", "--after", "1",
            "--root", tmpdir, "--json",
        )
        assert result.exit_code == 0
        assert _json(result)["checkpoint"]["after_sequence"] == 1

        result = _invoke("chain", "status", "--owner", "42", "--root", tmpdir, "--json")
        status = _json(result)
        assert status["chain_length"] == 3
        assert status["hidden_count"] == 2

        result = _invoke("chain", "tail", "--owner", "42", "--canonical", "--root", tmpdir, "--json")
        assert _json(result)["count"] == 1

        result = _invoke(
            "checkpoint", "recover", "--owner", "42", "--authorized-by", "human", "--root", tmpdir, "--json"
        )
        assert result.exit_code == 0

        result = _invoke("checkpoint", "list", "--owner", "42", "--all", "--root", tmpdir, "--json")
        checkpoints = _json(result)["checkpoints"]
        assert len(checkpoints) == 1
        assert checkpoints[0]["active"] is False

        result = _invoke("audit", "log", "--owner", "42", "--root", tmpdir, "--json")
        actions = [e["action"] for e in _json(result)["entries"]]
        assert actions == ["recovery", "rollback_created"]


def test_audit_log_rejects_unknown_action():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke("audit", "log", "--owner", "42", "--action", "nope", "--root", tmpdir)
        assert result.exit_code == 2


def test_attest_create_and_verify():
    with tempfile.TemporaryDirectory() as tmpdir:
        key_path = os.path.join(tmpdir, "keys", "head_ed25519")
        out = os.path.join(tmpdir, "head.json")
        for content in ["a", "b"]:
            _invoke("chain", "append", content, "--owner", "42", "--root", tmpdir)

        result = _invoke(
            "attest", "create", "--owner", "42", "--key", key_path, "--out", out,
            "--root", tmpdir, "--json",
        )
        assert result.exit_code == 0, result.output
        assert _json(result)["attestation"]["chain_length"] == 2

        result = _invoke("attest", "verify", out, "--pubkey", key_path + ".pub", "--root", tmpdir, "--json")
        assert result.exit_code == 0
        assert _json(result)["valid"] is True

        # Truncate the chain behind the attestation
        path = FileChainStore(tmpdir).path_for("42")
        with open(path, "r") as f:
            first = f.readline()
        with open(path, "w") as f:
            f.write(first)

        result = _invoke("attest", "verify", out, "--pubkey", key_path + ".pub", "--root", tmpdir, "--json")
        assert result.exit_code == 1
        assert _json(result)["head_present"] is False


def test_version():
    result = _invoke("version")
    assert result.exit_code == 0
    assert "trustctl" in result.output
