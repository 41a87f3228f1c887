"""
Attestation commands: create, verify
"""

from pathlib import Path
from typing import Optional

import typer

from trustchain.attest import (
    HeadAttestation,
    SigningKey,
    VerifyingKey,
    attest_head,
    ensure_keypair,
    verify_attestation,
)
from trustchain.core.errors import TrustChainError
from trustchain.core.policy import entry_chain_id

from ._common import (
    EXIT_FINDING,
    console,
    emit_json,
    fail,
    json_option,
    open_memory,
    root_option,
)

app = typer.Typer()


@app.command()
def create(
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner id (entry chain)"),
    chain: Optional[str] = typer.Option(None, "--chain", "-c", help="Explicit chain id"),
    key_path: Optional[str] = typer.Option(
        None,
        "--key",
        "-k",
        help="Ed25519 private key PEM (default: $TRUSTCHAIN_KEY_PATH, generated if missing)",
    ),
    output: Optional[str] = typer.Option(
        None, "--out", help="Write attestation JSON to this file"
    ),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Sign the current head of a chain.

    Examples:
        trustctl attest create --owner 42 --out head.json
        trustctl attest create --chain user:42:agent:reader --key signing_key.pem
    """
    if not chain and not owner:
        fail("either --chain or --owner is required", json_output)
    chain_id = chain or entry_chain_id(owner)

    try:
        tm = open_memory(root)
        private_path, public_path = ensure_keypair(key_path or tm.settings.key_path)
        signing_key = SigningKey.load_from_file(private_path)
        attestation = attest_head(tm.chain_store, chain_id, signing_key, clock=tm.clock)
        if output:
            Path(output).write_text(attestation.to_json(), encoding="utf-8")
    except (TrustChainError, OSError, ValueError) as e:
        fail(str(e), json_output)

    if json_output:
        emit_json({"success": True, "attestation": attestation.to_dict(), "public_key": public_path})
    else:
        console.print("[green]✓ Head attested[/green]")
        console.print(f"  Chain: [cyan]{chain_id}[/cyan]")
        console.print(f"  Length: {attestation.chain_length}")
        console.print(f"  Head: {attestation.head_hash}")
        console.print(f"  Key: {attestation.pubkey_id} ({public_path})")
        if output:
            console.print(f"  Written to: {output}")


@app.command()
def verify(
    attestation_path: str = typer.Argument(..., help="Attestation JSON file"),
    pubkey_path: str = typer.Option(..., "--pubkey", "-p", help="Ed25519 public key PEM"),
    check_store: bool = typer.Option(
        True, "--check-store/--signature-only", help="Also check the head is still in the chain"
    ),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Verify an attestation signature and that its head is still present.

    Exit code 1 when the attestation does not hold.
    """
    try:
        attestation = HeadAttestation.from_json(Path(attestation_path).read_text(encoding="utf-8"))
        verifying_key = VerifyingKey.load_from_file(pubkey_path)
        store = open_memory(root).chain_store if check_store else None
        result = verify_attestation(attestation, verifying_key, store=store)
    except (TrustChainError, OSError, ValueError, KeyError) as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(
            {
                "valid": result.valid,
                "signature_valid": result.signature_valid,
                "head_present": result.head_present,
                "error": result.error,
                "chain_id": attestation.chain_id,
                "chain_length": attestation.chain_length,
            }
        )
    elif result.valid:
        console.print("[green]✓ Attestation valid[/green]")
        console.print(f"  Chain: [cyan]{attestation.chain_id}[/cyan] (length {attestation.chain_length})")
    else:
        console.print("[red]✗ Attestation invalid[/red]")
        console.print(f"  Error: {result.error}")

    if not result.valid:
        raise typer.Exit(EXIT_FINDING)
