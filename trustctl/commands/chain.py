"""
Chain commands: append, verify, tail, status
"""

from typing import Optional

import typer
from rich.table import Table

from trustchain.core.errors import TrustChainError
from trustchain.core.policy import agent_chain_id, entry_chain_id

from ._common import (
    EXIT_ERROR,
    EXIT_FINDING,
    console,
    emit_json,
    fail,
    json_option,
    open_memory,
    operator_owner,
    root_option,
)

app = typer.Typer()


def _resolve_chain(owner: Optional[str], agent: Optional[str], chain: Optional[str]) -> str:
    if chain:
        return chain
    if owner is None:
        raise typer.BadParameter("either --chain or --owner is required")
    return agent_chain_id(owner, agent) if agent else entry_chain_id(owner)


@app.command()
def append(
    content: str = typer.Argument(..., help="Content to record"),
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner id (entry chain)"),
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Agent label (agent chain)"),
    chain: Optional[str] = typer.Option(None, "--chain", "-c", help="Explicit chain id"),
    source_hash: Optional[str] = typer.Option(None, "--source-hash", help="Upstream record hash"),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Append content to a chain.

    Examples:
        trustctl chain append "met Alice" --owner 42
        trustctl chain append "likes tea" --owner 42 --agent reader
    """
    chain_id = _resolve_chain(owner, agent, chain)
    try:
        element = open_memory(root).append_to_chain(chain_id, content, source_hash=source_hash)
    except (TrustChainError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        emit_json({"success": True, "element": element.to_dict()})
    else:
        console.print("[green]✓ Appended[/green]")
        console.print(f"  Chain: [cyan]{chain_id}[/cyan]")
        console.print(f"  Sequence: {element.sequence}")
        console.print(f"  Hash: {element.hash}")


@app.command()
def verify(
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner id (entry chain)"),
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Agent label (agent chain)"),
    chain: Optional[str] = typer.Option(None, "--chain", "-c", help="Explicit chain id"),
    record: bool = typer.Option(False, "--record", help="Write the outcome to the owner's audit log"),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Verify a chain from genesis.

    Exit code 1 when a broken link or hash mismatch is found.
    """
    chain_id = _resolve_chain(owner, agent, chain)
    try:
        tm = open_memory(root)
        if record and owner:
            result = tm.verify_and_record(operator_owner(owner), chain_id)
        else:
            result = tm.verify(chain_id)
    except (TrustChainError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        emit_json(result.to_dict())
    elif result.valid:
        console.print(f"[green]✓ {result.kind}[/green] ({result.checked} elements checked)")
    else:
        console.print(f"[red]✗ {result.kind}[/red] at sequence {result.sequence}")
        for key, value in result.to_dict().items():
            console.print(f"  {key}: {value}")

    if not result.valid:
        raise typer.Exit(EXIT_FINDING)


@app.command()
def tail(
    owner: Optional[str] = typer.Option(None, "--owner", "-o", help="Owner id (entry chain)"),
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Agent label (agent chain)"),
    chain: Optional[str] = typer.Option(None, "--chain", "-c", help="Explicit chain id"),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Number of elements to show"),
    canonical: bool = typer.Option(
        False, "--canonical", help="Respect the owner's active checkpoint (entry chain only)"
    ),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Show the latest elements of a chain.

    Examples:
        trustctl chain tail --owner 42 --lines 10
        trustctl chain tail --owner 42 --canonical
    """
    chain_id = _resolve_chain(owner, agent, chain)
    try:
        tm = open_memory(root)
        if canonical and owner and not agent and not chain:
            elements = tm.canonical_view(operator_owner(owner))
        else:
            elements = tm.chain_store.list_elements(chain_id)
    except (TrustChainError, OSError) as e:
        fail(str(e), json_output)

    if lines:
        elements = elements[-lines:]

    if json_output:
        emit_json({"elements": [el.to_dict() for el in elements], "count": len(elements)})
        return

    if not elements:
        console.print("[yellow]Chain is empty[/yellow]")
        return

    table = Table(title=f"Chain: {chain_id}")
    table.add_column("Seq", style="cyan")
    table.add_column("Element ID", style="yellow")
    table.add_column("Timestamp")
    table.add_column("Hash (prefix)", style="dim")
    for el in elements:
        table.add_row(
            str(el.sequence),
            el.element_id,
            el.to_dict()["canonical_timestamp"],
            el.hash[:16],
        )
    console.print(table)
    console.print(f"\n[bold]Total elements:[/bold] {len(elements)}")


@app.command()
def status(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner id"),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """Show entry chain status for an owner."""
    try:
        st = open_memory(root).status(operator_owner(owner))
    except (TrustChainError, OSError) as e:
        fail(str(e), json_output, code=EXIT_ERROR)

    if json_output:
        emit_json(st.to_dict())
        return

    table = Table(show_header=False, box=None)
    for key, value in st.to_dict().items():
        table.add_row(f"[bold]{key}[/bold]", str(value))
    console.print(table)
