"""
Checkpoint commands: rollback, recover, list
"""

from typing import Optional

import typer
from rich.table import Table

from trustchain.core.errors import TrustChainError

from ._common import console, emit_json, fail, json_option, open_memory, operator_owner, root_option

app = typer.Typer()


@app.command()
def rollback(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner id"),
    authorized_by: str = typer.Option(
        ..., "--authorized-by", help="Authorizing principal (must be 'human')"
    ),
    after_sequence: Optional[int] = typer.Option(
        None, "--after", help="Last visible sequence (default: current tail)"
    ),
    reason: Optional[str] = typer.Option(None, "--reason", help="Free-text reason"),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Hide entries after a sequence without deleting them.

    Examples:
        trustctl checkpoint rollback --owner 42 --authorized-by human --after 3
        trustctl checkpoint rollback --owner 42 --authorized-by human --after 3 --reason "bad import"
    """
    try:
        cp = open_memory(root).create_rollback(
            operator_owner(owner), authorized_by, after_sequence=after_sequence, reason=reason
        )
    except (TrustChainError, OSError, ValueError) as e:
        fail(str(e), json_output, error_type=type(e).__name__)

    if json_output:
        emit_json({"success": True, "checkpoint": cp.to_dict()})
    else:
        console.print("[green]✓ Rollback checkpoint created[/green]")
        console.print(f"  ID: [cyan]{cp.checkpoint_id}[/cyan]")
        console.print(f"  Visible through sequence: {cp.after_sequence}")
        console.print(f"  Reason: {cp.reason}")


@app.command()
def recover(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner id"),
    authorized_by: str = typer.Option(
        ..., "--authorized-by", help="Authorizing principal (must be 'human')"
    ),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """Deactivate the active rollback so hidden entries become visible again."""
    try:
        cp = open_memory(root).recover(operator_owner(owner), authorized_by)
    except (TrustChainError, OSError, ValueError) as e:
        fail(str(e), json_output, error_type=type(e).__name__)

    if json_output:
        emit_json({"success": True, "checkpoint": cp.to_dict()})
    else:
        console.print("[green]✓ Recovered[/green]")
        console.print(f"  Deactivated: [cyan]{cp.checkpoint_id}[/cyan]")


@app.command("list")
def list_checkpoints(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner id"),
    all_checkpoints: bool = typer.Option(
        False, "--all", help="Include deactivated checkpoints"
    ),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """List checkpoints for an owner, newest first."""
    try:
        checkpoints = open_memory(root).list_checkpoints(
            operator_owner(owner), include_inactive=all_checkpoints
        )
    except (TrustChainError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        emit_json({"checkpoints": [cp.to_dict() for cp in checkpoints], "count": len(checkpoints)})
        return

    if not checkpoints:
        console.print("[yellow]No checkpoints[/yellow]")
        return

    table = Table(title=f"Checkpoints: {owner}")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("After Seq", justify="right")
    table.add_column("Active")
    table.add_column("Created")
    table.add_column("Reason", style="dim")
    for cp in checkpoints:
        table.add_row(
            cp.checkpoint_id[:12],
            cp.checkpoint_type,
            str(cp.after_sequence),
            "[green]yes[/green]" if cp.active else "no",
            cp.to_dict()["created_at"],
            cp.reason or "",
        )
    console.print(table)
