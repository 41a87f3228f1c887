"""
Audit commands: log
"""

import json
from typing import Optional

import typer
from rich.table import Table

from trustchain.audit.model import ACTIONS, OUTCOMES
from trustchain.core.errors import TrustChainError

from ._common import console, emit_json, fail, json_option, open_memory, operator_owner, root_option

app = typer.Typer()


@app.command()
def log(
    owner: str = typer.Option(..., "--owner", "-o", help="Owner id"),
    action: Optional[str] = typer.Option(
        None, "--action", "-a", help=f"Filter by action ({', '.join(ACTIONS)})"
    ),
    outcome: Optional[str] = typer.Option(
        None, "--outcome", help=f"Filter by outcome ({', '.join(OUTCOMES)})"
    ),
    element_id: Optional[str] = typer.Option(None, "--element", "-e", help="Filter by element id"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max entries (capped at 1000)"),
    root: Optional[str] = root_option(),
    json_output: bool = json_option(),
):
    """
    Show the audit trail for an owner, newest first.

    Examples:
        trustctl audit log --owner 42
        trustctl audit log --owner 42 --action attempted_edit --outcome denied
    """
    if action is not None and action not in ACTIONS:
        fail(f"Unknown action: {action}", json_output)
    if outcome is not None and outcome not in OUTCOMES:
        fail(f"Unknown outcome: {outcome}", json_output)

    try:
        entries = open_memory(root).audit_log(
            operator_owner(owner),
            action=action,
            outcome=outcome,
            element_id=element_id,
            limit=limit,
        )
    except (TrustChainError, OSError) as e:
        fail(str(e), json_output)

    if json_output:
        emit_json({"entries": [e.to_dict() for e in entries], "count": len(entries)})
        return

    if not entries:
        console.print("[yellow]No audit entries[/yellow]")
        return

    table = Table(title=f"Audit log: {owner}")
    table.add_column("Timestamp")
    table.add_column("Action", style="cyan")
    table.add_column("Outcome")
    table.add_column("Actor")
    table.add_column("Element", style="yellow")
    table.add_column("Details", style="dim")

    colors = {"success": "green", "denied": "red", "failed": "red"}
    for entry in entries:
        color = colors.get(entry.outcome, "white")
        table.add_row(
            entry.to_dict()["timestamp"],
            entry.action,
            f"[{color}]{entry.outcome}[/{color}]",
            entry.actor,
            entry.element_id or "",
            json.dumps(entry.details, sort_keys=True)[:60],
        )
    console.print(table)
