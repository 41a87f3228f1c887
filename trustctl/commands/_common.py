"""
Shared helpers for trustctl commands.
"""

import json
from dataclasses import replace
from typing import Any, Optional

import typer
from rich.console import Console

from trustchain.config import Settings
from trustchain.core.policy import Owner
from trustchain.service import TrustedMemory

console = Console()

EXIT_OK = 0
EXIT_FINDING = 1
EXIT_ERROR = 2


def root_option() -> Any:
    return typer.Option(
        None,
        "--root",
        "-r",
        help="Store root directory (default: $TRUSTCHAIN_ROOT or ~/.trustchain/data)",
    )


def json_option() -> Any:
    return typer.Option(False, "--json", help="Output as JSON")


def open_memory(root: Optional[str]) -> TrustedMemory:
    settings = Settings.from_env()
    if root:
        settings = replace(settings, root=root)
    return TrustedMemory.from_directory(settings.root, settings=settings)


def operator_owner(owner_id: str) -> Owner:
    # The CLI only ever manages trusted-memory accounts
    return Owner(id=owner_id, trusted_memory_mode=True)


def emit_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def fail(message: str, json_output: bool, code: int = EXIT_ERROR, **extra: Any) -> None:
    if json_output:
        emit_json({"success": False, "error": message, **extra})
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code)
