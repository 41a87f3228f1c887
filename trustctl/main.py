#!/usr/bin/env python3
"""
trustctl - Trusted Memory operator CLI

Main entrypoint for the trustctl command-line tool.
"""

import typer
from rich.console import Console
from rich.table import Table

from trustchain.config import Settings
from trustchain.logging_config import setup_logging
from trustchain.metrics import start_metrics_server
from trustctl.commands import attest, audit, chain, checkpoint

app = typer.Typer(
    name="trustctl",
    help="Tamper-evident hash chains for trusted memory",
    add_completion=False,
)

console = Console()

app.add_typer(chain.app, name="chain", help="Chain operations")
app.add_typer(checkpoint.app, name="checkpoint", help="Human-authorized rollback")
app.add_typer(audit.app, name="audit", help="Audit trail")
app.add_typer(attest.app, name="attest", help="Signed chain-head receipts")


@app.callback()
def startup():
    """Configure logging and metrics before any command runs."""
    setup_logging()
    settings = Settings.from_env()
    if settings.metrics_enabled:
        start_metrics_server(settings.metrics_enabled, settings.metrics_port)


@app.command()
def version():
    """Show version information."""
    from trustctl import __version__
    from trustchain import __version__ as engine_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]trustctl[/bold]", f"v{__version__}")
    table.add_row("Engine", f"trustchain v{engine_version}")
    table.add_row("Hash", "SHA-256 / canonical JSON")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
