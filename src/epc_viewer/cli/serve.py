from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.")
console = Console()


@serve_app.command("dashboard")
def dashboard(
    host: str = "127.0.0.1",
    port: int = 8050,
    data: Annotated[
        Path | None,
        typer.Option(help="Serve a JSON catalog from memory instead of PostgreSQL.", exists=True, dir_okay=False),
    ] = None,
    debug: bool = False,
) -> None:
    """Start the Dash catalog viewer."""
    from epc_viewer.cli.catalog import _get_store
    from epc_viewer.dashboard.app import create_dashboard

    app = create_dashboard(lambda: _get_store(data))
    console.print(f"[green]Starting EPC viewer on http://{host}:{port}[/green]")
    app.run(host=host, port=port, debug=debug)
