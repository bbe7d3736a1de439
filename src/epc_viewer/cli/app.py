import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from epc_viewer.cli.catalog import bom, tree
from epc_viewer.cli.db import db_app
from epc_viewer.cli.serve import serve_app
from epc_viewer.config import get_settings

app = typer.Typer(
    name="epc-viewer",
    help="EPC Viewer CLI: browse assemblies, BOMs and drawing hotspots.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def _configure(
    log_level: Annotated[str | None, typer.Option("--log-level", help="Logging level (default: EPC_LOG_LEVEL).")] = None,
) -> None:
    logging.basicConfig(
        level=(log_level or get_settings().log_level).upper(),
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


app.add_typer(db_app, name="db")
app.command("tree")(tree)
app.command("bom")(bom)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
