"""Database container, migration and seeding commands."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
import time
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from epc_viewer.core.errors import DataStoreError

db_app = typer.Typer(help="Manage the catalog database.")
console = Console()

_CONTAINER_NAME = "epc-viewer-db"
_IMAGE = "postgres:16-alpine"
_DEFAULT_PORT = 5432
_ALEMBIC_INI = Path(__file__).resolve().parents[3] / "alembic.ini"


def _docker_available() -> bool:
    return shutil.which("docker") is not None


def _container_state() -> str | None:
    """Return 'running', 'exited', etc. or None if container not found."""
    result = subprocess.run(
        ["docker", "inspect", "-f", "{{.State.Status}}", _CONTAINER_NAME],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def _wait_for_ready(timeout: int = 30) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = subprocess.run(
            ["docker", "exec", _CONTAINER_NAME, "pg_isready", "-U", "postgres"],
            capture_output=True,
        )
        if result.returncode == 0:
            return True
        time.sleep(1)
    return False


def _require_docker() -> None:
    if not _docker_available():
        console.print("[red]Docker is not installed or not in PATH.[/red]")
        raise typer.Exit(1)


@db_app.command("start")
def start(
    port: Annotated[int, typer.Option(help="Host port to map.")] = _DEFAULT_PORT,
) -> None:
    """Start a local PostgreSQL container for the catalog."""
    _require_docker()

    state = _container_state()
    if state == "running":
        console.print(f"[green]Container {_CONTAINER_NAME} is already running.[/green]")
        return
    if state == "exited":
        console.print(f"Restarting stopped container {_CONTAINER_NAME}...")
        subprocess.run(["docker", "start", _CONTAINER_NAME], check=True)
    else:
        console.print(f"Starting {_IMAGE} as {_CONTAINER_NAME}...")
        subprocess.run(
            [
                "docker",
                "run",
                "-d",
                "--name",
                _CONTAINER_NAME,
                "-p",
                f"{port}:5432",
                "-e",
                "POSTGRES_PASSWORD=postgres",
                _IMAGE,
            ],
            check=True,
        )

    if _wait_for_ready():
        console.print(f"[green]Database ready on localhost:{port}[/green]")
    else:
        console.print("[red]Database did not become ready in time.[/red]")
        raise typer.Exit(1)


@db_app.command("stop")
def stop() -> None:
    """Stop and remove the database container."""
    _require_docker()

    if _container_state() is None:
        console.print(f"Container {_CONTAINER_NAME} not found.")
        return
    subprocess.run(["docker", "rm", "-f", _CONTAINER_NAME], check=True)
    console.print("[green]Container stopped and removed.[/green]")


@db_app.command("status")
def status() -> None:
    """Show the container state and whether the catalog database answers."""
    from epc_viewer.db.engine import get_engine
    from epc_viewer.db.postgres import PostgresEpcStore

    if _docker_available():
        state = _container_state()
        colour = "green" if state == "running" else "yellow"
        console.print(f"Container {_CONTAINER_NAME}: [{colour}]{state or 'not found'}[/{colour}]")

    store = PostgresEpcStore(get_engine())

    async def _ping() -> bool:
        try:
            return await store.ping()
        finally:
            await store.dispose()

    if asyncio.run(_ping()):
        console.print("Database: [green]reachable[/green]")
    else:
        console.print("Database: [red]unreachable[/red]")


@db_app.command("upgrade")
def upgrade(
    revision: Annotated[str, typer.Argument(help="Target revision.")] = "head",
) -> None:
    """Apply schema migrations."""
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(_ALEMBIC_INI))
    cfg.set_main_option("script_location", str(_ALEMBIC_INI.parent / "alembic"))
    command.upgrade(cfg, revision)
    console.print(f"[green]Schema upgraded to {revision}.[/green]")


@db_app.command("seed")
def seed(
    data: Annotated[Path, typer.Argument(help="JSON catalog to load.", exists=True, dir_okay=False)],
) -> None:
    """Load a JSON catalog into the database."""
    from epc_viewer.db.engine import get_engine
    from epc_viewer.db.postgres import PostgresEpcStore
    from epc_viewer.models import Catalog

    catalog = Catalog.model_validate_json(data.read_text(encoding="utf-8"))
    store = PostgresEpcStore(get_engine())

    async def _run() -> None:
        try:
            await store.ensure_ready()
            await store.seed(catalog.assemblies, catalog.parts, catalog.bom_items)
        finally:
            await store.dispose()

    try:
        asyncio.run(_run())
    except DataStoreError as exc:
        console.print(f"[red]Seeding failed: {exc}[/red]")
        raise typer.Exit(1) from exc
    console.print(
        f"[green]Loaded {len(catalog.assemblies)} assemblies, {len(catalog.parts)} parts "
        f"and {len(catalog.bom_items)} BOM items.[/green]"
    )
