"""Read-only catalog commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from epc_viewer.core.bom import filter_bom
from epc_viewer.core.errors import DataStoreError
from epc_viewer.core.hierarchy import build_assembly_tree
from epc_viewer.core.ports.datastore import EpcDataStore
from epc_viewer.models import AssemblyNode

console = Console()

DataOption = Annotated[
    Path | None,
    typer.Option("--data", help="JSON catalog file; uses DATABASE_URL when omitted.", exists=True, dir_okay=False),
]


def _get_store(data: Path | None) -> EpcDataStore:
    if data is not None:
        from epc_viewer.db.memory import InMemoryEpcStore

        return InMemoryEpcStore.from_file(data)

    from epc_viewer.db.engine import get_engine
    from epc_viewer.db.postgres import PostgresEpcStore

    return PostgresEpcStore(get_engine())


def _add_branch(parent: Tree, node: AssemblyNode) -> None:
    branch = parent.add(f"{node.name} [dim]({node.id})[/dim]")
    for child in node.children:
        _add_branch(branch, child)


def tree(data: DataOption = None) -> None:
    """Print the assembly hierarchy."""
    store = _get_store(data)

    async def _run() -> None:
        try:
            assemblies = await store.list_assemblies()
        finally:
            await store.dispose()
        roots = build_assembly_tree(assemblies)
        if not roots:
            console.print("No assemblies found.")
            return
        view = Tree("[bold]Assemblies[/bold]")
        for root in roots:
            _add_branch(view, root)
        console.print(view)

    try:
        asyncio.run(_run())
    except DataStoreError as exc:
        console.print(f"[red]Failed to load assemblies: {exc}[/red]")
        raise typer.Exit(1) from exc


def bom(
    assembly_id: Annotated[str, typer.Argument(help="Assembly whose BOM to list.")],
    search: Annotated[str | None, typer.Option(help="Filter by item number, name or part number.")] = None,
    data: DataOption = None,
) -> None:
    """List the bill of materials of one assembly."""
    store = _get_store(data)

    async def _run() -> None:
        try:
            items = await store.list_bom_items(assembly_id)
        finally:
            await store.dispose()
        rows = filter_bom([i for i in items if i.details is not None], search)
        table = Table(show_lines=False)
        for header in ("item", "name", "part_number", "type", "positioned"):
            table.add_column(header)
        for item in rows:
            table.add_row(
                item.item_number,
                item.name,
                item.part_number or "",
                item.type.value,
                "[green]yes[/green]" if item.is_positioned else "[yellow]no[/yellow]",
            )
        console.print(table)
        console.print(f"({len(rows)} rows)")

    try:
        asyncio.run(_run())
    except DataStoreError as exc:
        console.print(f"[red]Failed to load BOM: {exc}[/red]")
        raise typer.Exit(1) from exc
