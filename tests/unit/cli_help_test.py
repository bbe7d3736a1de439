"""Tests for the catalog CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from epc_viewer.cli.app import app
from epc_viewer.core.errors import DataStoreError

runner = CliRunner()


@pytest.mark.parametrize(
    "args",
    [
        [],
        ["db"],
        ["db", "start"],
        ["db", "upgrade"],
        ["serve"],
        ["tree"],
        ["bom"],
    ],
    ids=["root", "db", "db-start", "db-upgrade", "serve", "tree", "bom"],
)
def test_short_help_flag(args: list[str]) -> None:
    result = runner.invoke(app, [*args, "-h"])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_tree_prints_hierarchy(sample_catalog_path: Path) -> None:
    result = runner.invoke(app, ["tree", "--data", str(sample_catalog_path)])
    assert result.exit_code == 0
    assert "Main Drive" in result.output
    assert "Gearbox" in result.output
    assert "Bearing Housing" in result.output


def test_bom_lists_items(sample_catalog_path: Path) -> None:
    result = runner.invoke(app, ["bom", "asm-main", "--data", str(sample_catalog_path)])
    assert result.exit_code == 0
    assert "(4 rows)" in result.output
    assert "100-21" in result.output


def test_bom_search(sample_catalog_path: Path) -> None:
    result = runner.invoke(app, ["bom", "asm-main", "--search", "100-2", "--data", str(sample_catalog_path)])
    assert result.exit_code == 0
    assert "(1 rows)" in result.output


def test_bom_store_failure_exits_nonzero() -> None:
    mock_store = AsyncMock()
    mock_store.list_bom_items.side_effect = DataStoreError("connection refused")

    with patch("epc_viewer.cli.catalog._get_store", return_value=mock_store):
        result = runner.invoke(app, ["bom", "asm-main"])

    assert result.exit_code == 1
    assert "Failed to load BOM" in result.output
    mock_store.dispose.assert_awaited_once()


def test_tree_empty_store() -> None:
    mock_store = AsyncMock()
    mock_store.list_assemblies.return_value = []

    with patch("epc_viewer.cli.catalog._get_store", return_value=mock_store):
        result = runner.invoke(app, ["tree"])

    assert result.exit_code == 0
    assert "No assemblies found." in result.output


def test_serve_dashboard_runs_app(sample_catalog_path: Path) -> None:
    dash_app = MagicMock()
    with patch("epc_viewer.dashboard.app.create_dashboard", return_value=dash_app) as create:
        result = runner.invoke(app, ["serve", "dashboard", "--port", "9000", "--data", str(sample_catalog_path)])

    assert result.exit_code == 0
    create.assert_called_once()
    dash_app.run.assert_called_once_with(host="127.0.0.1", port=9000, debug=False)
