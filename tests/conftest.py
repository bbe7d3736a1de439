"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest

from epc_viewer.core.geometry import Size
from epc_viewer.db import InMemoryEpcStore
from epc_viewer.models import Assembly, BomItem, BomItemType, Catalog, Part

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------

DRAWING_SIZE = Size(1000, 500)
VIEWPORT = Size(800, 600)


@pytest.fixture
def sample_catalog_path() -> Path:
    return _REPO_ROOT / "data" / "sample_catalog.json"


@pytest.fixture
def catalog() -> Catalog:
    """Main -> Gearbox -> Bearing chain plus a second root."""
    return Catalog(
        assemblies=[
            Assembly(id="main", name="Main", drawing_url="/assets/main.svg"),
            Assembly(id="gearbox", name="Gearbox", parent_assembly_id="main", drawing_url="/assets/gearbox.svg"),
            Assembly(id="bearing", name="Bearing", parent_assembly_id="gearbox"),
            Assembly(id="pump", name="Pump"),
        ],
        parts=[
            Part(id="bolt", name="Bolt", part_number="100-21", quantity=10, min_stock=2, price=0.5),
            Part(id="gear", name="Gear", part_number="200-05", quantity=1, min_stock=3, price=40.0),
            Part(id="seal", name="Seal", part_number="310-12", quantity=0, min_stock=1, price=3.0),
        ],
        bom_items=[
            BomItem(
                id="i1",
                assembly_id="main",
                item_number="1",
                type=BomItemType.PART,
                ref_id="bolt",
                x_position=0.25,
                y_position=0.5,
            ),
            BomItem(id="i2", assembly_id="main", item_number="2", type=BomItemType.PART, ref_id="gear"),
            BomItem(
                id="i3",
                assembly_id="main",
                item_number="3",
                type=BomItemType.SUB_ASSEMBLY,
                ref_id="gearbox",
                x_position=0.75,
                y_position=0.25,
            ),
            BomItem(id="i4", assembly_id="gearbox", item_number="1", type=BomItemType.PART, ref_id="seal"),
        ],
    )


@pytest.fixture
def store(catalog: Catalog) -> InMemoryEpcStore:
    return InMemoryEpcStore.from_catalog(catalog)
