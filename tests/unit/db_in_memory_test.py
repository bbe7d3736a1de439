import asyncio
from pathlib import Path

import pytest

from epc_viewer.core.errors import DataStoreError
from epc_viewer.db import InMemoryEpcStore
from epc_viewer.models import Assembly, BomItemType, NewBomItem, Part


def test_list_bom_items_resolves_and_sorts(store: InMemoryEpcStore) -> None:
    items = asyncio.run(store.list_bom_items("main"))
    assert [i.item_number for i in items] == ["1", "2", "3"]
    assert isinstance(items[0].details, Part)
    assert isinstance(items[2].details, Assembly)


def test_stored_items_do_not_keep_details(store: InMemoryEpcStore) -> None:
    asyncio.run(store.list_bom_items("main"))
    assert all(item.details is None for item in store.bom_items.values())


def test_create_bom_item(store: InMemoryEpcStore) -> None:
    created = asyncio.run(
        store.create_bom_item(NewBomItem(assembly_id="gearbox", item_number="2", type=BomItemType.PART, ref_id="bolt"))
    )
    assert created.details is not None
    assert not created.is_positioned
    assert created.id in store.bom_items


@pytest.mark.parametrize(
    "new_item",
    [
        NewBomItem(assembly_id="ghost", item_number="9", type=BomItemType.PART, ref_id="bolt"),
        NewBomItem(assembly_id="main", item_number="9", type=BomItemType.PART, ref_id="ghost"),
        NewBomItem(assembly_id="main", item_number="1", type=BomItemType.PART, ref_id="seal"),
    ],
    ids=["unknown-assembly", "unknown-part", "duplicate-callout"],
)
def test_create_bom_item_rejects(store: InMemoryEpcStore, new_item: NewBomItem) -> None:
    with pytest.raises(DataStoreError):
        asyncio.run(store.create_bom_item(new_item))


def test_update_position_clamps(store: InMemoryEpcStore) -> None:
    asyncio.run(store.update_bom_item_position("i2", 1.5, -0.2))
    assert (store.bom_items["i2"].x_position, store.bom_items["i2"].y_position) == (1.0, 0.0)


def test_missing_records_raise(store: InMemoryEpcStore) -> None:
    with pytest.raises(DataStoreError):
        asyncio.run(store.update_bom_item_position("nope", 0.1, 0.1))
    with pytest.raises(DataStoreError):
        asyncio.run(store.delete_bom_item("nope"))
    with pytest.raises(DataStoreError):
        asyncio.run(store.get_part("nope"))


def test_delete(store: InMemoryEpcStore) -> None:
    asyncio.run(store.delete_bom_item("i1"))
    assert [i.id for i in asyncio.run(store.list_bom_items("main"))] == ["i2", "i3"]


def test_list_parts_sorted_by_name(store: InMemoryEpcStore) -> None:
    assert [p.name for p in asyncio.run(store.list_parts())] == ["Bolt", "Gear", "Seal"]


def test_from_file(sample_catalog_path: Path) -> None:
    loaded = InMemoryEpcStore.from_file(sample_catalog_path)
    assert "asm-main" in loaded.assemblies
    assert asyncio.run(loaded.ping()) is True
