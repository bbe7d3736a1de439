import uuid
from pathlib import Path

from epc_viewer.core.bom import resolve_bom
from epc_viewer.core.errors import DataStoreError
from epc_viewer.core.geometry import clamp_unit
from epc_viewer.models import Assembly, BomItem, BomItemType, Catalog, NewBomItem, Part


class InMemoryEpcStore:
    def __init__(self) -> None:
        self.assemblies: dict[str, Assembly] = {}
        self.parts: dict[str, Part] = {}
        self.bom_items: dict[str, BomItem] = {}

    @classmethod
    def from_catalog(cls, catalog: Catalog) -> "InMemoryEpcStore":
        store = cls()
        for asm in catalog.assemblies:
            store.assemblies.setdefault(asm.id, asm)
        for part in catalog.parts:
            store.parts[part.id] = part
        for item in catalog.bom_items:
            store.bom_items[item.id] = item.model_copy(update={"details": None})
        return store

    @classmethod
    def from_file(cls, path: str | Path) -> "InMemoryEpcStore":
        catalog = Catalog.model_validate_json(Path(path).read_text(encoding="utf-8"))
        return cls.from_catalog(catalog)

    async def list_assemblies(self) -> list[Assembly]:
        return list(self.assemblies.values())

    async def list_bom_items(self, assembly_id: str) -> list[BomItem]:
        items = [i for i in self.bom_items.values() if i.assembly_id == assembly_id]
        return resolve_bom(items, self.parts.values(), self.assemblies.values())

    async def create_bom_item(self, item: NewBomItem) -> BomItem:
        if item.assembly_id not in self.assemblies:
            raise DataStoreError(f"Assembly {item.assembly_id} not found")
        refs = self.parts if item.type is BomItemType.PART else self.assemblies
        details = refs.get(item.ref_id)
        if details is None:
            raise DataStoreError(f"{item.type.value} {item.ref_id} not found")
        for existing in self.bom_items.values():
            if existing.assembly_id == item.assembly_id and existing.item_number == item.item_number:
                raise DataStoreError(f"Item number {item.item_number} already exists in {item.assembly_id}")

        created = BomItem(id=str(uuid.uuid4()), **item.model_dump())
        self.bom_items[created.id] = created
        return created.model_copy(update={"details": details})

    async def update_bom_item_position(self, item_id: str, x: float, y: float) -> None:
        existing = self.bom_items.get(item_id)
        if existing is None:
            raise DataStoreError(f"BOM item {item_id} not found")
        self.bom_items[item_id] = existing.model_copy(update={"x_position": clamp_unit(x), "y_position": clamp_unit(y)})

    async def delete_bom_item(self, item_id: str) -> None:
        if self.bom_items.pop(item_id, None) is None:
            raise DataStoreError(f"BOM item {item_id} not found")

    async def get_part(self, part_id: str) -> Part:
        part = self.parts.get(part_id)
        if part is None:
            raise DataStoreError(f"Part {part_id} not found")
        return part

    async def list_parts(self) -> list[Part]:
        return sorted(self.parts.values(), key=lambda p: (p.name.casefold(), p.id))

    async def ensure_ready(self) -> None:
        pass

    async def ping(self) -> bool:
        return True

    async def dispose(self) -> None:
        pass
