from typing import Protocol

from epc_viewer.models import Assembly, BomItem, NewBomItem, Part


class EpcDataStore(Protocol):
    async def list_assemblies(self) -> list[Assembly]: ...

    async def list_bom_items(self, assembly_id: str) -> list[BomItem]: ...

    async def create_bom_item(self, item: NewBomItem) -> BomItem: ...

    async def update_bom_item_position(self, item_id: str, x: float, y: float) -> None: ...

    async def delete_bom_item(self, item_id: str) -> None: ...

    async def get_part(self, part_id: str) -> Part: ...

    async def list_parts(self) -> list[Part]: ...

    async def ensure_ready(self) -> None: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
