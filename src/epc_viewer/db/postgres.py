import logging
import uuid
from collections.abc import Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from epc_viewer.core.errors import DataStoreError
from epc_viewer.core.geometry import clamp_unit
from epc_viewer.db.tables import assemblies, bom_items, metadata, parts
from epc_viewer.models import Assembly, BomItem, BomItemType, NewBomItem, Part

logger = logging.getLogger(__name__)

_sub = assemblies.alias("sub")


def _assembly_from_row(row: Any) -> Assembly:
    return Assembly(
        id=row.id,
        name=row.name,
        parent_assembly_id=row.parent_assembly_id,
        drawing_url=row.drawing_url,
    )


def _part_from_row(row: Any) -> Part:
    return Part(
        id=row.id,
        name=row.name,
        part_number=row.part_number,
        quantity=row.quantity,
        min_stock=row.min_stock,
        price=row.price,
    )


def _bom_select() -> sa.Select[Any]:
    return (
        sa.select(
            bom_items,
            parts.c.name.label("part_name"),
            parts.c.part_number.label("part_part_number"),
            parts.c.quantity.label("part_quantity"),
            parts.c.min_stock.label("part_min_stock"),
            parts.c.price.label("part_price"),
            _sub.c.name.label("sub_name"),
            _sub.c.parent_assembly_id.label("sub_parent_assembly_id"),
            _sub.c.drawing_url.label("sub_drawing_url"),
        )
        .select_from(bom_items)
        .outerjoin(parts, parts.c.id == bom_items.c.part_id)
        .outerjoin(_sub, _sub.c.id == bom_items.c.sub_assembly_id)
    )


def _bom_item_from_row(row: Any) -> BomItem:
    details: Part | Assembly | None = None
    if row.part_id is not None:
        kind = BomItemType.PART
        ref_id = row.part_id
        if row.part_name is not None:
            details = Part(
                id=row.part_id,
                name=row.part_name,
                part_number=row.part_part_number,
                quantity=row.part_quantity,
                min_stock=row.part_min_stock,
                price=row.part_price,
            )
    else:
        kind = BomItemType.SUB_ASSEMBLY
        ref_id = row.sub_assembly_id
        if row.sub_name is not None:
            details = Assembly(
                id=row.sub_assembly_id,
                name=row.sub_name,
                parent_assembly_id=row.sub_parent_assembly_id,
                drawing_url=row.sub_drawing_url,
            )
    return BomItem(
        id=row.id,
        assembly_id=row.assembly_id,
        item_number=row.item_number,
        type=kind,
        ref_id=ref_id,
        x_position=row.x_position,
        y_position=row.y_position,
        details=details,
    )


class PostgresEpcStore:
    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def _fetch(self, stmt: sa.Executable) -> Sequence[Any]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.all()
        except SQLAlchemyError as exc:
            logger.exception("Catalog query failed")
            raise DataStoreError(str(exc)) from exc

    async def _write(self, stmt: sa.Executable) -> int:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                return result.rowcount
        except SQLAlchemyError as exc:
            logger.exception("Catalog write failed")
            raise DataStoreError(str(exc)) from exc

    async def list_assemblies(self) -> list[Assembly]:
        rows = await self._fetch(sa.select(assemblies).order_by(assemblies.c.name, assemblies.c.id))
        return [_assembly_from_row(r) for r in rows]

    async def list_bom_items(self, assembly_id: str) -> list[BomItem]:
        stmt = _bom_select().where(bom_items.c.assembly_id == assembly_id).order_by(bom_items.c.item_number)
        rows = await self._fetch(stmt)
        return [_bom_item_from_row(r) for r in rows]

    async def get_bom_item(self, item_id: str) -> BomItem:
        rows = await self._fetch(_bom_select().where(bom_items.c.id == item_id))
        if not rows:
            raise DataStoreError(f"BOM item {item_id} not found")
        return _bom_item_from_row(rows[0])

    async def create_bom_item(self, item: NewBomItem) -> BomItem:
        item_id = str(uuid.uuid4())
        is_part = item.type is BomItemType.PART
        await self._write(
            sa.insert(bom_items).values(
                id=item_id,
                assembly_id=item.assembly_id,
                item_number=item.item_number,
                part_id=item.ref_id if is_part else None,
                sub_assembly_id=None if is_part else item.ref_id,
                x_position=item.x_position,
                y_position=item.y_position,
            )
        )
        return await self.get_bom_item(item_id)

    async def update_bom_item_position(self, item_id: str, x: float, y: float) -> None:
        stmt = (
            sa.update(bom_items)
            .where(bom_items.c.id == item_id)
            .values(x_position=clamp_unit(x), y_position=clamp_unit(y))
        )
        if await self._write(stmt) == 0:
            raise DataStoreError(f"BOM item {item_id} not found")

    async def delete_bom_item(self, item_id: str) -> None:
        if await self._write(sa.delete(bom_items).where(bom_items.c.id == item_id)) == 0:
            raise DataStoreError(f"BOM item {item_id} not found")

    async def get_part(self, part_id: str) -> Part:
        rows = await self._fetch(sa.select(parts).where(parts.c.id == part_id))
        if not rows:
            raise DataStoreError(f"Part {part_id} not found")
        return _part_from_row(rows[0])

    async def list_parts(self) -> list[Part]:
        rows = await self._fetch(sa.select(parts).order_by(parts.c.name, parts.c.id))
        return [_part_from_row(r) for r in rows]

    async def seed(self, assembly_rows: Sequence[Assembly], part_rows: Sequence[Part], items: Sequence[BomItem]) -> None:
        """Insert catalog records in one transaction (used by ``db seed``)."""
        try:
            async with self.engine.begin() as conn:
                if assembly_rows:
                    await conn.execute(sa.insert(assemblies), [a.model_dump() for a in assembly_rows])
                if part_rows:
                    await conn.execute(sa.insert(parts), [p.model_dump() for p in part_rows])
                if items:
                    await conn.execute(
                        sa.insert(bom_items),
                        [
                            {
                                "id": i.id,
                                "assembly_id": i.assembly_id,
                                "item_number": i.item_number,
                                "part_id": i.ref_id if i.type is BomItemType.PART else None,
                                "sub_assembly_id": i.ref_id if i.type is BomItemType.SUB_ASSEMBLY else None,
                                "x_position": i.x_position,
                                "y_position": i.y_position,
                            }
                            for i in items
                        ],
                    )
        except SQLAlchemyError as exc:
            logger.exception("Seeding catalog failed")
            raise DataStoreError(str(exc)) from exc

    async def ensure_ready(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all, checkfirst=True)
        except SQLAlchemyError as exc:
            raise DataStoreError(str(exc)) from exc

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(sa.text("SELECT 1"))
            return True
        except Exception:
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()
