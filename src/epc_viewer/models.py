from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNPLACED = -1.0


class Assembly(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    parent_assembly_id: str | None = None
    drawing_url: str | None = None


class AssemblyNode(BaseModel):
    assembly: Assembly
    children: list["AssemblyNode"] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.assembly.id

    @property
    def name(self) -> str:
        return self.assembly.name

    @property
    def has_children(self) -> bool:
        return bool(self.children)


AssemblyNode.model_rebuild()  # necessary for recursive types


class Part(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    part_number: str | None = None
    quantity: int = 0
    min_stock: int = 0
    price: float = 0.0

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


class BomItemType(StrEnum):
    PART = "part"
    SUB_ASSEMBLY = "sub-assembly"


class BomItem(BaseModel):
    """One BOM line of an assembly and its hotspot on that assembly's drawing.

    ``details`` holds the resolved part or child assembly; it is ``None`` when
    the data store could not resolve the reference.
    """

    id: str
    assembly_id: str
    item_number: str
    type: BomItemType
    ref_id: str
    x_position: float = UNPLACED
    y_position: float = UNPLACED
    details: Part | Assembly | None = None

    @model_validator(mode="after")
    def _normalize_position(self) -> "BomItem":
        # Both coordinates are placed or both carry the sentinel.
        if self.x_position < 0 or self.y_position < 0:
            self.x_position = UNPLACED
            self.y_position = UNPLACED
        else:
            self.x_position = min(1.0, self.x_position)
            self.y_position = min(1.0, self.y_position)
        return self

    @property
    def is_positioned(self) -> bool:
        return self.x_position >= 0

    @property
    def name(self) -> str:
        return self.details.name if self.details is not None else ""

    @property
    def part_number(self) -> str | None:
        if isinstance(self.details, Part):
            return self.details.part_number
        return None


class NewBomItem(BaseModel):
    assembly_id: str
    item_number: str
    type: BomItemType
    ref_id: str
    x_position: float = UNPLACED
    y_position: float = UNPLACED


class Catalog(BaseModel):
    """Flat seed data for the in-memory store (``--data`` JSON files)."""

    assemblies: list[Assembly] = Field(default_factory=list)
    parts: list[Part] = Field(default_factory=list)
    bom_items: list[BomItem] = Field(default_factory=list)
