"""Bill-of-materials list: resolution, search and row events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from epc_viewer.models import Assembly, BomItem, BomItemType, Part

logger = logging.getLogger(__name__)


def resolve_bom(
    items: Iterable[BomItem],
    parts: Iterable[Part],
    assemblies: Iterable[Assembly],
) -> list[BomItem]:
    """Attach part/assembly details and sort by callout.

    Items whose reference cannot be resolved are dropped rather than shown
    half-empty.
    """
    parts_by_id = {p.id: p for p in parts}
    assemblies_by_id = {a.id: a for a in assemblies}
    resolved: list[BomItem] = []
    for item in items:
        details: Part | Assembly | None
        if item.type is BomItemType.PART:
            details = parts_by_id.get(item.ref_id)
        else:
            details = assemblies_by_id.get(item.ref_id)
        if details is None:
            logger.debug("BOM item %s references unknown %s %s", item.id, item.type.value, item.ref_id)
            continue
        resolved.append(item.model_copy(update={"details": details}))
    return sort_bom(resolved)


def sort_bom(items: Iterable[BomItem]) -> list[BomItem]:
    return sorted(items, key=lambda i: (i.item_number.casefold(), i.item_number, i.id))


def _contains(value: str | None, term: str) -> bool:
    return value is not None and term in value.casefold()


def matches_search(item: BomItem, term: str) -> bool:
    if item.details is None:
        return False
    needle = term.casefold()
    if not needle:
        return True
    return (
        _contains(item.item_number, needle)
        or _contains(item.details.name, needle)
        or (item.type is BomItemType.PART and _contains(item.part_number, needle))
    )


def filter_bom(items: Sequence[BomItem], term: str | None) -> list[BomItem]:
    """Case-insensitive search over callout, name and part number."""
    term = (term or "").strip()
    return [item for item in items if matches_search(item, term)]


def available_parts(parts: Iterable[Part], exclude_ids: Iterable[str], term: str | None = None) -> list[Part]:
    """Parts that can still be added to a BOM, filtered by name or part number."""
    excluded = set(exclude_ids)
    needle = (term or "").strip().casefold()
    return [
        p
        for p in parts
        if p.id not in excluded and (not needle or _contains(p.name, needle) or _contains(p.part_number, needle))
    ]


@dataclass(frozen=True)
class BomRow:
    id: str
    callout: str
    name: str
    part_number: str | None
    type: BomItemType
    positioned: bool
    selected: bool
    hovered: bool
    pending: bool


class RowActionKind(StrEnum):
    SELECT = "select"
    OPEN_PART = "open-part"
    NAVIGATE = "navigate"


@dataclass(frozen=True)
class RowAction:
    kind: RowActionKind
    item_id: str
    part: Part | None = None
    assembly_id: str | None = None


@dataclass
class BomPanelEvents:
    on_select: Callable[[str], None] | None = None
    on_open_part: Callable[[Part], None] | None = None
    on_navigate: Callable[[str], None] | None = None
    on_hover: Callable[[str | None], None] | None = None
    on_remove: Callable[[str], None] | None = None
    on_add: Callable[[], None] | None = None


class BomPanel:
    def __init__(self, events: BomPanelEvents | None = None) -> None:
        self.events = events or BomPanelEvents()
        self.items: list[BomItem] = []
        self.search_term = ""
        self.pending_removal: str | None = None

    def set_items(self, items: Sequence[BomItem]) -> None:
        self.items = list(items)
        if self.pending_removal is not None and self._find(self.pending_removal) is None:
            self.pending_removal = None

    def set_search(self, term: str | None) -> None:
        self.search_term = term or ""

    def _find(self, item_id: str) -> BomItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def visible_items(self) -> list[BomItem]:
        return filter_bom(self.items, self.search_term)

    def rows(
        self,
        selected_id: str | None = None,
        hovered_id: str | None = None,
        pending_id: str | None = None,
    ) -> list[BomRow]:
        return [
            BomRow(
                id=item.id,
                callout=item.item_number,
                name=item.name,
                part_number=item.part_number if item.type is BomItemType.PART else None,
                type=item.type,
                positioned=item.is_positioned,
                selected=item.id == selected_id,
                hovered=item.id == hovered_id,
                pending=item.id == pending_id,
            )
            for item in self.visible_items()
        ]

    def click(self, item_id: str, edit_mode: bool) -> RowAction | None:
        """Resolve a row click into the action for the current mode.

        Edit mode always selects the row's hotspot. Outside edit mode a part
        row opens the part and a sub-assembly row navigates into it.
        """
        item = self._find(item_id)
        if item is None or item.details is None:
            return None
        if edit_mode:
            action = RowAction(RowActionKind.SELECT, item.id)
            if self.events.on_select:
                self.events.on_select(item.id)
        elif item.type is BomItemType.SUB_ASSEMBLY:
            action = RowAction(RowActionKind.NAVIGATE, item.id, assembly_id=item.ref_id)
            if self.events.on_navigate:
                self.events.on_navigate(item.ref_id)
        else:
            part = item.details if isinstance(item.details, Part) else None
            action = RowAction(RowActionKind.OPEN_PART, item.id, part=part)
            if part is not None and self.events.on_open_part:
                self.events.on_open_part(part)
        return action

    def hover(self, item_id: str | None) -> None:
        if self.events.on_hover:
            self.events.on_hover(item_id)

    def leave(self) -> None:
        self.hover(None)

    def request_add(self) -> None:
        if self.events.on_add:
            self.events.on_add()

    def request_remove(self, item_id: str) -> BomItem | None:
        """Arm removal of ``item_id``; it only happens on :meth:`confirm_remove`."""
        item = self._find(item_id)
        self.pending_removal = item.id if item is not None else None
        return item

    def cancel_remove(self) -> None:
        self.pending_removal = None

    def confirm_remove(self) -> str | None:
        item_id = self.pending_removal
        self.pending_removal = None
        if item_id is not None and self.events.on_remove:
            self.events.on_remove(item_id)
        return item_id

    def exclude_part_ids(self) -> list[str]:
        """Parts already on this BOM; the add-part picker hides them."""
        return [item.ref_id for item in self.items if item.type is BomItemType.PART]
