"""Selection and placement state machine of the catalog viewer.

The coordinator owns the :class:`SelectionState`, the tree navigator, the
BOM panel and the drawing viewport. Every user interaction goes through it,
so it is the only place that decides what is selected and what is waiting
to be placed.

Modes::

    VIEWING --set_edit_mode(True)--> EDITING --begin_placement--> AWAITING_PLACEMENT
    AWAITING_PLACEMENT --drawing click (store confirmed) / cancel--> EDITING
    EDITING / AWAITING_PLACEMENT --set_edit_mode(False)--> VIEWING

Data-store calls are the only awaited work. Local state changes only after
the store confirms, and a result that arrives after the assembly changed or
the viewer closed is dropped.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

from epc_viewer.config import ViewerSettings
from epc_viewer.core.bom import BomPanel, BomPanelEvents, RowActionKind, available_parts, sort_bom
from epc_viewer.core.errors import UnknownAssemblyError, UnknownBomItemError
from epc_viewer.core.geometry import (
    Point,
    Size,
    ViewportTransform,
    click_to_normalized,
    normalize_image_point,
)
from epc_viewer.core.hierarchy import build_assembly_tree
from epc_viewer.core.hotspots import HotspotMarker, layout_hotspots
from epc_viewer.core.navigator import AssemblyNavigator
from epc_viewer.core.ports.datastore import EpcDataStore
from epc_viewer.core.viewport import DrawingViewport
from epc_viewer.models import Assembly, AssemblyNode, BomItem, BomItemType, NewBomItem, Part

logger = logging.getLogger(__name__)


class ViewerMode(StrEnum):
    VIEWING = "viewing"
    EDITING = "editing"
    AWAITING_PLACEMENT = "awaiting-placement"


@dataclass
class SelectionState:
    assembly_id: str | None = None
    selected_item_id: str | None = None
    hovered_item_id: str | None = None
    edit_mode: bool = False
    pending_item_id: str | None = None
    popover_item_id: str | None = None
    adding: bool = False

    def reset_for(self, assembly_id: str | None) -> None:
        self.assembly_id = assembly_id
        self.selected_item_id = None
        self.hovered_item_id = None
        self.pending_item_id = None
        self.popover_item_id = None
        self.adding = False

    def forget_item(self, item_id: str) -> None:
        if self.selected_item_id == item_id:
            self.selected_item_id = None
        if self.hovered_item_id == item_id:
            self.hovered_item_id = None
        if self.pending_item_id == item_id:
            self.pending_item_id = None
        if self.popover_item_id == item_id:
            self.popover_item_id = None


@dataclass(frozen=True)
class Notification:
    level: Literal["info", "warning", "error"]
    title: str
    message: str


@dataclass
class ViewerCallbacks:
    on_assembly_select: Callable[[str], None] | None = None
    on_add_to_cart: Callable[[Part, int], None] | None = None
    on_bom_change: Callable[[], None] | None = None
    on_open_part: Callable[[Part], None] | None = None
    on_notify: Callable[[Notification], None] | None = None


@dataclass
class _Loaded:
    assemblies: dict[str, Assembly] = field(default_factory=dict)
    tree: list[AssemblyNode] = field(default_factory=list)
    parts: list[Part] = field(default_factory=list)


class EpcCoordinator:
    def __init__(
        self,
        store: EpcDataStore,
        callbacks: ViewerCallbacks | None = None,
        settings: ViewerSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.callbacks = callbacks or ViewerCallbacks()
        self.settings = settings or ViewerSettings()
        self.state = SelectionState()
        self.viewport = DrawingViewport(
            min_scale=self.settings.min_scale,
            max_scale=self.settings.max_scale,
            zoom_step=self.settings.zoom_step,
            hotspot_zoom_scale=self.settings.hotspot_zoom_scale,
            zoom_duration=self.settings.zoom_duration,
            clock=clock,
        )
        self.navigator = AssemblyNavigator([], on_select=self._enter_assembly, indent=self.settings.tree_indent)
        self.panel = BomPanel(BomPanelEvents(on_hover=self.hover, on_add=self._open_add_form))
        self.bom: list[BomItem] = []
        self._data = _Loaded()
        self._generation = 0
        self._in_flight: set[str] = set()
        self._closed = False

    # ── Read-only views ─────────────────────────────────────────────

    @property
    def mode(self) -> ViewerMode:
        if not self.state.edit_mode:
            return ViewerMode.VIEWING
        if self.state.pending_item_id is not None:
            return ViewerMode.AWAITING_PLACEMENT
        return ViewerMode.EDITING

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def tree(self) -> list[AssemblyNode]:
        return self._data.tree

    @property
    def current_assembly(self) -> Assembly | None:
        if self.state.assembly_id is None:
            return None
        return self._data.assemblies.get(self.state.assembly_id)

    @property
    def pending_item(self) -> BomItem | None:
        if self.state.pending_item_id is None:
            return None
        return self._find_item(self.state.pending_item_id)

    def is_busy(self, item_id: str) -> bool:
        return item_id in self._in_flight

    def item(self, item_id: str) -> BomItem:
        found = self._find_item(item_id)
        if found is None:
            raise UnknownBomItemError(item_id)
        return found

    def _find_item(self, item_id: str) -> BomItem | None:
        for bom_item in self.bom:
            if bom_item.id == item_id:
                return bom_item
        return None

    def hotspot_markers(self, image_origin: Point | None = None) -> list[HotspotMarker]:
        return layout_hotspots(
            self.bom,
            image_origin or Point(0, 0),
            self.viewport.tick(),
            self.viewport.natural_size,
            self.settings.hotspot_size,
            selected_id=self.state.selected_item_id,
            hovered_id=self.state.hovered_item_id,
            pending_id=self.state.pending_item_id if self.state.edit_mode else None,
        )

    def available_parts(self, term: str | None = None) -> list[Part]:
        return available_parts(self._data.parts, self.panel.exclude_part_ids(), term)

    # ── Loading and navigation ──────────────────────────────────────

    async def load(self, initial_assembly_id: str | None = None) -> list[AssemblyNode]:
        """Fetch assemblies, build the tree and open the initial assembly.

        Without ``initial_assembly_id`` the first root of the tree is opened.
        """
        if self._closed:
            return []
        try:
            assemblies = await self.store.list_assemblies()
        except Exception as exc:
            logger.exception("Loading assemblies failed")
            self._notify("error", "Error", f"Failed to load assemblies: {exc}")
            return self._data.tree
        if self._closed:
            return []

        self._data.assemblies = {}
        for asm in assemblies:
            self._data.assemblies.setdefault(asm.id, asm)
        self._data.tree = build_assembly_tree(assemblies)
        self.navigator.set_tree(self._data.tree)

        target = initial_assembly_id
        if target is None and self.state.assembly_id in self._data.assemblies:
            target = self.state.assembly_id
        if target is None and self._data.tree:
            target = self._data.tree[0].id
        if target is not None:
            await self.select_assembly(target)
        return self._data.tree

    async def load_parts(self) -> list[Part]:
        try:
            parts = await self.store.list_parts()
        except Exception as exc:
            logger.exception("Loading parts failed")
            self._notify("error", "Error", f"Failed to load parts: {exc}")
            return self._data.parts
        if not self._closed:
            self._data.parts = parts
        return parts

    async def open_at(self, assembly_id: str, item_id: str) -> None:
        """Open an assembly with one of its items selected.

        The zoom to that item happens once the drawing reports its size.
        """
        if assembly_id in self._data.assemblies:
            self.navigator.reveal(assembly_id)
        await self.select_assembly(assembly_id)
        if self._find_item(item_id) is not None:
            self.select_item(item_id)

    async def select_assembly(self, assembly_id: str) -> None:
        if self._closed:
            return
        if assembly_id not in self._data.assemblies:
            raise UnknownAssemblyError(assembly_id)
        # The navigator reports back through _enter_assembly.
        self.navigator.select(assembly_id)
        await self._load_bom()

    async def navigate_into(self, assembly_id: str) -> bool:
        if assembly_id not in self._data.assemblies:
            self._notify("warning", "Missing assembly", f"Sub-assembly {assembly_id} is not available.")
            return False
        self.navigator.reveal(assembly_id)
        await self.select_assembly(assembly_id)
        return True

    def _enter_assembly(self, assembly_id: str) -> None:
        self._generation += 1
        self.state.reset_for(assembly_id)
        self.panel.cancel_remove()
        self.panel.set_items([])
        self.bom = []
        self.viewport.unload_image()
        if self.callbacks.on_assembly_select:
            self.callbacks.on_assembly_select(assembly_id)

    async def _load_bom(self) -> None:
        assembly_id = self.state.assembly_id
        if assembly_id is None:
            return
        generation = self._generation
        try:
            items = await self.store.list_bom_items(assembly_id)
        except Exception as exc:
            logger.exception("Loading BOM for %s failed", assembly_id)
            if self._is_current(generation):
                self._notify("error", "Error", f"Failed to load BOM: {exc}")
            return
        if not self._is_current(generation):
            logger.debug("Dropping stale BOM for %s", assembly_id)
            return
        usable = [i for i in items if i.details is not None]
        if len(usable) != len(items):
            logger.warning("Omitted %d BOM item(s) without details in %s", len(items) - len(usable), assembly_id)
        self._set_bom(sort_bom(usable))

    def _set_bom(self, items: list[BomItem]) -> None:
        self.bom = items
        self.panel.set_items(items)

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    # ── Drawing image ───────────────────────────────────────────────

    def image_loaded(self, natural_size: Size, viewport_size: Size) -> None:
        """Record the drawing's size; runs a zoom deferred while it loaded."""
        self.viewport.load_image(natural_size, viewport_size)
        selected = self.state.selected_item_id
        if selected is not None:
            item = self._find_item(selected)
            if item is not None and item.is_positioned:
                self.viewport.zoom_to_hotspot(Point(item.x_position, item.y_position))

    def viewport_resized(self, viewport_size: Size) -> None:
        self.viewport.resize(viewport_size)

    # ── Mode and selection ──────────────────────────────────────────

    def set_edit_mode(self, enabled: bool) -> bool:
        """Enter or leave edit mode; returns whether the mode changed."""
        if self._closed or enabled == self.state.edit_mode:
            return False
        self.state.edit_mode = enabled
        if enabled:
            self.state.hovered_item_id = None
            self.state.popover_item_id = None
        else:
            self.state.pending_item_id = None
            self.state.adding = False
            self.panel.cancel_remove()
        return True

    def _open_add_form(self) -> None:
        if self.state.edit_mode and not self._closed:
            self.state.adding = True

    def cancel_add(self) -> None:
        self.state.adding = False

    def select_item(self, item_id: str) -> bool:
        """Select a BOM item; returns whether a zoom to its hotspot started."""
        found = self.item(item_id)
        self.state.selected_item_id = found.id
        if not found.is_positioned:
            return False
        return self.viewport.zoom_to_hotspot(Point(found.x_position, found.y_position))

    def hover(self, item_id: str | None) -> None:
        # Edit mode keeps the pending item as the only highlight.
        if self.state.edit_mode:
            return
        if item_id is not None and self._find_item(item_id) is None:
            item_id = None
        self.state.hovered_item_id = item_id

    def close_popover(self) -> None:
        self.state.popover_item_id = None

    async def click_bom_row(self, item_id: str) -> None:
        action = self.panel.click(item_id, self.state.edit_mode)
        if action is None:
            return
        if action.kind is RowActionKind.SELECT:
            self.select_item(action.item_id)
        elif action.kind is RowActionKind.NAVIGATE and action.assembly_id is not None:
            await self.navigate_into(action.assembly_id)
        elif action.kind is RowActionKind.OPEN_PART:
            self.select_item(action.item_id)
            if action.part is not None and self.callbacks.on_open_part:
                self.callbacks.on_open_part(action.part)

    async def click_hotspot(self, item_id: str) -> None:
        found = self.item(item_id)
        if self.state.edit_mode:
            self.select_item(found.id)
        elif found.type is BomItemType.SUB_ASSEMBLY:
            await self.navigate_into(found.ref_id)
        else:
            self.select_item(found.id)
            self.state.popover_item_id = None if self.state.popover_item_id == found.id else found.id

    async def click_drawing(self, x_px: float, y_px: float, hotspot_id: str | None = None) -> None:
        """Handle a click on the drawing at natural image pixel ``(x_px, y_px)``.

        A pending placement takes the click even over an existing hotspot.
        """
        if self.mode is ViewerMode.AWAITING_PLACEMENT:
            await self.place_at_image_point(x_px, y_px)
        elif hotspot_id is not None:
            await self.click_hotspot(hotspot_id)
        else:
            self.close_popover()

    # ── Placement ───────────────────────────────────────────────────

    def begin_placement(self, item_id: str) -> bool:
        """Make ``item_id`` the item awaiting a drawing click (edit mode only)."""
        if self._closed or not self.state.edit_mode:
            return False
        found = self.item(item_id)
        if self.is_busy(found.id):
            return False
        self.state.pending_item_id = found.id
        return True

    def cancel_placement(self) -> None:
        self.state.pending_item_id = None

    async def place_at_click(
        self,
        click: Point,
        image_origin: Point,
        transform: ViewportTransform | None = None,
    ) -> bool:
        """Place the pending item where the user clicked in the viewport.

        ``transform`` defaults to the viewport's current transform.
        """
        if transform is None:
            transform = self.viewport.tick()
        point = click_to_normalized(click, image_origin, transform, self.viewport.natural_size)
        return await self._commit_placement(point)

    async def place_at_image_point(self, x_px: float, y_px: float) -> bool:
        """Place the pending item at natural image pixel ``(x_px, y_px)``."""
        point = normalize_image_point(x_px, y_px, self.viewport.natural_size)
        return await self._commit_placement(point)

    async def _commit_placement(self, point: Point | None) -> bool:
        if self._closed or not self.state.edit_mode:
            return False
        item_id = self.state.pending_item_id
        if item_id is None:
            return False
        if point is None:
            logger.debug("Placement of %s ignored: drawing not ready", item_id)
            return False
        if self.is_busy(item_id):
            return False

        generation = self._generation
        self._in_flight.add(item_id)
        try:
            await self.store.update_bom_item_position(item_id, point.x, point.y)
        except Exception as exc:
            logger.exception("Saving position of %s failed", item_id)
            if self._is_current(generation):
                self._notify("error", "Error", f"Failed to save hotspot: {exc}")
            return False
        finally:
            self._in_flight.discard(item_id)

        if not self._is_current(generation):
            logger.debug("Dropping stale placement of %s", item_id)
            return False
        self._replace_item(item_id, x_position=point.x, y_position=point.y)
        if self.state.pending_item_id == item_id:
            self.state.pending_item_id = None
        self._bom_changed()
        return True

    def _replace_item(self, item_id: str, **changes: object) -> None:
        self._set_bom([i.model_copy(update=changes) if i.id == item_id else i for i in self.bom])

    # ── BOM mutations ───────────────────────────────────────────────

    async def add_bom_item(self, kind: BomItemType, ref_id: str, item_number: str) -> BomItem | None:
        """Create an unplaced BOM line and make it the pending placement."""
        assembly_id = self.state.assembly_id
        if self._closed or assembly_id is None:
            return None
        callout = item_number.strip()
        if not callout:
            self._notify("error", "Error", "Item number is required.")
            return None
        if any(i.item_number == callout for i in self.bom):
            self._notify("error", "Error", f"Item number {callout} is already used in this BOM.")
            return None

        generation = self._generation
        try:
            created = await self.store.create_bom_item(
                NewBomItem(assembly_id=assembly_id, item_number=callout, type=kind, ref_id=ref_id)
            )
        except Exception as exc:
            logger.exception("Creating BOM item in %s failed", assembly_id)
            if self._is_current(generation):
                self._notify("error", "Error", f"Failed to add item: {exc}")
            return None
        if not self._is_current(generation):
            logger.debug("Dropping stale BOM item %s", created.id)
            return None

        self._set_bom(sort_bom([*self.bom, created]))
        self.set_edit_mode(True)
        self.state.pending_item_id = created.id
        self.state.adding = False
        self._bom_changed()
        self._notify("info", "Item added", f"Click on the drawing to place item {created.item_number}.")
        return created

    async def add_part(self, part_id: str, item_number: str) -> BomItem | None:
        return await self.add_bom_item(BomItemType.PART, part_id, item_number)

    def request_remove(self, item_id: str) -> BomItem | None:
        """Ask for removal; nothing is deleted until :meth:`confirm_remove`."""
        if not self.state.edit_mode:
            return None
        return self.panel.request_remove(item_id)

    def cancel_remove(self) -> None:
        self.panel.cancel_remove()

    async def confirm_remove(self) -> bool:
        item_id = self.panel.confirm_remove()
        if item_id is None or self._closed or self.is_busy(item_id):
            return False

        generation = self._generation
        self._in_flight.add(item_id)
        try:
            await self.store.delete_bom_item(item_id)
        except Exception as exc:
            logger.exception("Deleting BOM item %s failed", item_id)
            if self._is_current(generation):
                self._notify("error", "Error", f"Failed to remove item: {exc}")
            return False
        finally:
            self._in_flight.discard(item_id)

        if not self._is_current(generation):
            return False
        self._set_bom([i for i in self.bom if i.id != item_id])
        self.state.forget_item(item_id)
        self._bom_changed()
        self._notify("info", "Item removed", "The item has been removed from the BOM.")
        return True

    # ── Quick order ─────────────────────────────────────────────────

    def quick_order(self, item_id: str, quantity: int) -> bool:
        """Send a placed part hotspot to the host's cart."""
        found = self.item(item_id)
        part = found.details
        if not isinstance(part, Part) or not found.is_positioned:
            return False
        if quantity < 1 or not part.in_stock:
            logger.debug("Quick order of %s refused (quantity=%d, stock=%d)", part.id, quantity, part.quantity)
            return False
        if self.callbacks.on_add_to_cart:
            self.callbacks.on_add_to_cart(part, quantity)
        self.close_popover()
        return True

    def order_from_popover(self, quantity: int) -> bool | None:
        """Quick-order the part in the open popover; ``None`` when none is open."""
        item_id = self.state.popover_item_id
        if item_id is None:
            return None
        return self.quick_order(item_id, quantity)

    # ── Teardown ────────────────────────────────────────────────────

    def close(self) -> None:
        """Tear the viewer down; results of in-flight requests are ignored."""
        self._closed = True
        self._generation += 1
        self.state.reset_for(None)
        self.state.edit_mode = False
        self.viewport.reset()

    def _bom_changed(self) -> None:
        if self.callbacks.on_bom_change:
            self.callbacks.on_bom_change()

    def _notify(self, level: Literal["info", "warning", "error"], title: str, message: str) -> None:
        if level == "error":
            logger.error("%s: %s", title, message)
        else:
            logger.info("%s: %s", title, message)
        if self.callbacks.on_notify:
            self.callbacks.on_notify(Notification(level=level, title=title, message=message))
