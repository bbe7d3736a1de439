"""Dash callback registrations.

All coordinator access is scheduled on one asyncio loop thread, so the
viewer sees the same single-threaded interleaving as any other host: state
changes only between awaited store calls.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs

from dash import ALL, Dash, Input, Output, State, ctx, html, no_update
from dash.exceptions import PreventUpdate

from epc_viewer.config import ViewerSettings, get_settings
from epc_viewer.core.coordinator import EpcCoordinator, Notification, ViewerCallbacks, ViewerMode
from epc_viewer.core.errors import EpcError, UnknownAssemblyError
from epc_viewer.core.geometry import Size
from epc_viewer.core.ports.datastore import EpcDataStore
from epc_viewer.dashboard.figures import (
    bom_components,
    can_quick_order,
    clicked_point,
    drawing_figure,
    notification_components,
    order_quantity,
    part_details,
    popover_components,
    region_from_relayout,
    region_to_transform,
    tree_components,
)
from epc_viewer.dashboard.styles import VIEWPORT_SIZE
from epc_viewer.models import Part

_log = logging.getLogger(__name__)

_MAX_NOTIFICATIONS = 5

# Resolves the drawing's natural pixel size in the browser.
_MEASURE_IMAGE_JS = """
function(source) {
    if (!source || !source.url) { return null; }
    return new Promise(function(resolve) {
        var img = new Image();
        img.onload = function() {
            resolve({width: img.naturalWidth, height: img.naturalHeight, nonce: source.nonce});
        };
        img.onerror = function() { resolve(null); };
        img.src = source.url;
    });
}
"""


class DashboardHost:
    """Collects what the coordinator reports back to its host."""

    def __init__(self, max_notifications: int = _MAX_NOTIFICATIONS) -> None:
        self.notifications: deque[Notification] = deque(maxlen=max_notifications)
        self.cart: dict[str, int] = {}
        self.opened_part: Part | None = None
        self.order_quantity = 1
        self._order_item_id: str | None = None

    def callbacks(self) -> ViewerCallbacks:
        return ViewerCallbacks(
            on_assembly_select=self.assembly_selected,
            on_add_to_cart=self.add_to_cart,
            on_open_part=self.open_part,
            on_notify=self.notifications.append,
        )

    def assembly_selected(self, assembly_id: str) -> None:
        self.opened_part = None

    def add_to_cart(self, part: Part, quantity: int) -> None:
        self.cart[part.id] = self.cart.get(part.id, 0) + quantity
        self.notifications.append(Notification("info", "Added to cart", f"{quantity} x {part.name}"))

    def open_part(self, part: Part) -> None:
        self.opened_part = part

    @property
    def cart_count(self) -> int:
        return sum(self.cart.values())

    def quantity_for(self, item_id: str) -> int:
        """Quick-order quantity for the popover of ``item_id``; starts at 1 per item."""
        if item_id != self._order_item_id:
            self._order_item_id = item_id
            self.order_quantity = 1
        return self.order_quantity


def _mode_text(coordinator: EpcCoordinator) -> str:
    mode = coordinator.mode
    if mode is ViewerMode.AWAITING_PLACEMENT:
        pending = coordinator.pending_item
        number = pending.item_number if pending is not None else ""
        return f"Click on the drawing to place item {number}."
    if mode is ViewerMode.EDITING:
        return "Edit mode: choose Place on a row, then click the drawing."
    return "Click a hotspot or a BOM row to inspect it."


def _popover(coordinator: EpcCoordinator, host: DashboardHost) -> list[Any]:
    item_id = coordinator.state.popover_item_id
    if item_id is None:
        return []
    item = coordinator.item(item_id)
    if not isinstance(item.details, Part):
        return []
    return popover_components(item.item_number, item.details, host.quantity_for(item.id))


def _triggered_pattern_id() -> str:
    """Return the ``id`` key of the pattern-matched component that was clicked."""
    if not ctx.triggered or not ctx.triggered[0].get("value"):
        raise PreventUpdate
    triggered = ctx.triggered_id
    if not isinstance(triggered, dict):
        raise PreventUpdate
    return str(triggered["id"])


def register_callbacks(
    app: Dash,
    store_factory: Callable[[], EpcDataStore],
    settings: ViewerSettings | None = None,
) -> EpcCoordinator:
    _loop = asyncio.new_event_loop()
    _store = store_factory()
    threading.Thread(target=_loop.run_forever, daemon=True, name="dash-async").start()

    def _run_async(coro: Any) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, _loop).result(timeout=30)

    def _in_loop(fn: Callable[..., Any], *args: Any) -> Any:
        async def _call() -> Any:
            return fn(*args)

        return _run_async(_call())

    _run_async(_store.ensure_ready())

    host = DashboardHost()
    coordinator = EpcCoordinator(_store, host.callbacks(), settings or get_settings())
    coordinator.viewport_resized(VIEWPORT_SIZE)

    def _bump(rev: int | None) -> int:
        return (rev or 0) + 1

    def _report(exc: EpcError) -> None:
        _log.warning("Viewer action rejected: %s", exc)
        host.notifications.append(Notification("warning", "Not available", str(exc)))

    # ── Initial load (optionally deep-linked with ?assembly=..&item=..) ──

    async def _open_initial(assembly_id: str | None, item_id: str | None) -> None:
        await coordinator.load_parts()
        try:
            await coordinator.load(assembly_id)
        except UnknownAssemblyError:
            host.notifications.append(
                Notification("warning", "Missing assembly", f"Assembly {assembly_id} does not exist.")
            )
            await coordinator.load()
            return
        if assembly_id is not None and item_id is not None:
            await coordinator.open_at(assembly_id, item_id)

    @app.callback(
        Output("viewer-rev", "data"),
        Input("page-load", "data"),
        State("url", "search"),
        State("viewer-rev", "data"),
    )
    def load_viewer(_: Any, search: str | None, rev: int | None) -> int:
        params = parse_qs((search or "").lstrip("?"))
        assembly_id = params.get("assembly", [None])[0]
        item_id = params.get("item", [None])[0]
        _run_async(_open_initial(assembly_id, item_id))
        return _bump(rev)

    # ── Render everything from the coordinator ─────────────────────

    def _snapshot(rev: int) -> tuple[Any, ...]:
        assembly = coordinator.current_assembly
        drawing_url = assembly.drawing_url if assembly is not None else None
        viewport = coordinator.viewport
        state = coordinator.state

        figure = drawing_figure(
            drawing_url,
            viewport.natural_size,
            VIEWPORT_SIZE,
            viewport.target,
            coordinator.hotspot_markers(),
            coordinator.settings.hotspot_size,
            transition_ms=int(coordinator.settings.zoom_duration * 1000),
        )
        bom_rows = coordinator.panel.rows(
            state.selected_item_id,
            state.hovered_item_id,
            state.pending_item_id if state.edit_mode else None,
        )
        removal = coordinator.panel.pending_removal
        removal_message = ""
        if removal is not None:
            removal_message = f"Remove item {coordinator.item(removal).item_number} from this BOM?"

        # Re-measure on every render until the drawing reports its size.
        new_source: Any = no_update
        if drawing_url is not None and not viewport.image_loaded:
            new_source = {"url": drawing_url, "nonce": rev}

        return (
            tree_components(coordinator.navigator.visible_rows()),
            assembly.name if assembly is not None else "",
            _mode_text(coordinator),
            figure,
            bom_components(bom_rows, state.edit_mode, [r.id for r in bom_rows if coordinator.is_busy(r.id)]),
            {"display": "block"} if state.edit_mode and state.adding else {"display": "none"},
            {"display": "inline-block"} if state.edit_mode and not state.adding else {"display": "none"},
            [{"label": f"{p.name} ({p.part_number or p.id})", "value": p.id} for p in coordinator.available_parts()],
            _popover(coordinator, host),
            notification_components(host.notifications),
            f"Cart: {host.cart_count} item(s)" if host.cart else "",
            part_details(host.opened_part) if host.opened_part is not None else None,
            removal is not None,
            removal_message,
            new_source,
            ["edit"] if state.edit_mode else [],
        )

    @app.callback(
        [
            Output("assembly-tree", "children"),
            Output("assembly-title", "children"),
            Output("mode-banner", "children"),
            Output("drawing", "figure"),
            Output("bom-list", "children"),
            Output("add-part-form", "style"),
            Output("add-part-open-btn", "style"),
            Output("add-part-select", "options"),
            Output("hotspot-popover", "children"),
            Output("notifications", "children"),
            Output("cart-summary", "children"),
            Output("part-details", "children"),
            Output("remove-confirm", "displayed"),
            Output("remove-confirm", "message"),
            Output("drawing-source", "data"),
            Output("edit-mode", "value"),
        ],
        Input("viewer-rev", "data"),
    )
    def render(rev: int | None) -> tuple[Any, ...]:
        return _in_loop(_snapshot, rev or 0)

    # ── Drawing image size ─────────────────────────────────────────

    app.clientside_callback(
        _MEASURE_IMAGE_JS,
        Output("drawing-size", "data"),
        Input("drawing-source", "data"),
        prevent_initial_call=True,
    )

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("drawing-size", "data"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def drawing_measured(size: dict[str, Any] | None, rev: int | None) -> int:
        if not size:
            raise PreventUpdate
        _in_loop(coordinator.image_loaded, Size(float(size["width"]), float(size["height"])), VIEWPORT_SIZE)
        return _bump(rev)

    # ── Assembly tree ──────────────────────────────────────────────

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input({"type": "tree-label", "id": ALL}, "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def select_assembly(_: list[int | None], rev: int | None) -> int:
        assembly_id = _triggered_pattern_id()
        try:
            _run_async(coordinator.select_assembly(assembly_id))
        except EpcError as exc:
            _report(exc)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input({"type": "tree-toggle", "id": ALL}, "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def toggle_assembly(_: list[int | None], rev: int | None) -> int:
        assembly_id = _triggered_pattern_id()
        try:
            _in_loop(coordinator.navigator.toggle, assembly_id)
        except EpcError as exc:
            _report(exc)
        return _bump(rev)

    # ── BOM panel ──────────────────────────────────────────────────

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input({"type": "bom-row", "id": ALL}, "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def click_bom_row(_: list[int | None], rev: int | None) -> int:
        item_id = _triggered_pattern_id()
        try:
            _run_async(coordinator.click_bom_row(item_id))
        except EpcError as exc:
            _report(exc)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input({"type": "bom-place", "id": ALL}, "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def begin_placement(_: list[int | None], rev: int | None) -> int:
        item_id = _triggered_pattern_id()
        try:
            _in_loop(coordinator.begin_placement, item_id)
        except EpcError as exc:
            _report(exc)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input({"type": "bom-remove", "id": ALL}, "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def request_remove(_: list[int | None], rev: int | None) -> int:
        _in_loop(coordinator.request_remove, _triggered_pattern_id())
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("remove-confirm", "submit_n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def confirm_remove(n_clicks: int | None, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        _run_async(coordinator.confirm_remove())
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("remove-confirm", "cancel_n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def cancel_remove(n_clicks: int | None, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        _in_loop(coordinator.cancel_remove)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("bom-search", "value"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def search_bom(term: str | None, rev: int | None) -> int:
        _in_loop(coordinator.panel.set_search, term)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("edit-mode", "value"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def set_edit_mode(value: list[str] | None, rev: int | None) -> int:
        enabled = "edit" in (value or [])
        # The render callback writes this checklist back; stop when nothing changed.
        if not _in_loop(coordinator.set_edit_mode, enabled):
            raise PreventUpdate
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("add-part-open-btn", "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def open_add_form(n_clicks: int | None, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        _in_loop(coordinator.panel.request_add)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("add-part-cancel-btn", "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def cancel_add_form(n_clicks: int | None, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        _in_loop(coordinator.cancel_add)
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("add-part-btn", "n_clicks"),
        State("add-part-select", "value"),
        State("add-item-number", "value"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def add_part(n_clicks: int | None, part_id: str | None, item_number: str | None, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        if not part_id:
            host.notifications.append(Notification("error", "Error", "Select a part to add."))
            return _bump(rev)
        _run_async(coordinator.add_part(part_id, item_number or ""))
        return _bump(rev)

    # ── Drawing interaction ────────────────────────────────────────

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("drawing", "clickData"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def click_drawing(click_data: dict[str, Any] | None, rev: int | None) -> int:
        clicked = clicked_point(click_data)
        if clicked is None:
            raise PreventUpdate
        x_px, y_px, hotspot_id = clicked
        try:
            _run_async(coordinator.click_drawing(x_px, y_px, hotspot_id))
        except EpcError as exc:
            _report(exc)
        return _bump(rev)

    @app.callback(
        Output("bom-list", "children", allow_duplicate=True),
        Input("drawing", "hoverData"),
        prevent_initial_call=True,
    )
    def hover_hotspot(hover_data: dict[str, Any] | None) -> Any:
        clicked = clicked_point(hover_data)
        item_id = clicked[2] if clicked is not None else None

        def _hover() -> Any:
            coordinator.panel.hover(item_id)
            state = coordinator.state
            rows = coordinator.panel.rows(
                state.selected_item_id,
                state.hovered_item_id,
                state.pending_item_id if state.edit_mode else None,
            )
            return bom_components(rows, state.edit_mode)

        return _in_loop(_hover)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("drawing", "relayoutData"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def pan_zoom(relayout: dict[str, Any] | None, rev: int | None) -> Any:
        if relayout and relayout.get("xaxis.autorange"):
            _in_loop(coordinator.viewport.reset)
            return _bump(rev)
        region = region_from_relayout(relayout)
        if region is None:
            raise PreventUpdate
        transform = region_to_transform(region, VIEWPORT_SIZE)
        if transform is None:
            raise PreventUpdate
        # The figure already shows the new region unless the zoom hit a limit.
        if _in_loop(coordinator.viewport.set_transform, transform):
            return _bump(rev)
        return no_update

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("zoom-in-btn", "n_clicks"),
        Input("zoom-out-btn", "n_clicks"),
        Input("zoom-reset-btn", "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def zoom_buttons(_in: int | None, _out: int | None, _reset: int | None, rev: int | None) -> int:
        actions = {
            "zoom-in-btn": coordinator.viewport.zoom_in,
            "zoom-out-btn": coordinator.viewport.zoom_out,
            "zoom-reset-btn": coordinator.viewport.reset,
        }
        action = actions.get(str(ctx.triggered_id))
        if action is None:
            raise PreventUpdate
        _in_loop(action)
        return _bump(rev)

    # ── Quick order popover ────────────────────────────────────────

    @app.callback(
        Output("quick-order-btn", "disabled"),
        Input("quick-order-qty", "value"),
        prevent_initial_call=True,
    )
    def quick_order_quantity(value: Any) -> bool:
        quantity = order_quantity(value)

        def _disabled() -> bool:
            host.order_quantity = quantity
            item_id = coordinator.state.popover_item_id
            if item_id is None:
                return True
            part = coordinator.item(item_id).details
            return not (isinstance(part, Part) and can_quick_order(part, quantity))

        return _in_loop(_disabled)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("quick-order-btn", "n_clicks"),
        State("quick-order-qty", "value"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def quick_order(n_clicks: int | None, value: Any, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        ordered = _in_loop(coordinator.order_from_popover, order_quantity(value))
        if ordered is None:
            raise PreventUpdate
        if not ordered:
            host.notifications.append(Notification("warning", "Not available", "This part cannot be ordered."))
        return _bump(rev)

    @app.callback(
        Output("viewer-rev", "data", allow_duplicate=True),
        Input("popover-close-btn", "n_clicks"),
        State("viewer-rev", "data"),
        prevent_initial_call=True,
    )
    def close_popover(n_clicks: int | None, rev: int | None) -> int:
        if not n_clicks:
            raise PreventUpdate
        _in_loop(coordinator.close_popover)
        return _bump(rev)

    return coordinator
