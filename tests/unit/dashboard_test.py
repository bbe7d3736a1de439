"""Tests for the dashboard figure builders and app creation."""

from __future__ import annotations

from typing import Any

import pytest

from epc_viewer.core.bom import BomRow
from epc_viewer.core.coordinator import Notification
from epc_viewer.core.geometry import IDENTITY, Point, Region, Size, ViewportTransform, visible_region
from epc_viewer.core.hotspots import HotspotMarker
from epc_viewer.core.navigator import TreeRow
from epc_viewer.dashboard.figures import (
    bom_components,
    can_quick_order,
    capture_grid,
    clicked_point,
    drawing_figure,
    notification_components,
    order_quantity,
    popover_components,
    region_from_relayout,
    region_to_transform,
    tree_components,
)
from epc_viewer.dashboard.styles import HOTSPOT_COLORS, hotspot_color
from epc_viewer.models import BomItemType, Part

VIEWPORT = Size(800, 600)


def _marker(item_id: str, selected: bool = False, pending: bool = False) -> HotspotMarker:
    return HotspotMarker(
        id=item_id,
        item_number=item_id,
        position=Point(0, 0),
        image_position=Point(100, 50),
        layer_size=16,
        selected=selected,
        hovered=False,
        pending=pending,
    )


class TestCaptureGrid:
    def test_covers_image(self) -> None:
        xs, ys, z = capture_grid(Size(1000, 500), cells=100)
        assert len(xs) == 100
        assert len(ys) == 100
        assert xs[0] == pytest.approx(5)
        assert ys[-1] == pytest.approx(497.5)
        assert len(z) == 100 and len(z[0]) == 100

    def test_small_images_use_one_cell_per_pixel(self) -> None:
        xs, ys, _ = capture_grid(Size(10, 4), cells=100)
        assert len(xs) == 10
        assert len(ys) == 4


class TestDrawingFigure:
    def test_placeholder_without_drawing(self) -> None:
        fig = drawing_figure(None, None, VIEWPORT, IDENTITY, [], 16)
        assert len(fig.data) == 0
        assert fig.layout.annotations[0].text == "No drawing available"

    def test_loading_placeholder(self) -> None:
        fig = drawing_figure("/assets/a.svg", None, VIEWPORT, IDENTITY, [], 16)
        assert fig.layout.annotations[0].text == "Loading drawing..."

    def test_image_with_hotspots(self) -> None:
        transform = ViewportTransform(2.0, -100, -50)
        fig = drawing_figure(
            "/assets/a.svg", Size(1000, 500), VIEWPORT, transform, [_marker("a", selected=True), _marker("b")], 16
        )
        assert fig.layout.images[0].source == "/assets/a.svg"
        heatmap, scatter = fig.data
        assert heatmap.type == "heatmap"
        assert list(scatter.customdata) == ["a", "b"]
        assert list(scatter.marker.color) == [HOTSPOT_COLORS["selected"], HOTSPOT_COLORS["default"]]
        assert tuple(fig.layout.xaxis.range) == (50, 450)
        assert tuple(fig.layout.yaxis.range) == (325, 25)


class TestRelayout:
    def test_region_from_relayout(self) -> None:
        relayout = {"xaxis.range[0]": 10, "xaxis.range[1]": 410, "yaxis.range[0]": 320, "yaxis.range[1]": 20}
        assert region_from_relayout(relayout) == Region(left=10, top=20, right=410, bottom=320)

    def test_ignores_other_events(self) -> None:
        assert region_from_relayout({"autosize": True}) is None
        assert region_from_relayout(None) is None

    def test_region_to_transform_inverts_visible_region(self) -> None:
        transform = ViewportTransform(2.5, -340, 75)
        back = region_to_transform(visible_region(transform, VIEWPORT), VIEWPORT)
        assert back is not None
        assert back.scale == pytest.approx(2.5)
        assert back.offset_x == pytest.approx(-340)
        assert back.offset_y == pytest.approx(75)

    def test_degenerate_region(self) -> None:
        assert region_to_transform(Region(5, 0, 5, 10), VIEWPORT) is None


class TestClickedPoint:
    def test_hotspot_click(self) -> None:
        data = {"points": [{"x": 100.0, "y": 50.0, "customdata": "a", "curveNumber": 1}]}
        assert clicked_point(data) == (100.0, 50.0, "a")

    def test_background_click(self) -> None:
        data = {"points": [{"x": 12.5, "y": 7.5, "z": 0, "curveNumber": 0}]}
        assert clicked_point(data) == (12.5, 7.5, None)

    def test_empty(self) -> None:
        assert clicked_point({"points": []}) is None
        assert clicked_point(None) is None


class TestComponents:
    def test_tree_components(self) -> None:
        rows = [
            TreeRow(id="main", name="Main", depth=0, indent=0, has_children=True, expanded=True, selected=True),
            TreeRow(id="gear", name="Gearbox", depth=1, indent=12, has_children=False, expanded=False, selected=False),
        ]
        components = tree_components(rows)
        assert len(components) == 2
        toggle, label = components[0].children
        assert toggle.id == {"type": "tree-toggle", "id": "main"}
        assert label.id == {"type": "tree-label", "id": "main"}
        assert components[1].style["paddingLeft"] == "12px"

    def test_bom_components_edit_buttons(self) -> None:
        row = BomRow(
            id="i1",
            callout="1",
            name="Bolt",
            part_number="100-21",
            type=BomItemType.PART,
            positioned=False,
            selected=False,
            hovered=False,
            pending=True,
        )
        (view,) = bom_components([row], edit_mode=False)
        assert len(view.children) == 3
        (edit,) = bom_components([row], edit_mode=True, busy=["i1"])
        place, remove = edit.children[3:]
        assert place.id == {"type": "bom-place", "id": "i1"}
        assert place.disabled and remove.disabled

    def test_empty_bom(self) -> None:
        (placeholder,) = bom_components([], edit_mode=False)
        assert placeholder.children == "No items."

    def test_notifications(self) -> None:
        (component,) = notification_components([Notification("error", "Error", "boom")])
        assert component.style["color"] == "#D32F2F"


class TestQuickOrderPopover:
    @pytest.fixture
    def bolt(self) -> Part:
        return Part(id="bolt", name="Bolt", part_number="100-21", quantity=10)

    @staticmethod
    def _by_id(component: Any, component_id: str) -> Any:
        if getattr(component, "id", None) == component_id:
            return component
        children = getattr(component, "children", None)
        if children is None or isinstance(children, str):
            return None
        for child in children if isinstance(children, list) else [children]:
            found = TestQuickOrderPopover._by_id(child, component_id)
            if found is not None:
                return found
        return None

    def test_quantity_input(self, bolt: Part) -> None:
        (popover,) = popover_components("1", bolt, 3)
        qty = self._by_id(popover, "quick-order-qty")
        assert (qty.type, qty.min, qty.value) == ("number", 1, 3)
        assert self._by_id(popover, "quick-order-btn").disabled is False

    def test_button_disabled_without_stock_or_quantity(self, bolt: Part) -> None:
        (zero,) = popover_components("1", bolt, 0)
        assert self._by_id(zero, "quick-order-btn").disabled is True
        (empty,) = popover_components("1", bolt.model_copy(update={"quantity": 0}), 1)
        assert self._by_id(empty, "quick-order-btn").disabled is True

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(3, 3), (2.0, 2), (None, 0), ("", 0), (True, 0), (-1, -1)],
    )
    def test_order_quantity(self, value: Any, expected: int) -> None:
        assert order_quantity(value) == expected

    def test_can_quick_order(self, bolt: Part) -> None:
        assert can_quick_order(bolt, 1)
        assert not can_quick_order(bolt, 0)

    def test_quantity_starts_at_one_per_item(self) -> None:
        from epc_viewer.dashboard.callbacks import DashboardHost

        host = DashboardHost()
        assert host.quantity_for("i1") == 1
        host.order_quantity = 5
        assert host.quantity_for("i1") == 5
        assert host.quantity_for("i2") == 1


class TestStyles:
    def test_pending_beats_selected(self) -> None:
        assert hotspot_color(selected=True, hovered=True, pending=True) == HOTSPOT_COLORS["pending"]
        assert hotspot_color(selected=True, hovered=True, pending=False) == HOTSPOT_COLORS["selected"]
        assert hotspot_color(selected=False, hovered=False, pending=False) == HOTSPOT_COLORS["default"]


class TestDashboardAppCreation:
    def test_creates_app(self) -> None:
        from epc_viewer.dashboard.app import create_dashboard
        from epc_viewer.db.memory import InMemoryEpcStore

        app = create_dashboard(lambda: InMemoryEpcStore())
        assert app is not None

    def test_drawing_click_updates_viewer(self) -> None:
        from epc_viewer.dashboard.app import create_dashboard
        from epc_viewer.db.memory import InMemoryEpcStore

        app = create_dashboard(lambda: InMemoryEpcStore())
        inputs = [
            {(item["id"], item["property"]) for item in callback["inputs"]} for callback in app.callback_map.values()
        ]
        assert {("drawing", "clickData")} in inputs
        assert {("viewer-rev", "data")} in inputs
        assert {("remove-confirm", "submit_n_clicks")} in inputs

    def test_quick_order_reads_quantity(self) -> None:
        from epc_viewer.dashboard.app import create_dashboard
        from epc_viewer.db.memory import InMemoryEpcStore

        app = create_dashboard(lambda: InMemoryEpcStore())
        wiring = [
            (
                {(item["id"], item["property"]) for item in callback["inputs"]},
                {(item["id"], item["property"]) for item in callback.get("state", [])},
            )
            for callback in app.callback_map.values()
        ]
        assert ({("quick-order-btn", "n_clicks")}, {("quick-order-qty", "value"), ("viewer-rev", "data")}) in wiring
        assert ({("quick-order-qty", "value")}, set()) in wiring
        assert ({("add-part-open-btn", "n_clicks")}, {("viewer-rev", "data")}) in wiring
