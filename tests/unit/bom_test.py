"""Tests for BOM resolution, search and row actions."""

from __future__ import annotations

import pytest

from epc_viewer.core.bom import (
    BomPanel,
    BomPanelEvents,
    RowActionKind,
    available_parts,
    filter_bom,
    resolve_bom,
    sort_bom,
)
from epc_viewer.models import Assembly, BomItem, BomItemType, Part

BOLT = Part(id="bolt", name="Hex Bolt", part_number="100-21")
GEAR = Part(id="gear", name="Spur Gear", part_number="200-05")
GEARBOX = Assembly(id="gearbox", name="Gearbox")


def _item(item_id: str, number: str, details: Part | Assembly | None) -> BomItem:
    kind = BomItemType.SUB_ASSEMBLY if isinstance(details, Assembly) else BomItemType.PART
    ref = details.id if details is not None else "missing"
    return BomItem(id=item_id, assembly_id="main", item_number=number, type=kind, ref_id=ref, details=details)


@pytest.fixture
def items() -> list[BomItem]:
    return [_item("a", "1", BOLT), _item("b", "2", GEAR), _item("c", "3", GEARBOX)]


class TestResolveBom:
    def test_attaches_details_and_sorts(self) -> None:
        raw = [
            BomItem(id="y", assembly_id="m", item_number="2", type=BomItemType.SUB_ASSEMBLY, ref_id="gearbox"),
            BomItem(id="x", assembly_id="m", item_number="1", type=BomItemType.PART, ref_id="bolt"),
        ]
        resolved = resolve_bom(raw, [BOLT, GEAR], [GEARBOX])
        assert [i.id for i in resolved] == ["x", "y"]
        assert resolved[0].details == BOLT
        assert resolved[1].details == GEARBOX

    def test_drops_unresolvable(self) -> None:
        raw = [BomItem(id="x", assembly_id="m", item_number="1", type=BomItemType.PART, ref_id="ghost")]
        assert resolve_bom(raw, [BOLT], []) == []

    def test_sort_is_stable_on_ties(self) -> None:
        ordered = sort_bom([_item("b", "1", BOLT), _item("a", "1", GEAR)])
        assert [i.id for i in ordered] == ["a", "b"]


class TestFilterBom:
    def test_part_number_prefix(self) -> None:
        items = [_item("a", "1", BOLT), _item("b", "2", GEAR)]
        assert [i.id for i in filter_bom(items, "100-2")] == ["a"]

    def test_matches_name_case_insensitive(self, items: list[BomItem]) -> None:
        assert [i.id for i in filter_bom(items, "GEAR")] == ["b", "c"]

    def test_matches_callout(self, items: list[BomItem]) -> None:
        assert [i.id for i in filter_bom(items, "3")] == ["c"]

    def test_empty_term_keeps_all(self, items: list[BomItem]) -> None:
        assert filter_bom(items, "  ") == items
        assert filter_bom(items, None) == items

    def test_items_without_details_never_match(self) -> None:
        assert filter_bom([_item("z", "1", None)], "") == []


class TestAvailableParts:
    def test_excludes_parts_already_in_bom(self) -> None:
        assert available_parts([BOLT, GEAR], ["bolt"]) == [GEAR]

    def test_filters_by_term(self) -> None:
        assert available_parts([BOLT, GEAR], [], "200") == [GEAR]
        assert available_parts([BOLT, GEAR], [], "hex") == [BOLT]


class TestBomPanel:
    def test_view_mode_part_row_opens_part(self, items: list[BomItem]) -> None:
        opened: list[Part] = []
        panel = BomPanel(BomPanelEvents(on_open_part=opened.append))
        panel.set_items(items)
        action = panel.click("a", edit_mode=False)
        assert action is not None
        assert action.kind is RowActionKind.OPEN_PART
        assert opened == [BOLT]

    def test_view_mode_sub_assembly_row_navigates(self, items: list[BomItem]) -> None:
        navigated: list[str] = []
        panel = BomPanel(BomPanelEvents(on_navigate=navigated.append))
        panel.set_items(items)
        action = panel.click("c", edit_mode=False)
        assert action is not None
        assert action.kind is RowActionKind.NAVIGATE
        assert action.assembly_id == "gearbox"
        assert navigated == ["gearbox"]

    def test_edit_mode_row_selects(self, items: list[BomItem]) -> None:
        panel = BomPanel()
        panel.set_items(items)
        action = panel.click("c", edit_mode=True)
        assert action is not None
        assert action.kind is RowActionKind.SELECT

    def test_unknown_row_ignored(self, items: list[BomItem]) -> None:
        panel = BomPanel()
        panel.set_items(items)
        assert panel.click("nope", edit_mode=False) is None

    def test_rows_flags_and_search(self, items: list[BomItem]) -> None:
        panel = BomPanel()
        panel.set_items(items)
        panel.set_search("gear")
        rows = panel.rows(selected_id="b", hovered_id="c", pending_id=None)
        assert [r.id for r in rows] == ["b", "c"]
        assert rows[0].selected and not rows[0].hovered
        assert rows[1].hovered
        assert rows[1].part_number is None

    def test_remove_needs_confirmation(self, items: list[BomItem]) -> None:
        removed: list[str] = []
        panel = BomPanel(BomPanelEvents(on_remove=removed.append))
        panel.set_items(items)
        panel.request_remove("a")
        assert removed == []
        panel.cancel_remove()
        assert panel.confirm_remove() is None
        panel.request_remove("a")
        assert panel.confirm_remove() == "a"
        assert removed == ["a"]

    def test_pending_removal_dropped_with_item(self, items: list[BomItem]) -> None:
        panel = BomPanel()
        panel.set_items(items)
        panel.request_remove("a")
        panel.set_items(items[1:])
        assert panel.pending_removal is None

    def test_hover_and_leave(self, items: list[BomItem]) -> None:
        hovered: list[str | None] = []
        panel = BomPanel(BomPanelEvents(on_hover=hovered.append))
        panel.hover("a")
        panel.leave()
        assert hovered == ["a", None]

    def test_exclude_part_ids(self, items: list[BomItem]) -> None:
        panel = BomPanel()
        panel.set_items(items)
        assert panel.exclude_part_ids() == ["bolt", "gear"]
