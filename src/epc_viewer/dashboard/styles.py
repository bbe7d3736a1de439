"""Dashboard colours and inline styles."""

from __future__ import annotations

from typing import Any

from epc_viewer.core.geometry import Size

# Drawing panel size in screen pixels; the figure is rendered at exactly this size.
VIEWPORT_SIZE = Size(800, 600)

HOTSPOT_COLORS: dict[str, str] = {
    "default": "#2196F3",
    "hovered": "#64B5F6",
    "selected": "#FF5722",
    "pending": "#FFC107",
}

NOTIFICATION_COLORS: dict[str, str] = {
    "info": "#1976D2",
    "warning": "#F57C00",
    "error": "#D32F2F",
}

_DEFAULT_COLOR = "#888888"


def hotspot_color(selected: bool, hovered: bool, pending: bool) -> str:
    """Return the marker colour; pending wins over selected, selected over hovered."""
    if pending:
        return HOTSPOT_COLORS["pending"]
    if selected:
        return HOTSPOT_COLORS["selected"]
    if hovered:
        return HOTSPOT_COLORS["hovered"]
    return HOTSPOT_COLORS["default"]


def notification_color(level: str) -> str:
    return NOTIFICATION_COLORS.get(level, _DEFAULT_COLOR)


PANEL_STYLE: dict[str, Any] = {
    "padding": "12px",
    "border": "1px solid #ddd",
    "borderRadius": "8px",
    "overflowY": "auto",
}

TREE_LABEL_STYLE: dict[str, Any] = {
    "border": "none",
    "background": "none",
    "cursor": "pointer",
    "padding": "2px 4px",
    "textAlign": "left",
}

TREE_TOGGLE_STYLE: dict[str, Any] = {
    "border": "none",
    "background": "none",
    "cursor": "pointer",
    "width": "18px",
    "padding": "0",
}

BOM_ROW_STYLE: dict[str, Any] = {
    "display": "flex",
    "alignItems": "center",
    "gap": "8px",
    "padding": "4px 6px",
    "borderRadius": "4px",
    "fontSize": "13px",
}


def bom_row_background(selected: bool, hovered: bool, pending: bool) -> str:
    if pending:
        return "#FFF8E1"
    if selected:
        return "#FBE9E7"
    if hovered:
        return "#E3F2FD"
    return "transparent"
