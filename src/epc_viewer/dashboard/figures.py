"""Pure builders turning viewer state into Plotly figures and Dash components."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import plotly.graph_objects as go  # type: ignore[import-untyped]
from dash import dcc, html

from epc_viewer.core.bom import BomRow
from epc_viewer.core.coordinator import Notification
from epc_viewer.core.geometry import Region, Size, ViewportTransform, visible_region
from epc_viewer.core.hotspots import HotspotMarker
from epc_viewer.core.navigator import TreeRow
from epc_viewer.dashboard.styles import (
    BOM_ROW_STYLE,
    TREE_LABEL_STYLE,
    TREE_TOGGLE_STYLE,
    bom_row_background,
    hotspot_color,
    notification_color,
)
from epc_viewer.models import BomItemType, Part

# Cells per axis of the invisible click-capture grid.
CAPTURE_CELLS = 200


def capture_grid(natural_size: Size, cells: int = CAPTURE_CELLS) -> tuple[list[float], list[float], list[list[int]]]:
    """Cell centres and an all-zero matrix covering the drawing.

    Clicking a cell reports its centre, so placement precision is one cell.
    """
    nx = max(1, min(cells, int(natural_size.width)))
    ny = max(1, min(cells, int(natural_size.height)))
    xs = [(i + 0.5) * natural_size.width / nx for i in range(nx)]
    ys = [(j + 0.5) * natural_size.height / ny for j in range(ny)]
    return xs, ys, [[0] * nx for _ in range(ny)]


def drawing_figure(
    drawing_url: str | None,
    natural_size: Size | None,
    viewport_size: Size,
    transform: ViewportTransform,
    markers: Sequence[HotspotMarker],
    marker_px: float,
    transition_ms: int = 300,
) -> go.Figure:
    """Drawing with hotspots, in natural image pixel coordinates.

    The y axis is reversed so image pixel ``(0, 0)`` is the top-left corner.
    Axis ranges come from ``transform`` so the figure shows the same region
    as the viewport.
    """
    fig = go.Figure()
    fig.update_layout(
        width=viewport_size.width,
        height=viewport_size.height,
        margin={"l": 0, "r": 0, "t": 0, "b": 0},
        showlegend=False,
        dragmode="pan",
        plot_bgcolor="#fafafa",
        clickmode="event",
    )
    fig.update_xaxes(visible=False, showgrid=False, zeroline=False)
    fig.update_yaxes(visible=False, showgrid=False, zeroline=False)

    if drawing_url is None or natural_size is None or not natural_size.is_known:
        fig.add_annotation(
            text="No drawing available" if drawing_url is None else "Loading drawing...",
            showarrow=False,
            xref="paper",
            yref="paper",
            x=0.5,
            y=0.5,
            font={"color": "#888", "size": 16},
        )
        return fig

    fig.add_layout_image(
        source=drawing_url,
        xref="x",
        yref="y",
        x=0,
        y=0,
        sizex=natural_size.width,
        sizey=natural_size.height,
        xanchor="left",
        yanchor="top",
        sizing="stretch",
        layer="below",
    )
    xs, ys, z = capture_grid(natural_size)
    fig.add_trace(
        go.Heatmap(
            x=xs,
            y=ys,
            z=z,
            opacity=0,
            showscale=False,
            hoverinfo="none",
            name="capture",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=[m.image_position.x for m in markers],
            y=[m.image_position.y for m in markers],
            mode="markers+text",
            text=[m.item_number for m in markers],
            textposition="middle center",
            textfont={"color": "#fff", "size": 10},
            customdata=[m.id for m in markers],
            hovertemplate="Item %{text}<extra></extra>",
            marker={
                "size": marker_px,
                "color": [hotspot_color(m.selected, m.hovered, m.pending) for m in markers],
                "line": {"width": 1, "color": "#fff"},
            },
            name="hotspots",
        )
    )
    region = visible_region(transform, viewport_size)
    fig.update_xaxes(range=[region.left, region.right])
    fig.update_yaxes(range=[region.bottom, region.top])
    fig.update_layout(transition={"duration": transition_ms, "easing": "cubic-out"})
    return fig


def region_from_relayout(relayout: Mapping[str, Any] | None) -> Region | None:
    """Image region after a user pan/zoom, or ``None`` if ``relayout`` is not one."""
    if not relayout:
        return None
    keys = ("xaxis.range[0]", "xaxis.range[1]", "yaxis.range[0]", "yaxis.range[1]")
    if not all(k in relayout for k in keys):
        return None
    x0, x1, y0, y1 = (float(relayout[k]) for k in keys)
    return Region(left=min(x0, x1), top=min(y0, y1), right=max(x0, x1), bottom=max(y0, y1))


def region_to_transform(region: Region, viewport_size: Size) -> ViewportTransform | None:
    """Inverse of :func:`visible_region` for the horizontal extent."""
    width = region.right - region.left
    if width <= 0:
        return None
    scale = viewport_size.width / width
    return ViewportTransform(scale=scale, offset_x=-region.left * scale, offset_y=-region.top * scale)


def clicked_point(click_data: Mapping[str, Any] | None) -> tuple[float, float, str | None] | None:
    """``(x_px, y_px, hotspot_id)`` of a figure click; the id is set for hotspot clicks."""
    if not click_data or not click_data.get("points"):
        return None
    point = click_data["points"][0]
    if "x" not in point or "y" not in point:
        return None
    hotspot_id = point.get("customdata")
    return float(point["x"]), float(point["y"]), hotspot_id if isinstance(hotspot_id, str) else None


def tree_components(rows: Iterable[TreeRow]) -> list[html.Div]:
    components: list[html.Div] = []
    for row in rows:
        if row.has_children:
            toggle: Any = html.Button(
                "▾" if row.expanded else "▸",
                id={"type": "tree-toggle", "id": row.id},
                n_clicks=0,
                style=TREE_TOGGLE_STYLE,
            )
        else:
            toggle = html.Span(style={"display": "inline-block", "width": "18px"})
        label = html.Button(
            row.name,
            id={"type": "tree-label", "id": row.id},
            n_clicks=0,
            style={**TREE_LABEL_STYLE, "fontWeight": "bold" if row.selected else "normal"},
        )
        components.append(
            html.Div(
                [toggle, label],
                style={
                    "paddingLeft": f"{row.indent}px",
                    "backgroundColor": "#E3F2FD" if row.selected else "transparent",
                },
            )
        )
    return components


def bom_components(rows: Iterable[BomRow], edit_mode: bool, busy: Iterable[str] = ()) -> list[html.Div]:
    busy_ids = set(busy)
    components: list[html.Div] = []
    for row in rows:
        detail = row.part_number if row.type is BomItemType.PART else "sub-assembly"
        children: list[Any] = [
            html.Button(
                [html.B(row.callout), f"  {row.name}"],
                id={"type": "bom-row", "id": row.id},
                n_clicks=0,
                style={**TREE_LABEL_STYLE, "flex": "1"},
            ),
            html.Span(detail or "", style={"color": "#666", "fontSize": "11px"}),
            html.Span("●" if row.positioned else "○", title="placed" if row.positioned else "not placed"),
        ]
        if edit_mode:
            children.append(
                html.Button(
                    "Place",
                    id={"type": "bom-place", "id": row.id},
                    n_clicks=0,
                    disabled=row.id in busy_ids,
                )
            )
            children.append(
                html.Button(
                    "Remove",
                    id={"type": "bom-remove", "id": row.id},
                    n_clicks=0,
                    disabled=row.id in busy_ids,
                )
            )
        components.append(
            html.Div(
                children,
                style={**BOM_ROW_STYLE, "backgroundColor": bom_row_background(row.selected, row.hovered, row.pending)},
            )
        )
    if not components:
        return [html.Div("No items.", style={"color": "#888"})]
    return components


def notification_components(notifications: Iterable[Notification]) -> list[html.Div]:
    return [
        html.Div(
            [html.B(f"{n.title}: "), n.message],
            style={"color": notification_color(n.level), "fontSize": "13px"},
        )
        for n in notifications
    ]


def part_details(part: Part) -> html.Dl:
    fields = [
        ("Name", part.name),
        ("Part number", part.part_number or "-"),
        ("Price", f"{part.price:.2f}"),
        ("In stock", str(part.quantity)),
        ("Low stock", "yes" if part.is_low_stock else "no"),
    ]
    return html.Dl(
        [item for label, value in fields for item in (html.Dt(label, style={"fontWeight": "bold"}), html.Dd(value))]
    )


def order_quantity(value: Any) -> int:
    """Quantity typed into the popover; anything unusable counts as 0."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return int(value)


def can_quick_order(part: Part, quantity: int) -> bool:
    return quantity >= 1 and part.in_stock


def popover_components(item_number: str, part: Part, quantity: int) -> list[html.Div]:
    return [
        html.Div(
            [
                html.H5(f"Item {item_number}", style={"margin": "0 0 6px 0"}),
                part_details(part),
                html.Div(
                    [
                        dcc.Input(
                            id="quick-order-qty",
                            type="number",
                            min=1,
                            step=1,
                            value=quantity,
                            debounce=True,
                            style={"width": "60px"},
                        ),
                        html.Button(
                            "Add to cart",
                            id="quick-order-btn",
                            n_clicks=0,
                            disabled=not can_quick_order(part, quantity),
                        ),
                        html.Button("Close", id="popover-close-btn", n_clicks=0),
                    ],
                    style={"display": "flex", "gap": "6px"},
                ),
            ],
            style={"padding": "10px", "border": "1px solid #ddd", "borderRadius": "8px", "marginTop": "8px"},
        )
    ]
