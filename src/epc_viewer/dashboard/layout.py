"""Dash layout: assembly tree, drawing and BOM side by side."""

from __future__ import annotations

from dash import dcc, html

from epc_viewer.dashboard.styles import PANEL_STYLE, VIEWPORT_SIZE


def _build_tree_panel() -> html.Div:
    return html.Div(
        [
            html.H4("Assemblies", style={"marginTop": "0"}),
            html.Div(id="assembly-tree", children=[]),
        ],
        style={**PANEL_STYLE, "minWidth": "220px", "maxWidth": "280px", "maxHeight": f"{VIEWPORT_SIZE.height}px"},
    )


def _build_drawing_panel() -> html.Div:
    return html.Div(
        [
            html.Div(
                [
                    html.H3(id="assembly-title", children="", style={"margin": "0", "flex": "1"}),
                    html.Button("−", id="zoom-out-btn", n_clicks=0, title="Zoom out"),
                    html.Button("+", id="zoom-in-btn", n_clicks=0, title="Zoom in"),
                    html.Button("Reset", id="zoom-reset-btn", n_clicks=0),
                ],
                style={"display": "flex", "gap": "6px", "alignItems": "center", "marginBottom": "8px"},
            ),
            html.Div(id="mode-banner", style={"fontSize": "13px", "color": "#555", "marginBottom": "6px"}),
            dcc.Graph(
                id="drawing",
                figure={},
                animate=True,
                config={"displayModeBar": False, "scrollZoom": True},
                style={"width": f"{VIEWPORT_SIZE.width}px", "height": f"{VIEWPORT_SIZE.height}px"},
            ),
            html.Div(id="hotspot-popover", children=[]),
        ]
    )


def _build_bom_panel() -> html.Div:
    return html.Div(
        [
            html.Div(
                [
                    html.H4("Bill of materials", style={"margin": "0", "flex": "1"}),
                    dcc.Checklist(
                        id="edit-mode",
                        options=[{"label": " Edit", "value": "edit"}],
                        value=[],
                    ),
                ],
                style={"display": "flex", "alignItems": "center", "marginBottom": "8px"},
            ),
            dcc.Input(
                id="bom-search",
                type="text",
                debounce=True,
                placeholder="Search item, name or part number...",
                style={"width": "100%", "padding": "4px", "marginBottom": "8px"},
            ),
            html.Div(id="bom-list", children=[]),
            html.Button("Add part", id="add-part-open-btn", n_clicks=0, style={"display": "none"}),
            html.Div(
                id="add-part-form",
                children=[
                    html.H5("Add part", style={"marginBottom": "4px"}),
                    dcc.Dropdown(id="add-part-select", placeholder="Select a part...", options=[]),
                    html.Div(
                        [
                            dcc.Input(id="add-item-number", type="text", placeholder="Item no.", style={"width": "90px"}),
                            html.Button("Add", id="add-part-btn", n_clicks=0),
                            html.Button("Cancel", id="add-part-cancel-btn", n_clicks=0),
                        ],
                        style={"display": "flex", "gap": "6px", "marginTop": "6px"},
                    ),
                ],
                style={"display": "none"},
            ),
            html.Div(id="part-details", style={"marginTop": "12px"}),
        ],
        style={**PANEL_STYLE, "minWidth": "300px", "maxHeight": f"{VIEWPORT_SIZE.height + 60}px"},
    )


def build_layout() -> html.Div:
    """Return the top-level Dash layout.

    ``viewer-rev`` is bumped by every callback that changes the viewer so a
    single render callback redraws the tree, the drawing and the BOM.
    """
    return html.Div(
        [
            dcc.Location(id="url", refresh=False),
            dcc.Store(id="page-load", data="ready"),
            dcc.Store(id="viewer-rev", data=0),
            dcc.Store(id="drawing-source", data=None),
            dcc.Store(id="drawing-size", data=None),
            dcc.ConfirmDialog(id="remove-confirm", message=""),
            html.H1("Exploded Parts Catalog"),
            html.Div(id="notifications", style={"marginBottom": "10px"}),
            html.Div(id="cart-summary", style={"fontSize": "13px", "color": "#555", "marginBottom": "10px"}),
            html.Div(
                [_build_tree_panel(), _build_drawing_panel(), _build_bom_panel()],
                style={"display": "flex", "gap": "16px", "alignItems": "flex-start"},
            ),
        ],
        style={"padding": "20px", "fontFamily": "system-ui, sans-serif"},
    )
