"""Dash application factory."""

from __future__ import annotations

from collections.abc import Callable

from dash import Dash

from epc_viewer.config import ViewerSettings
from epc_viewer.core.ports.datastore import EpcDataStore
from epc_viewer.dashboard.callbacks import register_callbacks
from epc_viewer.dashboard.layout import build_layout


def create_dashboard(store_factory: Callable[[], EpcDataStore], settings: ViewerSettings | None = None) -> Dash:
    app = Dash(__name__, suppress_callback_exceptions=True, title="EPC Viewer")
    app.layout = build_layout()
    register_callbacks(app, store_factory, settings)
    return app
