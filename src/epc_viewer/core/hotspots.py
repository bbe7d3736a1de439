from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from epc_viewer.core.geometry import Point, Size, ViewportTransform, marker_size, normalized_to_viewport
from epc_viewer.models import BomItem


@dataclass(frozen=True)
class HotspotMarker:
    """A placed hotspot ready to draw.

    ``position`` is in viewport pixels. ``image_position`` is in natural image
    pixels for front-ends that draw markers inside the transformed layer; such
    layers size the marker with ``layer_size`` so it stays ``base_size`` on
    screen at any zoom.
    """

    id: str
    item_number: str
    position: Point
    image_position: Point
    layer_size: float
    selected: bool
    hovered: bool
    pending: bool


def layout_hotspots(
    items: Iterable[BomItem],
    image_origin: Point,
    transform: ViewportTransform,
    natural_size: Size | None,
    base_size: float,
    selected_id: str | None = None,
    hovered_id: str | None = None,
    pending_id: str | None = None,
) -> list[HotspotMarker]:
    """Markers for all placed hotspots; empty until the image has loaded."""
    if natural_size is None or not natural_size.is_known:
        return []
    markers: list[HotspotMarker] = []
    for item in items:
        if not item.is_positioned:
            continue
        normalized = Point(item.x_position, item.y_position)
        markers.append(
            HotspotMarker(
                id=item.id,
                item_number=item.item_number,
                position=normalized_to_viewport(normalized, image_origin, transform, natural_size),
                image_position=Point(normalized.x * natural_size.width, normalized.y * natural_size.height),
                layer_size=marker_size(base_size, transform.scale),
                selected=item.id == selected_id,
                hovered=item.id == hovered_id,
                pending=item.id == pending_id,
            )
        )
    return markers
