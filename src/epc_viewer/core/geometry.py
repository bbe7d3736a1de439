"""Hotspot coordinate math.

Two spaces are involved:

* normalized image space: ``(x, y)`` in ``[0, 1]`` relative to the drawing's
  natural pixel size. This is what BOM items store.
* viewport space: screen pixels after the pan/zoom transform has been applied
  to the drawing.

A transform maps an image pixel ``p`` to ``p * scale + offset`` relative to
the image element's origin. Every function here is pure; none of them know
about a rendering framework.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @property
    def is_known(self) -> bool:
        return (
            math.isfinite(self.width)
            and math.isfinite(self.height)
            and self.width > 0
            and self.height > 0
        )


@dataclass(frozen=True)
class ViewportTransform:
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass(frozen=True)
class Region:
    left: float
    top: float
    right: float
    bottom: float


IDENTITY = ViewportTransform()


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


def clamp_scale(scale: float, min_scale: float, max_scale: float) -> float:
    return max(min_scale, min(max_scale, scale))


def normalize_image_point(x_px: float, y_px: float, natural_size: Size | None) -> Point | None:
    """Normalize an image-pixel position and clamp it into the drawing."""
    if natural_size is None or not natural_size.is_known:
        return None
    if not (math.isfinite(x_px) and math.isfinite(y_px)):
        return None
    return Point(clamp_unit(x_px / natural_size.width), clamp_unit(y_px / natural_size.height))


def click_to_normalized(
    click: Point,
    image_origin: Point,
    transform: ViewportTransform,
    natural_size: Size | None,
) -> Point | None:
    """Convert a viewport click into normalized, clamped image coordinates.

    Returns ``None`` instead of NaN when the image has no known natural size
    or the transform cannot be inverted.
    """
    if transform.scale <= 0 or not math.isfinite(transform.scale):
        return None
    rel_x = click.x - image_origin.x
    rel_y = click.y - image_origin.y
    original_x = (rel_x - transform.offset_x) / transform.scale
    original_y = (rel_y - transform.offset_y) / transform.scale
    return normalize_image_point(original_x, original_y, natural_size)


def normalized_to_viewport(
    point: Point,
    image_origin: Point,
    transform: ViewportTransform,
    natural_size: Size,
) -> Point:
    return Point(
        image_origin.x + point.x * natural_size.width * transform.scale + transform.offset_x,
        image_origin.y + point.y * natural_size.height * transform.scale + transform.offset_y,
    )


def marker_size(base_size: float, scale: float) -> float:
    """Marker size inside the transformed layer that renders ``base_size`` on screen."""
    if scale <= 0:
        return base_size
    return base_size / scale


def zoom_to_hotspot_transform(
    point: Point,
    scale: float,
    natural_size: Size | None,
    viewport_size: Size,
) -> ViewportTransform | None:
    """Transform that centers ``point`` in the viewport at ``scale``.

    Unplaced points (negative coordinates) and unknown image sizes give
    ``None``.
    """
    if point.x < 0 or point.y < 0:
        return None
    if natural_size is None or not natural_size.is_known:
        return None
    offset_x = -(point.x * natural_size.width * scale) + viewport_size.width / 2
    offset_y = -(point.y * natural_size.height * scale) + viewport_size.height / 2
    return ViewportTransform(scale=scale, offset_x=offset_x, offset_y=offset_y)


def fit_transform(natural_size: Size | None, viewport_size: Size) -> ViewportTransform | None:
    """Transform that shows the whole drawing centered in the viewport."""
    if natural_size is None or not natural_size.is_known or not viewport_size.is_known:
        return None
    scale = min(viewport_size.width / natural_size.width, viewport_size.height / natural_size.height)
    return ViewportTransform(
        scale=scale,
        offset_x=(viewport_size.width - natural_size.width * scale) / 2,
        offset_y=(viewport_size.height - natural_size.height * scale) / 2,
    )


def visible_region(transform: ViewportTransform, viewport_size: Size) -> Region:
    """Image-pixel rectangle currently shown by a viewport of ``viewport_size``."""
    scale = transform.scale if transform.scale > 0 else 1.0
    return Region(
        left=-transform.offset_x / scale,
        top=-transform.offset_y / scale,
        right=(viewport_size.width - transform.offset_x) / scale,
        bottom=(viewport_size.height - transform.offset_y) / scale,
    )


def zoom_about(
    transform: ViewportTransform,
    new_scale: float,
    anchor: Point,
) -> ViewportTransform:
    """Rescale while keeping the image pixel under ``anchor`` (viewport px) fixed."""
    ratio = new_scale / transform.scale
    return ViewportTransform(
        scale=new_scale,
        offset_x=anchor.x - (anchor.x - transform.offset_x) * ratio,
        offset_y=anchor.y - (anchor.y - transform.offset_y) * ratio,
    )


def interpolate(start: ViewportTransform, end: ViewportTransform, t: float) -> ViewportTransform:
    t = clamp_unit(t)
    return ViewportTransform(
        scale=start.scale + (end.scale - start.scale) * t,
        offset_x=start.offset_x + (end.offset_x - start.offset_x) * t,
        offset_y=start.offset_y + (end.offset_y - start.offset_y) * t,
    )


def ease_out(t: float) -> float:
    t = clamp_unit(t)
    return 1 - (1 - t) ** 3
