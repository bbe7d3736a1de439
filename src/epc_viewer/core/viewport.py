"""Pan/zoom state of the drawing viewer.

Animations are cooperative: nothing runs in the background. The rendering
loop calls :meth:`DrawingViewport.tick` with the current time and reads back
the transform. Starting a new animation replaces the running one.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from epc_viewer.core.geometry import (
    IDENTITY,
    Point,
    Size,
    ViewportTransform,
    clamp_scale,
    ease_out,
    fit_transform,
    interpolate,
    zoom_about,
    zoom_to_hotspot_transform,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Animation:
    start: ViewportTransform
    end: ViewportTransform
    started_at: float
    duration: float

    def sample(self, now: float) -> ViewportTransform:
        if self.duration <= 0:
            return self.end
        progress = (now - self.started_at) / self.duration
        return interpolate(self.start, self.end, ease_out(progress))

    def finished(self, now: float) -> bool:
        return now - self.started_at >= self.duration


class DrawingViewport:
    """Pan/zoom state of one drawing.

    ``min_scale``, ``max_scale`` and ``hotspot_zoom_scale`` are relative to the
    fit scale, at which the whole drawing is visible.
    """

    def __init__(
        self,
        min_scale: float = 0.5,
        max_scale: float = 10.0,
        zoom_step: float = 1.5,
        hotspot_zoom_scale: float = 2.0,
        zoom_duration: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.zoom_step = zoom_step
        self.hotspot_zoom_scale = hotspot_zoom_scale
        self.zoom_duration = zoom_duration
        self._clock = clock
        self._transform = IDENTITY
        self._animation: _Animation | None = None
        self.natural_size: Size | None = None
        self.viewport_size: Size = Size(0, 0)

    @property
    def transform(self) -> ViewportTransform:
        return self._transform

    @property
    def target(self) -> ViewportTransform:
        """Where the viewport ends up once the running animation completes."""
        if self._animation is not None:
            return self._animation.end
        return self._transform

    @property
    def animating(self) -> bool:
        return self._animation is not None

    @property
    def image_loaded(self) -> bool:
        return self.natural_size is not None and self.natural_size.is_known

    @property
    def fit(self) -> ViewportTransform:
        return fit_transform(self.natural_size, self.viewport_size) or IDENTITY

    def _clamp(self, scale: float) -> float:
        fit_scale = self.fit.scale
        return clamp_scale(scale, self.min_scale * fit_scale, self.max_scale * fit_scale)

    def load_image(self, natural_size: Size, viewport_size: Size | None = None) -> None:
        self.natural_size = natural_size
        if viewport_size is not None:
            self.viewport_size = viewport_size
        self.reset()

    def unload_image(self) -> None:
        """Forget the drawing (e.g. while the next assembly's image loads)."""
        self.natural_size = None
        self.reset()

    def resize(self, viewport_size: Size) -> None:
        at_fit = not self.animating and self._transform == self.fit
        self.viewport_size = viewport_size
        if at_fit:
            self.reset()

    def set_transform(self, transform: ViewportTransform) -> bool:
        """Apply a user-driven pan/zoom; cancels any running animation.

        Returns ``True`` when the scale had to be clamped, i.e. the applied
        transform differs from ``transform``.
        """
        self._animation = None
        scale = self._clamp(transform.scale)
        if scale != transform.scale:
            # Keep the viewport center fixed while snapping to the limit.
            center = Point(self.viewport_size.width / 2, self.viewport_size.height / 2)
            self._transform = zoom_about(transform, scale, center)
            return True
        self._transform = transform
        return False

    def reset(self) -> None:
        self._animation = None
        self._transform = self.fit

    def pan_by(self, dx: float, dy: float) -> None:
        current = self.tick()
        self.set_transform(ViewportTransform(current.scale, current.offset_x + dx, current.offset_y + dy))

    def _zoom_by(self, factor: float, anchor: Point | None) -> None:
        current = self.tick()
        new_scale = self._clamp(current.scale * factor)
        if anchor is None:
            anchor = Point(self.viewport_size.width / 2, self.viewport_size.height / 2)
        self.set_transform(zoom_about(current, new_scale, anchor))

    def zoom_in(self, anchor: Point | None = None) -> None:
        self._zoom_by(self.zoom_step, anchor)

    def zoom_out(self, anchor: Point | None = None) -> None:
        self._zoom_by(1 / self.zoom_step, anchor)

    def zoom_to_hotspot(self, point: Point, scale: float | None = None) -> bool:
        """Animate towards ``point`` centered at ``scale``.

        Returns ``False`` and leaves the transform untouched for unplaced
        points or while the image has not loaded.
        """
        if not self.image_loaded:
            logger.debug("zoom_to_hotspot ignored: image not loaded")
            return False
        target_scale = self._clamp((scale or self.hotspot_zoom_scale) * self.fit.scale)
        target = zoom_to_hotspot_transform(point, target_scale, self.natural_size, self.viewport_size)
        if target is None:
            return False
        now = self._clock()
        start = self.tick(now)
        self._animation = _Animation(start=start, end=target, started_at=now, duration=self.zoom_duration)
        return True

    def tick(self, now: float | None = None) -> ViewportTransform:
        """Advance the running animation to ``now`` and return the transform."""
        animation = self._animation
        if animation is None:
            return self._transform
        if now is None:
            now = self._clock()
        if animation.finished(now):
            self._transform = animation.end
            self._animation = None
        else:
            self._transform = animation.sample(now)
        return self._transform
